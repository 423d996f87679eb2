from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Union

# --- 1. Define the Roles ---
class Role(str, Enum):
    SUPER_ADMIN = "superadmin"   # Everything, including staff and role management
    ADMIN = "admin"              # Runs the platform, cannot manage staff
    MANAGER = "manager"          # Edits users, schemes, cards and referrals
    SUPPORT = "support"          # Read access plus support desk and winner handling
    NEW = "new"                  # Freshly signed-up staff, own profile only

# --- 2. Define the Permissions ---
class Permission(str, Enum):
    DASHBOARD_VIEW = "dashboard:view"

    USERS_VIEW = "users:view"
    USERS_EDIT = "users:edit"
    USERS_DELETE = "users:delete"

    STAFF_VIEW = "staff:view"
    STAFF_EDIT = "staff:edit"
    STAFF_DELETE = "staff:delete"
    STAFF_ROLES = "staff:roles"

    SCHEMES_VIEW = "schemes:view"
    SCHEMES_EDIT = "schemes:edit"
    SCHEMES_DELETE = "schemes:delete"

    CARDS_VIEW = "cards:view"
    CARDS_EDIT = "cards:edit"
    CARDS_ISSUE = "cards:issue"

    INCOME_VIEW = "income:view"
    INCOME_EDIT = "income:edit"

    REFERRALS_VIEW = "referrals:view"
    REFERRALS_EDIT = "referrals:edit"
    REFERRALS_SETTINGS = "referrals:settings"
    REFERRALS_LEVELS_MANAGE = "referrals:levels:manage"

    SUPPORT_VIEW = "support:view"
    SUPPORT_RESPOND = "support:respond"
    SUPPORT_ADMIN = "support:admin"

    WINNERS_VIEW = "winners:view"
    WINNERS_EDIT = "winners:edit"
    WINNERS_DELETE = "winners:delete"

    SETTINGS_VIEW = "settings:view"
    SETTINGS_EDIT = "settings:edit"
    SETTINGS_ADMIN = "settings:admin"

    PROFILE_VIEW = "profile:view"
    PROFILE_EDIT = "profile:edit"

# --- 3. The "Constitution" (Role -> Allowed Permissions) ---
RBAC_POLICY: Dict[Role, FrozenSet[Permission]] = {

    # Super Admin: Can do absolutely everything
    Role.SUPER_ADMIN: frozenset(Permission),

    # Admin: Runs the platform but cannot touch staff accounts
    Role.ADMIN: frozenset([
        Permission.DASHBOARD_VIEW,
        Permission.USERS_VIEW,
        Permission.USERS_EDIT,
        Permission.USERS_DELETE,
        Permission.SCHEMES_VIEW,
        Permission.SCHEMES_EDIT,
        Permission.SCHEMES_DELETE,
        Permission.CARDS_VIEW,
        Permission.CARDS_EDIT,
        Permission.CARDS_ISSUE,
        Permission.INCOME_VIEW,
        Permission.INCOME_EDIT,
        Permission.REFERRALS_VIEW,
        Permission.REFERRALS_EDIT,
        Permission.REFERRALS_SETTINGS,
        Permission.REFERRALS_LEVELS_MANAGE,
        Permission.SUPPORT_VIEW,
        Permission.SUPPORT_RESPOND,
        Permission.SUPPORT_ADMIN,
        Permission.WINNERS_VIEW,
        Permission.SETTINGS_VIEW,
        Permission.SETTINGS_EDIT,
        Permission.PROFILE_VIEW,
        Permission.PROFILE_EDIT,
    ]),

    # Manager: Day-to-day edits, no deletes
    Role.MANAGER: frozenset([
        Permission.DASHBOARD_VIEW,
        Permission.USERS_VIEW,
        Permission.USERS_EDIT,
        Permission.SCHEMES_VIEW,
        Permission.SCHEMES_EDIT,
        Permission.CARDS_VIEW,
        Permission.CARDS_EDIT,
        Permission.INCOME_VIEW,
        Permission.REFERRALS_VIEW,
        Permission.REFERRALS_EDIT,
        Permission.SUPPORT_VIEW,
        Permission.SUPPORT_RESPOND,
        Permission.SETTINGS_VIEW,
        Permission.PROFILE_VIEW,
        Permission.PROFILE_EDIT,
    ]),

    # Support: Read-only on the business, owns the support desk and winners
    Role.SUPPORT: frozenset([
        Permission.DASHBOARD_VIEW,
        Permission.USERS_VIEW,
        Permission.SCHEMES_VIEW,
        Permission.CARDS_VIEW,
        Permission.INCOME_VIEW,
        Permission.REFERRALS_VIEW,
        Permission.SUPPORT_VIEW,
        Permission.SUPPORT_RESPOND,
        Permission.WINNERS_VIEW,
        Permission.WINNERS_EDIT,
        Permission.WINNERS_DELETE,
        Permission.SETTINGS_VIEW,
        Permission.PROFILE_VIEW,
        Permission.PROFILE_EDIT,
    ]),

    # New: Waiting for a role assignment
    Role.NEW: frozenset([
        Permission.DASHBOARD_VIEW,
        Permission.SETTINGS_VIEW,
        Permission.PROFILE_VIEW,
        Permission.PROFILE_EDIT,
    ]),
}

# --- 4. Admin console pages per role ---
ADMIN_PAGES = (
    "/admin",
    "/admin/schemes",
    "/admin/cards",
    "/admin/users",
    "/admin/income",
    "/admin/referrals",
    "/admin/referrals/settings",
    "/admin/staff",
    "/admin/winners",
    "/admin/support",
    "/admin/profile",
    "/admin/settings",
)

ROLE_PAGES: Dict[Role, FrozenSet[str]] = {
    Role.SUPER_ADMIN: frozenset(ADMIN_PAGES),
    Role.ADMIN: frozenset(ADMIN_PAGES) - {"/admin/staff"},
    Role.MANAGER: frozenset(ADMIN_PAGES) - {"/admin/staff", "/admin/referrals/settings"},
    Role.SUPPORT: frozenset(ADMIN_PAGES) - {"/admin/staff", "/admin/referrals/settings"},
    Role.NEW: frozenset(["/admin", "/admin/profile", "/admin/settings"]),
}

# API prefixes a role may call; "/*" marks a prefix pattern.
ROLE_API_ENDPOINTS: Dict[Role, List[str]] = {
    Role.SUPER_ADMIN: ["/api/v1/admin/*"],
    Role.ADMIN: [
        "/api/v1/admin/users/*",
        "/api/v1/admin/user-profiles/*",
        "/api/v1/admin/schemes/*",
        "/api/v1/admin/cards/*",
        "/api/v1/admin/winners/*",
        "/api/v1/admin/referral-levels/*",
    ],
    Role.MANAGER: [
        "/api/v1/admin/users/*",
        "/api/v1/admin/user-profiles/*",
        "/api/v1/admin/schemes/*",
        "/api/v1/admin/cards/*",
        "/api/v1/admin/referral-levels/*",
    ],
    Role.SUPPORT: [
        "/api/v1/admin/winners/*",
        "/api/v1/admin/user-profiles",
        "/api/v1/admin/cards",
    ],
    Role.NEW: ["/api/v1/admin/profile/*"],
}

# --- 5. Privilege order (higher manages lower) ---
ROLE_LEVELS: Dict[Role, int] = {
    Role.NEW: 1,
    Role.SUPPORT: 2,
    Role.MANAGER: 3,
    Role.ADMIN: 4,
    Role.SUPER_ADMIN: 5,
}

ADMIN_ROLES = frozenset([Role.SUPER_ADMIN, Role.ADMIN, Role.MANAGER])


def normalize_role(value: Union[str, Role, None]) -> Optional[Role]:
    """Maps a stored role string to a Role. Unknown values mean no access."""
    if isinstance(value, Role):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Role(value.strip().lower())
    except ValueError:
        return None


def permissions_for(role: Union[str, Role, None]) -> FrozenSet[Permission]:
    return RBAC_POLICY.get(normalize_role(role), frozenset())


def pages_for(role: Union[str, Role, None]) -> FrozenSet[str]:
    return ROLE_PAGES.get(normalize_role(role), frozenset())


def role_level(role: Union[str, Role, None]) -> int:
    return ROLE_LEVELS.get(normalize_role(role), 0)


def check_permission(role: Union[str, Role, None], permission: Union[str, Permission]) -> bool:
    """Helper function to check if a role is allowed to perform an action."""
    try:
        permission = Permission(permission)
    except ValueError:
        return False
    return permission in permissions_for(role)


def endpoint_allowed(role: Union[str, Role, None], endpoint: str) -> bool:
    patterns = ROLE_API_ENDPOINTS.get(normalize_role(role), [])
    if endpoint in patterns:
        return True
    for pattern in patterns:
        if pattern.endswith("/*"):
            base = pattern[:-2]
            if endpoint == base or endpoint.startswith(base + "/"):
                return True
    return False
