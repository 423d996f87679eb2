"""
Request dependencies: identity, the authorization guard, and service
providers. Tests replace any of these through `app.dependency_overrides`.
"""
import logging
from dataclasses import dataclass
from typing import Any, FrozenSet, Optional

from fastapi import Depends, Header, Request

from app.core.cache import PermissionCache
from app.core.errors import AkshayapatraError, Forbidden, Unauthenticated
from app.core.rbac import Permission, Role, normalize_role, role_level
from app.db.firestore import get_db
from app.models.user import AuthenticatedUser
from app.services.audit import AuditService
from app.services.cards import CardService, EligibleCardService
from app.services.identity import FirebaseTokenVerifier, IdentityAdmin
from app.services.overview import OverviewService
from app.services.prizes import PrizeService
from app.services.rbac import RBACService
from app.services.referrals import ReferralService
from app.services.rpc import RpcClient, get_rpc_client
from app.services.schemes import SchemeService
from app.services.staff import StaffService
from app.services.user_profiles import UserProfileService
from app.services.winners import WinnerService

logger = logging.getLogger("akshayapatra.auth")


def ok(data: Any = None, message: Optional[str] = None) -> dict:
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body


# --- SERVICE PROVIDERS ---

def get_token_verifier() -> FirebaseTokenVerifier:
    return FirebaseTokenVerifier()


def get_identity_admin() -> IdentityAdmin:
    return IdentityAdmin()


def get_permission_cache(request: Request) -> PermissionCache:
    return request.app.state.permission_cache


def get_staff_service(db=Depends(get_db)) -> StaffService:
    return StaffService(db)


def get_rbac_service(staff: StaffService = Depends(get_staff_service),
                     cache: PermissionCache = Depends(get_permission_cache)) -> RBACService:
    return RBACService(staff, cache)


def get_user_profile_service(db=Depends(get_db)) -> UserProfileService:
    return UserProfileService(db)


def get_card_service(db=Depends(get_db)) -> CardService:
    return CardService(db)


def get_eligible_card_service(db=Depends(get_db)) -> EligibleCardService:
    return EligibleCardService(db)


def get_scheme_service(db=Depends(get_db), rpc: RpcClient = Depends(get_rpc_client)) -> SchemeService:
    return SchemeService(db, rpc=rpc)


def get_prize_service(db=Depends(get_db)) -> PrizeService:
    return PrizeService(db)


def get_winner_service(db=Depends(get_db)) -> WinnerService:
    return WinnerService(db)


def get_referral_service(db=Depends(get_db), rpc: RpcClient = Depends(get_rpc_client)) -> ReferralService:
    return ReferralService(db, rpc=rpc)


def get_overview_service(rpc: RpcClient = Depends(get_rpc_client)) -> OverviewService:
    return OverviewService(rpc=rpc)


def get_audit_service(db=Depends(get_db)) -> AuditService:
    return AuditService(db)


# --- IDENTITY ---

async def get_current_user(authorization: Optional[str] = Header(None),
                           verifier: FirebaseTokenVerifier = Depends(get_token_verifier)) -> AuthenticatedUser:
    """
    Verifies the Firebase Bearer Token. Nothing else in the request runs
    when this fails.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthenticated()
    token = authorization[len("Bearer "):].strip()
    if not token:
        raise Unauthenticated()

    claims = verifier.verify(token)
    return AuthenticatedUser.from_claims(claims, token)


# --- AUTHORIZATION GUARD ---

@dataclass(frozen=True)
class AuthConfig:
    required_permission: Optional[Permission] = None
    super_admin_only: bool = False
    require_profile: bool = False
    profile_kind: str = "user"              # "user" or "staff"
    missing_profile_status: int = 404
    minimum_role: Optional[Role] = None
    allowed_roles: Optional[FrozenSet[Role]] = None


class _ProfileMissing(AkshayapatraError):
    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__("Profile not found")


def require_auth(config: AuthConfig = AuthConfig()):
    """
    Builds a dependency that authenticates the caller and applies `config`
    before the route runs. Checks run in a fixed order: super admin claim,
    permission, role, profile. The first failure ends the request.
    """

    async def guard(user: AuthenticatedUser = Depends(get_current_user),
                    rbac: RBACService = Depends(get_rbac_service),
                    profiles: UserProfileService = Depends(get_user_profile_service)) -> AuthenticatedUser:
        if config.super_admin_only and not user.is_super_admin:
            logger.info(f"Super admin required, denied {user.uid}")
            raise Forbidden("Super admin access required")

        if config.required_permission is not None and not rbac.has_permission(user.uid, config.required_permission):
            logger.info(f"Permission {config.required_permission} denied for {user.uid}")
            raise Forbidden()

        role = None
        needs_role = (config.required_permission is not None or config.minimum_role is not None
                      or config.allowed_roles is not None)
        if needs_role:
            # Served from the permission cache after the permission check above
            role = rbac.get_user_role(user.uid)
        if config.minimum_role is not None and role_level(role) < role_level(config.minimum_role):
            logger.info(f"Role {role} below {config.minimum_role} for {user.uid}")
            raise Forbidden()
        if config.allowed_roles is not None and role not in config.allowed_roles:
            logger.info(f"Role {role} not allowed for {user.uid}")
            raise Forbidden()

        if config.require_profile:
            if config.profile_kind == "staff":
                profile = rbac.staff_service.get_staff_profile(user.uid)
            else:
                profile = profiles.get(user.uid)
            if not profile:
                raise _ProfileMissing(config.missing_profile_status)
            if not profile.get("is_active", True):
                raise Forbidden("Account is inactive")

        return user.model_copy(update={"role": normalize_role(role)})

    return guard


def authenticated():
    return require_auth(AuthConfig())


def with_permission(permission: Permission, **options):
    return require_auth(AuthConfig(required_permission=permission, **options))


def with_super_admin(**options):
    return require_auth(AuthConfig(super_admin_only=True, **options))


def with_minimum_role(role: Role, **options):
    return require_auth(AuthConfig(minimum_role=role, **options))


def with_staff_only(**options):
    """Any active staff member, whatever the role."""
    return require_auth(AuthConfig(allowed_roles=frozenset(Role), **options))
