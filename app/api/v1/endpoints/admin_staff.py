import logging
from fastapi import APIRouter, Depends

from app.api.v1.deps import (
    get_audit_service, get_identity_admin, get_rbac_service, get_staff_service, ok, with_permission,
    with_super_admin,
)
from app.core.errors import Forbidden, NotFoundError, ValidationError
from app.core.rbac import Permission, Role
from app.db.firestore import utcnow
from app.models.staff import BanRequest, OwnStaffProfileUpdate, RoleUpdate, StaffCreate, StaffUpdate
from app.models.user import AuthenticatedUser
from app.services.audit import AuditService
from app.services.identity import IdentityAdmin
from app.services.rbac import RBACService
from app.services.staff import StaffService, parse_ban_duration

logger = logging.getLogger("akshayapatra.staff")
router = APIRouter()


def _role_value(user: AuthenticatedUser):
    return user.role.value if user.role else None


def _check_target(actor: AuthenticatedUser, staff_id: str, staff: StaffService, rbac: RBACService,
                  super_admin_override: bool = False) -> dict:
    """
    Target must exist, must not be the actor, and must rank below the actor.
    With `super_admin_override`, a caller holding the super admin claim may
    act on any other account regardless of rank.
    """
    if staff_id == actor.uid:
        raise Forbidden("You cannot modify your own staff account")
    target = staff.get_staff_profile(staff_id)
    if not target:
        raise NotFoundError("Staff member not found")
    if super_admin_override and actor.is_super_admin:
        return target
    if not rbac.can_manage_user(actor.uid, staff_id):
        raise Forbidden("You cannot manage this staff member")
    return target


# --- 1. STAFF DIRECTORY ---
@router.get("/staff")
async def list_staff(user: AuthenticatedUser = Depends(with_permission(Permission.STAFF_VIEW)),
                     staff: StaffService = Depends(get_staff_service)):
    return ok(staff.list_staff())


@router.get("/staff/all")
async def list_staff_with_emails(user: AuthenticatedUser = Depends(with_permission(Permission.STAFF_VIEW)),
                                 staff: StaffService = Depends(get_staff_service),
                                 identity: IdentityAdmin = Depends(get_identity_admin)):
    """Staff profiles joined with the sign-in email of each account."""
    rows = staff.list_staff()
    emails = identity.list_emails(row["id"] for row in rows)
    return ok([{**row, "email": emails.get(row["id"])} for row in rows])


@router.get("/staff/stats")
async def staff_stats(user: AuthenticatedUser = Depends(with_permission(Permission.STAFF_VIEW)),
                      staff: StaffService = Depends(get_staff_service)):
    return ok(staff.get_staff_stats())


@router.get("/staff/{staff_id}")
async def get_staff(staff_id: str,
                    user: AuthenticatedUser = Depends(with_permission(Permission.STAFF_VIEW)),
                    staff: StaffService = Depends(get_staff_service)):
    profile = staff.get_staff_profile(staff_id)
    if not profile:
        raise NotFoundError("Staff member not found")
    return ok(profile)


@router.post("/staff", status_code=201)
async def create_staff(data: StaffCreate,
                       user: AuthenticatedUser = Depends(with_super_admin()),
                       staff: StaffService = Depends(get_staff_service),
                       rbac: RBACService = Depends(get_rbac_service),
                       audit: AuditService = Depends(get_audit_service)):
    try:
        profile = staff.create_staff_profile(data.id, data.full_name, data.phone_number, data.role)
    finally:
        rbac.clear_user_cache(data.id)
    audit.log_activity(user.uid, _role_value(user), "staff.create", data.id, {"role": data.role.value})
    return ok(profile, "Staff member created successfully")


# --- 2. STAFF MANAGEMENT ---
@router.patch("/staff/{staff_id}")
async def update_staff(staff_id: str, data: StaffUpdate,
                       user: AuthenticatedUser = Depends(with_permission(Permission.STAFF_EDIT)),
                       staff: StaffService = Depends(get_staff_service),
                       rbac: RBACService = Depends(get_rbac_service),
                       audit: AuditService = Depends(get_audit_service)):
    _check_target(user, staff_id, staff, rbac)
    updates = data.model_dump(exclude_none=True)
    if not updates:
        raise ValidationError("No valid fields to update")

    try:
        profile = staff.update_staff_profile(staff_id, updates)
    finally:
        rbac.clear_user_cache(staff_id)
    audit.log_activity(user.uid, _role_value(user), "staff.update", staff_id, {"fields": sorted(updates)})
    return ok(profile, "Staff member updated successfully")


@router.patch("/staff/{staff_id}/role")
async def update_staff_role(staff_id: str, data: RoleUpdate,
                            user: AuthenticatedUser = Depends(with_permission(Permission.STAFF_ROLES)),
                            staff: StaffService = Depends(get_staff_service),
                            rbac: RBACService = Depends(get_rbac_service),
                            audit: AuditService = Depends(get_audit_service)):
    target = _check_target(user, staff_id, staff, rbac)

    if data.role == Role.SUPER_ADMIN and user.role != Role.SUPER_ADMIN:
        raise Forbidden("Only a super admin can assign the superadmin role")
    if data.role == Role.ADMIN and user.role not in (Role.SUPER_ADMIN, Role.ADMIN):
        raise Forbidden("Only a super admin or admin can assign the admin role")

    # The write may land even when the read-back fails
    try:
        profile = staff.update_staff_role(staff_id, data.role)
    finally:
        rbac.clear_user_cache(staff_id)
    audit.log_activity(user.uid, _role_value(user), "staff.role", staff_id,
                       {"from": target.get("role"), "to": data.role.value})
    logger.info(f"{user.uid} changed role of {staff_id} to {data.role.value}")
    return ok(profile, "Role updated successfully")


@router.patch("/staff/{staff_id}/ban")
async def ban_staff(staff_id: str, data: BanRequest,
                    user: AuthenticatedUser = Depends(with_permission(Permission.STAFF_EDIT)),
                    staff: StaffService = Depends(get_staff_service),
                    rbac: RBACService = Depends(get_rbac_service),
                    identity: IdentityAdmin = Depends(get_identity_admin),
                    audit: AuditService = Depends(get_audit_service)):
    """
    Ban: the profile goes inactive, the account is disabled and its
    sessions revoked. Unban reverses all three.

    Staff with `staff:edit` may ban members ranked below them. A caller with
    the super admin claim may ban or unban anyone but themselves, other
    superadmins included.
    """
    _check_target(user, staff_id, staff, rbac, super_admin_override=True)

    length = parse_ban_duration(data.duration) if data.action == "ban" else None
    # The profile change alone already denies access; the cached role goes even if the read-back fails
    try:
        if data.action == "ban":
            banned_until = utcnow() + length if length else None
            profile = staff.set_staff_active(staff_id, False, banned_until)
        else:
            profile = staff.set_staff_active(staff_id, True, None)
    finally:
        rbac.clear_user_cache(staff_id)
    identity.set_disabled(staff_id, data.action == "ban")

    audit.log_activity(user.uid, _role_value(user), f"staff.{data.action}", staff_id,
                       {"duration": data.duration} if data.action == "ban" else None)
    logger.info(f"{user.uid} {data.action}ned {staff_id}")
    return {"success": True, "action": data.action, "data": profile}


# --- 3. OWN STAFF PROFILE ---
@router.get("/profile")
async def get_own_profile(user: AuthenticatedUser = Depends(with_permission(Permission.PROFILE_VIEW)),
                          staff: StaffService = Depends(get_staff_service)):
    profile = staff.get_staff_profile(user.uid)
    if not profile:
        raise NotFoundError("Staff profile not found")
    return ok(profile)


@router.put("/profile")
async def update_own_profile(data: OwnStaffProfileUpdate,
                             user: AuthenticatedUser = Depends(with_permission(Permission.PROFILE_EDIT)),
                             staff: StaffService = Depends(get_staff_service),
                             rbac: RBACService = Depends(get_rbac_service)):
    try:
        profile = staff.update_staff_profile(user.uid, data.model_dump(exclude_none=True))
    finally:
        rbac.clear_user_cache(user.uid)
    if profile is None:
        raise NotFoundError("Staff profile not found")
    return ok(profile, "Profile updated successfully")
