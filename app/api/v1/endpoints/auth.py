import logging
from fastapi import APIRouter, Depends

from app.api.v1.deps import (
    authenticated, get_rbac_service, get_rpc_client, get_user_profile_service, ok,
)
from app.core.errors import Forbidden, ValidationError
from app.models.staff import AccessKeyCheck, AdminSignup
from app.models.user import AuthenticatedUser, EnsureProfileRequest
from app.services.rbac import RBACService
from app.services.rpc import RpcClient
from app.services.user_profiles import UserProfileService

logger = logging.getLogger("akshayapatra.auth")

router = APIRouter()


@router.get("/me")
async def read_users_me(user: AuthenticatedUser = Depends(authenticated()),
                        rbac: RBACService = Depends(get_rbac_service)):
    """Returns the caller's identity and, for staff, their role."""
    role = rbac.get_user_role(user.uid)
    return ok({
        "uid": user.uid,
        "email": user.email,
        "phoneNumber": user.phone_number,
        "name": user.name,
        "picture": user.picture,
        "isSuperAdmin": user.is_super_admin,
        "role": role.value if role else None,
    })


@router.post("/ensure-profile")
async def ensure_profile(data: EnsureProfileRequest,
                         user: AuthenticatedUser = Depends(authenticated()),
                         rpc: RpcClient = Depends(get_rpc_client),
                         profiles: UserProfileService = Depends(get_user_profile_service)):
    """
    Creates the caller's user profile if it does not exist yet, attaching
    the referrer and the initial scheme when given.
    """
    rpc.call("ensure_profile2", {
        "p_user_id": user.uid,
        "p_full_name": data.full_name or user.name,
        "p_phone": data.phone_number or user.phone_number,
        "p_referral_code": data.referral_code,
        "p_scheme_id": data.scheme_id,
    }, user_token=user.token)
    return ok(profiles.get(user.uid), "Profile ensured")


@router.post("/admin/check-access")
async def check_admin_access(data: AccessKeyCheck, rpc: RpcClient = Depends(get_rpc_client)):
    """Public: tells the staff signup page whether an access key is valid."""
    valid = rpc.call("validate_admin_access_key", {"access_key": data.access_key}) is True
    return {
        "success": True,
        "isValid": valid,
        "message": "Access key verified successfully" if valid else "Invalid access key",
    }


@router.post("/admin/signup")
async def admin_signup(data: AdminSignup,
                       user: AuthenticatedUser = Depends(authenticated()),
                       rpc: RpcClient = Depends(get_rpc_client),
                       rbac: RBACService = Depends(get_rbac_service)):
    """Creates a staff profile (role "new") for the caller, gated by the access key."""
    created = rpc.call("create_staff_profile", {
        "user_id": user.uid,
        "access_key": data.access_key,
        "full_name": data.full_name,
        "phone_number": data.phone_number or user.phone_number,
    }, user_token=user.token)
    if created is False:
        raise Forbidden("Invalid access key")
    if not created:
        raise ValidationError("Failed to create staff profile")

    rbac.clear_user_cache(user.uid)
    logger.info(f"Staff signup completed for {user.uid}")
    return ok(None, "Admin signup completed successfully")
