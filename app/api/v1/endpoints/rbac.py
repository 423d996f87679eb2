from fastapi import APIRouter, Depends

from app.api.v1.deps import authenticated, get_rbac_service, ok
from app.models.staff import PermissionCheck
from app.models.user import AuthenticatedUser
from app.services.rbac import RBACService

router = APIRouter()


@router.post("/check-permission")
async def check_permission(data: PermissionCheck,
                           user: AuthenticatedUser = Depends(authenticated()),
                           rbac: RBACService = Depends(get_rbac_service)):
    return ok({
        "hasPermission": rbac.has_permission(user.uid, data.permission),
        "userId": user.uid,
        "permission": data.permission,
    })


@router.get("/user-permissions")
async def user_permissions(user: AuthenticatedUser = Depends(authenticated()),
                           rbac: RBACService = Depends(get_rbac_service)):
    """Role, permissions and console pages of the caller, for building the admin UI."""
    role = rbac.get_user_role(user.uid)
    return ok({
        "userId": user.uid,
        "role": role.value if role else None,
        "permissions": sorted(p.value for p in rbac.get_user_permissions(user.uid)),
        "pages": sorted(rbac.get_user_pages(user.uid)),
        "isAdmin": rbac.is_admin(user.uid),
        "isSuperAdmin": user.is_super_admin,
    })
