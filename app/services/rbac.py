import logging
import time
from dataclasses import dataclass
from typing import FrozenSet, Optional

from app.core.cache import PermissionCache
from app.core.rbac import (
    ADMIN_ROLES, Permission, Role, check_permission, endpoint_allowed, pages_for, permissions_for,
    role_level,
)
from app.services.staff import StaffService

logger = logging.getLogger("akshayapatra.rbac")


@dataclass(frozen=True)
class ResolvedAccess:
    role: Role
    permissions: FrozenSet[Permission]
    pages: FrozenSet[str]
    computed_at: float


class RBACService:
    """
    Answers authorization questions for staff members.

    Every question resolves the caller's role through the shared
    PermissionCache. Anything that goes wrong while resolving (no profile,
    inactive or banned profile, datastore failure) is answered with "no".
    """

    def __init__(self, staff_service: StaffService, cache: PermissionCache):
        self.staff_service = staff_service
        self.cache = cache

    def _lookup(self, user_id: str) -> Optional[ResolvedAccess]:
        role = self.staff_service.get_user_role(user_id)
        if role is None:
            return None
        return ResolvedAccess(
            role=role,
            permissions=permissions_for(role),
            pages=pages_for(role),
            computed_at=time.time(),
        )

    def resolve(self, user_id: str) -> Optional[ResolvedAccess]:
        if not user_id:
            return None
        try:
            return self.cache.get_or_compute(user_id, lambda: self._lookup(user_id))
        except Exception as e:
            logger.error(f"Role lookup failed for {user_id}: {e}")
            return None

    def has_permission(self, user_id: str, permission) -> bool:
        access = self.resolve(user_id)
        if access is None:
            return False
        return check_permission(access.role, permission)

    def get_user_permissions(self, user_id: str) -> FrozenSet[Permission]:
        access = self.resolve(user_id)
        return access.permissions if access else frozenset()

    def get_user_pages(self, user_id: str) -> FrozenSet[str]:
        access = self.resolve(user_id)
        return access.pages if access else frozenset()

    def get_user_role(self, user_id: str) -> Optional[Role]:
        access = self.resolve(user_id)
        return access.role if access else None

    def can_access_page(self, user_id: str, page: str) -> bool:
        return page in self.get_user_pages(user_id)

    def can_access_api(self, user_id: str, endpoint: str) -> bool:
        role = self.get_user_role(user_id)
        return role is not None and endpoint_allowed(role, endpoint)

    def is_admin(self, user_id: str) -> bool:
        return self.get_user_role(user_id) in ADMIN_ROLES

    def is_super_admin(self, user_id: str) -> bool:
        return self.get_user_role(user_id) == Role.SUPER_ADMIN

    def validate_action(self, user_id: str, resource: str, action: str) -> bool:
        return self.has_permission(user_id, f"{resource}:{action}")

    def can_manage_user(self, actor_id: str, target_id: str) -> bool:
        """Strictly higher role required; nobody manages themselves."""
        if not actor_id or not target_id or actor_id == target_id:
            return False
        actor_role = self.get_user_role(actor_id)
        if actor_role is None:
            return False
        try:
            target_profile = self.staff_service.get_staff_profile(target_id)
        except Exception as e:
            logger.error(f"Target lookup failed for {target_id}: {e}")
            return False
        if not target_profile:
            return False
        # Inactive or banned targets are compared by their stored role
        target_level = role_level(target_profile.get("role"))
        return target_level > 0 and role_level(actor_role) > target_level

    def clear_user_cache(self, user_id: str) -> None:
        self.cache.invalidate(user_id)
        logger.info(f"Permission cache cleared for {user_id}")

    def clear_all(self) -> None:
        self.cache.clear()
