import logging
import re
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from app.core.config import DATASTORE_TIMEOUT_SECONDS
from app.core.errors import ConflictError, ValidationError
from app.core.rbac import ROLE_LEVELS, Role, normalize_role
from app.db.firestore import datastore_errors, snapshot_to_dict, sort_by_created, utcnow

logger = logging.getLogger("akshayapatra.staff")


class StaffService:
    """Staff profiles live in `staff_profiles`, keyed by the Firebase uid."""

    COLLECTION = "staff_profiles"

    def __init__(self, db):
        self.db = db

    def _ref(self, staff_id: str):
        return self.db.collection(self.COLLECTION).document(staff_id)

    def get_staff_profile(self, staff_id: str) -> Optional[Dict[str, Any]]:
        if not staff_id:
            return None
        with datastore_errors(f"read staff profile {staff_id}"):
            return snapshot_to_dict(self._ref(staff_id).get(timeout=DATASTORE_TIMEOUT_SECONDS))

    def list_staff(self, active_only: bool = False) -> List[Dict[str, Any]]:
        query = self.db.collection(self.COLLECTION)
        if active_only:
            query = query.where("is_active", "==", True)
        with datastore_errors("list staff"):
            rows = [snapshot_to_dict(doc) for doc in query.stream(timeout=DATASTORE_TIMEOUT_SECONDS)]
        return sort_by_created(rows)

    def create_staff_profile(self, staff_id: str, full_name: str, phone_number: Optional[str] = None,
                             role: Role = Role.NEW) -> Dict[str, Any]:
        if self.get_staff_profile(staff_id):
            raise ConflictError("Staff profile already exists")

        now = utcnow()
        data = {
            "full_name": full_name,
            "phone_number": phone_number,
            "role": Role(role).value,
            "is_active": True,
            "banned_until": None,
            "created_at": now,
            "updated_at": now,
        }
        with datastore_errors(f"create staff profile {staff_id}"):
            self._ref(staff_id).set(data, timeout=DATASTORE_TIMEOUT_SECONDS)
        logger.info(f"Staff profile created: {staff_id} ({data['role']})")
        return {"id": staff_id, **data}

    def update_staff_profile(self, staff_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if not self.get_staff_profile(staff_id):
            return None
        changes = {k: v for k, v in updates.items() if v is not None}
        changes["updated_at"] = utcnow()
        with datastore_errors(f"update staff profile {staff_id}"):
            self._ref(staff_id).update(changes, timeout=DATASTORE_TIMEOUT_SECONDS)
        return self.get_staff_profile(staff_id)

    def update_staff_role(self, staff_id: str, role: Role) -> Optional[Dict[str, Any]]:
        return self.update_staff_profile(staff_id, {"role": Role(role).value})

    def set_staff_active(self, staff_id: str, is_active: bool,
                         banned_until: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
        if not self.get_staff_profile(staff_id):
            return None
        changes = {"is_active": is_active, "banned_until": banned_until, "updated_at": utcnow()}
        with datastore_errors(f"update staff status {staff_id}"):
            self._ref(staff_id).update(changes, timeout=DATASTORE_TIMEOUT_SECONDS)
        return self.get_staff_profile(staff_id)

    def get_user_role(self, user_id: str) -> Optional[Role]:
        """
        Role of an active, unbanned staff member; None for everyone else.
        An inactive profile stays locked out even once `banned_until` has passed.
        """
        profile = self.get_staff_profile(user_id)
        if not profile or not profile.get("is_active", False):
            return None
        banned_until = profile.get("banned_until")
        if isinstance(banned_until, datetime) and banned_until > utcnow():
            return None
        return normalize_role(profile.get("role"))

    def is_staff_member(self, user_id: str) -> bool:
        return self.get_user_role(user_id) is not None

    def get_staff_by_role(self, role: Role) -> List[Dict[str, Any]]:
        query = self.db.collection(self.COLLECTION) \
            .where("role", "==", Role(role).value) \
            .where("is_active", "==", True)
        with datastore_errors(f"list staff by role {role}"):
            rows = [snapshot_to_dict(doc) for doc in query.stream(timeout=DATASTORE_TIMEOUT_SECONDS)]
        return sort_by_created(rows)

    def get_staff_stats(self) -> Dict[str, int]:
        stats = {"totalStaff": 0}
        stats.update({role.value: 0 for role in ROLE_LEVELS})
        for row in self.list_staff(active_only=True):
            stats["totalStaff"] += 1
            role = normalize_role(row.get("role"))
            if role is not None:
                stats[role.value] += 1
        return stats


_DURATION_UNITS = {"s": 1, "m": 60, "h": 3600, "d": 86400, "y": 365 * 86400}
_DURATION_RE = re.compile(r"^(\d+)([smhdy])$")


def parse_ban_duration(duration: Optional[str]) -> Optional[timedelta]:
    """
    '30d', '12h', '100y'... None or 'none' means no expiry is set.

    The expiry is recorded in `banned_until` for reference only. A ban sets
    `is_active=False` and disables the Firebase account; both stay in place
    after `banned_until` passes until someone unbans the member.
    """
    if duration is None or duration.strip().lower() == "none":
        return None
    match = _DURATION_RE.match(duration.strip().lower())
    if not match or int(match.group(1)) <= 0:
        raise ValidationError("duration must look like 30d, 12h or 100y")
    return timedelta(seconds=int(match.group(1)) * _DURATION_UNITS[match.group(2)])
