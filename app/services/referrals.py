import logging
from typing import Any, Dict, List, Optional

from app.core.config import DATASTORE_TIMEOUT_SECONDS
from app.core.errors import ConflictError
from app.db.firestore import datastore_errors, snapshot_to_dict, utcnow
from app.models.referral import DEFAULT_REFERRAL_STATS
from app.services.rpc import RpcClient

logger = logging.getLogger("akshayapatra.referrals")


class ReferralService:
    LEVELS = "referral_levels"

    def __init__(self, db, rpc: Optional[RpcClient] = None):
        self.db = db
        self.rpc = rpc or RpcClient()

    def validate_code(self, code: str) -> Optional[Dict[str, Any]]:
        """Referrer summary for a known code, None otherwise."""
        query = self.db.collection("user_profiles").where("referral_code", "==", code).limit(1)
        with datastore_errors("validate referral code"):
            matches = [snapshot_to_dict(doc) for doc in query.stream(timeout=DATASTORE_TIMEOUT_SECONDS)]
        if not matches:
            return None
        referrer = matches[0]
        return {"id": referrer["id"], "name": referrer.get("full_name"), "code": referrer.get("referral_code")}

    def get_stats(self, user_id: str) -> Dict[str, Any]:
        with datastore_errors(f"read referral stats {user_id}"):
            stats = snapshot_to_dict(self.db.collection("user_referral_stats").document(user_id)
                                     .get(timeout=DATASTORE_TIMEOUT_SECONDS))
            profile = snapshot_to_dict(self.db.collection("user_profiles").document(user_id)
                                       .get(timeout=DATASTORE_TIMEOUT_SECONDS))
        if stats:
            stats.pop("id", None)
        return {
            "referralCode": (profile or {}).get("referral_code"),
            "stats": stats or dict(DEFAULT_REFERRAL_STATS),
        }

    def attach_by_code(self, user_id: str, code: str, token: Optional[str] = None):
        """Links the caller to a referrer. Self referral and unknown codes are rejected remotely."""
        return self.rpc.call("attach_user_referral_by_code", {"p_user_id": user_id, "p_referral_code": code},
                             user_token=token)

    # --- Commission levels ---

    def list_levels(self) -> List[Dict[str, Any]]:
        with datastore_errors("list referral levels"):
            rows = [snapshot_to_dict(doc) for doc in
                    self.db.collection(self.LEVELS).stream(timeout=DATASTORE_TIMEOUT_SECONDS)]
        return sorted(rows, key=lambda r: r.get("level") or 0)

    def get_level(self, level_id: str) -> Optional[Dict[str, Any]]:
        with datastore_errors(f"read referral level {level_id}"):
            return snapshot_to_dict(self.db.collection(self.LEVELS).document(level_id)
                                    .get(timeout=DATASTORE_TIMEOUT_SECONDS))

    def create_level(self, level: int, commission_percentage: float, is_active: bool = True) -> Dict[str, Any]:
        if any(row.get("level") == level for row in self.list_levels()):
            raise ConflictError(f"Referral level {level} already exists")
        now = utcnow()
        row = {
            "level": level,
            "commission_percentage": commission_percentage,
            "is_active": is_active,
            "created_at": now,
            "updated_at": now,
        }
        # One document per level
        ref = self.db.collection(self.LEVELS).document(f"level-{level}")
        with datastore_errors("create referral level"):
            ref.set(row, timeout=DATASTORE_TIMEOUT_SECONDS)
        logger.info(f"Referral level {level} created at {commission_percentage}%")
        return {"id": ref.id, **row}

    def update_level(self, level_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if not self.get_level(level_id):
            return None
        with datastore_errors(f"update referral level {level_id}"):
            self.db.collection(self.LEVELS).document(level_id) \
                .update({**updates, "updated_at": utcnow()}, timeout=DATASTORE_TIMEOUT_SECONDS)
        return self.get_level(level_id)

    def delete_level(self, level_id: str) -> bool:
        if not self.get_level(level_id):
            return False
        with datastore_errors(f"delete referral level {level_id}"):
            self.db.collection(self.LEVELS).document(level_id).delete(timeout=DATASTORE_TIMEOUT_SECONDS)
        return True
