import logging
from typing import Any, Dict, List, Optional

from app.core.config import DATASTORE_TIMEOUT_SECONDS
from app.db.firestore import datastore_errors, snapshot_to_dict, utcnow

logger = logging.getLogger("akshayapatra.audit")


class AuditService:
    COLLECTION = "audit_logs"

    def __init__(self, db):
        self.db = db

    def log_activity(self, actor_id: str, actor_role: Optional[str], action: str, target_id: str,
                     details: Optional[Dict[str, Any]] = None) -> None:
        """
        Logs an event to the 'audit_logs' collection in Firestore.
        A failed write is logged and otherwise ignored.
        """
        try:
            entry = {
                "timestamp": utcnow(),
                "actor_id": actor_id,
                "actor_role": actor_role,
                "action": action,
                "target_id": target_id,
                "details": details or {},
            }
            self.db.collection(self.COLLECTION).document().set(entry, timeout=DATASTORE_TIMEOUT_SECONDS)
        except Exception as e:
            logger.error(f"Failed to write audit log ({action} on {target_id}): {e}")

    def list_recent(self, limit: int = 50) -> List[Dict[str, Any]]:
        query = self.db.collection(self.COLLECTION) \
            .order_by("timestamp", direction="DESCENDING") \
            .limit(limit)
        with datastore_errors("list audit logs"):
            return [snapshot_to_dict(doc) for doc in query.stream(timeout=DATASTORE_TIMEOUT_SECONDS)]
