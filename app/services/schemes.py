import logging
from typing import Any, Dict, List, Optional

from app.core.config import DATASTORE_TIMEOUT_SECONDS
from app.db.firestore import datastore_errors, snapshot_to_dict, sort_by_created, utcnow
from app.db.storage import ImageStore
from app.services.rpc import RpcClient

logger = logging.getLogger("akshayapatra.schemes")


class SchemeService:
    COLLECTION = "schemes"

    def __init__(self, db, rpc: Optional[RpcClient] = None, images: Optional[ImageStore] = None):
        self.db = db
        self.rpc = rpc or RpcClient()
        self.images = images or ImageStore("scheme-images")

    def _ref(self, scheme_id: str):
        return self.db.collection(self.COLLECTION).document(scheme_id)

    def list(self) -> List[Dict[str, Any]]:
        with datastore_errors("list schemes"):
            rows = [snapshot_to_dict(doc) for doc in
                    self.db.collection(self.COLLECTION).stream(timeout=DATASTORE_TIMEOUT_SECONDS)]
        return sort_by_created(rows)

    def get(self, scheme_id: str) -> Optional[Dict[str, Any]]:
        with datastore_errors(f"read scheme {scheme_id}"):
            return snapshot_to_dict(self._ref(scheme_id).get(timeout=DATASTORE_TIMEOUT_SECONDS))

    def create(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        now = utcnow()
        row = {**payload, "created_at": now, "updated_at": now}
        ref = self.db.collection(self.COLLECTION).document()
        with datastore_errors("create scheme"):
            ref.set(row, timeout=DATASTORE_TIMEOUT_SECONDS)
        logger.info(f"Scheme {ref.id} created: {row.get('name')}")
        return {"id": ref.id, **row}

    def update(self, scheme_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if not self.get(scheme_id):
            return None
        with datastore_errors(f"update scheme {scheme_id}"):
            self._ref(scheme_id).update({**updates, "updated_at": utcnow()}, timeout=DATASTORE_TIMEOUT_SECONDS)
        return self.get(scheme_id)

    def upload_image(self, scheme_id: str, file_obj, filename: str, content_type: str) -> Optional[Dict[str, Any]]:
        """Stores a new image and points the scheme at it; the previous image is removed."""
        scheme = self.get(scheme_id)
        if not scheme:
            return None
        public_url = self.images.upload(file_obj, scheme_id, filename, content_type)
        updated = self.update(scheme_id, {"image_url": public_url})
        if scheme.get("image_url"):
            self.images.delete(scheme["image_url"])
        return updated

    # --- Monthly draws ---

    def _draw_rows(self, collection: str, scheme_id: str, month: str) -> List[Dict[str, Any]]:
        query = self.db.collection(collection) \
            .where("scheme_id", "==", scheme_id) \
            .where("month", "==", month)
        with datastore_errors(f"list {collection}"):
            rows = [snapshot_to_dict(doc) for doc in query.stream(timeout=DATASTORE_TIMEOUT_SECONDS)]
        return sort_by_created(rows, newest_first=False)

    def list_eligible(self, scheme_id: str, month: str) -> List[Dict[str, Any]]:
        return self._draw_rows("scheme_eligible_candidates", scheme_id, month)

    def list_winners(self, scheme_id: str, month: str) -> List[Dict[str, Any]]:
        return self._draw_rows("scheme_winners", scheme_id, month)

    def add_winners(self, scheme_id: str, month: str, winners: List[Dict[str, Any]]) -> int:
        collection = self.db.collection("scheme_winners")
        batch = self.db.batch()
        now = utcnow()
        for winner in winners:
            batch.set(collection.document(), {
                "scheme_id": scheme_id,
                "month": month,
                "user_id": winner["user_id"],
                "allow_future_participation": bool(winner.get("allow_future_participation", False)),
                "created_at": now,
            })
        with datastore_errors(f"add winners to {scheme_id}"):
            batch.commit(timeout=DATASTORE_TIMEOUT_SECONDS)
        logger.info(f"{len(winners)} draw winners recorded for {scheme_id} {month}")
        return len(winners)

    def get_periods(self, scheme_id: str, token: Optional[str] = None):
        return self.rpc.call("get_scheme_periods", {"p_scheme_id": scheme_id}, user_token=token)

    def ensure_periods(self, scheme_id: str, token: Optional[str] = None):
        self.rpc.call("ensure_scheme_periods", {"p_scheme_id": scheme_id}, user_token=token)
        return self.get_periods(scheme_id, token)
