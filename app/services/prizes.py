import logging
from typing import Any, Dict, List, Optional

from app.core.config import DATASTORE_TIMEOUT_SECONDS
from app.db.firestore import datastore_errors, snapshot_to_dict, utcnow
from app.db.storage import ImageStore

logger = logging.getLogger("akshayapatra.prizes")


class PrizeService:
    COLLECTION = "prizes"

    def __init__(self, db, images: Optional[ImageStore] = None):
        self.db = db
        self.images = images or ImageStore("prize-images")

    def _ref(self, prize_id: str):
        return self.db.collection(self.COLLECTION).document(prize_id)

    def list_by_scheme(self, scheme_id: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Active prizes ordered by rank."""
        query = self.db.collection(self.COLLECTION) \
            .where("scheme_id", "==", scheme_id) \
            .where("is_active", "==", True)
        with datastore_errors(f"list prizes for {scheme_id}"):
            rows = [snapshot_to_dict(doc) for doc in query.stream(timeout=DATASTORE_TIMEOUT_SECONDS)]
        rows.sort(key=lambda r: r.get("rank") or 0)
        return rows[:limit] if limit is not None else rows

    def get(self, prize_id: str) -> Optional[Dict[str, Any]]:
        with datastore_errors(f"read prize {prize_id}"):
            return snapshot_to_dict(self._ref(prize_id).get(timeout=DATASTORE_TIMEOUT_SECONDS))

    def create(self, scheme_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        now = utcnow()
        row = {**payload, "scheme_id": scheme_id, "is_active": True, "created_at": now, "updated_at": now}
        ref = self.db.collection(self.COLLECTION).document()
        with datastore_errors("create prize"):
            ref.set(row, timeout=DATASTORE_TIMEOUT_SECONDS)
        return {"id": ref.id, **row}

    def update(self, prize_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if not self.get(prize_id):
            return None
        with datastore_errors(f"update prize {prize_id}"):
            self._ref(prize_id).update({**updates, "updated_at": utcnow()}, timeout=DATASTORE_TIMEOUT_SECONDS)
        return self.get(prize_id)

    def delete(self, prize_id: str) -> bool:
        return self.update(prize_id, {"is_active": False}) is not None

    def upload_image(self, prize_id: str, file_obj, filename: str, content_type: str) -> Optional[Dict[str, Any]]:
        prize = self.get(prize_id)
        if not prize:
            return None
        public_url = self.images.upload(file_obj, prize_id, filename, content_type)
        updated = self.update(prize_id, {"image_url": public_url})
        if prize.get("image_url"):
            self.images.delete(prize["image_url"])
        return updated
