import logging
from typing import Any, Dict, List, Optional

from app.core.config import DATASTORE_TIMEOUT_SECONDS
from app.core.errors import NotFoundError, ValidationError
from app.db.firestore import datastore_errors, snapshot_to_dict, sort_by_created, utcnow
from app.models.scheme import WinnerStatus
from app.services.prizes import PrizeService

logger = logging.getLogger("akshayapatra.winners")


def prize_value(prize: Dict[str, Any]) -> float:
    if prize.get("cash_amount"):
        return prize["cash_amount"]
    return (prize.get("product_details") or {}).get("estimatedValue") or 0


class WinnerService:
    COLLECTION = "winners"

    def __init__(self, db):
        self.db = db

    def _ref(self, winner_id: str):
        return self.db.collection(self.COLLECTION).document(winner_id)

    def list(self, scheme_id: Optional[str] = None, status: Optional[str] = None,
             card_id: Optional[str] = None) -> List[Dict[str, Any]]:
        query = self.db.collection(self.COLLECTION).where("is_active", "==", True)
        if scheme_id:
            query = query.where("scheme_id", "==", scheme_id)
        if status:
            query = query.where("status", "==", status)
        if card_id:
            query = query.where("card_id", "==", card_id)
        with datastore_errors("list winners"):
            rows = [snapshot_to_dict(doc) for doc in query.stream(timeout=DATASTORE_TIMEOUT_SECONDS)]
        return sort_by_created(rows)

    def get(self, winner_id: str) -> Optional[Dict[str, Any]]:
        with datastore_errors(f"read winner {winner_id}"):
            return snapshot_to_dict(self._ref(winner_id).get(timeout=DATASTORE_TIMEOUT_SECONDS))

    def create_multiple(self, scheme_id: str, card_ids: List[str], created_by: str) -> List[Dict[str, Any]]:
        """
        Records the winners of a scheme in the order the cards were picked.

        The first card takes rank 1 and the prize ranked 1, and so on. When the
        scheme has fewer prizes than winners, the remaining winners get the
        last prize. Cards beyond the scheme's number_of_winners are ignored.
        """
        with datastore_errors(f"read scheme {scheme_id}"):
            scheme = snapshot_to_dict(
                self.db.collection("schemes").document(scheme_id).get(timeout=DATASTORE_TIMEOUT_SECONDS))
        if not scheme:
            raise NotFoundError("Scheme not found")

        number_of_winners = scheme.get("number_of_winners") or 0
        if number_of_winners <= 0:
            raise ValidationError("Scheme has no winners configured")
        prizes = PrizeService(self.db).list_by_scheme(scheme_id, limit=number_of_winners)
        if not prizes:
            raise ValidationError("No active prizes found for this scheme")

        picked = card_ids[:number_of_winners]
        refs = [self.db.collection("cards").document(card_id) for card_id in picked]
        with datastore_errors("read winning cards"):
            cards = {row["id"]: row for row in
                     (snapshot_to_dict(doc) for doc in self.db.get_all(refs, timeout=DATASTORE_TIMEOUT_SECONDS))
                     if row}
        if not cards:
            raise ValidationError("No valid cards found")

        now = utcnow()
        batch = self.db.batch()
        created = []
        for index, card_id in enumerate(picked):
            card = cards.get(card_id) or {}
            prize = prizes[index] if index < len(prizes) else prizes[-1]
            row = {
                "scheme_id": scheme_id,
                "prize_id": prize["id"],
                "card_id": card_id,
                "user_id": card.get("user_id", ""),
                "user_name": card.get("cardholder_name", ""),
                "user_email": "",
                "user_phone": card.get("phone_number", ""),
                "rank": index + 1,
                "prize_name": prize.get("name"),
                "prize_value": prize_value(prize),
                "win_date": now,
                "status": WinnerStatus.PENDING,
                "is_active": True,
                "created_by": created_by,
                "created_at": now,
                "updated_at": now,
            }
            ref = self.db.collection(self.COLLECTION).document()
            batch.set(ref, row)
            created.append({"id": ref.id, **row})

        with datastore_errors(f"create winners for {scheme_id}"):
            batch.commit(timeout=DATASTORE_TIMEOUT_SECONDS)
        logger.info(f"{len(created)} winners created for scheme {scheme_id} by {created_by}")
        return created

    def update(self, winner_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if not self.get(winner_id):
            return None
        with datastore_errors(f"update winner {winner_id}"):
            self._ref(winner_id).update({**updates, "updated_at": utcnow()}, timeout=DATASTORE_TIMEOUT_SECONDS)
        return self.get(winner_id)

    def delete(self, winner_id: str) -> bool:
        return self.update(winner_id, {"is_active": False}) is not None
