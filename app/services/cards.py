import logging
from typing import Any, Dict, List, Optional

from app.core.config import DATASTORE_TIMEOUT_SECONDS
from app.db.firestore import datastore_errors, snapshot_to_dict, sort_by_created, utcnow
from app.models.card import SubscriptionStatus

logger = logging.getLogger("akshayapatra.cards")


def _profile_summary(profile: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not profile:
        return None
    return {
        "id": profile["id"],
        "fullName": profile.get("full_name"),
        "phoneNumber": profile.get("phone_number"),
        "country": profile.get("country"),
        "state": profile.get("state"),
        "district": profile.get("district"),
        "kycVerified": profile.get("kyc_verified", False),
        "referralCode": profile.get("referral_code"),
        "isActive": profile.get("is_active", True),
        "createdAt": profile.get("created_at"),
    }


def card_to_dto(card: Dict[str, Any], profile: Optional[Dict[str, Any]] = None,
                scheme_name: Optional[str] = None) -> Dict[str, Any]:
    return {
        "id": card["id"],
        "userId": card.get("user_id"),
        "cardholderName": card.get("cardholder_name"),
        "phoneNumber": card.get("phone_number"),
        "refL1UserId": card.get("ref_l1_user_id"),
        "refL2UserId": card.get("ref_l2_user_id"),
        "schemeId": card.get("scheme_id"),
        "schemeName": scheme_name,
        "subscriptionStatus": card.get("subscription_status"),
        "nextPaymentDate": card.get("next_payment_date"),
        "paymentMethod": card.get("payment_method"),
        "mandateId": card.get("mandate_id"),
        "subscriptionStartDate": card.get("subscription_start_date"),
        "subscriptionEndDate": card.get("subscription_end_date"),
        "lastPaymentDate": card.get("last_payment_date"),
        "totalPaymentsMade": card.get("total_payments_made", 0),
        "totalWalletBalance": card.get("total_wallet_balance", 0),
        "commissionWalletBalance": card.get("commission_wallet_balance", 0),
        "isActive": card.get("is_active", True),
        "createdAt": card.get("created_at"),
        "updatedAt": card.get("updated_at"),
        "userProfile": _profile_summary(profile),
    }


class CardService:
    COLLECTION = "cards"

    def __init__(self, db):
        self.db = db

    def _ref(self, card_id: str):
        return self.db.collection(self.COLLECTION).document(card_id)

    def _fetch_many(self, collection: str, ids) -> Dict[str, Dict[str, Any]]:
        ids = sorted({i for i in ids if i})
        if not ids:
            return {}
        refs = [self.db.collection(collection).document(i) for i in ids]
        with datastore_errors(f"batch read {collection}"):
            rows = [snapshot_to_dict(doc) for doc in self.db.get_all(refs, timeout=DATASTORE_TIMEOUT_SECONDS)]
        return {row["id"]: row for row in rows if row}

    def _with_relations(self, cards: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        profiles = self._fetch_many("user_profiles", (c.get("user_id") for c in cards))
        schemes = self._fetch_many("schemes", (c.get("scheme_id") for c in cards))
        return [
            card_to_dto(card, profiles.get(card.get("user_id")), (schemes.get(card.get("scheme_id")) or {}).get("name"))
            for card in cards
        ]

    def _query(self, user_id: Optional[str] = None, status: Optional[str] = None,
               scheme_id: Optional[str] = None) -> List[Dict[str, Any]]:
        query = self.db.collection(self.COLLECTION)
        if user_id:
            query = query.where("user_id", "==", user_id)
        if status:
            query = query.where("subscription_status", "==", status)
        if scheme_id:
            query = query.where("scheme_id", "==", scheme_id)
        with datastore_errors("list cards"):
            rows = [snapshot_to_dict(doc) for doc in query.stream(timeout=DATASTORE_TIMEOUT_SECONDS)]
        return sort_by_created(rows)

    def get(self, card_id: str) -> Optional[Dict[str, Any]]:
        with datastore_errors(f"read card {card_id}"):
            return snapshot_to_dict(self._ref(card_id).get(timeout=DATASTORE_TIMEOUT_SECONDS))

    def list_with_user_profiles(self, user_id: Optional[str] = None, status: Optional[str] = None,
                                scheme_id: Optional[str] = None) -> List[Dict[str, Any]]:
        return self._with_relations(self._query(user_id, status, scheme_id))

    def get_with_user_profile(self, card_id: str) -> Optional[Dict[str, Any]]:
        card = self.get(card_id)
        if not card:
            return None
        return self._with_relations([card])[0]

    def list_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        """The caller's own active cards."""
        cards = [c for c in self._query(user_id=user_id) if c.get("is_active", True)]
        return self._with_relations(cards)

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        now = utcnow()
        row = {
            "total_payments_made": 0,
            "total_wallet_balance": 0,
            "commission_wallet_balance": 0,
            "is_active": True,
            "subscription_start_date": now,
            **data,
            "created_at": now,
            "updated_at": now,
        }
        ref = self.db.collection(self.COLLECTION).document()
        with datastore_errors("create card"):
            ref.set(row, timeout=DATASTORE_TIMEOUT_SECONDS)
        logger.info(f"Card {ref.id} created for user {row.get('user_id')}")
        return self._with_relations([{"id": ref.id, **row}])[0]

    def _write(self, card_id: str, updates: Dict[str, Any]) -> bool:
        if not self.get(card_id):
            return False
        changes = {**updates, "updated_at": utcnow()}
        with datastore_errors(f"update card {card_id}"):
            self._ref(card_id).update(changes, timeout=DATASTORE_TIMEOUT_SECONDS)
        return True

    def update(self, card_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Returns the card in the same shape as the listings, or None if missing."""
        if not self._write(card_id, updates):
            return None
        return self.get_with_user_profile(card_id)

    def delete(self, card_id: str) -> bool:
        """Soft delete."""
        return self._write(card_id, {"is_active": False})

    def stats(self) -> Dict[str, Any]:
        cards = self._query()
        by_status = {status: 0 for status in SubscriptionStatus.ALL}
        for card in cards:
            status = card.get("subscription_status")
            if status in by_status:
                by_status[status] += 1
        return {
            "totalCards": len(cards),
            "activeCards": by_status[SubscriptionStatus.ACTIVE],
            "byStatus": by_status,
            "totalWalletBalance": sum(c.get("total_wallet_balance") or 0 for c in cards),
            "totalCommissionBalance": sum(c.get("commission_wallet_balance") or 0 for c in cards),
            "totalPaymentsMade": sum(c.get("total_payments_made") or 0 for c in cards),
        }


class EligibleCardService:
    """Cards that may enter a scheme's draw."""

    def __init__(self, db):
        self.db = db

    def get_by_scheme(self, scheme_id: str) -> List[Dict[str, Any]]:
        query = self.db.collection(CardService.COLLECTION) \
            .where("scheme_id", "==", scheme_id) \
            .where("subscription_status", "==", SubscriptionStatus.ACTIVE) \
            .where("is_active", "==", True)
        with datastore_errors(f"list eligible cards for {scheme_id}"):
            rows = [snapshot_to_dict(doc) for doc in query.stream(timeout=DATASTORE_TIMEOUT_SECONDS)]

        eligible = [c for c in rows if (c.get("total_payments_made") or 0) >= 1]
        eligible = sort_by_created(eligible, newest_first=False)
        return [
            {
                "id": c["id"],
                "userId": c.get("user_id"),
                "cardholderName": c.get("cardholder_name"),
                "phoneNumber": c.get("phone_number"),
                "totalPaymentsMade": c.get("total_payments_made", 0),
                "subscriptionStartDate": c.get("subscription_start_date"),
                "lastPaymentDate": c.get("last_payment_date"),
            }
            for c in eligible
        ]
