import logging
from typing import Any, Dict, List, Optional

from app.core.config import DATASTORE_TIMEOUT_SECONDS
from app.db.firestore import datastore_errors, snapshot_to_dict, sort_by_created, utcnow

logger = logging.getLogger("akshayapatra.profiles")

COMPLETION_STEPS = ("location", "address", "profile", "registration_fee")


def _card_summary(card: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": card["id"],
        "cardholderName": card.get("cardholder_name"),
        "phoneNumber": card.get("phone_number"),
        "subscriptionStatus": card.get("subscription_status"),
        "schemeId": card.get("scheme_id"),
        "totalPaymentsMade": card.get("total_payments_made", 0),
        "totalWalletBalance": card.get("total_wallet_balance", 0),
        "commissionWalletBalance": card.get("commission_wallet_balance", 0),
        "isActive": card.get("is_active", True),
        "createdAt": card.get("created_at"),
        "updatedAt": card.get("updated_at"),
    }


def profile_to_dto(profile: Dict[str, Any], cards: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "id": profile["id"],
        "fullName": profile.get("full_name"),
        "phoneNumber": profile.get("phone_number"),
        "country": profile.get("country"),
        "state": profile.get("state"),
        "district": profile.get("district"),
        "streetAddress": profile.get("street_address"),
        "postalCode": profile.get("postal_code"),
        "bankAccountHolderName": profile.get("bank_account_holder_name"),
        "bankAccountNumber": profile.get("bank_account_number"),
        "bankIfscCode": profile.get("bank_ifsc_code"),
        "bankName": profile.get("bank_name"),
        "bankBranch": profile.get("bank_branch"),
        "bankAccountType": profile.get("bank_account_type"),
        "kycVerified": profile.get("kyc_verified", False),
        "kycVerificationDate": profile.get("kyc_verification_date"),
        "profileImageUrl": profile.get("profile_image_url"),
        "referralCode": profile.get("referral_code"),
        "isActive": profile.get("is_active", True),
        "createdAt": profile.get("created_at"),
        "updatedAt": profile.get("updated_at"),
        "cards": [_card_summary(c) for c in cards],
    }


class UserProfileService:
    """End-user profiles in `user_profiles`, keyed by the Firebase uid."""

    COLLECTION = "user_profiles"

    def __init__(self, db):
        self.db = db

    def _ref(self, user_id: str):
        return self.db.collection(self.COLLECTION).document(user_id)

    def _cards_by_user(self, user_id: Optional[str] = None) -> Dict[str, List[Dict[str, Any]]]:
        query = self.db.collection("cards")
        if user_id:
            query = query.where("user_id", "==", user_id)
        with datastore_errors("list cards"):
            cards = [snapshot_to_dict(doc) for doc in query.stream(timeout=DATASTORE_TIMEOUT_SECONDS)]
        grouped: Dict[str, List[Dict[str, Any]]] = {}
        for card in sort_by_created(cards):
            grouped.setdefault(card.get("user_id"), []).append(card)
        return grouped

    def get(self, user_id: str) -> Optional[Dict[str, Any]]:
        if not user_id:
            return None
        with datastore_errors(f"read profile {user_id}"):
            return snapshot_to_dict(self._ref(user_id).get(timeout=DATASTORE_TIMEOUT_SECONDS))

    def list_with_cards(self, kyc_verified: Optional[bool] = None, is_active: Optional[bool] = None,
                        search: Optional[str] = None) -> List[Dict[str, Any]]:
        query = self.db.collection(self.COLLECTION)
        if kyc_verified is not None:
            query = query.where("kyc_verified", "==", kyc_verified)
        if is_active is not None:
            query = query.where("is_active", "==", is_active)
        with datastore_errors("list profiles"):
            profiles = [snapshot_to_dict(doc) for doc in query.stream(timeout=DATASTORE_TIMEOUT_SECONDS)]

        if search:
            # Firestore has no substring match; filter on name, phone and referral code here
            needle = search.lower()
            profiles = [
                p for p in profiles
                if any(needle in str(p.get(field) or "").lower()
                       for field in ("full_name", "phone_number", "referral_code"))
            ]

        cards = self._cards_by_user()
        return [profile_to_dto(p, cards.get(p["id"], [])) for p in sort_by_created(profiles)]

    def get_with_cards(self, user_id: str) -> Optional[Dict[str, Any]]:
        profile = self.get(user_id)
        if not profile:
            return None
        return profile_to_dto(profile, self._cards_by_user(user_id).get(user_id, []))

    def create(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        now = utcnow()
        row = {"kyc_verified": False, "is_active": True, **data, "created_at": now, "updated_at": now}
        with datastore_errors(f"create profile {user_id}"):
            self._ref(user_id).set(row, timeout=DATASTORE_TIMEOUT_SECONDS)
        return {"id": user_id, **row}

    def update(self, user_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if not self.get(user_id):
            return None
        with datastore_errors(f"update profile {user_id}"):
            self._ref(user_id).update({**updates, "updated_at": utcnow()}, timeout=DATASTORE_TIMEOUT_SECONDS)
        return self.get(user_id)

    def delete(self, user_id: str) -> bool:
        """Soft delete."""
        return self.update(user_id, {"is_active": False}) is not None

    def get_status(self, user_id: str) -> Optional[bool]:
        """is_active of the profile, None when there is no profile."""
        profile = self.get(user_id)
        if profile is None:
            return None
        return bool(profile.get("is_active", True))

    def check_completion(self, user_id: str) -> Dict[str, Any]:
        profile = self.get(user_id)
        if not profile:
            return {
                "isComplete": False,
                "missingSteps": list(COMPLETION_STEPS),
                "details": {
                    "hasLocation": False,
                    "hasAddress": False,
                    "hasScheme": False,
                    "hasRegistrationFee": False,
                },
            }

        details = {
            "hasLocation": bool(profile.get("country") and profile.get("state") and profile.get("district")),
            "hasAddress": bool(profile.get("street_address")),
            "hasScheme": bool(profile.get("initial_scheme_id")),
            # Registration fee is collected during phone verification
            "hasRegistrationFee": bool(profile.get("is_phone_verified")),
        }
        done = dict(zip(COMPLETION_STEPS, details.values()))
        missing = [step for step in COMPLETION_STEPS if not done[step]]
        return {"isComplete": not missing, "missingSteps": missing, "details": details}
