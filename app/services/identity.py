import logging
from typing import Any, Dict, Iterable

from firebase_admin import auth as firebase_auth
from firebase_admin import exceptions as firebase_exceptions

from app.core.errors import NotFoundError, Unauthenticated, UpstreamError
from app.db.firestore import initialize_app

logger = logging.getLogger("akshayapatra.identity")

# get_users accepts at most 100 identifiers per call
_LOOKUP_BATCH = 100


class FirebaseTokenVerifier:
    """Checks Firebase ID tokens, including revocation and disabled accounts."""

    def verify(self, token: str) -> Dict[str, Any]:
        initialize_app()
        try:
            return firebase_auth.verify_id_token(token, check_revoked=True)
        except (ValueError, firebase_auth.InvalidIdTokenError, firebase_auth.UserDisabledError,
                firebase_auth.UserNotFoundError) as e:
            logger.info(f"Token rejected: {type(e).__name__}")
            raise Unauthenticated("Invalid or expired token")
        except firebase_auth.CertificateFetchError as e:
            logger.error(f"Could not fetch token certificates: {e}")
            raise UpstreamError("Token verification unavailable")


class IdentityAdmin:
    """Account-level operations on Firebase Auth."""

    def set_disabled(self, uid: str, disabled: bool) -> None:
        initialize_app()
        try:
            firebase_auth.update_user(uid, disabled=disabled)
            if disabled:
                # Outstanding ID tokens stop verifying once refresh tokens are revoked
                firebase_auth.revoke_refresh_tokens(uid)
        except firebase_auth.UserNotFoundError:
            raise NotFoundError("User not found")
        except firebase_exceptions.FirebaseError as e:
            logger.error(f"Failed to set disabled={disabled} for {uid}: {e}")
            raise UpstreamError("Identity provider update failed")
        logger.info(f"Account {uid} {'disabled' if disabled else 'enabled'}")

    def list_emails(self, uids: Iterable[str]) -> Dict[str, str]:
        """uid -> email for the accounts that exist and have one."""
        initialize_app()
        uids = [uid for uid in uids if uid]
        emails = {}
        for i in range(0, len(uids), _LOOKUP_BATCH):
            batch = [firebase_auth.UidIdentifier(uid) for uid in uids[i:i + _LOOKUP_BATCH]]
            try:
                result = firebase_auth.get_users(batch)
            except firebase_exceptions.FirebaseError as e:
                logger.error(f"Account lookup failed: {e}")
                raise UpstreamError("Identity provider lookup failed")
            for record in result.users:
                if record.email:
                    emails[record.uid] = record.email
        return emails

    def set_super_admin_claim(self, uid: str, value: bool = True) -> None:
        initialize_app()
        user = firebase_auth.get_user(uid)
        claims = dict(user.custom_claims or {})
        claims["isSuperAdmin"] = value
        firebase_auth.set_custom_user_claims(uid, claims)
        logger.info(f"isSuperAdmin={value} set for {uid}")
