import os
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core.exceptions import GoogleAPIError

from app.core.config import PROJECT_ID, SA_KEY_PATH, STORAGE_BUCKET
from app.core.errors import UpstreamError

logger = logging.getLogger("akshayapatra.db")

_client = None


def initialize_app():
    if not firebase_admin._apps:
        options = {"projectId": PROJECT_ID}
        if STORAGE_BUCKET:
            options["storageBucket"] = STORAGE_BUCKET

        # 1. Local Dev: Use Key File if it exists
        if SA_KEY_PATH and os.path.exists(SA_KEY_PATH):
            cred = credentials.Certificate(SA_KEY_PATH)
            firebase_admin.initialize_app(cred, options)
            logger.info(f"Connected to Firebase (key file): {PROJECT_ID}")

        # 2. Production (Cloud Run): Use Default Identity
        else:
            firebase_admin.initialize_app(options=options)
            logger.info(f"Connected to Firebase (ADC): {PROJECT_ID}")

    return firebase_admin.get_app()


def get_db():
    """FastAPI dependency: the process-wide Firestore client, created on first use."""
    global _client
    if _client is None:
        initialize_app()
        _client = firestore.client()
    return _client


# --- Helpers shared by the services ---

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def snapshot_to_dict(snapshot) -> Optional[Dict[str, Any]]:
    """Document snapshot to a plain row with its id, or None when missing."""
    if snapshot is None or not snapshot.exists:
        return None
    row = snapshot.to_dict() or {}
    row["id"] = snapshot.id
    return row


def sort_by_created(rows: List[Dict[str, Any]], newest_first: bool = True) -> List[Dict[str, Any]]:
    return sorted(rows, key=lambda r: r.get("created_at") or _EPOCH, reverse=newest_first)


@contextmanager
def datastore_errors(action: str):
    """Turns Firestore client failures into UpstreamError, logged with context."""
    try:
        yield
    except GoogleAPIError as e:
        logger.error(f"Firestore {action} failed: {e}")
        raise UpstreamError(f"Firestore {action} failed")
