"""
Shared fixtures: the app wired to in-memory stand-ins for Firestore,
Firebase Auth, the RPC endpoint and the image bucket.
"""
import copy
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from google.api_core.exceptions import NotFound, ServiceUnavailable

from app.api.v1.deps import (
    get_identity_admin, get_prize_service, get_scheme_service, get_token_verifier,
)
from app.core.cache import PermissionCache
from app.core.errors import Unauthenticated
from app.db.firestore import get_db
from app.main import create_app
from app.services.prizes import PrizeService
from app.services.rpc import get_rpc_client
from app.services.schemes import SchemeService

_OPS = {
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    ">=": lambda a, b: a is not None and a >= b,
    "<=": lambda a, b: a is not None and a <= b,
    "in": lambda a, b: a in b,
}


# =============================================================================
# IN-MEMORY FIRESTORE
# =============================================================================

class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data
        self.exists = data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocument:
    def __init__(self, db, collection, doc_id):
        self._db = db
        self._collection = collection
        self.id = doc_id

    def _rows(self):
        return self._db.data.setdefault(self._collection, {})

    def get(self, timeout=None):
        self._db.touch("read")
        return FakeSnapshot(self.id, self._rows().get(self.id))

    def set(self, data, merge=False, timeout=None):
        self._db.touch("write")
        rows = self._rows()
        if merge and self.id in rows:
            rows[self.id].update(copy.deepcopy(data))
        else:
            rows[self.id] = copy.deepcopy(data)

    def update(self, data, timeout=None):
        self._db.touch("write")
        rows = self._rows()
        if self.id not in rows:
            raise NotFound(f"No document to update: {self._collection}/{self.id}")
        rows[self.id].update(copy.deepcopy(data))

    def delete(self, timeout=None):
        self._db.touch("write")
        self._rows().pop(self.id, None)


class FakeQuery:
    def __init__(self, db, collection, filters=(), order=None, limit=None):
        self._db = db
        self._collection = collection
        self._filters = tuple(filters)
        self._order = order
        self._limit = limit

    def where(self, field, op, value):
        return FakeQuery(self._db, self._collection, self._filters + ((field, op, value),), self._order, self._limit)

    def order_by(self, field, direction="ASCENDING"):
        return FakeQuery(self._db, self._collection, self._filters, (field, direction), self._limit)

    def limit(self, count):
        return FakeQuery(self._db, self._collection, self._filters, self._order, count)

    def stream(self, timeout=None):
        self._db.touch("read")
        rows = [
            (doc_id, data) for doc_id, data in self._db.data.get(self._collection, {}).items()
            if all(_OPS[op](data.get(field), value) for field, op, value in self._filters)
        ]
        if self._order:
            field, direction = self._order
            rows.sort(key=lambda item: item[1].get(field), reverse=direction == "DESCENDING")
        if self._limit is not None:
            rows = rows[:self._limit]
        return iter([FakeSnapshot(doc_id, copy.deepcopy(data)) for doc_id, data in rows])


class FakeCollection(FakeQuery):
    def __init__(self, db, name):
        super().__init__(db, name)

    def document(self, doc_id=None):
        return FakeDocument(self._db, self._collection, doc_id or uuid.uuid4().hex[:20])


class FakeBatch:
    def __init__(self, db):
        self._db = db
        self._pending = []

    def set(self, ref, data):
        self._pending.append((ref, data))

    def commit(self, timeout=None):
        for ref, data in self._pending:
            ref.set(data)
        self._pending = []


class FakeFirestore:
    """Enough of the Firestore client surface for the services."""

    def __init__(self):
        self.data = {}
        self.reads = 0
        self.writes = 0
        self.fail = False

    def touch(self, kind):
        if self.fail:
            raise ServiceUnavailable("datastore unavailable")
        if kind == "read":
            self.reads += 1
        else:
            self.writes += 1

    def collection(self, name):
        return FakeCollection(self, name)

    def batch(self):
        return FakeBatch(self)

    def get_all(self, refs, timeout=None):
        for ref in refs:
            yield ref.get()

    # --- seeding helpers used by tests ---

    def put(self, collection, doc_id, **fields):
        self.data.setdefault(collection, {})[doc_id] = fields
        return doc_id

    def row(self, collection, doc_id):
        return self.data.get(collection, {}).get(doc_id)


# =============================================================================
# AUTH, RPC AND STORAGE STAND-INS
# =============================================================================

class FakeTokenVerifier:
    """Tokens are "token-<uid>"; disabled accounts fail verification."""

    def __init__(self):
        self.claims = {}
        self.disabled = set()
        self.calls = 0

    def register(self, uid, **claims):
        self.claims[uid] = {"uid": uid, "email": f"{uid}@example.com", **claims}
        return {"Authorization": f"Bearer token-{uid}"}

    def verify(self, token):
        self.calls += 1
        uid = token[len("token-"):] if token.startswith("token-") else None
        if uid not in self.claims or uid in self.disabled:
            raise Unauthenticated("Invalid or expired token")
        return dict(self.claims[uid])


class FakeIdentityAdmin:
    def __init__(self, verifier):
        self.verifier = verifier

    def set_disabled(self, uid, disabled):
        if disabled:
            self.verifier.disabled.add(uid)
        else:
            self.verifier.disabled.discard(uid)

    def list_emails(self, uids):
        return {uid: self.verifier.claims[uid]["email"] for uid in uids if uid in self.verifier.claims}


class FakeRpc:
    def __init__(self):
        self.responses = {}
        self.calls = []

    def call(self, name, params=None, user_token=None):
        self.calls.append((name, params or {}))
        result = self.responses.get(name)
        if isinstance(result, Exception):
            raise result
        return result


class FakeImages:
    def __init__(self):
        self.uploaded = []
        self.deleted = []

    def upload(self, file_obj, owner_id, filename, content_type):
        url = f"https://storage.googleapis.com/test-bucket/images/{owner_id}/{filename}"
        self.uploaded.append(url)
        return url

    def delete(self, public_url):
        self.deleted.append(public_url)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def db():
    return FakeFirestore()


@pytest.fixture
def verifier():
    return FakeTokenVerifier()


@pytest.fixture
def identity(verifier):
    return FakeIdentityAdmin(verifier)


@pytest.fixture
def rpc():
    return FakeRpc()


@pytest.fixture
def images():
    return FakeImages()


@pytest.fixture
def permission_cache():
    return PermissionCache(ttl_seconds=300)


@pytest.fixture
def app(db, verifier, identity, rpc, images, permission_cache):
    application = create_app(permission_cache)
    application.dependency_overrides[get_db] = lambda: db
    application.dependency_overrides[get_token_verifier] = lambda: verifier
    application.dependency_overrides[get_identity_admin] = lambda: identity
    application.dependency_overrides[get_rpc_client] = lambda: rpc
    application.dependency_overrides[get_scheme_service] = lambda: SchemeService(db, rpc=rpc, images=images)
    application.dependency_overrides[get_prize_service] = lambda: PrizeService(db, images=images)
    return application


@pytest.fixture
def client(app):
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def staff_member(db, verifier):
    """Creates an active staff profile plus a valid token; returns auth headers."""

    def _make(uid, role, is_active=True, super_admin=False, banned_until=None):
        created = datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=len(db.data.get("staff_profiles", {})))
        db.put("staff_profiles", uid, full_name=f"Staff {uid}", phone_number=None, role=role,
               is_active=is_active, banned_until=banned_until, created_at=created, updated_at=created)
        claims = {"isSuperAdmin": True} if super_admin else {}
        return verifier.register(uid, **claims)

    return _make


@pytest.fixture
def end_user(db, verifier):
    """Creates an end user with a profile; returns auth headers."""

    def _make(uid, **profile):
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        db.put("user_profiles", uid, **{"full_name": f"User {uid}", "is_active": True, "kyc_verified": False,
                                        "created_at": now, "updated_at": now, **profile})
        return verifier.register(uid)

    return _make
