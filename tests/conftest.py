# tests/conftest.py: Shared test fixtures
import os
import uuid
import copy
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from fastapi import Depends
from fastapi.testclient import TestClient
from httpx import AsyncClient, ASGITransport

os.environ.setdefault("SUPABASE_URL", "http://supabase.test")
os.environ.setdefault("SUPABASE_KEY", "anon-test-key")
os.environ["ENVIRONMENT"] = "test"

from app.main import app
from app.core import email as email_module
from app.core.dependencies import get_current_user_id, get_user_supabase
from app.database.supabase_client import get_supabase, get_service_supabase, get_async_supabase
from app.modules.auth.service import clear_auth_cache

BASE_TIME = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Just enough of the PostgREST builder for the services under test"""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.action = "select"
        self.payload: Any = None
        self.on_conflict: Optional[str] = None
        self.filters = []
        self.orders = []
        self.row_limit: Optional[int] = None
        self.single_mode: Optional[str] = None
        self._negate = False

    # filters
    def _add(self, predicate):
        if self._negate:
            self._negate = False
            self.filters.append(lambda row: not predicate(row))
        else:
            self.filters.append(predicate)
        return self

    @property
    def not_(self):
        self._negate = True
        return self

    def eq(self, column, value):
        return self._add(lambda row: row.get(column) == value)

    def in_(self, column, values):
        values = list(values)
        return self._add(lambda row: row.get(column) in values)

    def is_(self, column, value):
        expected = None if value in ("null", None) else value
        return self._add(lambda row: row.get(column) is expected)

    def ilike(self, column, pattern):
        literal = pattern.replace("\\%", "%").replace("\\_", "_").replace("\\\\", "\\")
        return self._add(lambda row: (row.get(column) or "").lower() == literal.lower())

    # modifiers
    def select(self, *columns, **kwargs):
        return self

    def order(self, column, desc=False, nullsfirst=None, **kwargs):
        self.orders.append((column, desc, nullsfirst))
        return self

    def limit(self, count):
        self.row_limit = count
        return self

    def maybe_single(self):
        self.single_mode = "maybe"
        return self

    def single(self):
        self.single_mode = "single"
        return self

    # writes
    def insert(self, payload):
        self.action, self.payload = "insert", payload
        return self

    def update(self, payload):
        self.action, self.payload = "update", payload
        return self

    def upsert(self, payload, on_conflict=None, **kwargs):
        self.action, self.payload, self.on_conflict = "upsert", payload, on_conflict
        return self

    def delete(self):
        self.action = "delete"
        return self

    def _matching(self) -> List[Dict[str, Any]]:
        return [row for row in self.db.tables.setdefault(self.table, []) if all(f(row) for f in self.filters)]

    def _sorted(self, rows):
        for column, desc, nullsfirst in reversed(self.orders):
            present = [r for r in rows if r.get(column) is not None]
            missing = [r for r in rows if r.get(column) is None]
            present.sort(key=lambda r: r[column], reverse=desc)
            nulls_first = desc if nullsfirst is None else nullsfirst
            rows = missing + present if nulls_first else present + missing
        return rows

    def execute(self):
        failure = self.db.failures.get((self.table, self.action))
        if failure is not None:
            raise failure
        self.db.calls.append((self.table, self.action))

        if self.action == "insert":
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            return FakeResponse([copy.deepcopy(self.db.add_row(self.table, row)) for row in payload])

        if self.action == "upsert":
            keys = [k.strip() for k in (self.on_conflict or "id").split(",")]
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            stored = []
            for row in payload:
                existing = next(
                    (r for r in self.db.tables.setdefault(self.table, [])
                     if all(r.get(k) == row.get(k) for k in keys)),
                    None
                )
                if existing is not None:
                    existing.update(row)
                    stored.append(copy.deepcopy(existing))
                else:
                    stored.append(copy.deepcopy(self.db.add_row(self.table, row)))
            return FakeResponse(stored)

        if self.action == "update":
            rows = self._matching()
            for row in rows:
                row.update(self.payload)
            return FakeResponse(copy.deepcopy(rows))

        if self.action == "delete":
            rows = self._matching()
            self.db.tables[self.table] = [r for r in self.db.tables[self.table] if r not in rows]
            return FakeResponse(copy.deepcopy(rows))

        rows = self._sorted(self._matching())
        if self.row_limit is not None:
            rows = rows[:self.row_limit]
        rows = copy.deepcopy(rows)
        if self.single_mode == "maybe":
            return FakeResponse(rows[0]) if rows else None
        if self.single_mode == "single":
            if len(rows) != 1:
                raise Exception("JSON object requested, multiple (or no) rows returned")
            return FakeResponse(rows[0])
        return FakeResponse(rows)


class FakeRpc:
    def __init__(self, db: "FakeSupabase", name: str, params: Dict[str, Any], user_id: Optional[str]):
        self.db, self.name, self.params, self.user_id = db, name, params, user_id

    def execute(self):
        if self.name in self.db.rpc_overrides:
            return FakeResponse(self.db.rpc_overrides[self.name])
        handler = getattr(self.db, f"_rpc_{self.name}")
        return FakeResponse(handler(self.params, self.user_id))


class FakeAuth:
    def __init__(self, db: "FakeSupabase"):
        self.db = db
        self.users: Dict[str, Dict[str, Any]] = {}
        self.tokens: Dict[str, str] = {}

    def _user(self, record):
        return SimpleNamespace(id=record["id"], email=record["email"], user_metadata=record["metadata"])

    def sign_up(self, credentials):
        email = credentials["email"].lower()
        if email in self.users:
            raise Exception("User already registered")
        metadata = credentials.get("options", {}).get("data", {})
        record = {"id": str(uuid.uuid4()), "email": email, "password": credentials["password"], "metadata": metadata}
        self.users[email] = record
        self.db.add_row("profiles", {"id": record["id"], "email": email, "name": metadata.get("name") or "User"})
        return SimpleNamespace(user=self._user(record), session=None)

    def sign_in_with_password(self, credentials):
        record = self.users.get(credentials["email"].lower())
        if record is None or record["password"] != credentials["password"]:
            raise Exception("Invalid login credentials")
        token = self.issue_token(record["id"])
        return SimpleNamespace(user=self._user(record), session=SimpleNamespace(access_token=token))

    def issue_token(self, user_id: str) -> str:
        token = f"token-{uuid.uuid4()}"
        self.tokens[token] = user_id
        return token

    def get_user(self, jwt=None):
        user_id = self.tokens.get(jwt)
        if user_id is None:
            raise Exception("invalid JWT: unable to parse or verify signature")
        record = next(r for r in self.users.values() if r["id"] == user_id)
        return SimpleNamespace(user=self._user(record))

    def sign_out(self):
        return None


class FakeSupabase:
    """In-memory stand-in for supabase.Client, including the two redemption procedures"""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.failures: Dict[tuple, Exception] = {}
        self.rpc_overrides: Dict[str, Any] = {}
        self.calls: List[tuple] = []
        self.auth = FakeAuth(self)
        self._clock = 0

    def now(self) -> str:
        self._clock += 1
        return (BASE_TIME + timedelta(seconds=self._clock)).isoformat()

    def add_row(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        stored = {"id": str(uuid.uuid4()), "created_at": self.now(), **row}
        self.tables.setdefault(table, []).append(stored)
        return stored

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.get(table, [])

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: Dict[str, Any]) -> FakeRpc:
        return FakeRpc(self, name, params, None)

    def as_user(self, user_id: str) -> "UserScopedFake":
        return UserScopedFake(self, user_id)

    def create_user(self, email: str, name: str = "Test User", password: str = "secret123"):
        """Registered user plus a valid bearer token"""
        result = self.auth.sign_up({"email": email, "password": password, "options": {"data": {"name": name}}})
        user_id = result.user.id
        return user_id, self.auth.issue_token(user_id)

    def grant(self, company_id: str, user_id: str, role: str):
        return self.add_row("user_company_roles", {"company_id": company_id, "user_id": user_id, "role": role})

    def _grant_once(self, company_id, user_id, role):
        for row in self.rows("user_company_roles"):
            if row["company_id"] == company_id and row["user_id"] == user_id:
                row["role"] = role
                return
        self.grant(company_id, user_id, role)

    def _rpc_accept_company_invitation(self, params, user_id):
        token = params["invitation_token"]
        invitation = next((r for r in self.rows("company_invitations") if r.get("token") == token), None)
        if invitation is None or invitation.get("validated") or invitation.get("status") != "pending":
            return {"success": False, "error": "Invalid or already used invitation"}
        expiry = invitation.get("expiration_date")
        if expiry and datetime.fromisoformat(expiry) < datetime.now(timezone.utc):
            invitation["status"] = "expired"
            return {"success": False, "error": "Invitation has expired"}
        self._grant_once(invitation["company_id"], user_id, invitation["role"])
        invitation.update({"status": "accepted", "validated": True, "user_id": user_id})
        return {"success": True, "company_id": invitation["company_id"], "role": invitation["role"]}

    def _rpc_validate_access_code(self, params, user_id):
        code = params["code"]
        invitation = next((r for r in self.rows("company_invitations") if r.get("access_code") == code), None)
        if invitation is None or invitation.get("validated"):
            return {"success": False, "error": "Invalid or already used code"}
        if invitation.get("user_id") and invitation["user_id"] != user_id:
            return {"success": False, "error": "This code was issued to another user"}
        self._grant_once(invitation["company_id"], user_id, invitation["role"])
        invitation.update({"status": "accepted", "validated": True, "user_id": user_id})
        return [{"success": True, "company_id": invitation["company_id"], "role": invitation["role"]}]


class UserScopedFake:
    """Client acting as one user: RPCs see that user as auth.uid()"""

    def __init__(self, db: FakeSupabase, user_id: str):
        self.db = db
        self.user_id = user_id

    def table(self, name):
        return self.db.table(name)

    def rpc(self, name, params):
        return FakeRpc(self.db, name, params, self.user_id)


class FakeChannel:
    def __init__(self, topic: str):
        self.topic = topic
        self.bindings = []
        self.subscribed = False

    def on_postgres_changes(self, event, callback, table="*", schema="public", filter=None):
        self.bindings.append({"event": event, "callback": callback, "table": table, "schema": schema, "filter": filter})
        return self

    async def subscribe(self, callback=None):
        self.subscribed = True
        return self


class FakeRealtimeClient:
    def __init__(self):
        self.channels: List[FakeChannel] = []
        self.removed: List[FakeChannel] = []

    def channel(self, topic: str) -> FakeChannel:
        channel = FakeChannel(topic)
        self.channels.append(channel)
        return channel

    async def remove_channel(self, channel: FakeChannel):
        self.removed.append(channel)
        self.channels.remove(channel)


@pytest.fixture
def fake_db() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def realtime_client() -> FakeRealtimeClient:
    return FakeRealtimeClient()


@pytest.fixture
def sent_emails(monkeypatch):
    """Captures invitation emails instead of calling the provider"""
    sent = []

    def fake_send(email, token):
        sent.append({"email": email, "token": token})
        return True

    monkeypatch.setattr(email_module, "send_invitation_email", fake_send)
    return sent


@pytest.fixture
def overrides(fake_db, realtime_client, sent_emails):
    def user_client(user_data: Dict = Depends(get_current_user_id)):
        return fake_db.as_user(user_data["id"])

    async def async_client():
        return realtime_client

    clear_auth_cache()
    app.dependency_overrides[get_supabase] = lambda: fake_db
    app.dependency_overrides[get_service_supabase] = lambda: fake_db
    app.dependency_overrides[get_user_supabase] = user_client
    app.dependency_overrides[get_async_supabase] = async_client
    yield fake_db
    app.dependency_overrides.clear()
    clear_auth_cache()


@pytest_asyncio.fixture
async def client(overrides):
    """HTTP test client with the Supabase dependencies replaced"""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def ws_client(overrides):
    with TestClient(app) as tc:
        yield tc


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def acme(fake_db):
    """Company Acme with an Admin, a Member and a Viewer"""
    admin_id, admin_token = fake_db.create_user("admin@acme.example.com", "Ada Admin")
    member_id, member_token = fake_db.create_user("member@acme.example.com", "Max Member")
    viewer_id, viewer_token = fake_db.create_user("viewer@acme.example.com", "Vic Viewer")
    company = fake_db.add_row("companies", {"name": "Acme", "created_by": admin_id})
    fake_db.grant(company["id"], admin_id, "Admin")
    fake_db.grant(company["id"], member_id, "Member")
    fake_db.grant(company["id"], viewer_id, "Viewer")
    return SimpleNamespace(
        company_id=company["id"],
        admin_id=admin_id, admin=auth_headers(admin_token), admin_token=admin_token,
        member_id=member_id, member=auth_headers(member_token), member_token=member_token,
        viewer_id=viewer_id, viewer=auth_headers(viewer_token), viewer_token=viewer_token,
    )
