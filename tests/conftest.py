import os
import re
import tempfile
import uuid
from copy import deepcopy
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

# Settings are read at import time; keep test logs out of the source tree.
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="toolforge-logs-"))

from toolforge.schemas.auth import Identity  # noqa: E402

_EMBED = re.compile(r"(\w+)\(")
_BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


class FakeAPIError(Exception):
    def __init__(self, message, code=None):
        super().__init__(message)
        self.message = message
        self.code = code


class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Just enough of the PostgREST query builder for the CRUD modules."""

    def __init__(self, backend, table):
        self.backend = backend
        self.table = table
        self.op = "select"
        self.columns = "*"
        self.payload = None
        self.filters = []
        self.orderings = []
        self.limit_to = None

    def select(self, columns="*"):
        self.op, self.columns = "select", columns
        return self

    def insert(self, payload):
        self.op, self.payload = "insert", payload
        return self

    def update(self, payload):
        self.op, self.payload = "update", payload
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.orderings.append((column, desc))
        return self

    def limit(self, count):
        self.limit_to = count
        return self

    def _matches(self, row):
        return all(str(row.get(column)) == str(value) for column, value in self.filters)

    async def execute(self):
        self.backend.calls.append((self.table, self.op))
        failure = self.backend.failures.get((self.table, self.op))
        if failure:
            raise FakeAPIError(*failure)
        return FakeResponse(getattr(self, f"_{self.op}")())

    def _insert(self):
        rows = self.payload if isinstance(self.payload, list) else [self.payload]
        created = []
        # One statement, one now(): every row of a bulk insert gets the same stamp.
        stamp = self.backend.next_timestamp()
        for row in rows:
            stored = dict(row)
            stored.setdefault("id", str(uuid.uuid4()))
            stored.setdefault("created_at", stamp)
            if self.table != "tool_fields":
                stored.setdefault("updated_at", stamp)
            self.backend.tables.setdefault(self.table, []).append(stored)
            created.append(deepcopy(stored))
        return created

    def _select(self):
        rows = [deepcopy(row) for row in self.backend.tables.get(self.table, []) if self._matches(row)]
        for related in _EMBED.findall(self.columns):
            for row in rows:
                row[related] = [
                    {"id": child["id"]}
                    for child in self.backend.tables.get(related, [])
                    if child.get("tool_id") == row["id"]
                ]
        for column, desc in reversed(self.orderings):
            rows.sort(key=lambda row: row.get(column), reverse=desc)
        if self.limit_to is not None:
            rows = rows[:self.limit_to]
        return rows

    def _update(self):
        updated = []
        for row in self.backend.tables.get(self.table, []):
            if self._matches(row):
                row.update(self.payload)
                row["updated_at"] = self.backend.next_timestamp()
                updated.append(deepcopy(row))
        return updated

    def _delete(self):
        rows = self.backend.tables.get(self.table, [])
        deleted = [row for row in rows if self._matches(row)]
        self.backend.tables[self.table] = [row for row in rows if not self._matches(row)]
        if self.table == "tools":
            # ON DELETE CASCADE
            ids = {row["id"] for row in deleted}
            for child in ("tool_fields", "tool_records"):
                self.backend.tables[child] = [
                    row for row in self.backend.tables.get(child, []) if row.get("tool_id") not in ids
                ]
        return deepcopy(deleted)


class FakeRPC:
    def __init__(self, backend, name, params):
        self.backend = backend
        self.name = name
        self.params = params

    async def execute(self):
        self.backend.rpc_calls.append((self.name, self.params))
        if self.backend.rpc_error:
            raise FakeAPIError(self.backend.rpc_error)
        return FakeResponse(None)


class FakeSupabase:
    """In-memory stand-in for a Supabase AsyncClient."""

    def __init__(self, name="anon"):
        self.name = name
        self.tables = {}
        self.calls = []
        self.failures = {}
        self.rpc_calls = []
        self.rpc_error = None
        self._clock = 0
        self.auth = MagicMock()
        self.auth.get_session = AsyncMock(return_value=None)
        self.auth.sign_out = AsyncMock(return_value=None)
        self.postgrest = MagicMock()

    def next_timestamp(self):
        self._clock += 1
        return (_BASE_TIME + timedelta(seconds=self._clock)).isoformat()

    def fail(self, table, op, message, code=None):
        self.failures[(table, op)] = (message, code)

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, name, params):
        return FakeRPC(self, name, params)


class FakeClients:
    def __init__(self):
        self.anon_client = FakeSupabase("anon")
        self.service_client = FakeSupabase("service")
        self.token_client = self.anon_client
        self.tokens = []
        self.released = []

    async def anon(self):
        return self.anon_client

    async def service(self):
        return self.service_client

    async def for_token(self, access_token):
        self.tokens.append(access_token)
        return self.token_client

    async def release(self, client):
        if client is not self.anon_client:
            self.released.append(client)


def fake_session(user_id="user-1", email="owner@example.com"):
    return SimpleNamespace(
        user=SimpleNamespace(id=user_id, email=email),
        access_token="access-token",
        refresh_token="refresh-token",
    )


@pytest.fixture
def fake_db():
    return FakeSupabase()


@pytest.fixture
def fake_clients():
    return FakeClients()


@pytest.fixture
def identity():
    return Identity(id="user-1", email="owner@example.com")


@pytest.fixture
def trace_logger():
    mock = MagicMock()
    mock.log_event = AsyncMock()
    return mock
