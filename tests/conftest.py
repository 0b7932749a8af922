"""
Shared test fixtures and helpers for the LetSQL test suite.
"""

from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest
import pytest_asyncio

from letsql import ExecutionClient, Model, relation
from letsql.config import DatabaseConfig
from letsql.db.backends.base import DatabaseAdapter, ExecutionSummary


# ============================================================================
# Test Models
# ============================================================================


class Post(Model):
    table = "posts"
    casts = {"published": "boolean"}

    @relation
    def author(self):
        return self.belongs_to(User, "user_id", "id", "author")


class Profile(Model):
    table = "profiles"
    timestamp = False


class User(Model):
    table = "users"
    uuid_column = "uuid"
    fillable = ["name", "email", "age", "is_active", "data", "password"]
    hidden = ["password"]
    soft_delete = True
    casts = {"is_active": "boolean", "data": "json", "age": "number"}

    @relation
    def posts(self):
        return self.has_many(Post, "user_id", "id", "posts")

    @relation("profile")
    def profile_relation(self):
        return self.has_one(Profile, "user_id", "id", "profile")


SCHEMA = [
    """
    CREATE TABLE users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        uuid TEXT UNIQUE,
        name TEXT NOT NULL,
        email TEXT UNIQUE,
        age INTEGER,
        is_active INTEGER DEFAULT 1,
        data TEXT,
        password TEXT,
        created_at TEXT,
        updated_at TEXT,
        deleted_at TEXT
    )
    """,
    """
    CREATE TABLE posts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER,
        title TEXT NOT NULL,
        published INTEGER DEFAULT 0,
        created_at TEXT,
        updated_at TEXT
    )
    """,
    """
    CREATE TABLE profiles (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER,
        bio TEXT
    )
    """,
]


# ============================================================================
# Store Fixtures
# ============================================================================


def sqlite_config(**overrides: Any) -> DatabaseConfig:
    """In-memory SQLite config with fast retries and no keep-alive."""
    values = dict(
        url="sqlite:///:memory:",
        retry_base_delay=0.0,
        connect_retry_delay=0.0,
        keep_alive_interval=0.0,
    )
    values.update(overrides)
    return DatabaseConfig(**values)


@pytest_asyncio.fixture
async def client():
    """Connected client over a fresh in-memory database with the test schema."""
    db = ExecutionClient(sqlite_config())
    await db.connect()
    for statement in SCHEMA:
        await db.execute(statement)
    yield db
    await db.shutdown()


async def seed_users(db: ExecutionClient, count: int) -> None:
    users = User(db)
    for i in range(1, count + 1):
        await users.insert({"name": f"user{i:02d}", "email": f"user{i:02d}@example.com", "age": 20 + i})


# ============================================================================
# Stub Adapter
# ============================================================================


class StubAdapter(DatabaseAdapter):
    """
    Scriptable adapter.

    ``script`` is consumed one entry per ``execute`` call: exceptions are
    raised, anything else is returned. When exhausted, ``default`` is returned.
    """

    dialect = "stub"

    def __init__(self, script: Optional[Sequence[Any]] = None, default: Any = None):
        self.script: List[Any] = list(script or [])
        self.default = [] if default is None else default
        self.calls: List[tuple] = []
        self.connect_calls = 0
        self.connect_errors: List[BaseException] = []
        self.ping_error: Optional[BaseException] = None
        self.ping_calls = 0
        self.ping_hook: Optional[Callable[[], None]] = None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self, url: str, **options) -> None:
        self.connect_calls += 1
        if self.connect_errors:
            raise self.connect_errors.pop(0)
        self._connected = True

    async def disconnect(self) -> None:
        self._connected = False

    async def execute(self, sql: str, params=None):
        self.calls.append((sql, list(params or [])))
        if self.script:
            item = self.script.pop(0)
        else:
            item = self.default
        if isinstance(item, BaseException):
            raise item
        return item

    async def ping(self) -> None:
        self.ping_calls += 1
        if self.ping_hook is not None:
            self.ping_hook()
        if self.ping_error is not None:
            raise self.ping_error

    def pool_stats(self) -> Dict[str, Any]:
        return {"size": 1, "free": 1, "min": 1, "max": 1}


class DriverError(Exception):
    """Driver exception carrying a numeric code as ``args[0]`` (pymysql style)."""


@pytest.fixture
def stub():
    return StubAdapter()


@pytest.fixture
def stub_client(stub):
    return ExecutionClient(sqlite_config(), adapter=stub)


def summary(affected_rows: int = 1, insert_id: Optional[int] = None) -> ExecutionSummary:
    return ExecutionSummary(affected_rows=affected_rows, insert_id=insert_id)
