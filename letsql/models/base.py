"""
LetSQL Model Base - Active-Record entities over an ExecutionClient.

Usage:
    from letsql import ExecutionClient, Model, relation

    class User(Model):
        table = "users"
        hidden = ["password"]
        soft_delete = True
        casts = {"is_active": "boolean", "data": "json"}

        @relation
        def posts(self):
            return self.has_many(Post, "user_id", "id")

    users = User(client)
    page = await users.where("is_active", True).order_by("id", "desc").paginate(1, 20)
    alice = await users.with_("posts").find(1)

Fluent calls replace the model's ``QueryIntent``; terminal calls consume it
(the model is ready for a new chain afterwards, even when the call fails).
One model instance runs one chain at a time; use separate instances for
concurrent queries.
"""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import (
    Any,
    Callable,
    ClassVar,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    TYPE_CHECKING,
    Union,
)

from ..db.backends.base import ExecutionSummary, QueryResult
from ..faults import UsageFault
from .builder import CompiledQuery, compile_intent
from .filters import CastDirection, apply_casts, restrict_fields, validate_casts
from .intent import (
    Action,
    Join,
    OrderBy,
    QueryIntent,
    RawClause,
    Relation,
    RelationType,
    WhereClause,
)
from .relations import RELATION_ATTR, attach_relations, hydrate_relations

if TYPE_CHECKING:
    from ..db.engine import ExecutionClient

logger = logging.getLogger("letsql.models")

__all__ = ["Model", "ModelMeta", "Page"]

RelationTarget = Callable[["ExecutionClient"], "Model"]


def _now() -> datetime:
    """Naive UTC timestamp at second precision."""
    return datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)


def _field_list(fields: Sequence[Any]) -> Tuple[str, ...]:
    """Accept ("a", "b"), (["a", "b"],) or ("a, b",)."""
    if len(fields) == 1:
        only = fields[0]
        if isinstance(only, str):
            fields = only.split(",")
        elif isinstance(only, (list, tuple)):
            fields = only
    return tuple(f.strip() for f in fields if f and f.strip())


@dataclass
class Page:
    """One page of results plus navigation info."""

    data: List[Dict[str, Any]]
    total: int
    pages: int
    page: int
    per_page: int
    next_page: Optional[int]
    prev_page: Optional[int]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ModelMeta(type):
    """
    Metaclass for LetSQL models.

    Handles:
    - Relation registry (methods marked with ``@relation``, inherited)
    - Cast tag validation
    """

    def __new__(
        mcs,
        name: str,
        bases: Tuple[type, ...],
        namespace: Dict[str, Any],
        **kwargs,
    ) -> "ModelMeta":
        cls = super().__new__(mcs, name, bases, namespace)

        registry: Dict[str, Callable] = {}
        for parent in reversed(cls.__mro__[1:]):
            registry.update(parent.__dict__.get("_relations", {}))
        for value in namespace.values():
            rel_name = getattr(value, RELATION_ATTR, None)
            if rel_name:
                registry[rel_name] = value
        cls._relations = registry

        validate_casts(getattr(cls, "casts", {}) or {}, owner=name)
        return cls


class Model(metaclass=ModelMeta):
    """
    Base entity. Subclasses set ``table`` and optionally the other
    configuration attributes below, then are constructed with an
    ``ExecutionClient``.
    """

    table: ClassVar[str] = ""
    primary_key: ClassVar[str] = "id"
    uuid_column: ClassVar[Optional[str]] = None
    fillable: ClassVar[Sequence[str]] = ()
    guarded: ClassVar[Sequence[str]] = ()
    hidden: ClassVar[Sequence[str]] = ()
    timestamp: ClassVar[bool] = True
    soft_delete: ClassVar[bool] = False
    per_page: ClassVar[int] = 10
    casts: ClassVar[Dict[str, str]] = {}

    _relations: ClassVar[Dict[str, Callable]] = {}

    def __init__(self, client: "ExecutionClient"):
        if not self.table:
            raise UsageFault(type(self).__name__, "table name is not set")
        self._client = client
        self._intent = QueryIntent()

    @property
    def client(self) -> "ExecutionClient":
        return self._client

    @property
    def intent(self) -> QueryIntent:
        """The accumulated, not-yet-executed intent."""
        return self._intent

    def to_sql(self) -> CompiledQuery:
        """Compile the current intent without executing or resetting it."""
        return compile_intent(self.table, self._intent)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} table={self.table}>"

    # ── Fluent: projection & joins ───────────────────────────────────

    def select(self, *fields: Any) -> "Model":
        """Set selected columns; empty input keeps the default ``table.*``."""
        columns = _field_list(fields)
        if columns:
            self._intent = self._intent.replace(select=columns)
        return self

    def select_more(self, fields: Sequence[str] = (), excepts: Sequence[str] = ()) -> "Model":
        columns = self._intent.select + tuple(fields)
        if excepts:
            columns = tuple(c for c in columns if c not in excepts)
        self._intent = self._intent.replace(select=columns)
        return self

    def join(self, table: str, first: str, operator: str, second: str, type: str = "INNER") -> "Model":
        self._intent = self._intent.add_join(Join(table, first, operator, second, type.upper()))
        return self

    def left_join(self, table: str, first: str, operator: str, second: str) -> "Model":
        return self.join(table, first, operator, second, "LEFT")

    # ── Fluent: filters ──────────────────────────────────────────────

    def _where_clauses(self, condition: str, args: Tuple[Any, ...]) -> Tuple[WhereClause, ...]:
        if len(args) == 1 and isinstance(args[0], Mapping):
            return tuple(WhereClause(f, "=", v, condition) for f, v in args[0].items())
        if len(args) == 2:
            return (WhereClause(args[0], "=", args[1], condition),)
        if len(args) == 3:
            return (WhereClause(args[0], str(args[1]).strip().upper(), args[2], condition),)
        raise UsageFault(
            type(self).__name__,
            f"where takes a mapping, (field, value) or (field, operator, value); got {len(args)} arguments",
        )

    def where(self, *args: Any) -> "Model":
        """
        Add AND conditions.

        - ``where({"a": 1, "b": 2})``: one ``=`` clause per key
        - ``where("a", 1)``: ``a = 1``
        - ``where("a", ">", 1)``: explicit operator
        """
        self._intent = self._intent.add_where(*self._where_clauses("AND", args))
        return self

    def or_where(self, *args: Any) -> "Model":
        self._intent = self._intent.add_where(*self._where_clauses("OR", args))
        return self

    def where_raw(self, raw: str) -> "Model":
        self._intent = self._intent.add_where(RawClause(raw, "AND"))
        return self

    def or_where_raw(self, raw: str) -> "Model":
        self._intent = self._intent.add_where(RawClause(raw, "OR"))
        return self

    def where_in(self, field: str, values: Sequence[Any] = ()) -> "Model":
        self._intent = self._intent.add_where(WhereClause(field, "IN", tuple(values)))
        return self

    def where_not_in(self, field: str, values: Sequence[Any] = ()) -> "Model":
        self._intent = self._intent.add_where(WhereClause(field, "NOT IN", tuple(values)))
        return self

    def where_null(self, field: str) -> "Model":
        self._intent = self._intent.add_where(WhereClause(field, "IS", "NULL"))
        return self

    def where_not_null(self, field: str) -> "Model":
        self._intent = self._intent.add_where(WhereClause(field, "IS NOT", "NULL"))
        return self

    def with_trashed(self) -> "Model":
        self._intent = self._intent.replace(with_trashed=True)
        return self

    # ── Fluent: ordering & paging ────────────────────────────────────

    def order_by(self, field: str, direction: str = "ASC") -> "Model":
        self._intent = self._intent.replace(order_by=OrderBy(field, str(direction).upper()))
        return self

    def group_by(self, *fields: Any) -> "Model":
        columns = _field_list(fields)
        if columns:
            self._intent = self._intent.replace(group_by=columns)
        return self

    def limit(self, limit: int, offset: int = 0) -> "Model":
        self._intent = self._intent.replace(limit=limit, offset=offset)
        return self

    # ── Fluent: relations ────────────────────────────────────────────

    def _relate(
        self,
        kind: RelationType,
        target: RelationTarget,
        foreign_key: str,
        local_key: str,
        name: Optional[str],
        callback: Optional[Callable[["Model"], Any]],
    ) -> "Model":
        identifier = name or getattr(target, "table", None) or target(self._client).table
        rel = Relation(target, foreign_key, local_key, identifier, kind, callback)
        self._intent = self._intent.add_relation(rel)
        return self

    def has_many(
        self,
        target: RelationTarget,
        foreign_key: str,
        local_key: str,
        name: Optional[str] = None,
        callback: Optional[Callable[["Model"], Any]] = None,
    ) -> "Model":
        """
        Attach every related row whose ``foreign_key`` equals this row's ``local_key``.

        Args:
            target: Related model class, or any callable building one from a client
            foreign_key: Column on the related table pointing at this table
            local_key: Column on this table the foreign key refers to
            name: Key under which rows are attached (default: related table)
            callback: Receives the related model to add constraints
        """
        return self._relate(RelationType.HAS_MANY, target, foreign_key, local_key, name, callback)

    def has_one(
        self,
        target: RelationTarget,
        foreign_key: str,
        local_key: str,
        name: Optional[str] = None,
        callback: Optional[Callable[["Model"], Any]] = None,
    ) -> "Model":
        return self._relate(RelationType.HAS_ONE, target, foreign_key, local_key, name, callback)

    def belongs_to(
        self,
        target: RelationTarget,
        foreign_key: str,
        owner_key: str,
        name: Optional[str] = None,
        callback: Optional[Callable[["Model"], Any]] = None,
    ) -> "Model":
        """Attach the related row whose ``owner_key`` equals this row's ``foreign_key``."""
        return self._relate(RelationType.BELONGS_TO, target, foreign_key, owner_key, name, callback)

    def with_(self, *names: Union[str, Sequence[str]]) -> "Model":
        """Declare registered relations by name: ``with_("posts", "profile")``."""
        for rel_name in _field_list(names):
            builder = self._relations.get(rel_name)
            if builder is None:
                raise UsageFault(type(self).__name__, f"relation '{rel_name}' does not exist")
            builder(self)
        return self

    # ── Terminal: reads ──────────────────────────────────────────────

    def _take(self) -> QueryIntent:
        intent, self._intent = self._intent, QueryIntent()
        return intent

    def _scoped(self, intent: QueryIntent) -> QueryIntent:
        if self.soft_delete and not intent.with_trashed:
            return intent.add_where(WhereClause("deleted_at", "IS", "NULL"))
        return intent

    async def get(self) -> List[Dict[str, Any]]:
        return await self._get(self._take())

    async def first(self) -> Optional[Dict[str, Any]]:
        return await self._first(self._take())

    async def find(self, key: Any) -> Optional[Dict[str, Any]]:
        """Row whose primary key equals ``key``, or None. Earlier filters are dropped."""
        intent = self._take().replace(where=(WhereClause(self.primary_key, "=", key),))
        return await self._first(intent)

    async def count(self) -> int:
        return await self._count(self._take())

    async def paginate(self, page: Optional[int] = None, per_page: Optional[int] = None) -> Page:
        """
        Fetch one page and the total row count.

        Without ``page``/``per_page`` the values are derived from an earlier
        ``limit()`` call, falling back to ``per_page`` on the class.
        """
        intent = self._take()
        page = int(page or 0)
        per_page = int(per_page or 0)
        if page < 1:
            page = (intent.offset or 0) // (intent.limit or self.per_page) + 1
        if per_page < 1:
            per_page = intent.limit or self.per_page

        data = await self._get(intent.replace(limit=per_page, offset=(page - 1) * per_page))
        total = await self._count(intent.replace(limit=None, offset=None))
        pages = math.ceil(total / per_page)
        return Page(
            data=data,
            total=total,
            pages=pages,
            page=page,
            per_page=per_page,
            next_page=page + 1 if page < pages else None,
            prev_page=page - 1 if 1 < page <= pages else None,
        )

    async def raw_query(self, sql: str) -> QueryResult:
        """Execute ``sql`` verbatim; returned rows get casts and hidden fields applied."""
        return await self._process(self._take().replace(action=Action.SELECT, raw_query=sql))

    async def _get(self, intent: QueryIntent) -> List[Dict[str, Any]]:
        return await self._process(self._scoped(intent).replace(action=Action.SELECT))

    async def _first(self, intent: QueryIntent) -> Optional[Dict[str, Any]]:
        rows = await self._get(intent.replace(limit=1))
        return rows[0] if rows else None

    async def _count(self, intent: QueryIntent) -> int:
        row = await self._first(
            intent.replace(select=("COUNT(*) as count",), relations=(), order_by=None, offset=None)
        )
        if not row or row.get("count") is None:
            return 0
        return int(row["count"])

    # ── Terminal: writes ─────────────────────────────────────────────

    def _payload(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        payload = restrict_fields(data, self.fillable, self.guarded)
        if payload and self.casts:
            payload = apply_casts(payload, self.casts, CastDirection.TO_STORAGE)
        return payload

    async def _insert(self, action: Action, data: Mapping[str, Any]) -> Optional[ExecutionSummary]:
        self._take()
        payload = self._payload(data)
        if not payload:
            return None

        if self.uuid_column:
            payload[self.uuid_column] = str(uuid.uuid4())
        if self.timestamp:
            now = _now()
            payload["created_at"] = now
            if action is not Action.INSERT:
                payload["updated_at"] = now

        result = await self._process(QueryIntent(action=action, data=payload))
        if (
            action is Action.INSERT
            and self.uuid_column
            and isinstance(result, ExecutionSummary)
            and result.affected_rows > 0
        ):
            result.insert_uuid = payload[self.uuid_column]
        return result

    async def insert(self, data: Mapping[str, Any]) -> Optional[ExecutionSummary]:
        """Insert one row. Returns None when no column survives fillable/guarded."""
        return await self._insert(Action.INSERT, data)

    async def insert_ignore(self, data: Mapping[str, Any]) -> Optional[ExecutionSummary]:
        return await self._insert(Action.INSERT_IGNORE, data)

    async def insert_or_update(self, data: Mapping[str, Any]) -> Optional[ExecutionSummary]:
        """``INSERT ... ON DUPLICATE KEY UPDATE`` (MySQL)."""
        return await self._insert(Action.INSERT_UPDATE, data)

    async def update(self, data: Mapping[str, Any]) -> Optional[ExecutionSummary]:
        """Update rows matched by the current where clauses (required)."""
        intent = self._take()
        payload = self._payload(data)
        if not payload:
            return None
        if not intent.where:
            raise UsageFault(type(self).__name__, "update() requires a where clause")

        intent = self._scoped(intent)
        if self.timestamp:
            payload["updated_at"] = _now()
        return await self._process(intent.replace(action=Action.UPDATE, data=payload))

    async def delete(self) -> ExecutionSummary:
        """Delete matched rows; soft-delete models set ``deleted_at`` instead."""
        intent = self._take()
        if not self.soft_delete:
            return await self._process(intent.replace(action=Action.DELETE))
        if not intent.where:
            raise UsageFault(type(self).__name__, "delete() requires a where clause")
        intent = intent.add_where(WhereClause("deleted_at", "IS", "NULL"))
        return await self._process(intent.replace(action=Action.UPDATE, data={"deleted_at": _now()}))

    async def force_delete(self) -> ExecutionSummary:
        """Physically delete matched rows, even on soft-delete models."""
        return await self._process(self._take().replace(action=Action.DELETE))

    # ── Execution & post-processing ──────────────────────────────────

    async def _process(self, intent: QueryIntent) -> Any:
        sql, bindings = compile_intent(self.table, intent)
        logger.debug(f"{type(self).__name__} {intent.action.value}: {sql}")
        result = await self._client.execute(sql, bindings)
        if intent.action is not Action.SELECT or not isinstance(result, list):
            return result
        return await self._post_process(result, intent.relations)

    async def _post_process(
        self,
        rows: List[Dict[str, Any]],
        relations: Tuple[Relation, ...],
    ) -> List[Dict[str, Any]]:
        hydrated = await hydrate_relations(self._client, rows, relations) if rows else []

        out = []
        for row in rows:
            row = apply_casts(row, self.casts, CastDirection.FROM_STORAGE) if self.casts else dict(row)
            if hydrated:
                attach_relations(row, hydrated)
            for column in self.hidden:
                row.pop(column, None)
            out.append(row)
        return out
