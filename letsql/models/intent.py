"""
LetSQL Models - query intent.

A ``QueryIntent`` is the not-yet-executed description of one query.
It is immutable: every fluent call on a ``Model`` produces a new intent
with one change applied, so an intent that has been handed to the
compiler or captured for later can never change underneath its holder.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Tuple, Union

if TYPE_CHECKING:
    from ..db.engine import ExecutionClient
    from .base import Model

__all__ = [
    "Action",
    "RelationType",
    "WhereClause",
    "RawClause",
    "Join",
    "OrderBy",
    "Relation",
    "QueryIntent",
]


class Action(str, Enum):
    SELECT = "select"
    INSERT = "insert"
    INSERT_IGNORE = "insert_ignore"
    INSERT_UPDATE = "insert_update"
    UPDATE = "update"
    DELETE = "delete"


class RelationType(str, Enum):
    HAS_MANY = "has_many"
    HAS_ONE = "has_one"
    BELONGS_TO = "belongs_to"


@dataclass(frozen=True)
class WhereClause:
    field: str
    operator: str
    value: Any
    condition: str = "AND"


@dataclass(frozen=True)
class RawClause:
    raw: str
    condition: str = "AND"


Clause = Union[WhereClause, RawClause]


@dataclass(frozen=True)
class Join:
    table: str
    first: str
    operator: str
    second: str
    type: str = "INNER"


@dataclass(frozen=True)
class OrderBy:
    field: str
    direction: str = "ASC"


@dataclass(frozen=True)
class Relation:
    """
    Application-level join, executed as a second query.

    ``has_many``/``has_one`` match the parent's ``local_key`` against the
    related rows' ``foreign_key``; ``belongs_to`` matches the parent's
    ``foreign_key`` against the related rows' ``local_key`` (owner key).
    """

    factory: Callable[["ExecutionClient"], "Model"]
    foreign_key: str
    local_key: str
    identifier: str
    type: RelationType
    callback: Optional[Callable[["Model"], Any]] = None

    @property
    def parent_key(self) -> str:
        return self.foreign_key if self.type is RelationType.BELONGS_TO else self.local_key

    @property
    def related_key(self) -> str:
        return self.local_key if self.type is RelationType.BELONGS_TO else self.foreign_key

    @property
    def many(self) -> bool:
        return self.type is RelationType.HAS_MANY


@dataclass(frozen=True)
class QueryIntent:
    action: Action = Action.SELECT
    select: Tuple[str, ...] = ()
    data: Optional[Dict[str, Any]] = None
    where: Tuple[Clause, ...] = ()
    joins: Tuple[Join, ...] = ()
    order_by: Optional[OrderBy] = None
    group_by: Tuple[str, ...] = ()
    limit: Optional[int] = None
    offset: Optional[int] = None
    relations: Tuple[Relation, ...] = ()
    raw_query: Optional[str] = None
    with_trashed: bool = False

    def replace(self, **changes: Any) -> "QueryIntent":
        if "data" in changes and changes["data"] is not None:
            changes["data"] = dict(changes["data"])
        return dataclasses.replace(self, **changes)

    def add_where(self, *clauses: Clause) -> "QueryIntent":
        return self.replace(where=self.where + clauses)

    def add_join(self, join: Join) -> "QueryIntent":
        return self.replace(joins=self.joins + (join,))

    def add_relation(self, relation: Relation) -> "QueryIntent":
        """Append ``relation``, replacing any relation with the same identifier."""
        kept = tuple(r for r in self.relations if r.identifier != relation.identifier)
        return self.replace(relations=kept + (relation,))

    @property
    def is_empty(self) -> bool:
        return self == QueryIntent()
