"""
LetSQL Models - relation registry and hydration.

Relations are application-level joins: after the parent rows are read,
each declared relation issues one ``WHERE key IN (...)`` query against
the related model and the results are stitched into the parent rows.

Usage:
    class User(Model):
        table = "users"

        @relation
        def posts(self):
            return self.has_many(Post, "user_id", "id")

    users = await User(client).with_("posts").get()
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..faults import DataIntegrityFault
from .intent import Relation

if TYPE_CHECKING:
    from ..db.engine import ExecutionClient

logger = logging.getLogger("letsql.models")

__all__ = ["relation", "HydratedRelation", "hydrate_relations", "attach_relations"]

RELATION_ATTR = "__letsql_relation__"


def relation(arg: Any = None):
    """
    Register a method as a relation builder usable with ``with_()``.

    ``@relation`` registers under the method name, ``@relation("name")``
    under an explicit one.
    """
    def mark(func: Callable, name: Optional[str]) -> Callable:
        setattr(func, RELATION_ATTR, name or func.__name__)
        return func

    if callable(arg):
        return mark(arg, None)
    return lambda func: mark(func, arg)


class HydratedRelation:
    """Related rows for one relation, indexed by join key."""

    __slots__ = ("relation", "index")

    def __init__(self, relation: Relation, index: Dict[str, Any]):
        self.relation = relation
        self.index = index

    def value_for(self, row: Dict[str, Any]) -> Any:
        key = row.get(self.relation.parent_key)
        found = self.index.get(_index_key(key)) if key is not None else None
        if self.relation.many:
            return list(found) if found else []
        return dict(found) if found is not None else None


def _index_key(value: Any) -> str:
    # Parent and related sides may come back as int vs str; compare as text
    return str(value)


def _unique_ids(rows: Sequence[Dict[str, Any]], field: str) -> List[Any]:
    seen = set()
    ids = []
    for row in rows:
        value = row.get(field)
        if value is None:
            continue
        key = _index_key(value)
        if key in seen:
            continue
        seen.add(key)
        ids.append(value)
    return ids


async def _load(
    client: "ExecutionClient",
    rows: Sequence[Dict[str, Any]],
    rel: Relation,
) -> HydratedRelation:
    ids = _unique_ids(rows, rel.parent_key)
    if not ids:
        return HydratedRelation(rel, {})

    related = rel.factory(client)
    if rel.callback is not None:
        rel.callback(related)
    results = await related.where_in(rel.related_key, ids).get()

    index: Dict[str, Any] = {}
    for item in results:
        value = item.get(rel.related_key)
        if value is None:
            raise DataIntegrityFault(
                f"related row for '{rel.identifier}' has no '{rel.related_key}' field",
                metadata={"relation": rel.identifier, "field": rel.related_key},
            )
        key = _index_key(value)
        if rel.many:
            index.setdefault(key, []).append(item)
        else:
            index[key] = item

    logger.debug(
        f"Hydrated relation '{rel.identifier}' ({rel.type.value}): "
        f"{len(ids)} keys, {len(results)} related rows"
    )
    return HydratedRelation(rel, index)


async def hydrate_relations(
    client: "ExecutionClient",
    rows: Sequence[Dict[str, Any]],
    relations: Tuple[Relation, ...],
) -> List[HydratedRelation]:
    """Run one query per relation concurrently and index the results."""
    if not relations:
        return []
    return list(await asyncio.gather(*(_load(client, rows, rel) for rel in relations)))


def attach_relations(row: Dict[str, Any], hydrated: Sequence[HydratedRelation]) -> Dict[str, Any]:
    """Set each relation's identifier on ``row``: a row, None, or a list."""
    for item in hydrated:
        row[item.relation.identifier] = item.value_for(row)
    return row
