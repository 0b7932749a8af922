"""
LetSQL Query Compiler - QueryIntent to parameterized SQL.

Pure function, no I/O. Every user value is bound as a ``?`` parameter,
except NULL and booleans in SET lists (emitted as ``NULL`` / ``1`` / ``0``),
the right-hand side of ``IS`` / ``IS NOT`` (emitted verbatim), and empty
``IN`` / ``NOT IN`` lists (emitted as ``1 = 0`` / ``1 = 1``).

Usage:
    from letsql.models.builder import compile_intent

    sql, bindings = compile_intent("users", intent)
    # SELECT users.* FROM users WHERE users.active = ? ORDER BY users.id DESC LIMIT ?
    # [1, 10]
"""

from __future__ import annotations

from typing import Any, Dict, List, NamedTuple

from ..faults import CompileFault
from .intent import Action, Join, QueryIntent, RawClause

__all__ = ["CompiledQuery", "compile_intent"]

_INSERT_VERBS = {
    Action.INSERT: "INSERT INTO",
    Action.INSERT_UPDATE: "INSERT INTO",
    Action.INSERT_IGNORE: "INSERT IGNORE INTO",
}

_LIST_OPERATORS = ("IN", "NOT IN")
_LITERAL_OPERATORS = ("IS", "IS NOT")


class CompiledQuery(NamedTuple):
    sql: str
    bindings: List[Any]


def _qualify(table: str, field: str) -> str:
    return field if "." in field else f"{table}.{field}"


def compile_intent(table: str, intent: QueryIntent) -> CompiledQuery:
    """
    Compile ``intent`` against ``table``.

    Raises:
        CompileFault: empty insert/update data, DELETE without WHERE,
            or an unrecognized action.
    """
    if intent.raw_query:
        return CompiledQuery(intent.raw_query, [])

    try:
        action = Action(intent.action)
    except ValueError:
        raise CompileFault(table, str(intent.action), "unrecognized action") from None

    bindings: List[Any] = []

    if action is Action.SELECT:
        sql = f"SELECT {_select_list(table, intent)} FROM {table}"
    elif action in _INSERT_VERBS:
        data = _require_data(table, action, intent)
        columns = ", ".join(data)
        placeholders = ", ".join("?" for _ in data)
        sql = f"{_INSERT_VERBS[action]} {table} ({columns}) VALUES ({placeholders})"
        bindings.extend(data.values())
        if action is Action.INSERT_UPDATE:
            sql += " ON DUPLICATE KEY UPDATE " + _set_list(data, bindings)
    elif action is Action.UPDATE:
        data = _require_data(table, action, intent)
        sql = f"UPDATE {table} SET " + _set_list(data, bindings)
    elif action is Action.DELETE:
        if not intent.where:
            raise CompileFault(table, action.value, "DELETE requires a WHERE clause")
        sql = f"DELETE FROM {table}"
    else:  # pragma: no cover - Action is exhaustive
        raise CompileFault(table, action.value, "unrecognized action")

    for join in intent.joins:
        sql += " " + _join_clause(table, join)

    if intent.where:
        sql += " WHERE " + _where_clause(table, intent, bindings)

    if intent.group_by:
        sql += " GROUP BY " + ", ".join(intent.group_by)

    if intent.order_by is not None:
        direction = "DESC" if intent.order_by.direction == "DESC" else "ASC"
        sql += f" ORDER BY {_qualify(table, intent.order_by.field)} {direction}"

    if intent.limit:
        sql += " LIMIT ?"
        bindings.append(int(intent.limit))
        if intent.offset:
            sql += " OFFSET ?"
            bindings.append(int(intent.offset))

    return CompiledQuery(sql, bindings)


def _select_list(table: str, intent: QueryIntent) -> str:
    if intent.select:
        return ", ".join(intent.select)
    columns = [f"{table}.*"]
    columns.extend(f"{join.table}.*" for join in intent.joins)
    return ", ".join(columns)


def _require_data(table: str, action: Action, intent: QueryIntent) -> Dict[str, Any]:
    if not intent.data:
        raise CompileFault(table, action.value, "no data to write")
    return intent.data


def _set_list(data: Dict[str, Any], bindings: List[Any]) -> str:
    assignments = []
    for column, value in data.items():
        if value is None:
            assignments.append(f"{column} = NULL")
        elif isinstance(value, bool):
            assignments.append(f"{column} = {1 if value else 0}")
        else:
            assignments.append(f"{column} = ?")
            bindings.append(value)
    return ", ".join(assignments)


def _join_clause(table: str, join: Join) -> str:
    first = _qualify(table, join.first)
    second = _qualify(join.table, join.second)
    return f"{join.type} JOIN {join.table} ON {first} {join.operator} {second}"


def _where_clause(table: str, intent: QueryIntent, bindings: List[Any]) -> str:
    parts: List[str] = []
    for index, clause in enumerate(intent.where):
        if index > 0:
            parts.append(clause.condition)
        if isinstance(clause, RawClause):
            parts.append(clause.raw)
            continue

        field = _qualify(table, clause.field)
        operator = clause.operator
        if operator in _LIST_OPERATORS:
            values = list(clause.value)
            if not values:
                # Empty IN matches nothing, empty NOT IN matches everything
                parts.append("1 = 0" if operator == "IN" else "1 = 1")
                continue
            parts.append(f"{field} {operator} (?)")
            bindings.append(values)
        elif operator in _LITERAL_OPERATORS:
            parts.append(f"{field} {operator} {clause.value}")
        else:
            parts.append(f"{field} {operator} ?")
            bindings.append(clause.value)
    return " ".join(parts)
