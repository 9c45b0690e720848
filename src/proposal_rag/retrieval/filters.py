"""
Metadata filter grammar shared by every vector store.

A filter is a mapping of metadata key -> condition; all conditions must hold.
A condition is either a bare value (equality) or a single-operator mapping:

    {"category": "Pricing"}                      equality
    {"category": {"$eq": "Pricing"}}             equality
    {"category": {"$ne": "Legal"}}               inequality (missing key passes)
    {"sheetName": {"$in": ["Q1", "Q2"]}}         membership
    {"sheetName": {"$nin": ["Archive"]}}         non-membership (missing key passes)
    {"category": {"$exists": True}}              key present

This is the subset of the Pinecone filter language the query engine emits.
matches_filter() evaluates it in Python for the in-memory store; to_sql()
compiles it to a WHERE clause over a JSONB column for PgVectorStore, with the
same semantics.
"""

from __future__ import annotations

from typing import Any, Mapping

from psycopg import sql
from psycopg.types.json import Jsonb

OPERATORS = ("$eq", "$ne", "$in", "$nin", "$exists")


def _split_condition(key: str, condition: Any) -> tuple[str, Any]:
    """Normalize a condition to (operator, operand)."""
    if not isinstance(condition, Mapping):
        return "$eq", condition
    if len(condition) != 1:
        raise ValueError(f"Filter on {key!r} must have exactly one operator, got {dict(condition)!r}")
    (op, operand), = condition.items()
    if op not in OPERATORS:
        raise ValueError(f"Unsupported filter operator {op!r} on {key!r}")
    if op in ("$in", "$nin") and not isinstance(operand, (list, tuple)):
        raise ValueError(f"{op} on {key!r} needs a list operand")
    return op, operand


def validate_filter(filter: Mapping[str, Any] | None) -> None:
    """Raise ValueError if the filter uses anything outside the grammar."""
    for key, condition in (filter or {}).items():
        _split_condition(key, condition)


def matches_filter(metadata: Mapping[str, Any] | None, filter: Mapping[str, Any] | None) -> bool:
    """Evaluate a filter against one entry's metadata."""
    metadata = metadata or {}
    for key, condition in (filter or {}).items():
        op, operand = _split_condition(key, condition)
        present = key in metadata
        value = metadata.get(key)

        if op == "$exists":
            if present != bool(operand):
                return False
        elif op == "$eq":
            if not present or value != operand:
                return False
        elif op == "$ne":
            if present and value == operand:
                return False
        elif op == "$in":
            if not present or value not in operand:
                return False
        elif op == "$nin":
            if present and value in operand:
                return False
    return True


def to_sql(filter: Mapping[str, Any] | None, column: str = "metadata") -> tuple[sql.Composable, list[Any]]:
    """
    Compile a filter to a SQL boolean expression over a JSONB column.

    Equality uses JSONB containment (metadata @> {"key": value}) so numbers
    and booleans compare by JSON value, not by text.

    Returns:
        (expression, params); expression is TRUE for an empty filter.
    """
    col = sql.Identifier(column)
    clauses: list[sql.Composable] = []
    params: list[Any] = []

    for key, condition in (filter or {}).items():
        op, operand = _split_condition(key, condition)

        if op == "$exists":
            clause = sql.SQL("jsonb_exists({}, %s)").format(col)
            clauses.append(clause if operand else sql.SQL("NOT ") + clause)
            params.append(key)
        elif op == "$eq":
            clauses.append(sql.SQL("{} @> %s").format(col))
            params.append(Jsonb({key: operand}))
        elif op == "$ne":
            clauses.append(sql.SQL("NOT ({} @> %s)").format(col))
            params.append(Jsonb({key: operand}))
        elif op in ("$in", "$nin"):
            if not operand:
                # Empty membership list: $in matches nothing, $nin everything
                clauses.append(sql.SQL("FALSE" if op == "$in" else "TRUE"))
                continue
            any_of = sql.SQL(" OR ").join(
                sql.SQL("{} @> %s").format(col) for _ in operand
            )
            params.extend(Jsonb({key: item}) for item in operand)
            if op == "$in":
                clauses.append(sql.SQL("(") + any_of + sql.SQL(")"))
            else:
                clauses.append(sql.SQL("NOT (") + any_of + sql.SQL(")"))

    if not clauses:
        return sql.SQL("TRUE"), []
    return sql.SQL(" AND ").join(clauses), params
