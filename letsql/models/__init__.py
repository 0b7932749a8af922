"""
LetSQL Model System - Active-Record entities with a fluent query builder.

Usage:
    from letsql.models import Model, relation

    class Post(Model):
        table = "posts"

    class User(Model):
        table = "users"
        soft_delete = True

        @relation
        def posts(self):
            return self.has_many(Post, "user_id", "id")

Public API:
    - Model: Base class for all entities
    - relation: Registers a relation builder for ``with_()``
    - Page: ``paginate()`` result
    - QueryIntent / compile_intent: Intent structure and its SQL compiler
    - restrict_fields / apply_casts: Attribute filter helpers
"""

from .base import Model, ModelMeta, Page
from .builder import CompiledQuery, compile_intent
from .filters import CAST_TAGS, CastDirection, apply_casts, restrict_fields, validate_casts
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
from .relations import relation

__all__ = [
    # Entities
    "Model",
    "ModelMeta",
    "Page",
    "relation",
    # Intent & compiler
    "Action",
    "Join",
    "OrderBy",
    "QueryIntent",
    "RawClause",
    "Relation",
    "RelationType",
    "WhereClause",
    "CompiledQuery",
    "compile_intent",
    # Attribute filter
    "CAST_TAGS",
    "CastDirection",
    "apply_casts",
    "restrict_fields",
    "validate_casts",
]
