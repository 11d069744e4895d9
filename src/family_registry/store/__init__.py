"""Graph store abstraction and Cypher templates."""
from . import queries
from .graph_store import (
    RUN_QUERY,
    GraphStore,
    Neo4jGraphStore,
    normalize_row,
    normalize_value,
    store_operation,
)

__all__ = [
    "RUN_QUERY",
    "GraphStore",
    "Neo4jGraphStore",
    "normalize_row",
    "normalize_value",
    "queries",
    "store_operation",
]
