"""Graph store collaborator.

The registry talks to its database through a single operation,
``run_query(query, params) -> rows``. ``Neo4jGraphStore`` is the production
implementation; components receive a store instance through their
constructors.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

import structlog
from neo4j import GraphDatabase
from neo4j.exceptions import DriverError, Neo4jError
from neo4j.graph import Node, Relationship
from neo4j.time import Date, DateTime, Duration, Time

from ..errors import StoreError
from . import queries

logger = structlog.get_logger(__name__)

Row = dict[str, Any]

# Operation name carried by errors raised straight from run_query.
RUN_QUERY = "run query"


class GraphStore(ABC):
    """Abstract graph store: parameterised query in, list of row mappings out."""

    @abstractmethod
    def run_query(self, query: str, params: Mapping[str, Any] | None = None) -> list[Row]:
        """Run a query and return its rows.

        Raises:
            StoreError: the underlying store failed.
        """
        ...

    def verify_connectivity(self) -> bool:
        """Run a trivial query and report whether the store answered."""
        try:
            self.run_query(queries.VERIFY_CONNECTIVITY)
        except StoreError as exc:
            logger.error("store.connection_failed", error=str(exc.cause))
            return False
        return True

    def close(self) -> None:
        """Release store resources."""

    def __enter__(self) -> GraphStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class Neo4jGraphStore(GraphStore):
    """Neo4j-backed graph store.

    One driver per store; every query opens and closes its own session.
    """

    def __init__(
        self,
        uri: str = "bolt://localhost:7687",
        username: str = "neo4j",
        password: str = "password",
        database: str = "neo4j",
    ) -> None:
        self.driver = GraphDatabase.driver(uri, auth=(username, password))
        self.database = database
        self.uri = uri

    def run_query(self, query: str, params: Mapping[str, Any] | None = None) -> list[Row]:
        try:
            with self.driver.session(database=self.database) as session:
                result = session.run(query, dict(params or {}))
                return [normalize_row(record.data()) for record in result]
        except (Neo4jError, DriverError) as exc:
            logger.error("store.query_failed", error=str(exc), uri=self.uri)
            raise StoreError(RUN_QUERY, exc) from exc

    def verify_connectivity(self) -> bool:
        ok = super().verify_connectivity()
        if ok:
            logger.info("store.connected", uri=self.uri, database=self.database)
        return ok

    def close(self) -> None:
        """Close the Neo4j driver."""
        self.driver.close()


def normalize_value(value: Any) -> Any:
    """Convert driver-specific values to plain Python values."""
    if isinstance(value, (Node, Relationship)):
        return {k: normalize_value(v) for k, v in dict(value).items()}
    if isinstance(value, (Date, DateTime, Time)):
        return value.iso_format()
    if isinstance(value, Duration):
        return str(value)
    if isinstance(value, Mapping):
        return {k: normalize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize_value(v) for v in value]
    return value


def normalize_row(row: Mapping[str, Any]) -> Row:
    return {key: normalize_value(value) for key, value in row.items()}


@contextmanager
def store_operation(operation: str) -> Iterator[None]:
    """Re-raise raw query failures as failures of ``operation``.

    The message keeps the driver cause: ``Failed to <operation>: <cause>``.
    Errors already named by an inner operation and domain errors pass
    through untouched.
    """
    try:
        yield
    except StoreError as exc:
        if exc.operation != RUN_QUERY:
            raise
        logger.error("store.operation_failed", operation=operation, error=str(exc))
        raise StoreError(operation, exc.cause) from exc
