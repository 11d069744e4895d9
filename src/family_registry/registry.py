"""Composition root: one store shared by every component."""
from __future__ import annotations

from .config import Settings
from .family import FamilyService
from .people import PersonRepository
from .relationships import RelationshipMaintainer
from .store import GraphStore, Neo4jGraphStore


class FamilyRegistry:
    """Person CRUD, relationship maintenance and family queries over one store.

    Example:
        >>> with FamilyRegistry.from_settings(load_settings()) as registry:
        ...     registry.people.get_all_people()
    """

    def __init__(self, store: GraphStore) -> None:
        self.store = store
        self.people = PersonRepository(store)
        self.relationships = RelationshipMaintainer(store, self.people)
        self.family = FamilyService(store, self.people)

    @classmethod
    def from_settings(cls, settings: Settings) -> FamilyRegistry:
        settings.require_credentials()
        store = Neo4jGraphStore(
            uri=settings.neo4j_uri,
            username=settings.neo4j_user,
            password=settings.neo4j_password,
            database=settings.neo4j_database,
        )
        return cls(store)

    def close(self) -> None:
        self.store.close()

    def __enter__(self) -> FamilyRegistry:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
