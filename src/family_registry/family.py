"""Family lookups for display: hydrate cached id references into persons."""
from __future__ import annotations

from collections.abc import Iterable

import structlog

from .errors import PersonNotFoundError
from .models import FamilyMembers, GraphData, GraphLink, GraphNode, Person
from .people import PersonRepository
from .store import GraphStore, queries, store_operation
from .validation import validate_id

logger = structlog.get_logger(__name__)


class FamilyService:
    """Read-side facade over the person repository and the graph."""

    def __init__(self, store: GraphStore, people: PersonRepository | None = None) -> None:
        self.store = store
        self.people = people or PersonRepository(store)

    def get_family_members(self, person_id: str) -> FamilyMembers:
        """Parents, children and siblings of a person.

        References that no longer resolve (deleted relatives, malformed ids)
        are dropped silently.

        Raises:
            PersonNotFoundError: the root person does not exist.
        """
        person = self._require(person_id)
        return FamilyMembers(
            parents=self._resolve(person.parent_ids()),
            children=self._resolve(person.children_ids),
            siblings=self._resolve(person.sibling_ids),
        )

    def get_spouses(self, person_id: str) -> list[Person]:
        return self._resolve(self._require(person_id).spouse_ids)

    def get_graph_data(self) -> GraphData:
        """Every person node and every person-to-person edge."""
        with store_operation("fetch graph"):
            node_rows = self.store.run_query(queries.GRAPH_NODES)
            link_rows = self.store.run_query(queries.GRAPH_LINKS)
        return GraphData(
            nodes=[GraphNode(id=row["id"], name=row.get("name") or "") for row in node_rows],
            links=[
                GraphLink(source=row["source"], target=row["target"], type=row["type"])
                for row in link_rows
            ],
        )

    def _require(self, person_id: str) -> Person:
        person = self.people.get_person_by_id(person_id)
        if person is None:
            raise PersonNotFoundError(person_id)
        return person

    def _resolve(self, ids: Iterable[str]) -> list[Person]:
        resolved = []
        for ref in dict.fromkeys(ids):
            if not validate_id(ref).is_valid:
                logger.debug("family.malformed_reference", reference=ref)
                continue
            person = self.people.get_person_by_id(ref)
            if person is None:
                logger.debug("family.dangling_reference", reference=ref)
                continue
            resolved.append(person)
        return resolved
