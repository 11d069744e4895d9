"""Shared fixtures: an in-memory graph store that understands the registry's queries."""
from __future__ import annotations

import copy
from collections import deque
from collections.abc import Callable, Mapping
from functools import partial
from typing import Any

import pytest

from family_registry.errors import StoreError
from family_registry.family import FamilyService
from family_registry.models import RelationshipType
from family_registry.people import PersonRepository
from family_registry.registry import FamilyRegistry
from family_registry.relationships import RelationshipMaintainer
from family_registry.store import RUN_QUERY, GraphStore, queries


class InMemoryGraphStore(GraphStore):
    """Graph store double keyed on the exact query templates.

    Nodes are property maps keyed by person id; edges are dicts with
    ``type``, ``source``, ``target`` and ``props``. Any query without a
    handler fails the test.
    """

    def __init__(self) -> None:
        self.nodes: dict[str, dict[str, Any]] = {}
        self.edges: list[dict[str, Any]] = []
        self.log: list[tuple[str, dict[str, Any]]] = []
        self.failures: list[tuple[str, Callable[[dict[str, Any]], bool]]] = []
        self.closed = False
        self._handlers: dict[str, Callable[[dict[str, Any]], list[dict[str, Any]]]] = {
            queries.VERIFY_CONNECTIVITY: lambda params: [{"ok": 1}],
            queries.CREATE_PERSON: self._create_person,
            queries.MATCH_ALL_PEOPLE: self._all_people,
            queries.SEARCH_PEOPLE: self._search_people,
            queries.MATCH_PERSON_BY_ID: self._person_by_id,
            queries.UPDATE_PERSON: self._update_person,
            queries.DELETE_PERSON_EDGES: self._delete_person_edges,
            queries.DELETE_PERSON: self._delete_person,
            queries.MERGE_CHILD_OF: self._merge_child_of,
            queries.DELETE_CHILD_OF: self._delete_child_of,
            queries.MATCH_SIBLING_IDS: self._sibling_ids,
            queries.MATCH_LINEAGE_PATH: self._lineage_path,
            queries.MATCH_ANCESTORS: partial(self._traverse, outgoing=True),
            queries.MATCH_DESCENDANTS: partial(self._traverse, outgoing=False),
            queries.GRAPH_NODES: self._graph_nodes,
            queries.GRAPH_LINKS: self._graph_links,
        }
        for rel_type, query in queries.MERGE_RELATIONSHIP.items():
            self._handlers[query] = partial(self._merge_relationship, rel_type)
        for rel_type, query in queries.DELETE_RELATIONSHIP.items():
            self._handlers[query] = partial(self._delete_relationship, rel_type)

    # Test helpers

    def fail_on(
        self,
        query: str,
        when: Callable[[dict[str, Any]], bool] = lambda params: True,
    ) -> None:
        """Make ``query`` raise ``StoreError`` whenever ``when(params)`` holds."""
        self.failures.append((query, when))

    def ran(self, query: str) -> list[dict[str, Any]]:
        """Parameters of every call to ``query`` so far."""
        return [params for q, params in self.log if q == query]

    def edges_of(self, rel_type: str) -> list[tuple[str, str]]:
        return [(e["source"], e["target"]) for e in self.edges if e["type"] == rel_type]

    # GraphStore

    def run_query(self, query: str, params: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        params = copy.deepcopy(dict(params or {}))
        self.log.append((query, params))
        for failing, when in self.failures:
            if failing == query and when(params):
                raise StoreError(RUN_QUERY, "connection reset by peer")
        handler = self._handlers.get(query)
        if handler is None:
            raise AssertionError(f"Unexpected query: {query}")
        return handler(params)

    def close(self) -> None:
        self.closed = True

    # Handlers

    def _row(self, person_id: str) -> dict[str, Any]:
        return {"person": copy.deepcopy(self.nodes[person_id])}

    def _create_person(self, params):
        props = params["props"]
        self.nodes[props["id"]] = props
        return [self._row(props["id"])]

    def _sorted_ids(self) -> list[str]:
        return sorted(
            self.nodes,
            key=lambda pid: (self.nodes[pid].get("lastName", ""), self.nodes[pid].get("firstName", "")),
        )

    def _all_people(self, params):
        return [self._row(pid) for pid in self._sorted_ids()]

    def _search_people(self, params):
        term = params["term"].lower()
        return [
            self._row(pid)
            for pid in self._sorted_ids()
            if term in (self.nodes[pid].get("name") or "").lower()
        ]

    def _person_by_id(self, params):
        return [self._row(params["id"])] if params["id"] in self.nodes else []

    def _update_person(self, params):
        node = self.nodes.get(params["id"])
        if node is None:
            return []
        for key, value in params["fields"].items():
            if value is None:
                node.pop(key, None)
            else:
                node[key] = value
        return [self._row(params["id"])]

    def _delete_person_edges(self, params):
        pid = params["id"]
        self.edges = [e for e in self.edges if pid not in (e["source"], e["target"])]
        return []

    def _delete_person(self, params):
        pid = params["id"]
        if any(pid in (e["source"], e["target"]) for e in self.edges):
            raise StoreError(RUN_QUERY, f"Cannot delete node {pid}, because it still has relationships")
        self.nodes.pop(pid, None)
        return []

    def _find_edge(self, rel_type: str, source: str, target: str) -> dict[str, Any] | None:
        for edge in self.edges:
            if edge["type"] == rel_type and edge["source"] == source and edge["target"] == target:
                return edge
        return None

    def _merge_edge(self, rel_type: str, source: str, target: str) -> dict[str, Any]:
        edge = self._find_edge(rel_type, source, target)
        if edge is None:
            edge = {"type": rel_type, "source": source, "target": target, "props": {}}
            self.edges.append(edge)
        return edge

    def _remove_edges(self, rel_type: str, pairs: set[tuple[str, str]]) -> int:
        before = len(self.edges)
        self.edges = [
            e for e in self.edges
            if not (e["type"] == rel_type and (e["source"], e["target"]) in pairs)
        ]
        return before - len(self.edges)

    def _merge_child_of(self, params):
        child, parent = params["childId"], params["parentId"]
        if child not in self.nodes or parent not in self.nodes:
            return [{"edges": 0}]
        self._merge_edge("CHILD_OF", child, parent)["props"]["type"] = params["role"]
        return [{"edges": 1}]

    def _delete_child_of(self, params):
        deleted = self._remove_edges("CHILD_OF", {(params["childId"], params["parentId"])})
        return [{"deleted": deleted}]

    def _parents(self, pid: str) -> list[str]:
        return [t for s, t in self.edges_of("CHILD_OF") if s == pid and t in self.nodes]

    def _children(self, pid: str) -> list[str]:
        return [s for s, t in self.edges_of("CHILD_OF") if t == pid and s in self.nodes]

    def _sibling_ids(self, params):
        pid = params["id"]
        siblings = {
            child
            for parent in self._parents(pid)
            for child in self._children(parent)
            if child != pid
        }
        return [{"id": sid} for sid in sorted(siblings)]

    def _distances(self, start: str, step: Callable[[str], list[str]], depth: int | None) -> dict[str, int]:
        seen = {start: 0}
        queue = deque([start])
        while queue:
            current = queue.popleft()
            if depth is not None and seen[current] >= depth:
                continue
            for nxt in step(current):
                if nxt not in seen:
                    seen[nxt] = seen[current] + 1
                    queue.append(nxt)
        seen.pop(start)
        return seen

    def _lineage_path(self, params):
        start, goal = params["descendantId"], params["ancestorId"]
        if start not in self.nodes or goal not in self.nodes:
            return []
        distance = self._distances(start, self._parents, None).get(goal)
        return [{"distance": distance}] if distance else []

    def _traverse(self, params, outgoing: bool):
        if params["id"] not in self.nodes:
            return []
        step = self._parents if outgoing else self._children
        found = self._distances(params["id"], step, params.get("depth"))
        rows = [
            {
                "id": pid,
                "name": self.nodes[pid].get("name"),
                "birthYear": self.nodes[pid].get("birthYear"),
                "deathYear": self.nodes[pid].get("deathYear"),
                "generation": generation,
            }
            for pid, generation in found.items()
        ]
        return sorted(rows, key=lambda row: (row["generation"], row["name"] or ""))

    def _merge_relationship(self, rel_type: RelationshipType, params):
        a, b = params["fromId"], params["toId"]
        if a not in self.nodes or b not in self.nodes:
            return [{"edges": 0}]
        self._merge_edge(rel_type.value, a, b)
        if rel_type.bidirectional:
            self._merge_edge(rel_type.value, b, a)
            return [{"edges": 2}]
        return [{"edges": 1}]

    def _delete_relationship(self, rel_type: RelationshipType, params):
        a, b = params["fromId"], params["toId"]
        pairs = {(a, b), (b, a)} if rel_type.bidirectional else {(a, b)}
        return [{"deleted": self._remove_edges(rel_type.value, pairs)}]

    def _graph_nodes(self, params):
        return [{"id": pid, "name": self.nodes[pid].get("name")} for pid in self._sorted_ids()]

    def _graph_links(self, params):
        return [
            {"source": e["source"], "target": e["target"], "type": e["type"]}
            for e in self.edges
            if e["source"] in self.nodes and e["target"] in self.nodes
        ]


@pytest.fixture
def store() -> InMemoryGraphStore:
    return InMemoryGraphStore()


@pytest.fixture
def people(store) -> PersonRepository:
    return PersonRepository(store)


@pytest.fixture
def maintainer(store, people) -> RelationshipMaintainer:
    return RelationshipMaintainer(store, people)


@pytest.fixture
def family(store, people) -> FamilyService:
    return FamilyService(store, people)


@pytest.fixture
def registry(store) -> FamilyRegistry:
    return FamilyRegistry(store)


@pytest.fixture
def add_person(people):
    """Create a person with just the required names plus any extra fields."""

    def _add(first_name: str, last_name: str = "Lovelace", **fields):
        return people.create_person({"firstName": first_name, "lastName": last_name, **fields})

    return _add
