"""Relationship maintenance.

``CHILD_OF`` and ``MARRIED_TO`` edges in the graph store are the source of
truth. Every person also caches its family in ``fatherId``, ``motherId``,
``childrenIds``, ``siblingIds`` and ``spouseIds``; the maintainer rewrites
those caches whenever it changes an edge.

Mutations are a sequence of independent store writes. Nothing is rolled back
if a later step fails.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from .errors import (
    FamilyRegistryError,
    InvalidRelationshipTypeError,
    PersonNotFoundError,
    RelationshipCycleError,
    SelfParentError,
    ValidationError,
)
from .models import ParentRole, Person, PersonSummary, Relationship, RelationshipType
from .people import PersonRepository
from .store import GraphStore, queries, store_operation
from .validation import require_valid_id, validate_id

logger = structlog.get_logger(__name__)


def _coerce_role(role: ParentRole | str) -> ParentRole:
    try:
        return ParentRole(role.lower() if isinstance(role, str) else role)
    except ValueError:
        raise InvalidRelationshipTypeError(role, [r.value for r in ParentRole]) from None


def _coerce_type(value: RelationshipType | str) -> RelationshipType:
    try:
        return RelationshipType(value.upper() if isinstance(value, str) else value)
    except ValueError:
        raise InvalidRelationshipTypeError(value, [t.value for t in RelationshipType]) from None


def _validate_depth(depth: int | None) -> int | None:
    if depth is None:
        return None
    if isinstance(depth, bool) or not isinstance(depth, int) or depth < 1:
        raise ValidationError(["Depth must be a positive integer"])
    return depth


class RelationshipMaintainer:
    """Adds and removes family edges and keeps the denormalized caches in sync."""

    def __init__(self, store: GraphStore, people: PersonRepository | None = None) -> None:
        self.store = store
        self.people = people or PersonRepository(store)

    # Parent/child

    def add_parent_child(
        self, child_id: str, parent_id: str, role: ParentRole | str
    ) -> Person | None:
        """Record ``parent_id`` as the father or mother of ``child_id``.

        A child has at most one parent per role: an existing, different
        parent in that role is detached first. Re-adding the same pair is
        idempotent at both the edge and the cache level.

        Returns:
            The child as stored after the update.
        """
        if child_id == parent_id:
            raise SelfParentError(child_id)
        require_valid_id(child_id)
        require_valid_id(parent_id)
        role = _coerce_role(role)

        child = self.people.get_person_by_id(child_id)
        if child is None:
            raise PersonNotFoundError(child_id, "child")
        parent = self.people.get_person_by_id(parent_id)
        if parent is None:
            raise PersonNotFoundError(parent_id, "parent")

        with store_operation("add relationship"):
            if self._is_descendant(parent_id, child_id):
                raise RelationshipCycleError(child_id, parent_id)

            child_fields: dict[str, Any] = {role.field: parent_id}
            previous = child.father_id if role is ParentRole.FATHER else child.mother_id
            if previous and previous != parent_id:
                self._detach(child_id, previous)
            if getattr(child, "mother_id" if role is ParentRole.FATHER else "father_id") == parent_id:
                child_fields[role.other.field] = None

            self.store.run_query(
                queries.MERGE_CHILD_OF,
                {"childId": child_id, "parentId": parent_id, "role": role.value},
            )
            updated = self.people.set_fields(child_id, child_fields)
            if child_id not in parent.children_ids:
                self.people.set_fields(
                    parent_id, {"childrenIds": [*parent.children_ids, child_id]}
                )
            self.recompute_siblings(child_id, previous=child.sibling_ids)

        logger.info(
            "relationship.added",
            child_id=child_id,
            parent_id=parent_id,
            role=role.value,
            replaced=previous if previous != parent_id else None,
        )
        return self.people.get_person_by_id(child_id) if updated else None

    def remove_parent_child(self, child_id: str, parent_id: str) -> None:
        """Unlink a parent from a child. Unlinking a missing edge is a no-op."""
        require_valid_id(child_id)
        require_valid_id(parent_id)

        with store_operation("remove relationship"):
            rows = self.store.run_query(
                queries.DELETE_CHILD_OF, {"childId": child_id, "parentId": parent_id}
            )

            child = self.people.get_person_by_id(child_id)
            if child is not None:
                cleared = {
                    field: None
                    for field, value in (("fatherId", child.father_id), ("motherId", child.mother_id))
                    if value == parent_id
                }
                if cleared:
                    self.people.set_fields(child_id, cleared)

            parent = self.people.get_person_by_id(parent_id)
            if parent is not None and child_id in parent.children_ids:
                self.people.set_fields(
                    parent_id,
                    {"childrenIds": [cid for cid in parent.children_ids if cid != child_id]},
                )

            if child is not None:
                self.recompute_siblings(child_id, previous=child.sibling_ids)

        logger.info(
            "relationship.removed",
            child_id=child_id,
            parent_id=parent_id,
            edges_deleted=rows[0].get("deleted", 0) if rows else 0,
        )

    # Siblings

    def sibling_ids_from_graph(self, person_id: str) -> list[str]:
        """Persons sharing at least one CHILD_OF parent, read from edges, not caches."""
        rows = self.store.run_query(queries.MATCH_SIBLING_IDS, {"id": person_id})
        return sorted({row["id"] for row in rows if row.get("id") and row["id"] != person_id})

    def recompute_siblings(self, person_id: str, previous: Iterable[str] = ()) -> list[str]:
        """Rewrite ``siblingIds`` for a person and its whole sibling cohort.

        The person's list is overwritten from the graph. Each current or
        former sibling then has only its own list recomputed; the fan-out
        never recurses further. Store failures are logged, never raised:
        the edge change that triggered the refresh has already happened.
        """
        require_valid_id(person_id)
        try:
            with store_operation("recompute siblings"):
                siblings = self.sibling_ids_from_graph(person_id)
                self.people.set_fields(person_id, {"siblingIds": siblings})
        except FamilyRegistryError as exc:
            logger.warning("siblings.refresh_failed", person_id=person_id, error=str(exc))
            siblings = []

        cohort = dict.fromkeys([*siblings, *previous])
        cohort.pop(person_id, None)
        for sibling_id in cohort:
            try:
                self._refresh_sibling(sibling_id)
            except FamilyRegistryError as exc:
                logger.warning(
                    "siblings.refresh_failed",
                    person_id=person_id,
                    sibling_id=sibling_id,
                    error=str(exc),
                )
        return siblings

    def _refresh_sibling(self, sibling_id: str) -> None:
        if not validate_id(sibling_id).is_valid:
            return
        sibling = self.people.get_person_by_id(sibling_id)
        if sibling is None:
            return
        siblings = self.sibling_ids_from_graph(sibling_id)
        if sorted(sibling.sibling_ids) != siblings:
            self.people.set_fields(sibling_id, {"siblingIds": siblings})

    def _is_descendant(self, person_id: str, ancestor_id: str) -> bool:
        rows = self.store.run_query(
            queries.MATCH_LINEAGE_PATH,
            {"descendantId": person_id, "ancestorId": ancestor_id},
        )
        return bool(rows)

    def _detach(self, child_id: str, parent_id: str) -> None:
        self.store.run_query(
            queries.DELETE_CHILD_OF, {"childId": child_id, "parentId": parent_id}
        )
        if not validate_id(parent_id).is_valid:
            return
        parent = self.people.get_person_by_id(parent_id)
        if parent is not None and child_id in parent.children_ids:
            self.people.set_fields(
                parent_id,
                {"childrenIds": [cid for cid in parent.children_ids if cid != child_id]},
            )
        logger.info("relationship.replaced", child_id=child_id, previous_parent_id=parent_id)

    # Generic edges

    def create_relationship(self, relationship: Relationship | Mapping[str, Any]) -> Relationship:
        """Merge a typed edge. MARRIED_TO also updates both ``spouseIds`` lists."""
        rel = self._coerce_relationship(relationship)
        source = self.people.get_person_by_id(rel.from_id)
        if source is None:
            raise PersonNotFoundError(rel.from_id, "source")
        target = self.people.get_person_by_id(rel.to_id)
        if target is None:
            raise PersonNotFoundError(rel.to_id, "target")

        with store_operation("create relationship"):
            self.store.run_query(
                queries.MERGE_RELATIONSHIP[rel.type],
                {"fromId": rel.from_id, "toId": rel.to_id},
            )
            if rel.type is RelationshipType.MARRIED_TO:
                for person, spouse_id in ((source, rel.to_id), (target, rel.from_id)):
                    if spouse_id not in person.spouse_ids:
                        self.people.set_fields(
                            person.id, {"spouseIds": [*person.spouse_ids, spouse_id]}
                        )

        logger.info(
            "relationship.created", from_id=rel.from_id, to_id=rel.to_id, type=rel.type.value
        )
        return rel

    def remove_relationship(self, relationship: Relationship | Mapping[str, Any]) -> int:
        """Delete a typed edge (both directions for bidirectional types)."""
        rel = self._coerce_relationship(relationship)
        with store_operation("remove relationship"):
            rows = self.store.run_query(
                queries.DELETE_RELATIONSHIP[rel.type],
                {"fromId": rel.from_id, "toId": rel.to_id},
            )
            if rel.type is RelationshipType.MARRIED_TO:
                for person_id, spouse_id in ((rel.from_id, rel.to_id), (rel.to_id, rel.from_id)):
                    person = self.people.get_person_by_id(person_id)
                    if person is not None and spouse_id in person.spouse_ids:
                        self.people.set_fields(
                            person_id,
                            {"spouseIds": [s for s in person.spouse_ids if s != spouse_id]},
                        )

        deleted = rows[0].get("deleted", 0) if rows else 0
        logger.info(
            "relationship.deleted",
            from_id=rel.from_id,
            to_id=rel.to_id,
            type=rel.type.value,
            deleted=deleted,
        )
        return deleted

    def _coerce_relationship(self, relationship: Relationship | Mapping[str, Any]) -> Relationship:
        if isinstance(relationship, Relationship):
            rel = relationship
        else:
            data = dict(relationship)
            data["type"] = _coerce_type(data.get("type", ""))
            try:
                rel = Relationship.model_validate(data)
            except PydanticValidationError as exc:
                raise ValidationError(
                    [f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in exc.errors()]
                ) from exc
        require_valid_id(rel.from_id)
        require_valid_id(rel.to_id)
        if rel.from_id == rel.to_id:
            raise ValidationError(["A person cannot be related to themselves"])
        return rel

    # Traversal

    def get_ancestors(self, person_id: str, depth: int | None = None) -> list[PersonSummary]:
        """Distinct ancestors along CHILD_OF edges, nearest generation first."""
        return self._traverse(queries.MATCH_ANCESTORS, person_id, depth, "fetch ancestors")

    def get_descendants(self, person_id: str, depth: int | None = None) -> list[PersonSummary]:
        """Distinct descendants along CHILD_OF edges, nearest generation first."""
        return self._traverse(queries.MATCH_DESCENDANTS, person_id, depth, "fetch descendants")

    def _traverse(
        self, query: str, person_id: str, depth: int | None, operation: str
    ) -> list[PersonSummary]:
        require_valid_id(person_id)
        depth = _validate_depth(depth)
        with store_operation(operation):
            rows = self.store.run_query(query, {"id": person_id, "depth": depth})
        return [
            PersonSummary(
                id=row["id"],
                name=row.get("name") or "",
                birth_year=row.get("birthYear"),
                death_year=row.get("deathYear"),
                generation=row.get("generation") or 1,
            )
            for row in rows
        ]
