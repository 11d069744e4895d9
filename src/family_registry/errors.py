"""Error taxonomy for the family registry.

Validation and id-shape errors are raised before any store access. Store
failures are wrapped with the operation that issued them.
"""
from __future__ import annotations


class FamilyRegistryError(Exception):
    """Base class for every error raised by this package."""


class ValidationError(FamilyRegistryError):
    """One or more field constraints were violated."""

    def __init__(self, errors: list[str], message: str | None = None) -> None:
        self.errors = list(errors)
        super().__init__(message or f"Validation failed: {', '.join(self.errors)}")


class InvalidRelationshipTypeError(ValidationError):
    """A relationship type or parent role outside the allowed set."""

    def __init__(self, value: object, allowed: list[str]) -> None:
        self.value = value
        self.allowed = allowed
        super().__init__(
            [f"Relationship type must be one of: {', '.join(allowed)}"],
            message=f"Invalid relationship type: {value!r}",
        )


class InvalidIdError(FamilyRegistryError):
    """Identifier does not have the canonical UUID shape."""

    def __init__(self, reason: str, value: object = None) -> None:
        self.reason = reason
        self.value = value
        super().__init__(f"Invalid ID: {reason}")


class NotFoundError(FamilyRegistryError):
    """Referenced entity does not exist."""


class PersonNotFoundError(NotFoundError):
    """A person lookup came back empty.

    ``role`` names which side of an operation was missing (``child``,
    ``parent``, ``person``).
    """

    def __init__(self, person_id: str, role: str = "person") -> None:
        self.person_id = person_id
        self.role = role
        label = "Person" if role == "person" else f"{role.capitalize()} person"
        super().__init__(f"{label} not found: {person_id}")


class SelfParentError(FamilyRegistryError):
    """Child and parent identifiers are identical."""

    def __init__(self, person_id: str) -> None:
        self.person_id = person_id
        super().__init__(f"A person cannot be their own parent: {person_id}")


class RelationshipCycleError(FamilyRegistryError):
    """Linking the pair would make a person their own ancestor."""

    def __init__(self, child_id: str, parent_id: str) -> None:
        self.child_id = child_id
        self.parent_id = parent_id
        super().__init__(
            f"Cannot add {parent_id} as parent of {child_id}: "
            f"{parent_id} is already a descendant of {child_id}"
        )


class NoOpUpdateError(FamilyRegistryError):
    """An update supplied no recognised fields."""

    def __init__(self, message: str = "No fields to update") -> None:
        super().__init__(message)


class StoreError(FamilyRegistryError):
    """The graph store failed while running an operation."""

    def __init__(self, operation: str, cause: BaseException | str) -> None:
        self.operation = operation
        self.cause = cause
        super().__init__(f"Failed to {operation}: {cause}")
