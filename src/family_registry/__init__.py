"""Family Registry - genealogy records with parent/child and sibling maintenance.

Persons live as nodes in a graph store; family links are edges, mirrored
onto each person as cached id references.
"""

__version__ = "0.1.0"

from .errors import (
    FamilyRegistryError,
    InvalidIdError,
    InvalidRelationshipTypeError,
    NoOpUpdateError,
    NotFoundError,
    PersonNotFoundError,
    RelationshipCycleError,
    SelfParentError,
    StoreError,
    ValidationError,
)
from .family import FamilyService
from .logging import configure_logging
from .models import FamilyMembers, GraphData, ParentRole, Person, Relationship, RelationshipType
from .people import PersonRepository
from .registry import FamilyRegistry
from .relationships import RelationshipMaintainer

__all__ = [
    "FamilyMembers",
    "FamilyRegistry",
    "FamilyRegistryError",
    "FamilyService",
    "GraphData",
    "InvalidIdError",
    "InvalidRelationshipTypeError",
    "NoOpUpdateError",
    "NotFoundError",
    "ParentRole",
    "Person",
    "PersonNotFoundError",
    "PersonRepository",
    "Relationship",
    "RelationshipCycleError",
    "RelationshipMaintainer",
    "RelationshipType",
    "SelfParentError",
    "StoreError",
    "ValidationError",
    "configure_logging",
]
