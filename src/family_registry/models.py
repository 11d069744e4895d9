"""Person and relationship models.

Attributes are snake_case; the wire and store shape is camelCase, produced
by the alias generator. Relationship references on a person (``fatherId``,
``childrenIds`` and friends) are a denormalized cache of graph edges and are
written only by the relationship maintainer.
"""
from __future__ import annotations

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .validation import new_id


class ParentRole(str, Enum):
    """Role a parent plays for a child on a CHILD_OF edge."""
    FATHER = "father"
    MOTHER = "mother"

    @property
    def field(self) -> str:
        """Denormalized child property holding this parent."""
        return "fatherId" if self is ParentRole.FATHER else "motherId"

    @property
    def other(self) -> ParentRole:
        return ParentRole.MOTHER if self is ParentRole.FATHER else ParentRole.FATHER


class RelationshipType(str, Enum):
    """Edge types accepted by generic relationship creation."""
    PARENT_OF = "PARENT_OF"
    MARRIED_TO = "MARRIED_TO"
    SIBLING_OF = "SIBLING_OF"

    @property
    def bidirectional(self) -> bool:
        return self is not RelationshipType.PARENT_OF


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LifeEvent(_WireModel):
    """A dated event in a person's life."""

    id: str = Field(default_factory=new_id)
    event: str
    date: str
    place: str | None = None
    notes: str | None = None


class Person(_WireModel):
    """A genealogical record.

    ``name``, ``birth_year`` and ``death_year`` are computed by the person
    repository; ``last_updated`` is stamped on every mutation.
    """

    id: str

    # Names
    first_name: str
    middle_name: str | None = None
    last_name: str
    maiden_name: str | None = None
    suffix: str | None = None

    # Personal details
    gender: str | None = None
    birth_date: str | None = None
    birth_place: str | None = None
    death_date: str | None = None
    death_place: str | None = None
    cause_of_death: str | None = None

    # Physical description
    height: str | None = None
    weight: str | None = None
    eye_color: str | None = None
    hair_color: str | None = None
    distinguishing_marks: str | None = None

    # Family references (denormalized from graph edges)
    father_id: str | None = None
    mother_id: str | None = None
    spouse_ids: list[str] = Field(default_factory=list)
    children_ids: list[str] = Field(default_factory=list)
    sibling_ids: list[str] = Field(default_factory=list)

    # Professional and education
    occupation: str | None = None
    employer: str | None = None
    education: str | None = None
    military_service: str | None = None

    # Contact
    current_address: str | None = None
    phone_number: str | None = None
    email: str | None = None

    # Background
    nationality: str | None = None
    ethnicity: str | None = None
    religion: str | None = None
    political_affiliation: str | None = None

    life_events: list[LifeEvent] = Field(default_factory=list)

    # Medical
    blood_type: str | None = None
    medical_conditions: list[str] = Field(default_factory=list)
    allergies: list[str] = Field(default_factory=list)

    # Research
    notes: str | None = None
    research_notes: str | None = None
    sources: list[str] = Field(default_factory=list)
    created_by: str | None = None

    # Computed
    name: str = ""
    birth_year: int | None = None
    death_year: int | None = None
    last_updated: str | None = None

    def parent_ids(self) -> list[str]:
        return [pid for pid in (self.father_id, self.mother_id) if pid]

    def to_wire(self) -> dict[str, Any]:
        """External shape: absent optionals omitted, cleared parent references kept as null."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        for attr in ("father_id", "mother_id"):
            if attr in self.model_fields_set and getattr(self, attr) is None:
                data[to_camel(attr)] = None
        return data

    def to_properties(self) -> dict[str, Any]:
        """Graph store property map. Life events are kept as a JSON string."""
        props = self.model_dump(by_alias=True, exclude_none=True)
        props["lifeEvents"] = encode_life_events(props.get("lifeEvents", []))
        return props

    @classmethod
    def from_properties(cls, props: dict[str, Any]) -> Person:
        data = dict(props)
        data["lifeEvents"] = decode_life_events(data.get("lifeEvents"))
        for key in LIST_FIELDS:
            if data.get(key) is None:
                data.pop(key, None)
        return cls.model_validate(data)


# camelCase keys a caller may supply when creating or updating a person.
# Family references are excluded: they are maintained from graph edges.
RELATIONSHIP_FIELDS = ("fatherId", "motherId", "spouseIds", "childrenIds", "siblingIds")
COMPUTED_FIELDS = ("id", "name", "lastUpdated")
NAME_FIELDS = ("firstName", "middleName", "lastName", "suffix")
LIST_FIELDS = (
    "spouseIds",
    "childrenIds",
    "siblingIds",
    "medicalConditions",
    "allergies",
    "sources",
)
EDITABLE_FIELDS = tuple(
    key
    for key in (to_camel(name) for name in Person.model_fields)
    if key not in RELATIONSHIP_FIELDS + COMPUTED_FIELDS
)


def encode_life_events(events: list[Any]) -> str:
    return json.dumps(
        [e.model_dump(by_alias=True, exclude_none=True) if isinstance(e, LifeEvent) else e for e in events],
        ensure_ascii=False,
    )


def decode_life_events(raw: Any) -> list[dict[str, Any]]:
    if not raw:
        return []
    if isinstance(raw, str):
        return json.loads(raw)
    return list(raw)


def format_person_name(
    first_name: str | None,
    middle_name: str | None = None,
    last_name: str | None = None,
    suffix: str | None = None,
) -> str:
    return " ".join(part for part in (first_name, middle_name, last_name, suffix) if part)


class Relationship(_WireModel):
    """Generic edge descriptor."""

    from_id: str
    to_id: str
    type: RelationshipType


class FamilyMembers(BaseModel):
    """Hydrated immediate family of one person."""

    parents: list[Person] = Field(default_factory=list)
    children: list[Person] = Field(default_factory=list)
    siblings: list[Person] = Field(default_factory=list)

    def to_wire(self) -> dict[str, list[dict[str, Any]]]:
        return {
            "parents": [p.to_wire() for p in self.parents],
            "children": [p.to_wire() for p in self.children],
            "siblings": [p.to_wire() for p in self.siblings],
        }


class PersonSummary(_WireModel):
    """Lightweight person row returned by ancestor/descendant traversal."""

    id: str
    name: str = ""
    birth_year: int | None = None
    death_year: int | None = None
    generation: int = 1


class GraphNode(_WireModel):
    id: str
    name: str = ""


class GraphLink(_WireModel):
    source: str
    target: str
    type: str


class GraphData(_WireModel):
    """Nodes and links for the force-directed family view."""

    nodes: list[GraphNode] = Field(default_factory=list)
    links: list[GraphLink] = Field(default_factory=list)
