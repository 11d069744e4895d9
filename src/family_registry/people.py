"""Person store adapter: Person entities to and from graph store rows."""
from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

import structlog

from .errors import NoOpUpdateError, PersonNotFoundError, ValidationError
from .models import (
    EDITABLE_FIELDS,
    LIST_FIELDS,
    NAME_FIELDS,
    Person,
    encode_life_events,
    format_person_name,
)
from .store import GraphStore, queries, store_operation
from .validation import (
    extract_year,
    new_id,
    parse_iso_date,
    require_valid_id,
    validate_person_data,
)

logger = structlog.get_logger(__name__)


def utc_timestamp() -> str:
    return datetime.now(UTC).isoformat()


def _clean_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _clean_list(values: Any) -> list[str]:
    return [text for text in (_clean_text(v) for v in values or []) if text]


def _clean_life_events(events: Any) -> list[dict[str, Any]]:
    cleaned = []
    for entry in events or []:
        item = {
            "id": _clean_text(entry.get("id")) or new_id(),
            "event": _clean_text(entry.get("event")),
            "date": _clean_text(entry.get("date")),
            "place": _clean_text(entry.get("place")),
            "notes": _clean_text(entry.get("notes")),
        }
        cleaned.append({k: v for k, v in item.items() if v is not None})
    return cleaned


def clean_fields(data: Mapping[str, Any]) -> dict[str, Any]:
    """Trim and normalise the editable keys present in ``data``.

    Empty strings become None (absent). Unknown keys are dropped.
    """
    fields: dict[str, Any] = {}
    for key in EDITABLE_FIELDS:
        if key not in data:
            continue
        value = data[key]
        if key == "lifeEvents":
            fields[key] = _clean_life_events(value)
        elif key in LIST_FIELDS:
            fields[key] = _clean_list(value)
        elif key in ("birthYear", "deathYear"):
            fields[key] = value
        else:
            fields[key] = _clean_text(value)
    return fields


class PersonRepository:
    """CRUD for Person nodes.

    Example:
        >>> people = PersonRepository(store)
        >>> ada = people.create_person({"firstName": "Ada", "lastName": "Lovelace"})
        >>> people.get_person_by_id(ada.id).name
        'Ada Lovelace'
    """

    def __init__(self, store: GraphStore) -> None:
        self.store = store

    def create_person(self, data: Mapping[str, Any]) -> Person:
        """Validate, assign an id, compute derived fields, and persist."""
        validation = validate_person_data(data)
        if not validation.is_valid:
            raise ValidationError(validation.errors)

        fields = clean_fields(data)
        props = {k: v for k, v in fields.items() if v is not None}
        props["id"] = new_id()
        props["name"] = format_person_name(*(fields.get(k) for k in NAME_FIELDS))
        birth_year = extract_year(fields.get("birthDate")) or fields.get("birthYear")
        death_year = extract_year(fields.get("deathDate")) or fields.get("deathYear")
        if birth_year is not None:
            props["birthYear"] = birth_year
        if death_year is not None:
            props["deathYear"] = death_year
        props["lastUpdated"] = utc_timestamp()

        person = Person.model_validate(props)
        with store_operation("create person"):
            self.store.run_query(queries.CREATE_PERSON, {"props": person.to_properties()})

        logger.info("person.created", person_id=person.id, name=person.name)
        return person

    def get_all_people(self) -> list[Person]:
        with store_operation("fetch people"):
            rows = self.store.run_query(queries.MATCH_ALL_PEOPLE)
        return [Person.from_properties(row["person"]) for row in rows]

    def search_people(self, term: str) -> list[Person]:
        """Case-insensitive substring match on the display name."""
        with store_operation("search people"):
            rows = self.store.run_query(queries.SEARCH_PEOPLE, {"term": term.strip()})
        return [Person.from_properties(row["person"]) for row in rows]

    def get_person_by_id(self, person_id: str) -> Person | None:
        """Return the person, or None when no record has this id.

        Raises:
            InvalidIdError: ``person_id`` is not a UUID.
        """
        require_valid_id(person_id)
        with store_operation("fetch person"):
            rows = self.store.run_query(queries.MATCH_PERSON_BY_ID, {"id": person_id})
        return Person.from_properties(rows[0]["person"]) if rows else None

    def update_person(self, person_id: str, data: Mapping[str, Any]) -> Person:
        """Apply a partial update. Keys absent from ``data`` are left untouched."""
        require_valid_id(person_id)
        validation = validate_person_data(data, partial=True)
        if not validation.is_valid:
            raise ValidationError(validation.errors)

        existing = self.get_person_by_id(person_id)
        if existing is None:
            raise PersonNotFoundError(person_id)

        fields = clean_fields(data)
        if not fields:
            raise NoOpUpdateError()

        if any(key in fields for key in NAME_FIELDS):
            current = existing.model_dump(by_alias=True)
            fields["name"] = format_person_name(
                *(fields[k] if k in fields else current.get(k) for k in NAME_FIELDS)
            )
        for date_key, year_key in (("birthDate", "birthYear"), ("deathDate", "deathYear")):
            if date_key in fields:
                year = extract_year(fields[date_key])
                fields[year_key] = year if year is not None else fields.get(year_key)

        birth = parse_iso_date(fields.get("birthDate", existing.birth_date))
        death = parse_iso_date(fields.get("deathDate", existing.death_date))
        if birth and death and death <= birth:
            raise ValidationError(["Death date must be after birth date"])
        birth_year = fields["birthYear"] if "birthYear" in fields else existing.birth_year
        death_year = fields["deathYear"] if "deathYear" in fields else existing.death_year
        if birth_year is not None and death_year is not None and death_year < birth_year:
            raise ValidationError(["Death year cannot be before birth year"])

        if "lifeEvents" in fields:
            fields["lifeEvents"] = encode_life_events(fields["lifeEvents"])

        updated = self._write(person_id, fields, "update person")
        if updated is None:
            raise PersonNotFoundError(person_id)
        logger.info("person.updated", person_id=person_id, fields=sorted(fields))
        return updated

    def set_fields(self, person_id: str, fields: Mapping[str, Any]) -> Person | None:
        """Write already-validated fields, e.g. denormalized family references.

        Returns None when the person no longer exists.
        """
        return self._write(person_id, dict(fields), "update person")

    def delete_person(self, person_id: str) -> None:
        """Remove every incident edge, then the node. Relatives are kept."""
        require_valid_id(person_id)
        if self.get_person_by_id(person_id) is None:
            raise PersonNotFoundError(person_id)

        with store_operation("delete person"):
            self.store.run_query(queries.DELETE_PERSON_EDGES, {"id": person_id})
            self.store.run_query(queries.DELETE_PERSON, {"id": person_id})
        logger.info("person.deleted", person_id=person_id)

    def _write(self, person_id: str, fields: dict[str, Any], operation: str) -> Person | None:
        fields["lastUpdated"] = utc_timestamp()
        with store_operation(operation):
            rows = self.store.run_query(
                queries.UPDATE_PERSON, {"id": person_id, "fields": fields}
            )
        return Person.from_properties(rows[0]["person"]) if rows else None

