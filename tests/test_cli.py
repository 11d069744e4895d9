from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from family_registry import cli
from family_registry.cli import app
from family_registry.config import ConfigurationError

runner = CliRunner()


@pytest.fixture(autouse=True)
def use_registry(monkeypatch, registry):
    monkeypatch.setattr(cli, "get_registry", lambda: registry)
    return registry


def test_people_add_and_list(registry) -> None:
    result = runner.invoke(
        app,
        ["people", "add", "--first-name", "Ada", "--last-name", "Lovelace", "--birth-date", "1815-12-10"],
        catch_exceptions=False,
    )
    assert result.exit_code == 0
    assert "Created Ada Lovelace" in result.output

    (person,) = registry.people.get_all_people()
    assert person.birth_year == 1815

    result = runner.invoke(app, ["people", "list"], catch_exceptions=False)
    assert result.exit_code == 0
    assert "Ada Lovelace" in result.output


def test_people_add_with_extra_fields(registry, tmp_path: Path) -> None:
    payload = tmp_path / "ada.json"
    payload.write_text(json.dumps({"firstName": "Ada", "lastName": "Lovelace", "allergies": ["pollen"]}))

    result = runner.invoke(
        app,
        ["people", "add", "--json-file", str(payload), "--set", "occupation=Mathematician"],
        catch_exceptions=False,
    )
    assert result.exit_code == 0

    (person,) = registry.people.get_all_people()
    assert person.occupation == "Mathematician"
    assert person.allergies == ["pollen"]


def test_people_add_malformed_json_file(registry, tmp_path: Path) -> None:
    payload = tmp_path / "ada.json"
    payload.write_text("{\"firstName\": \"Ada\",")

    result = runner.invoke(app, ["people", "add", "--json-file", str(payload)])

    assert result.exit_code == 1
    assert result.exception is None or isinstance(result.exception, SystemExit)
    assert "is not valid JSON" in " ".join(result.output.split())
    assert registry.people.get_all_people() == []


def test_people_update_json_file_must_hold_an_object(registry, tmp_path: Path) -> None:
    ada = registry.people.create_person({"firstName": "Ada", "lastName": "Lovelace"})
    payload = tmp_path / "fields.json"
    payload.write_text(json.dumps([{"occupation": "Mathematician"}]))

    result = runner.invoke(app, ["people", "update", ada.id, "--json-file", str(payload)])

    assert result.exit_code == 1
    assert "must contain a JSON object" in " ".join(result.output.split())
    assert registry.people.get_person_by_id(ada.id).occupation is None


def test_people_add_validation_error(registry) -> None:
    result = runner.invoke(app, ["people", "add", "--first-name", "Ada"])
    assert result.exit_code == 1
    assert "Last name is required" in result.output
    assert registry.people.get_all_people() == []


def test_people_show_update_delete(registry) -> None:
    ada = registry.people.create_person({"firstName": "Ada", "lastName": "Lovelace"})

    result = runner.invoke(app, ["people", "update", ada.id, "--set", "occupation=Poet"])
    assert result.exit_code == 0
    assert registry.people.get_person_by_id(ada.id).occupation == "Poet"

    result = runner.invoke(app, ["people", "show", ada.id])
    assert result.exit_code == 0
    assert "Poet" in result.output

    result = runner.invoke(app, ["people", "delete", ada.id, "--yes"])
    assert result.exit_code == 0
    assert registry.people.get_person_by_id(ada.id) is None


def test_people_search(registry) -> None:
    registry.people.create_person({"firstName": "Ada", "lastName": "Lovelace"})

    assert "Ada Lovelace" in runner.invoke(app, ["people", "search", "love"]).output
    assert "No people found" in runner.invoke(app, ["people", "search", "babbage"]).output


def test_invalid_id_exits_with_error() -> None:
    result = runner.invoke(app, ["people", "show", "not-a-uuid"])
    assert result.exit_code == 1
    assert "Invalid ID" in result.output


def test_relation_add_and_family(registry) -> None:
    child = registry.people.create_person({"firstName": "Ada", "lastName": "Lovelace"})
    father = registry.people.create_person({"firstName": "George", "lastName": "Byron"})

    result = runner.invoke(app, ["relation", "add", child.id, father.id, "--role", "father"])
    assert result.exit_code == 0
    assert registry.people.get_person_by_id(child.id).father_id == father.id

    result = runner.invoke(app, ["family", child.id])
    assert result.exit_code == 0
    assert "George Byron" in result.output

    result = runner.invoke(app, ["ancestors", child.id, "--depth", "1"])
    assert result.exit_code == 0
    assert "George Byron" in result.output

    result = runner.invoke(app, ["relation", "remove", child.id, father.id])
    assert result.exit_code == 0
    assert registry.people.get_person_by_id(child.id).father_id is None


def test_relation_self_parent(registry) -> None:
    ada = registry.people.create_person({"firstName": "Ada", "lastName": "Lovelace"})
    result = runner.invoke(app, ["relation", "add", ada.id, ada.id, "--role", "mother"])
    assert result.exit_code == 1
    assert "own parent" in result.output


def test_link_and_unlink(registry, store) -> None:
    ada = registry.people.create_person({"firstName": "Ada", "lastName": "Lovelace"})
    william = registry.people.create_person({"firstName": "William", "lastName": "King"})

    result = runner.invoke(app, ["relation", "link", ada.id, william.id, "--type", "MARRIED_TO"])
    assert result.exit_code == 0
    assert len(store.edges_of("MARRIED_TO")) == 2

    result = runner.invoke(app, ["relation", "unlink", ada.id, william.id, "--type", "MARRIED_TO"])
    assert result.exit_code == 0
    assert store.edges_of("MARRIED_TO") == []


def test_graph_export(registry, tmp_path: Path) -> None:
    ada = registry.people.create_person({"firstName": "Ada", "lastName": "Lovelace"})
    output = tmp_path / "graph.json"

    result = runner.invoke(app, ["graph", "--output", str(output)], catch_exceptions=False)

    assert result.exit_code == 0
    assert json.loads(output.read_text()) == {
        "nodes": [{"id": ada.id, "name": "Ada Lovelace"}],
        "links": [],
    }


def test_check(store) -> None:
    result = runner.invoke(app, ["check"])
    assert result.exit_code == 0
    assert "Connected" in result.output
    assert store.closed


def test_configuration_error(monkeypatch) -> None:
    def broken():
        raise ConfigurationError("Missing Neo4j environment variables: NEO4J_PASSWORD")

    monkeypatch.setattr(cli, "get_registry", broken)
    result = runner.invoke(app, ["people", "list"])
    assert result.exit_code == 1
    assert "NEO4J_PASSWORD" in result.output
