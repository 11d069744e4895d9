"""CLI interface for the family registry."""

import json
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .config import ConfigurationError, load_settings
from .errors import FamilyRegistryError, ValidationError
from .logging import configure_logging
from .models import ParentRole, Person, PersonSummary, RelationshipType
from .registry import FamilyRegistry

app = typer.Typer(
    name="family-registry",
    help="Genealogy registry backed by a Neo4j graph",
    add_completion=False,
)
people_app = typer.Typer(help="Create, inspect and edit person records", add_completion=False)
relation_app = typer.Typer(help="Link and unlink family members", add_completion=False)
app.add_typer(people_app, name="people")
app.add_typer(relation_app, name="relation")

console = Console()


def get_registry() -> FamilyRegistry:
    """Build a registry from the environment (and ``.env``)."""
    settings = load_settings()
    configure_logging(settings.log_level)
    return FamilyRegistry.from_settings(settings)


@contextmanager
def _registry() -> Iterator[FamilyRegistry]:
    try:
        registry = get_registry()
    except ConfigurationError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        raise typer.Exit(1)

    with registry:
        try:
            yield registry
        except ValidationError as exc:
            console.print(f"[red]Error: {exc}[/red]")
            for message in exc.errors:
                console.print(f"  • {message}")
            raise typer.Exit(1)
        except FamilyRegistryError as exc:
            console.print(f"[red]Error: {exc}[/red]")
            raise typer.Exit(1)


def _parse_assignments(assignments: list[str]) -> dict:
    """Turn ``key=value`` pairs into a payload. Values are JSON when they parse."""
    data = {}
    for item in assignments:
        key, sep, raw = item.partition("=")
        if not sep or not key:
            console.print(f"[red]Error: expected key=value, got {item!r}[/red]")
            raise typer.Exit(1)
        try:
            data[key] = json.loads(raw)
        except json.JSONDecodeError:
            data[key] = raw
    return data


def _load_payload(json_file: Path | None, assignments: list[str]) -> dict:
    data = {}
    if json_file:
        if not json_file.exists():
            console.print(f"[red]Error: File not found: {json_file}[/red]")
            raise typer.Exit(1)
        try:
            loaded = json.loads(json_file.read_text())
        except json.JSONDecodeError as exc:
            console.print(f"[red]Error: {json_file} is not valid JSON: {exc}[/red]")
            raise typer.Exit(1)
        if not isinstance(loaded, dict):
            console.print(f"[red]Error: {json_file} must contain a JSON object[/red]")
            raise typer.Exit(1)
        data.update(loaded)
    data.update(_parse_assignments(assignments))
    return data


def _people_table(title: str, people: list[Person]) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="dim", overflow="fold")
    table.add_column("Name", no_wrap=True)
    table.add_column("Born")
    table.add_column("Died")
    table.add_column("Gender")

    for person in people:
        table.add_row(
            person.id,
            person.name,
            person.birth_date or (str(person.birth_year) if person.birth_year else ""),
            person.death_date or (str(person.death_year) if person.death_year else ""),
            person.gender or "",
        )
    return table


def _summary_table(title: str, rows: list[PersonSummary]) -> Table:
    table = Table(title=title)
    table.add_column("Generation")
    table.add_column("ID", style="dim", overflow="fold")
    table.add_column("Name", no_wrap=True)
    table.add_column("Years")

    for row in rows:
        years = f"{row.birth_year or '?'}-{row.death_year or ''}"
        table.add_row(str(row.generation), row.id, row.name, years)
    return table


# People


@people_app.command("list")
def list_people():
    """List every person, ordered by last name then first name."""
    with _registry() as registry:
        people = registry.people.get_all_people()

    if not people:
        console.print("[yellow]No people recorded yet[/yellow]")
        return
    console.print(_people_table("People", people))
    console.print(f"[dim]Showing {len(people)} people[/dim]")


@people_app.command("search")
def search_people(term: str = typer.Argument(..., help="Part of a name")):
    """Search people by name."""
    with _registry() as registry:
        people = registry.people.search_people(term)

    if not people:
        console.print(f"[yellow]No people found matching '{term}'[/yellow]")
        return
    console.print(_people_table(f"Search Results for '{term}'", people))


@people_app.command("show")
def show_person(
    person_id: str = typer.Argument(..., help="Person ID"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw record as JSON"),
):
    """Show one person record."""
    with _registry() as registry:
        person = registry.people.get_person_by_id(person_id)

    if person is None:
        console.print(f"[red]Error: Person not found: {person_id}[/red]")
        raise typer.Exit(1)

    if as_json:
        console.print_json(json.dumps(person.to_wire()))
        return

    lines = [f"[bold]{key}:[/bold] {escape(str(value))}" for key, value in person.to_wire().items()]
    console.print(Panel("\n".join(lines), title=person.name or person.id))


@people_app.command("add")
def add_person(
    first_name: str = typer.Option(None, "--first-name", "-f", help="First name"),
    last_name: str = typer.Option(None, "--last-name", "-l", help="Last name"),
    birth_date: str = typer.Option(None, "--birth-date", help="YYYY-MM-DD"),
    death_date: str = typer.Option(None, "--death-date", help="YYYY-MM-DD"),
    gender: str = typer.Option(None, "--gender", "-g", help="male, female, other or unknown"),
    fields: list[str] = typer.Option(None, "--set", "-s", help="Extra field as key=value"),
    json_file: Path = typer.Option(None, "--json-file", help="Read the payload from a JSON file"),
):
    """Create a person."""
    data = _load_payload(json_file, fields or [])
    for key, value in (
        ("firstName", first_name),
        ("lastName", last_name),
        ("birthDate", birth_date),
        ("deathDate", death_date),
        ("gender", gender),
    ):
        if value is not None:
            data[key] = value

    with _registry() as registry:
        person = registry.people.create_person(data)

    console.print(f"[green]Created {person.name} ({person.id})[/green]")


@people_app.command("update")
def update_person(
    person_id: str = typer.Argument(..., help="Person ID"),
    fields: list[str] = typer.Option(None, "--set", "-s", help="Field as key=value"),
    json_file: Path = typer.Option(None, "--json-file", help="Read the payload from a JSON file"),
):
    """Update fields on a person. Unmentioned fields are left unchanged."""
    data = _load_payload(json_file, fields or [])
    with _registry() as registry:
        person = registry.people.update_person(person_id, data)

    console.print(f"[green]Updated {person.name} ({person.id})[/green]")


@people_app.command("delete")
def delete_person(
    person_id: str = typer.Argument(..., help="Person ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Delete a person and all of their edges."""
    if not yes:
        typer.confirm(f"Delete person {person_id}?", abort=True)

    with _registry() as registry:
        registry.people.delete_person(person_id)

    console.print(f"[green]Deleted {person_id}[/green]")


# Relationships


@relation_app.command("add")
def add_parent(
    child_id: str = typer.Argument(..., help="Child person ID"),
    parent_id: str = typer.Argument(..., help="Parent person ID"),
    role: ParentRole = typer.Option(..., "--role", "-r", help="father or mother"),
):
    """Record a parent of a child."""
    with _registry() as registry:
        child = registry.relationships.add_parent_child(child_id, parent_id, role)

    name = child.name if child else child_id
    console.print(f"[green]Added {role.value} {parent_id} to {name}[/green]")


@relation_app.command("remove")
def remove_parent(
    child_id: str = typer.Argument(..., help="Child person ID"),
    parent_id: str = typer.Argument(..., help="Parent person ID"),
):
    """Unlink a parent from a child."""
    with _registry() as registry:
        registry.relationships.remove_parent_child(child_id, parent_id)

    console.print(f"[green]Removed parent {parent_id} from {child_id}[/green]")


@relation_app.command("link")
def link(
    from_id: str = typer.Argument(..., help="Source person ID"),
    to_id: str = typer.Argument(..., help="Target person ID"),
    rel_type: RelationshipType = typer.Option(..., "--type", "-t", help="Relationship type"),
):
    """Create a typed relationship between two people."""
    with _registry() as registry:
        rel = registry.relationships.create_relationship(
            {"fromId": from_id, "toId": to_id, "type": rel_type}
        )

    console.print(f"[green]Linked {rel.from_id} -[{rel.type.value}]-> {rel.to_id}[/green]")


@relation_app.command("unlink")
def unlink(
    from_id: str = typer.Argument(..., help="Source person ID"),
    to_id: str = typer.Argument(..., help="Target person ID"),
    rel_type: RelationshipType = typer.Option(..., "--type", "-t", help="Relationship type"),
):
    """Delete a typed relationship between two people."""
    with _registry() as registry:
        deleted = registry.relationships.remove_relationship(
            {"fromId": from_id, "toId": to_id, "type": rel_type}
        )

    if not deleted:
        console.print("[yellow]No matching relationship found[/yellow]")
        return
    console.print(f"[green]Removed {deleted} {rel_type.value} edge(s)[/green]")


# Family queries


@app.command()
def family(person_id: str = typer.Argument(..., help="Person ID")):
    """Show parents, children and siblings of a person."""
    with _registry() as registry:
        members = registry.family.get_family_members(person_id)
        spouses = registry.family.get_spouses(person_id)

    for title, people in (
        ("Parents", members.parents),
        ("Spouses", spouses),
        ("Children", members.children),
        ("Siblings", members.siblings),
    ):
        if people:
            console.print(_people_table(title, people))
        else:
            console.print(f"[dim]No {title.lower()} recorded[/dim]")


@app.command()
def ancestors(
    person_id: str = typer.Argument(..., help="Person ID"),
    depth: int = typer.Option(None, "--depth", "-d", help="Maximum generations"),
):
    """List ancestors, nearest generation first."""
    with _registry() as registry:
        rows = registry.relationships.get_ancestors(person_id, depth)

    if not rows:
        console.print("[yellow]No ancestors recorded[/yellow]")
        return
    console.print(_summary_table("Ancestors", rows))


@app.command()
def descendants(
    person_id: str = typer.Argument(..., help="Person ID"),
    depth: int = typer.Option(None, "--depth", "-d", help="Maximum generations"),
):
    """List descendants, nearest generation first."""
    with _registry() as registry:
        rows = registry.relationships.get_descendants(person_id, depth)

    if not rows:
        console.print("[yellow]No descendants recorded[/yellow]")
        return
    console.print(_summary_table("Descendants", rows))


@app.command()
def graph(
    output: Path = typer.Option(None, "--output", "-o", help="Write the JSON here instead of stdout"),
):
    """Export every person and edge as nodes/links JSON."""
    with _registry() as registry:
        data = registry.family.get_graph_data()

    payload = data.model_dump(by_alias=True)
    if output:
        with open(output, "w") as f:
            json.dump(payload, f, indent=2)
        console.print(
            f"[green]Wrote {len(data.nodes)} nodes and {len(data.links)} links to {output}[/green]"
        )
        return
    console.print_json(json.dumps(payload))


@app.command()
def check():
    """Verify the database connection."""
    with _registry() as registry:
        ok = registry.store.verify_connectivity()

    if not ok:
        console.print("[red]Error: Could not connect to Neo4j[/red]")
        raise typer.Exit(1)
    console.print("[green]Connected to Neo4j[/green]")


if __name__ == "__main__":
    app()
