"""
Command line interface for the family graph:
1) Record persons and relationships in SQLite.
2) Validate relationships before they are stored.
3) Number generations and lay the tree out for rendering.
4) Export and import JSON backups.
"""

from datetime import date
import json
import logging
from pathlib import Path

import typer

from config import get_settings
from database import (
    add_person,
    apply_import,
    create_database,
    create_relationship,
    delete_person,
    list_family_groups,
    load_snapshot,
    new_id,
)
from export import export_family_tree, parse_imported_json, plan_import
from generations import compute_generations, generation_of
from graph import build_graph
from layout import Direction, filter_by_depth, layout_tree
from models import Gender, Person, RelationshipType, make_draft
from validation import FamilyGraphError, ValidationWarning, audit_graph

app = typer.Typer(
    name="famgraph",
    help="Record a family and lay it out as a generational tree.",
    add_completion=False,
)


def _connect(db: Path | None):
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return create_database(db or settings.db_path), settings


def _fail(message: str):
    typer.secho(f"Error: {message}", fg=typer.colors.RED, err=True)
    raise typer.Exit(1)


def _db_option():
    return typer.Option(None, "--db", help="SQLite database path (default from FAMGRAPH_DB_PATH)")


@app.command()
def init(db: Path = _db_option()):
    """Create an empty database."""
    conn, settings = _connect(db)
    conn.close()
    typer.echo(f"Database ready: {db or settings.db_path}")


@app.command("add-person")
def add_person_command(
    first_name: str = typer.Argument(..., help="First name"),
    last_name: str = typer.Option(None, "--last-name"),
    gender: Gender = typer.Option(None, "--gender"),
    born: str = typer.Option(None, "--born", help="Date of birth, YYYY-MM-DD"),
    died: str = typer.Option(None, "--died", help="Date of death, YYYY-MM-DD"),
    birth_order: int = typer.Option(None, "--birth-order", min=1),
    person_id: str = typer.Option(None, "--id", help="Explicit id (default: random)"),
    db: Path = _db_option(),
):
    """Add a person and print their id."""
    conn, _ = _connect(db)
    try:
        person = Person(
            id=person_id or new_id(),
            first_name=first_name,
            last_name=last_name,
            gender=gender,
            date_of_birth=date.fromisoformat(born) if born else None,
            date_of_death=date.fromisoformat(died) if died else None,
            birth_order=birth_order,
        )
        add_person(conn, person)
    except (FamilyGraphError, ValueError) as e:
        _fail(str(e))
    finally:
        conn.close()
    typer.echo(person.id)


@app.command()
def relate(
    person1_id: str = typer.Argument(..., help="Parent for PARENT_CHILD, else either partner"),
    person2_id: str = typer.Argument(..., help="Child for PARENT_CHILD, else either partner"),
    rel_type: RelationshipType = typer.Option(RelationshipType.PARENT_CHILD, "--type", "-t"),
    start: str = typer.Option(None, "--start", help="Start date (marriage), YYYY-MM-DD"),
    confirm: bool = typer.Option(False, "--confirm", help="Accept warnings such as large age gaps"),
    db: Path = _db_option(),
):
    """Validate and store a relationship between two persons."""
    conn, _ = _connect(db)
    try:
        draft = make_draft(
            rel_type,
            person1_id,
            person2_id,
            start_date=date.fromisoformat(start) if start else None,
        )
        rel = create_relationship(conn, draft, confirm=confirm)
    except ValidationWarning as e:
        _fail(f"{e.warning} Re-run with --confirm to store it anyway.")
    except (FamilyGraphError, ValueError) as e:
        _fail(str(e))
    finally:
        conn.close()
    typer.echo(rel.id)


@app.command("delete-person")
def delete_person_command(person_id: str, db: Path = _db_option()):
    """Delete a person and every relationship touching them."""
    conn, _ = _connect(db)
    try:
        removed = delete_person(conn, person_id)
    except FamilyGraphError:
        _fail(f"Person not found: {person_id}")
    finally:
        conn.close()
    typer.echo(f"Deleted {person_id} and {removed} relationship(s)")


@app.command()
def generations(
    root: str = typer.Option(None, "--root", help="Root person id (default: all parent-less)"),
    db: Path = _db_option(),
):
    """Print the generation number of every person."""
    conn, _ = _connect(db)
    snapshot = load_snapshot(conn)
    conn.close()

    G = build_graph(snapshot)
    numbers = compute_generations(G, root)
    for person in snapshot.persons.values():
        typer.echo(f"{generation_of(numbers, person.id):>4}  {person.full_name} ({person.id})")


@app.command()
def layout(
    root: str = typer.Option(None, "--root", help="Root person id"),
    direction: Direction = typer.Option(Direction.VERTICAL, "--direction", "-d"),
    focus: str = typer.Option(None, "--focus", help="Person to center a depth window on"),
    depth: int = typer.Option(None, "--depth", min=0, help="Generations shown around --focus"),
    output: Path = typer.Option(
        None, "--output", "-o", help="Render to png/svg/pdf/dot instead of printing JSON"
    ),
    db: Path = _db_option(),
):
    """Lay out the tree and print it as JSON, or render it with Graphviz."""
    if (focus is None) != (depth is None):
        raise typer.BadParameter("--focus and --depth must be given together")

    conn, settings = _connect(db)
    snapshot = load_snapshot(conn)
    conn.close()

    tree = layout_tree(
        snapshot,
        root_id=root,
        direction=direction,
        horizontal_spacing=settings.horizontal_spacing,
        vertical_spacing=settings.vertical_spacing,
    )
    if focus is not None:
        tree = filter_by_depth(tree, focus, depth)

    if output:
        from plotting import plot_layout

        plot_layout(tree, output)
        typer.echo(f"Tree saved to {output}")
    else:
        typer.echo(json.dumps(tree.to_dict(), indent=2))


@app.command()
def audit(db: Path = _db_option()):
    """Check the stored tree for cycles, impossible dates and invalid marriages."""
    conn, _ = _connect(db)
    snapshot = load_snapshot(conn)
    conn.close()

    warnings = audit_graph(build_graph(snapshot))
    if not warnings:
        typer.echo("No validation issues found")
        return
    typer.echo(f"Found {len(warnings)} validation warning(s):")
    for w in warnings:
        typer.echo(f"  - {w}")
    raise typer.Exit(1)


@app.command("export")
def export_command(path: Path, db: Path = _db_option()):
    """Write a JSON backup of the whole tree."""
    conn, _ = _connect(db)
    text = export_family_tree(load_snapshot(conn), list_family_groups(conn))
    conn.close()
    path.write_text(text, encoding="utf-8")
    typer.echo(f"Exported to {path}")


@app.command("import")
def import_command(path: Path, db: Path = _db_option()):
    """Merge a JSON backup into the database. Existing ids are kept as they are."""
    conn, _ = _connect(db)
    try:
        document = parse_imported_json(path.read_text(encoding="utf-8"))
        plan = plan_import(load_snapshot(conn), document)
        persons_added, relationships_added = apply_import(conn, plan)
        warnings = audit_graph(build_graph(load_snapshot(conn)))
    except FamilyGraphError as e:
        _fail(str(e))
    finally:
        conn.close()

    typer.echo(
        f"Imported {persons_added} person(s) ({plan.person_overlap.duplicate_count} already present) "
        f"and {relationships_added} relationship(s)"
    )
    for rel in plan.dropped_relationships:
        typer.echo(f"  dropped {rel.type.value} {rel.person1_id} -> {rel.person2_id}: unknown person")

    for w in warnings:
        typer.echo(f"  warning: {w}")


if __name__ == "__main__":
    app()
