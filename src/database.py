"""SQLite entity store for persons and relationships."""

from collections.abc import Callable
from datetime import date
import json
import logging
from pathlib import Path
import sqlite3
import uuid

from export import ImportPlan
from graph import build_graph
from models import (
    FamilyGroup,
    Person,
    Relationship,
    RelationshipDraft,
    Snapshot,
    format_date,
)
from validation import (
    FamilyGraphError,
    InvalidPerson,
    check_result,
    validate_person,
    validate_relationship,
)

logger = logging.getLogger(__name__)

PERSON_COLUMNS = (
    "id",
    "first_name",
    "last_name",
    "maiden_name",
    "gender",
    "date_of_birth",
    "date_of_death",
    "birth_place",
    "birth_order",
    "biography",
    "profile_photo_url",
)

RELATIONSHIP_COLUMNS = (
    "id",
    "type",
    "person1_id",
    "person2_id",
    "start_date",
    "end_date",
    "metadata",
)


class PersonNotFound(FamilyGraphError, KeyError):
    pass


class RelationshipNotFound(FamilyGraphError, KeyError):
    pass


def new_id() -> str:
    return str(uuid.uuid4())


def create_database(db_path: Path | str) -> sqlite3.Connection:
    """Open (and if needed create) the SQLite database with all tables."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS person (
            id TEXT PRIMARY KEY,
            first_name TEXT NOT NULL,
            last_name TEXT,
            maiden_name TEXT,
            gender TEXT CHECK (gender IN ('male', 'female', 'other')),
            date_of_birth TEXT,
            date_of_death TEXT,
            birth_place TEXT,
            birth_order INTEGER CHECK (birth_order >= 1),
            biography TEXT,
            profile_photo_url TEXT
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS relationship (
            id TEXT PRIMARY KEY,
            type TEXT NOT NULL,
            person1_id TEXT NOT NULL,
            person2_id TEXT NOT NULL,
            start_date TEXT,
            end_date TEXT,
            metadata TEXT,
            CHECK (person1_id <> person2_id),
            FOREIGN KEY (person1_id) REFERENCES person(id) ON DELETE CASCADE,
            FOREIGN KEY (person2_id) REFERENCES person(id) ON DELETE CASCADE
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS family_group (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            description TEXT
        )
    """)

    conn.commit()
    return conn


# ============================================================================
# Row conversion
# ============================================================================


def _person_params(person: Person) -> tuple:
    data = person.to_dict()
    return tuple(data[c] for c in PERSON_COLUMNS)


def _relationship_params(rel: Relationship) -> tuple:
    data = rel.to_dict()
    data["metadata"] = json.dumps(rel.metadata) if rel.metadata is not None else None
    return tuple(data[c] for c in RELATIONSHIP_COLUMNS)


def _row_to_relationship(row: sqlite3.Row) -> Relationship:
    data = dict(row)
    if data["metadata"] is not None:
        data["metadata"] = json.loads(data["metadata"])
    return Relationship.from_dict(data)


def _insert_person(cursor: sqlite3.Cursor, person: Person, ignore_existing: bool = False):
    errors = validate_person(person)
    if errors:
        raise InvalidPerson(errors)
    verb = "INSERT OR IGNORE" if ignore_existing else "INSERT"
    placeholders = ", ".join("?" for _ in PERSON_COLUMNS)
    cursor.execute(
        f"{verb} INTO person ({', '.join(PERSON_COLUMNS)}) VALUES ({placeholders})",
        _person_params(person),
    )


def _insert_relationship(cursor: sqlite3.Cursor, rel: Relationship, ignore_existing: bool = False):
    verb = "INSERT OR IGNORE" if ignore_existing else "INSERT"
    placeholders = ", ".join("?" for _ in RELATIONSHIP_COLUMNS)
    cursor.execute(
        f"{verb} INTO relationship ({', '.join(RELATIONSHIP_COLUMNS)}) VALUES ({placeholders})",
        _relationship_params(rel),
    )


# ============================================================================
# Persons
# ============================================================================


def add_person(conn: sqlite3.Connection, person: Person) -> Person:
    _insert_person(conn.cursor(), person)
    conn.commit()
    logger.info("Added person %s (%s)", person.id, person.full_name)
    return person


def get_person(conn: sqlite3.Connection, person_id: str) -> Person:
    row = conn.execute("SELECT * FROM person WHERE id = ?", (person_id,)).fetchone()
    if row is None:
        raise PersonNotFound(person_id)
    return Person.from_dict(dict(row))


def list_persons(conn: sqlite3.Connection) -> list[Person]:
    rows = conn.execute("SELECT * FROM person ORDER BY rowid").fetchall()
    return [Person.from_dict(dict(row)) for row in rows]


def update_person(conn: sqlite3.Connection, person_id: str, **changes) -> Person:
    """Apply field changes to a stored person and return the updated record."""
    if "id" in changes:
        raise ValueError("A person's id cannot be changed")
    unknown = set(changes) - set(PERSON_COLUMNS)
    if unknown:
        raise ValueError(f"Unknown person fields: {sorted(unknown)}")

    current = get_person(conn, person_id).to_dict()
    for key, value in changes.items():
        current[key] = format_date(value) if isinstance(value, date) else value
    updated = Person.from_dict(current)
    errors = validate_person(updated)
    if errors:
        raise InvalidPerson(errors)

    assignments = ", ".join(f"{c} = ?" for c in PERSON_COLUMNS[1:])
    conn.execute(
        f"UPDATE person SET {assignments} WHERE id = ?",
        _person_params(updated)[1:] + (person_id,),
    )
    conn.commit()
    return updated


def delete_person(conn: sqlite3.Connection, person_id: str) -> int:
    """
    Delete a person together with every relationship touching them.

    Returns the number of relationships removed.
    """
    get_person(conn, person_id)
    with conn:
        removed = conn.execute(
            "DELETE FROM relationship WHERE person1_id = ? OR person2_id = ?",
            (person_id, person_id),
        ).rowcount
        conn.execute("DELETE FROM person WHERE id = ?", (person_id,))
    logger.info("Deleted person %s and %d relationship(s)", person_id, removed)
    return removed


# ============================================================================
# Relationships
# ============================================================================


def list_relationships(conn: sqlite3.Connection) -> list[Relationship]:
    rows = conn.execute("SELECT * FROM relationship ORDER BY rowid").fetchall()
    return [_row_to_relationship(row) for row in rows]


def load_snapshot(conn: sqlite3.Connection) -> Snapshot:
    return Snapshot.of(list_persons(conn), list_relationships(conn))


def _validated(conn: sqlite3.Connection, draft: RelationshipDraft, confirm: bool) -> Relationship:
    G = build_graph(load_snapshot(conn))
    check_result(validate_relationship(G, draft), confirm=confirm)
    return draft.to_relationship(draft.relationship_id or new_id())


def create_relationship(
    conn: sqlite3.Connection, draft: RelationshipDraft, confirm: bool = False
) -> Relationship:
    """
    Validate and store a relationship.

    Raises InvalidRelationship or ValidationRejected when the draft is refused, and
    ValidationWarning when it needs confirmation and `confirm` is False.
    """
    try:
        rel = _validated(conn, draft, confirm)
    except FamilyGraphError as e:
        logger.warning("Refused %s relationship %s: %s", draft.type.value, draft.endpoints(), e)
        raise
    _insert_relationship(conn.cursor(), rel)
    conn.commit()
    logger.info("Added %s relationship %s", rel.type.value, rel.id)
    return rel


def quick_add_relative(
    conn: sqlite3.Connection,
    person: Person,
    draft_for: Callable[[str], RelationshipDraft],
    confirm: bool = False,
) -> tuple[Person, Relationship]:
    """
    Create a person and their relationship to an existing person in one transaction.

    `draft_for` receives the new person's id and returns the draft to store, e.g.
    `lambda pid: ParentChildDraft(parent_id, pid)`. Nothing is stored if the person
    or the relationship is refused.
    """
    try:
        with conn:
            _insert_person(conn.cursor(), person)
            rel = _validated(conn, draft_for(person.id), confirm)
            _insert_relationship(conn.cursor(), rel)
    except FamilyGraphError as e:
        logger.warning("Quick add of %s refused: %s", person.full_name, e)
        raise
    logger.info("Quick-added %s with %s relationship %s", person.id, rel.type.value, rel.id)
    return person, rel


def delete_relationship(conn: sqlite3.Connection, relationship_id: str):
    deleted = conn.execute("DELETE FROM relationship WHERE id = ?", (relationship_id,)).rowcount
    conn.commit()
    if not deleted:
        raise RelationshipNotFound(relationship_id)


# ============================================================================
# Family groups
# ============================================================================


def add_family_group(conn: sqlite3.Connection, group: FamilyGroup) -> FamilyGroup:
    conn.execute(
        "INSERT INTO family_group (id, name, description) VALUES (?, ?, ?)",
        (group.id, group.name, group.description),
    )
    conn.commit()
    return group


def list_family_groups(conn: sqlite3.Connection) -> list[FamilyGroup]:
    rows = conn.execute("SELECT * FROM family_group ORDER BY rowid").fetchall()
    return [FamilyGroup.from_dict(dict(row)) for row in rows]


# ============================================================================
# Import
# ============================================================================


def apply_import(conn: sqlite3.Connection, plan: ImportPlan) -> tuple[int, int]:
    """
    Merge an import plan into the store in one transaction.

    Records whose id already exists are left untouched. Returns the number of
    persons and relationships inserted.
    """
    with conn:
        cursor = conn.cursor()
        persons_added = 0
        for person in plan.persons:
            _insert_person(cursor, person, ignore_existing=True)
            persons_added += cursor.rowcount
        relationships_added = 0
        for rel in plan.relationships:
            _insert_relationship(cursor, rel, ignore_existing=True)
            relationships_added += cursor.rowcount
        for group in plan.family_groups:
            cursor.execute(
                "INSERT OR IGNORE INTO family_group (id, name, description) VALUES (?, ?, ?)",
                (group.id, group.name, group.description),
            )
    logger.info("Imported %d person(s) and %d relationship(s)", persons_added, relationships_added)
    return persons_added, relationships_added
