"""JSON export and import of family tree data.

The export document has the shape::

    {
      "version": "1.0",
      "exportDate": "2024-05-01T12:00:00+00:00",
      "data": {"persons": [...], "relationships": [...], "familyGroups": [...]}
    }

Importing never trusts the document's referential integrity: a relationship is
only kept when both of its endpoints exist among the existing and imported
persons combined.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
import json
import logging
from typing import Any

from models import FamilyGroup, Person, Relationship, Snapshot
from validation import FamilyGraphError

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"


class ImportFormatError(FamilyGraphError):
    """The import document is not a valid family tree backup."""


@dataclass
class FamilyTreeExport:
    version: str
    export_date: str
    persons: list[Person]
    relationships: list[Relationship]
    family_groups: list[FamilyGroup] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "persons": [p.to_dict() for p in self.persons],
            "relationships": [r.to_dict() for r in self.relationships],
        }
        if self.family_groups:
            data["familyGroups"] = [g.to_dict() for g in self.family_groups]
        return {"version": self.version, "exportDate": self.export_date, "data": data}


@dataclass(frozen=True)
class OverlapReport:
    new_count: int
    duplicate_count: int


@dataclass
class ImportPlan:
    persons: list[Person]
    relationships: list[Relationship]
    family_groups: list[FamilyGroup]
    person_overlap: OverlapReport
    relationship_overlap: OverlapReport
    dropped_relationships: list[Relationship] = field(default_factory=list)


def export_family_tree(
    snapshot: Snapshot,
    family_groups: list[FamilyGroup] | None = None,
    now: datetime | None = None,
) -> str:
    """Serialize a snapshot to the JSON backup format."""
    document = FamilyTreeExport(
        version=EXPORT_VERSION,
        export_date=(now or datetime.now(UTC)).isoformat(),
        persons=list(snapshot.persons.values()),
        relationships=list(snapshot.relationships),
        family_groups=family_groups or [],
    )
    return json.dumps(document.to_dict(), indent=2, ensure_ascii=False)


def parse_imported_json(text: str) -> FamilyTreeExport:
    """Parse and validate a JSON backup. Raises ImportFormatError on any problem."""
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise ImportFormatError(f"Failed to parse import file: {e}") from e

    if not isinstance(raw, dict) or not raw.get("version") or not isinstance(raw.get("data"), dict):
        raise ImportFormatError("Invalid family tree backup file format")

    data = raw["data"]
    for section in ("persons", "relationships"):
        if not isinstance(data.get(section), list):
            raise ImportFormatError(f"Invalid {section} data")
    groups = data.get("familyGroups") or []
    if not isinstance(groups, list):
        raise ImportFormatError("Invalid familyGroups data")

    try:
        return FamilyTreeExport(
            version=str(raw["version"]),
            export_date=str(raw.get("exportDate", "")),
            persons=[Person.from_dict(p) for p in data["persons"]],
            relationships=[Relationship.from_dict(r) for r in data["relationships"]],
            family_groups=[FamilyGroup.from_dict(g) for g in groups],
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ImportFormatError(f"Invalid record in import file: {e}") from e


def detect_overlap(existing_ids: Iterable[str], incoming_ids: Iterable[str]) -> OverlapReport:
    """Count incoming ids that are new versus already present."""
    existing = set(existing_ids)
    incoming = list(incoming_ids)
    duplicates = sum(1 for i in incoming if i in existing)
    return OverlapReport(new_count=len(incoming) - duplicates, duplicate_count=duplicates)


def plan_import(snapshot: Snapshot, document: FamilyTreeExport) -> ImportPlan:
    """
    Work out what importing a document into a snapshot would add.

    Relationships whose endpoints are not both present in the combined person set,
    and self-relationships, are dropped.
    """
    known_ids = snapshot.person_ids() | {p.id for p in document.persons}

    kept: list[Relationship] = []
    dropped: list[Relationship] = []
    for rel in document.relationships:
        if rel.person1_id == rel.person2_id or not {rel.person1_id, rel.person2_id} <= known_ids:
            dropped.append(rel)
        else:
            kept.append(rel)

    if dropped:
        logger.warning("Dropping %d relationship(s) with unknown endpoints", len(dropped))

    return ImportPlan(
        persons=document.persons,
        relationships=kept,
        family_groups=document.family_groups,
        person_overlap=detect_overlap(snapshot.persons, (p.id for p in document.persons)),
        relationship_overlap=detect_overlap(
            (r.id for r in snapshot.relationships), (r.id for r in kept)
        ),
        dropped_relationships=dropped,
    )
