"""Data classes for family tree entities."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, ClassVar


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class RelationshipType(str, Enum):
    PARENT_CHILD = "PARENT_CHILD"
    SPOUSE = "SPOUSE"
    SIBLING = "SIBLING"
    ADOPTED = "ADOPTED"
    STEP = "STEP"


def parse_date(value: str | date | datetime | None) -> date | None:
    """Parse an ISO date (YYYY-MM-DD, or a full timestamp) into a date."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value[:10])


def format_date(value: date | None) -> str | None:
    return value.isoformat() if value else None


@dataclass
class Person:
    id: str
    first_name: str
    last_name: str | None = None
    maiden_name: str | None = None
    gender: Gender | None = None
    date_of_birth: date | None = None
    date_of_death: date | None = None
    birth_place: str | None = None
    birth_order: int | None = None  # 1-based position among siblings
    biography: str | None = None
    profile_photo_url: str | None = None

    @property
    def full_name(self) -> str:
        return " ".join(p for p in [self.first_name, self.last_name] if p)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Person":
        gender = data.get("gender")
        return cls(
            id=str(data["id"]),
            first_name=data.get("first_name") or "",
            last_name=data.get("last_name"),
            maiden_name=data.get("maiden_name"),
            gender=Gender(gender) if gender else None,
            date_of_birth=parse_date(data.get("date_of_birth")),
            date_of_death=parse_date(data.get("date_of_death")),
            birth_place=data.get("birth_place"),
            birth_order=data.get("birth_order"),
            biography=data.get("biography"),
            profile_photo_url=data.get("profile_photo_url"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "maiden_name": self.maiden_name,
            "gender": self.gender.value if self.gender else None,
            "date_of_birth": format_date(self.date_of_birth),
            "date_of_death": format_date(self.date_of_death),
            "birth_place": self.birth_place,
            "birth_order": self.birth_order,
            "biography": self.biography,
            "profile_photo_url": self.profile_photo_url,
        }


@dataclass
class Relationship:
    """
    A stored relationship edge.

    For PARENT_CHILD (and ADOPTED/STEP) person1_id is the parent and person2_id the
    child. SPOUSE and SIBLING pairs are unordered.
    """

    id: str
    type: RelationshipType
    person1_id: str
    person2_id: str
    start_date: date | None = None  # marriage date for SPOUSE
    end_date: date | None = None  # divorce date for SPOUSE
    metadata: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Relationship":
        return cls(
            id=str(data["id"]),
            type=RelationshipType(data["type"]),
            person1_id=str(data["person1_id"]),
            person2_id=str(data["person2_id"]),
            start_date=parse_date(data.get("start_date")),
            end_date=parse_date(data.get("end_date")),
            metadata=data.get("metadata"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "person1_id": self.person1_id,
            "person2_id": self.person2_id,
            "start_date": format_date(self.start_date),
            "end_date": format_date(self.end_date),
            "metadata": self.metadata,
        }


# ============================================================================
# Relationship drafts
# ============================================================================


@dataclass
class _DraftBase:
    start_date: date | None = field(default=None, kw_only=True)
    end_date: date | None = field(default=None, kw_only=True)
    metadata: dict[str, Any] | None = field(default=None, kw_only=True)
    # Set when re-validating an edge that is already stored
    relationship_id: str | None = field(default=None, kw_only=True)

    type: ClassVar[RelationshipType]

    def endpoints(self) -> tuple[str, str]:
        raise NotImplementedError

    def to_relationship(self, relationship_id: str) -> Relationship:
        person1_id, person2_id = self.endpoints()
        return Relationship(
            id=relationship_id,
            type=self.type,
            person1_id=person1_id,
            person2_id=person2_id,
            start_date=self.start_date,
            end_date=self.end_date,
            metadata=self.metadata,
        )


@dataclass
class _DirectedDraft(_DraftBase):
    parent_id: str
    child_id: str

    def endpoints(self) -> tuple[str, str]:
        return (self.parent_id, self.child_id)


@dataclass
class _PairDraft(_DraftBase):
    a: str
    b: str

    def endpoints(self) -> tuple[str, str]:
        return (self.a, self.b)


@dataclass
class ParentChildDraft(_DirectedDraft):
    type: ClassVar[RelationshipType] = RelationshipType.PARENT_CHILD


@dataclass
class AdoptedDraft(_DirectedDraft):
    type: ClassVar[RelationshipType] = RelationshipType.ADOPTED


@dataclass
class StepDraft(_DirectedDraft):
    type: ClassVar[RelationshipType] = RelationshipType.STEP


@dataclass
class SpouseDraft(_PairDraft):
    type: ClassVar[RelationshipType] = RelationshipType.SPOUSE


@dataclass
class SiblingDraft(_PairDraft):
    type: ClassVar[RelationshipType] = RelationshipType.SIBLING


RelationshipDraft = ParentChildDraft | AdoptedDraft | StepDraft | SpouseDraft | SiblingDraft

DRAFT_TYPES: dict[RelationshipType, type] = {
    RelationshipType.PARENT_CHILD: ParentChildDraft,
    RelationshipType.ADOPTED: AdoptedDraft,
    RelationshipType.STEP: StepDraft,
    RelationshipType.SPOUSE: SpouseDraft,
    RelationshipType.SIBLING: SiblingDraft,
}


def make_draft(
    rel_type: RelationshipType, person1_id: str, person2_id: str, **kwargs
) -> RelationshipDraft:
    """Build the draft variant for a type from storage-order endpoints."""
    draft_cls = DRAFT_TYPES[rel_type]
    return draft_cls(person1_id, person2_id, **kwargs)


def draft_from_relationship(rel: Relationship) -> RelationshipDraft:
    return make_draft(
        rel.type,
        rel.person1_id,
        rel.person2_id,
        start_date=rel.start_date,
        end_date=rel.end_date,
        metadata=rel.metadata,
        relationship_id=rel.id,
    )


@dataclass
class FamilyGroup:
    id: str
    name: str
    description: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FamilyGroup":
        return cls(id=str(data["id"]), name=data["name"], description=data.get("description"))

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "description": self.description}


@dataclass(frozen=True)
class Snapshot:
    """A caller-owned, point-in-time view of the entity store."""

    persons: dict[str, Person]
    relationships: tuple[Relationship, ...]

    @classmethod
    def of(cls, persons: list[Person], relationships: list[Relationship]) -> "Snapshot":
        return cls(persons={p.id: p for p in persons}, relationships=tuple(relationships))

    def person_ids(self) -> set[str]:
        return set(self.persons)
