"""Relationship and family tree validation."""

from dataclasses import dataclass
from datetime import date
import logging

import networkx as nx

from graph import are_declared_siblings, get_person, is_ancestor
from models import Person, RelationshipDraft, RelationshipType

logger = logging.getLogger(__name__)

MIN_PARENT_AGE = 12
MAX_PARENT_AGE = 70
DAYS_PER_YEAR = 365.25


class FamilyGraphError(Exception):
    """Base class for errors raised by the family graph engine."""


class InvalidRelationship(FamilyGraphError):
    """A relationship draft is malformed: missing or unknown endpoint, or self-link."""


class ValidationRejected(FamilyGraphError):
    """A relationship was refused because it would make the tree inconsistent."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class ValidationWarning(FamilyGraphError):
    """A relationship is plausible but unusual and needs explicit confirmation."""

    def __init__(self, warning: str):
        super().__init__(warning)
        self.warning = warning


class InvalidPerson(FamilyGraphError):
    def __init__(self, errors: dict[str, str]):
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))
        self.errors = errors


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    reason: str | None = None
    warning: str | None = None

    @classmethod
    def ok(cls, warning: str | None = None) -> "ValidationResult":
        return cls(valid=True, warning=warning)

    @classmethod
    def reject(cls, reason: str) -> "ValidationResult":
        return cls(valid=False, reason=reason)


def age_gap_years(older: date, younger: date) -> float:
    return (younger - older).days / DAYS_PER_YEAR


def validate_parent_child_age(parent: Person, child: Person) -> ValidationResult:
    """
    Check the age gap between a parent and a child.

    Under MIN_PARENT_AGE years is rejected. Over MAX_PARENT_AGE years is accepted
    with a warning. Skipped when either birth date is unknown.
    """
    if parent.date_of_birth is None or child.date_of_birth is None:
        return ValidationResult.ok()

    gap = age_gap_years(parent.date_of_birth, child.date_of_birth)
    if gap < MIN_PARENT_AGE:
        return ValidationResult.reject(
            f"Parent must be at least {MIN_PARENT_AGE} years older than child"
        )
    if gap > MAX_PARENT_AGE:
        return ValidationResult.ok(
            warning=f"Age gap seems unusual ({int(gap)} years). Please verify."
        )
    return ValidationResult.ok()


def validate_no_loop(G: nx.MultiDiGraph, parent_id: str, child_id: str) -> ValidationResult:
    if is_ancestor(G, child_id, parent_id):
        return ValidationResult.reject(
            "This would create a loop: the child is already an ancestor of the parent"
        )
    return ValidationResult.ok()


def validate_spouse(G: nx.MultiDiGraph, a: str, b: str) -> ValidationResult:
    if is_ancestor(G, a, b) or is_ancestor(G, b, a):
        return ValidationResult.reject(
            "Cannot marry direct blood relative (parent/child/grandparent/etc)"
        )
    if are_declared_siblings(G, a, b):
        return ValidationResult.reject("Cannot marry sibling")
    return ValidationResult.ok()


def _without_relationship(G: nx.MultiDiGraph, relationship_id: str | None) -> nx.MultiDiGraph:
    """Return a view of G hiding the edge with the given relationship id."""
    if relationship_id is None:
        return G
    hidden = [
        (u, v, k)
        for u, v, k, rid in G.edges(keys=True, data="relationship_id")
        if rid == relationship_id
    ]
    if not hidden:
        return G
    return nx.restricted_view(G, [], hidden)


def validate_relationship(G: nx.MultiDiGraph, draft: RelationshipDraft) -> ValidationResult:
    """
    Decide whether a proposed relationship may be stored.

    Raises InvalidRelationship for contract violations (missing endpoint, unknown
    person, self-relationship). Every other outcome is returned as a
    ValidationResult: rejected with a reason, or accepted, possibly with a warning
    the caller must confirm. A draft carrying the id of a stored relationship is
    checked as if that relationship did not exist.
    """
    person1_id, person2_id = draft.endpoints()
    if not person1_id or not person2_id:
        raise InvalidRelationship("A relationship needs two people")
    if person1_id == person2_id:
        raise InvalidRelationship("A person cannot have a relationship with themselves")
    for person_id in (person1_id, person2_id):
        if person_id not in G:
            raise InvalidRelationship(f"Unknown person: {person_id}")

    view = _without_relationship(G, draft.relationship_id)

    match draft.type:
        case RelationshipType.PARENT_CHILD:
            age_check = validate_parent_child_age(
                get_person(view, person1_id), get_person(view, person2_id)
            )
            if not age_check.valid:
                return age_check
            loop_check = validate_no_loop(view, person1_id, person2_id)
            if not loop_check.valid:
                return loop_check
            return age_check
        case RelationshipType.SPOUSE:
            return validate_spouse(view, person1_id, person2_id)
        case RelationshipType.SIBLING | RelationshipType.ADOPTED | RelationshipType.STEP:
            return ValidationResult.ok()
        case _:
            raise InvalidRelationship(f"Unsupported relationship type: {draft.type}")


def check_result(result: ValidationResult, confirm: bool = False) -> None:
    """Turn a validation outcome into the exception a writer should raise."""
    if not result.valid:
        raise ValidationRejected(result.reason or "Relationship rejected")
    if result.warning and not confirm:
        raise ValidationWarning(result.warning)


def validate_person(person: Person, today: date | None = None) -> dict[str, str]:
    """Validate a person's own fields. Returns a mapping of field name to message."""
    errors: dict[str, str] = {}
    today = today or date.today()

    if not person.first_name or not person.first_name.strip():
        errors["first_name"] = "First name is required"

    if person.date_of_birth and person.date_of_death:
        if person.date_of_death < person.date_of_birth:
            errors["date_of_death"] = "Death date cannot be before birth date"

    if person.date_of_birth and person.date_of_birth > today:
        errors["date_of_birth"] = "Birth date cannot be in the future"

    if person.birth_order is not None and person.birth_order < 1:
        errors["birth_order"] = "Birth order starts at 1"

    return errors


def audit_graph(G: nx.MultiDiGraph) -> list[str]:
    """
    Validate an entire family tree graph for:
    - Cycles in parent-child relationships
    - Impossible ages (child born before parent, parent younger than 12)
    - Death before birth
    - Spouses who are blood relatives or declared siblings

    Returns a list of warning messages.
    """
    warnings: list[str] = []

    parent_edges = [
        (u, v) for u, v, k in G.edges(keys=True) if k == RelationshipType.PARENT_CHILD
    ]
    parent_graph = nx.DiGraph(parent_edges)

    try:
        cycle = nx.find_cycle(parent_graph, orientation="original")
        cycle_nodes = [edge[0] for edge in cycle]
        warnings.append(f"Cycle detected in parent-child relationships: {cycle_nodes}")
    except nx.NetworkXNoCycle:
        pass

    for parent_id, child_id in parent_edges:
        parent = get_person(G, parent_id)
        child = get_person(G, child_id)
        if parent.date_of_birth is None or child.date_of_birth is None:
            continue
        if child.date_of_birth < parent.date_of_birth:
            warnings.append(
                f"Impossible: {child.full_name} born before parent {parent.full_name}"
            )
        elif age_gap_years(parent.date_of_birth, child.date_of_birth) < MIN_PARENT_AGE:
            warnings.append(
                f"Suspicious: {parent.full_name} was less than {MIN_PARENT_AGE} years "
                f"old when {child.full_name} was born"
            )

    for _, person in G.nodes(data="person"):
        if person.date_of_birth and person.date_of_death:
            if person.date_of_death < person.date_of_birth:
                warnings.append(f"Impossible: {person.full_name} died before being born")

    for u, v, k in G.edges(keys=True):
        if k != RelationshipType.SPOUSE:
            continue
        result = validate_spouse(G, u, v)
        if not result.valid:
            warnings.append(
                f"Invalid marriage between {get_person(G, u).full_name} and "
                f"{get_person(G, v).full_name}: {result.reason}"
            )

    logger.debug("Audit found %d issue(s)", len(warnings))
    return warnings
