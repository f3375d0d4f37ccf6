"""Tests for relationship validation and the graph audit."""

from datetime import date, datetime

import pytest

from conftest import person, rel
from graph import build_graph
from models import (
    AdoptedDraft,
    ParentChildDraft,
    Person,
    RelationshipType,
    SiblingDraft,
    Snapshot,
    SpouseDraft,
    draft_from_relationship,
)
from validation import (
    InvalidRelationship,
    ValidationRejected,
    ValidationResult,
    ValidationWarning,
    _without_relationship,
    audit_graph,
    check_result,
    validate_parent_child_age,
    validate_person,
    validate_relationship,
)


class TestContractViolations:
    def test_self_relationship_raises(self, family):
        with pytest.raises(InvalidRelationship):
            validate_relationship(family, SpouseDraft("alice", "alice"))

    def test_missing_endpoint_raises(self, family):
        with pytest.raises(InvalidRelationship):
            validate_relationship(family, ParentChildDraft("alice", ""))

    def test_unknown_person_raises(self, family):
        with pytest.raises(InvalidRelationship, match="Unknown person"):
            validate_relationship(family, SiblingDraft("carol", "ghost"))


class TestParentChildAge:
    def test_too_young_parent_rejected(self):
        parent = person("p", "P", date_of_birth=date(2000, 1, 1))
        child = person("c", "C", date_of_birth=date(2010, 1, 1))
        result = validate_parent_child_age(parent, child)
        assert not result.valid
        assert "12" in result.reason

    def test_large_gap_warns(self):
        parent = person("p", "P", date_of_birth=date(1900, 1, 1))
        child = person("c", "C", date_of_birth=date(1975, 7, 1))
        result = validate_parent_child_age(parent, child)
        assert result.valid
        assert "75" in result.warning

    def test_plausible_gap(self):
        parent = person("p", "P", date_of_birth=date(1960, 1, 1))
        child = person("c", "C", date_of_birth=date(1990, 1, 1))
        assert validate_parent_child_age(parent, child) == ValidationResult(valid=True)

    def test_unknown_dates_skip_check(self):
        parent = person("p", "P")
        child = person("c", "C", date_of_birth=date(1990, 1, 1))
        assert validate_parent_child_age(parent, child).valid

    def test_age_rejection_through_validate_relationship(self):
        snapshot = Snapshot.of(
            [
                person("carol", "Carol", date_of_birth=date(1975, 5, 20)),
                person("kid", "Kid", date_of_birth=date(1980, 1, 1)),
            ],
            [],
        )
        result = validate_relationship(build_graph(snapshot), ParentChildDraft("carol", "kid"))
        assert not result.valid


class TestNoLoop:
    def test_closing_a_cycle_is_rejected(self, chain):
        result = validate_relationship(chain, ParentChildDraft("c", "a"))
        assert not result.valid
        assert "loop" in result.reason

    def test_extending_the_chain_is_accepted(self, chain_snapshot):
        snapshot = Snapshot.of(
            list(chain_snapshot.persons.values()) + [person("d", "Dee")],
            list(chain_snapshot.relationships),
        )
        result = validate_relationship(build_graph(snapshot), ParentChildDraft("c", "d"))
        assert result.valid

    def test_existing_edge_is_excluded_when_revalidated(self, chain_snapshot, chain):
        stored = chain_snapshot.relationships[0]
        assert not _without_relationship(chain, stored.id).has_edge("a", "b")
        assert chain.has_edge("a", "b")
        assert validate_relationship(chain, draft_from_relationship(stored)).valid


class TestSpouse:
    def test_ancestor_marriage_rejected(self, family):
        result = validate_relationship(family, SpouseDraft("alice", "carol"))
        assert not result.valid
        assert "blood relative" in result.reason

    def test_either_order_rejected(self, chain):
        assert not validate_relationship(chain, SpouseDraft("c", "a")).valid
        assert not validate_relationship(chain, SpouseDraft("a", "c")).valid

    def test_declared_siblings_rejected(self):
        snapshot = Snapshot.of(
            [person("x", "X"), person("y", "Y")],
            [rel("s", RelationshipType.SIBLING, "y", "x")],
        )
        result = validate_relationship(build_graph(snapshot), SpouseDraft("x", "y"))
        assert not result.valid
        assert result.reason == "Cannot marry sibling"

    def test_unrelated_accepted(self, family):
        assert validate_relationship(family, SpouseDraft("bob", "dan")).valid

    def test_in_law_accepted(self, family):
        # Dan married into the family; he is nobody's ancestor or descendant
        assert validate_relationship(family, SpouseDraft("alice", "dan")).valid


def test_uninterpreted_types_only_check_endpoints(chain):
    assert validate_relationship(chain, AdoptedDraft("c", "a")).valid


class TestCheckResult:
    def test_rejection_raises(self):
        with pytest.raises(ValidationRejected) as exc:
            check_result(ValidationResult.reject("nope"))
        assert exc.value.reason == "nope"

    def test_warning_needs_confirmation(self):
        with pytest.raises(ValidationWarning):
            check_result(ValidationResult.ok(warning="odd"))
        check_result(ValidationResult.ok(warning="odd"), confirm=True)

    def test_clean_result_passes(self):
        check_result(ValidationResult.ok())


class TestValidatePerson:
    def test_valid(self):
        assert validate_person(person("p", "Pat", date_of_birth=date(1990, 1, 1))) == {}

    def test_errors(self):
        p = person(
            "p",
            "  ",
            date_of_birth=date(2030, 1, 1),
            date_of_death=date(2020, 1, 1),
            birth_order=0,
        )
        errors = validate_person(p, today=date(2025, 1, 1))
        assert set(errors) == {"first_name", "date_of_birth", "date_of_death", "birth_order"}


class TestAuditGraph:
    def test_clean_family(self, family):
        assert audit_graph(family) == []

    def test_reports_cycle_and_bad_dates(self):
        snapshot = Snapshot.of(
            [
                person("a", "Ann", date_of_birth=date(1990, 1, 1)),
                person("b", "Ben", date_of_birth=date(1980, 1, 1), date_of_death=date(1970, 1, 1)),
            ],
            [
                rel("r1", RelationshipType.PARENT_CHILD, "a", "b"),
                rel("r2", RelationshipType.PARENT_CHILD, "b", "a"),
            ],
        )
        warnings = audit_graph(build_graph(snapshot))
        assert any(w.startswith("Cycle detected") for w in warnings)
        assert "Impossible: Ben born before parent Ann" in warnings
        assert "Impossible: Ben died before being born" in warnings

    def test_reports_invalid_marriage(self):
        snapshot = Snapshot.of(
            [person("a", "Ann"), person("b", "Ben")],
            [
                rel("r1", RelationshipType.PARENT_CHILD, "a", "b"),
                rel("r2", RelationshipType.SPOUSE, "a", "b"),
            ],
        )
        warnings = audit_graph(build_graph(snapshot))
        assert len(warnings) == 1
        assert warnings[0].startswith("Invalid marriage between Ann and Ben")


def test_timestamps_are_truncated_to_dates():
    p = Person.from_dict({"id": "p", "first_name": "Pat", "date_of_birth": datetime(2000, 1, 1, 8, 30)})
    assert p.date_of_birth == date(2000, 1, 1)
    assert validate_person(p, today=date(2025, 1, 1)) == {}
