"""Tests for the SQLite entity store."""

from datetime import date

import pytest

from database import (
    PersonNotFound,
    RelationshipNotFound,
    add_family_group,
    add_person,
    create_database,
    create_relationship,
    delete_person,
    delete_relationship,
    get_person,
    list_family_groups,
    list_persons,
    list_relationships,
    load_snapshot,
    quick_add_relative,
    update_person,
)
from conftest import person
from models import FamilyGroup, Gender, ParentChildDraft, RelationshipType, SpouseDraft
from validation import InvalidPerson, InvalidRelationship, ValidationRejected, ValidationWarning


@pytest.fixture
def conn(tmp_path):
    connection = create_database(tmp_path / "family.db")
    yield connection
    connection.close()


@pytest.fixture
def seeded(conn):
    add_person(conn, person("alice", "Alice", gender=Gender.FEMALE, date_of_birth=date(1950, 3, 1)))
    add_person(conn, person("bob", "Bob", date_of_birth=date(1948, 7, 12)))
    add_person(conn, person("carol", "Carol", date_of_birth=date(1975, 5, 20)))
    create_relationship(conn, ParentChildDraft("alice", "carol"))
    create_relationship(conn, ParentChildDraft("bob", "carol"))
    create_relationship(conn, SpouseDraft("alice", "bob", start_date=date(1972, 6, 1)))
    return conn


class TestPersons:
    def test_round_trip(self, conn):
        stored = person(
            "p1",
            "Pat",
            last_name="Lee",
            gender=Gender.OTHER,
            date_of_birth=date(1980, 2, 29),
            birth_order=2,
        )
        add_person(conn, stored)
        assert get_person(conn, "p1") == stored
        assert list_persons(conn) == [stored]

    def test_missing_person(self, conn):
        with pytest.raises(PersonNotFound):
            get_person(conn, "nobody")

    def test_invalid_person_rejected(self, conn):
        with pytest.raises(InvalidPerson) as exc:
            add_person(conn, person("p1", ""))
        assert "first_name" in exc.value.errors
        assert list_persons(conn) == []

    def test_update(self, seeded):
        updated = update_person(seeded, "carol", last_name="Smith", birth_order=1)
        assert updated.last_name == "Smith"
        assert get_person(seeded, "carol").birth_order == 1

    def test_update_rejects_bad_fields(self, seeded):
        with pytest.raises(ValueError):
            update_person(seeded, "carol", id="other")
        with pytest.raises(ValueError):
            update_person(seeded, "carol", nickname="Caz")

    def test_delete_cascades(self, seeded):
        assert delete_person(seeded, "carol") == 2
        remaining = list_relationships(seeded)
        assert [r.type for r in remaining] == [RelationshipType.SPOUSE]
        with pytest.raises(PersonNotFound):
            delete_person(seeded, "carol")


class TestRelationships:
    def test_stored_with_dates(self, seeded):
        spouse = next(r for r in list_relationships(seeded) if r.type is RelationshipType.SPOUSE)
        assert spouse.start_date == date(1972, 6, 1)

    def test_metadata_round_trip(self, seeded):
        add_person(seeded, person("dan", "Dan"))
        created = create_relationship(
            seeded,
            SpouseDraft("carol", "dan", metadata={"ceremony": "civil"}),
        )
        stored = next(r for r in list_relationships(seeded) if r.id == created.id)
        assert stored.metadata == {"ceremony": "civil"}
        assert stored == created

    def test_rejected_relationship_not_stored(self, seeded):
        with pytest.raises(ValidationRejected):
            create_relationship(seeded, SpouseDraft("alice", "carol"))
        assert len(list_relationships(seeded)) == 3

    def test_self_relationship(self, seeded):
        with pytest.raises(InvalidRelationship):
            create_relationship(seeded, SpouseDraft("bob", "bob"))

    def test_warning_requires_confirmation(self, conn):
        add_person(conn, person("old", "Old", date_of_birth=date(1900, 1, 1)))
        add_person(conn, person("kid", "Kid", date_of_birth=date(1980, 1, 1)))
        with pytest.raises(ValidationWarning):
            create_relationship(conn, ParentChildDraft("old", "kid"))
        assert list_relationships(conn) == []
        rel = create_relationship(conn, ParentChildDraft("old", "kid"), confirm=True)
        assert list_relationships(conn) == [rel]

    def test_delete_relationship(self, seeded):
        rel = list_relationships(seeded)[0]
        delete_relationship(seeded, rel.id)
        assert rel not in list_relationships(seeded)
        with pytest.raises(RelationshipNotFound):
            delete_relationship(seeded, rel.id)

    def test_snapshot(self, seeded):
        snapshot = load_snapshot(seeded)
        assert list(snapshot.persons) == ["alice", "bob", "carol"]
        assert len(snapshot.relationships) == 3


class TestQuickAdd:
    def test_adds_person_and_relationship(self, seeded):
        kid = person("dave", "Dave", date_of_birth=date(2000, 1, 1))
        added, rel = quick_add_relative(seeded, kid, lambda pid: ParentChildDraft("carol", pid))
        assert added == kid
        assert (rel.person1_id, rel.person2_id) == ("carol", "dave")
        assert get_person(seeded, "dave") == kid

    def test_rolls_back_on_rejection(self, seeded):
        # Born two years after Carol: far too young to be her parent
        too_young = person("eve", "Eve", date_of_birth=date(1977, 1, 1))
        with pytest.raises(ValidationRejected):
            quick_add_relative(seeded, too_young, lambda pid: ParentChildDraft(pid, "carol"))
        with pytest.raises(PersonNotFound):
            get_person(seeded, "eve")
        assert len(list_relationships(seeded)) == 3


def test_family_groups(conn):
    group = FamilyGroup(id="g1", name="Smiths", description="Paternal side")
    add_family_group(conn, group)
    assert list_family_groups(conn) == [group]
