"""Shared fixtures: small families used across the test modules."""

from datetime import date

import pytest

from graph import build_graph
from models import Gender, Person, Relationship, RelationshipType, Snapshot


def person(pid: str, first_name: str, **kwargs) -> Person:
    return Person(id=pid, first_name=first_name, **kwargs)


def rel(rid: str, rel_type: RelationshipType, person1_id: str, person2_id: str) -> Relationship:
    return Relationship(id=rid, type=rel_type, person1_id=person1_id, person2_id=person2_id)


@pytest.fixture
def family_snapshot():
    """Alice and Bob are married; Carol is their only child and is married to Dan."""
    persons = [
        person("alice", "Alice", gender=Gender.FEMALE, date_of_birth=date(1950, 3, 1)),
        person("bob", "Bob", gender=Gender.MALE, date_of_birth=date(1948, 7, 12)),
        person("carol", "Carol", gender=Gender.FEMALE, date_of_birth=date(1975, 5, 20)),
        person("dan", "Dan", gender=Gender.MALE),
    ]
    relationships = [
        rel("r1", RelationshipType.PARENT_CHILD, "alice", "carol"),
        rel("r2", RelationshipType.PARENT_CHILD, "bob", "carol"),
        rel("r3", RelationshipType.SPOUSE, "alice", "bob"),
        rel("r4", RelationshipType.SPOUSE, "carol", "dan"),
    ]
    return Snapshot.of(persons, relationships)


@pytest.fixture
def family(family_snapshot):
    return build_graph(family_snapshot)


@pytest.fixture
def chain_snapshot():
    """Three generations: A is the parent of B, who is the parent of C."""
    persons = [person("a", "Ann"), person("b", "Ben"), person("c", "Cid")]
    relationships = [
        rel("ab", RelationshipType.PARENT_CHILD, "a", "b"),
        rel("bc", RelationshipType.PARENT_CHILD, "b", "c"),
    ]
    return Snapshot.of(persons, relationships)


@pytest.fixture
def chain(chain_snapshot):
    return build_graph(chain_snapshot)
