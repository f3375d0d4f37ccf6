"""NetworkX graph building and kinship queries."""

import logging

import networkx as nx

from models import Person, RelationshipType, Snapshot

logger = logging.getLogger(__name__)


def build_graph(snapshot: Snapshot) -> nx.MultiDiGraph:
    """
    Build a NetworkX multigraph from a snapshot.

    Every person becomes a node carrying the Person under the `person` attribute.
    Every relationship becomes an edge person1 -> person2 keyed by its
    RelationshipType, so a couple can be both SPOUSE and SIBLING without the
    edges overwriting each other. Edges pointing at a person that is not in the
    snapshot (deleted, or a corrupt import) are dropped.
    """
    G = nx.MultiDiGraph()

    for person in snapshot.persons.values():
        G.add_node(person.id, person=person)

    for rel in snapshot.relationships:
        if rel.person1_id not in G or rel.person2_id not in G:
            logger.debug(
                "Dropping relationship %s: endpoint missing (%s -> %s)",
                rel.id,
                rel.person1_id,
                rel.person2_id,
            )
            continue
        G.add_edge(
            rel.person1_id,
            rel.person2_id,
            key=rel.type,
            relationship_id=rel.id,
            start_date=rel.start_date,
            end_date=rel.end_date,
        )

    return G


def get_person(G: nx.MultiDiGraph, person_id: str) -> Person | None:
    if person_id not in G:
        return None
    return G.nodes[person_id]["person"]


def _parent_ids(G: nx.MultiDiGraph, person_id: str) -> list[str]:
    # PARENT_CHILD edges go from parent -> child, so parents are predecessors
    return [
        parent
        for parent in G.predecessors(person_id)
        if G.has_edge(parent, person_id, key=RelationshipType.PARENT_CHILD)
    ]


def _child_ids(G: nx.MultiDiGraph, person_id: str) -> list[str]:
    return [
        child
        for child in G.successors(person_id)
        if G.has_edge(person_id, child, key=RelationshipType.PARENT_CHILD)
    ]


def get_parents(G: nx.MultiDiGraph, person_id: str) -> list[Person]:
    """Return the recorded parents of a person, in no particular order."""
    if person_id not in G:
        return []
    return [G.nodes[p]["person"] for p in _parent_ids(G, person_id)]


def _sibling_sort_key(person: Person) -> tuple:
    # Anyone with a birth order comes first, then anyone with a birth date.
    if person.birth_order is not None:
        return (0, person.birth_order)
    if person.date_of_birth is not None:
        return (1, person.date_of_birth)
    return (2,)


def get_children(G: nx.MultiDiGraph, person_id: str) -> list[Person]:
    """
    Return the children of a person, eldest first.

    Children are sorted by birth_order, then by date of birth. A child with a
    birth_order always precedes one without, and a dated child always precedes an
    undated one. The sort is stable, so children with neither keep the order their
    relationships were recorded in. Layout relies on this for left-to-right order.
    """
    if person_id not in G:
        return []
    children = [G.nodes[c]["person"] for c in _child_ids(G, person_id)]
    return sorted(children, key=_sibling_sort_key)


def get_spouses(G: nx.MultiDiGraph, person_id: str) -> list[Person]:
    """Return spouses linked in either direction."""
    if person_id not in G:
        return []

    spouse_ids: list[str] = []
    for neighbor in G.successors(person_id):
        if G.has_edge(person_id, neighbor, key=RelationshipType.SPOUSE):
            spouse_ids.append(neighbor)
    for neighbor in G.predecessors(person_id):
        if G.has_edge(neighbor, person_id, key=RelationshipType.SPOUSE):
            spouse_ids.append(neighbor)

    return [G.nodes[s]["person"] for s in dict.fromkeys(spouse_ids)]


def get_siblings(G: nx.MultiDiGraph, person_id: str) -> list[Person]:
    """
    Return everyone sharing at least one recorded parent with the person.

    Explicit SIBLING edges are not consulted here; they are a separate fact that
    only the validator uses.
    """
    siblings: dict[str, Person] = {}
    for parent in get_parents(G, person_id):
        for child in get_children(G, parent.id):
            if child.id != person_id:
                siblings.setdefault(child.id, child)
    return list(siblings.values())


def are_declared_siblings(G: nx.MultiDiGraph, a: str, b: str) -> bool:
    """True if an explicit SIBLING edge joins a and b in either order."""
    return G.has_edge(a, b, key=RelationshipType.SIBLING) or G.has_edge(
        b, a, key=RelationshipType.SIBLING
    )


def is_ancestor(G: nx.MultiDiGraph, candidate_id: str, person_id: str) -> bool:
    """
    Return True if `candidate_id` is `person_id` or one of its ancestors.

    Walks the parent-of relation with an explicit stack. Each person is expanded
    at most once, so cyclic data terminates with False instead of looping.
    """
    if candidate_id == person_id:
        return True
    if candidate_id not in G or person_id not in G:
        return False

    visited: set[str] = set()
    stack = [person_id]
    while stack:
        current = stack.pop()
        if current in visited:
            continue
        visited.add(current)
        for parent in _parent_ids(G, current):
            if parent == candidate_id:
                return True
            if parent not in visited:
                stack.append(parent)

    return False


def find_roots(G: nx.MultiDiGraph) -> list[str]:
    """Return ids of persons with no recorded parents, in snapshot order."""
    return [n for n in G.nodes if not _parent_ids(G, n)]
