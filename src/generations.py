"""Generation numbering over the family graph."""

import logging

import networkx as nx

from graph import find_roots, get_children, get_spouses

logger = logging.getLogger(__name__)


def _assign_from(G: nx.MultiDiGraph, root_id: str, generations: dict[str, int]) -> None:
    """
    Depth-first walk from one root, writing into `generations`.

    A visited person keeps the smaller of its current and new generation, passes
    g + 1 to its children, and after all of its descendants have been walked gives
    g to any spouse that has no generation yet. Each person is expanded once per
    root, which bounds the walk on cyclic or reconverging data.
    """
    visited: set[str] = set()
    # ("visit", id, g) expands a person; ("spouses", id, g) runs once its children are done
    stack: list[tuple[str, str, int]] = [("visit", root_id, 0)]

    while stack:
        action, person_id, generation = stack.pop()

        if action == "spouses":
            for spouse in get_spouses(G, person_id):
                generations.setdefault(spouse.id, generation)
            continue

        if person_id in visited:
            logger.debug("Skipping %s: already visited from %s", person_id, root_id)
            continue
        visited.add(person_id)

        current = generations.get(person_id)
        if current is None or generation < current:
            generations[person_id] = generation

        stack.append(("spouses", person_id, generation))
        for child in reversed(get_children(G, person_id)):
            stack.append(("visit", child.id, generation + 1))


def compute_generations(G: nx.MultiDiGraph, root_id: str | None = None) -> dict[str, int]:
    """
    Assign a generation number to every person reachable from the root(s).

    With `root_id`, the walk starts there at generation 0. Without it, every person
    with no recorded parents is an independent root at generation 0 and the lowest
    number seen for each person wins. The returned dict is ordered by discovery,
    which follows eldest-first child order. Persons that are not reached (including
    ancestors of an explicit root) are absent; see `generation_of`.
    """
    generations: dict[str, int] = {}

    if root_id is not None:
        if root_id not in G:
            logger.warning("Root person %s not found; no generations assigned", root_id)
            return generations
        _assign_from(G, root_id, generations)
        return generations

    for root in find_roots(G):
        _assign_from(G, root, generations)

    return generations


def generation_of(generations: dict[str, int], person_id: str) -> int:
    """Generation of a person, defaulting to 0 for anyone the walk did not reach."""
    return generations.get(person_id, 0)
