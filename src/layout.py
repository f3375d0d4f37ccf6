"""Deterministic tree layout and depth filtering for rendering."""

from dataclasses import dataclass, field, replace
from enum import Enum
import math

import networkx as nx

from generations import compute_generations, generation_of
from graph import build_graph, get_children, get_parents, get_spouses
from models import Person, RelationshipType, Snapshot

HORIZONTAL_SPACING = 250
VERTICAL_SPACING = 200


class Direction(str, Enum):
    VERTICAL = "TB"  # ancestors at top
    HORIZONTAL = "LR"  # ancestors at left


class EdgeKind(str, Enum):
    PARENT_CHILD = "parent_child"
    SPOUSE = "spouse"


@dataclass(frozen=True)
class PositionedNode:
    person: Person
    generation: int
    parents: list[Person] = field(default_factory=list)
    children: list[Person] = field(default_factory=list)
    spouses: list[Person] = field(default_factory=list)
    x: float = 0.0
    y: float = 0.0

    @property
    def id(self) -> str:
        return self.person.id


@dataclass(frozen=True)
class DisplayEdge:
    id: str
    source: str
    target: str
    kind: EdgeKind

    @property
    def directed(self) -> bool:
        return self.kind is EdgeKind.PARENT_CHILD


@dataclass(frozen=True)
class TreeLayout:
    nodes: list[PositionedNode]
    edges: list[DisplayEdge]

    def node_ids(self) -> set[str]:
        return {n.id for n in self.nodes}

    def to_dict(self) -> dict:
        return {
            "nodes": [
                {
                    "id": n.id,
                    "name": n.person.full_name,
                    "generation": n.generation,
                    "x": n.x,
                    "y": n.y,
                    "parents": [p.id for p in n.parents],
                    "children": [c.id for c in n.children],
                    "spouses": [s.id for s in n.spouses],
                }
                for n in self.nodes
            ],
            "edges": [
                {
                    "id": e.id,
                    "source": e.source,
                    "target": e.target,
                    "kind": e.kind.value,
                    "directed": e.directed,
                }
                for e in self.edges
            ],
        }


def _display_edge(u: str, v: str, rel_type: RelationshipType) -> DisplayEdge | None:
    match rel_type:
        case RelationshipType.PARENT_CHILD:
            return DisplayEdge(id=f"{u}-{v}", source=u, target=v, kind=EdgeKind.PARENT_CHILD)
        case RelationshipType.SPOUSE:
            return DisplayEdge(id=f"spouse-{u}-{v}", source=u, target=v, kind=EdgeKind.SPOUSE)
        case RelationshipType.SIBLING | RelationshipType.ADOPTED | RelationshipType.STEP:
            # Siblinghood is implied by shared parent edges
            return None
        case _:
            raise ValueError(f"Unsupported relationship type: {rel_type}")


def build_tree_elements(
    G: nx.MultiDiGraph, generations: dict[str, int]
) -> tuple[list[PositionedNode], list[DisplayEdge]]:
    """
    Materialize one node per person and one display edge per drawn relationship.

    Nodes come in the discovery order of `generations`, followed by everyone the
    generation walk did not reach in snapshot order. Positions are left at zero.
    """
    order = [pid for pid in generations if pid in G]
    seen = set(order)
    order.extend(pid for pid in G.nodes if pid not in seen)

    nodes = [
        PositionedNode(
            person=G.nodes[pid]["person"],
            generation=generation_of(generations, pid),
            parents=get_parents(G, pid),
            children=get_children(G, pid),
            spouses=get_spouses(G, pid),
        )
        for pid in order
    ]

    edges: list[DisplayEdge] = []
    for u, v, rel_type in G.edges(keys=True):
        edge = _display_edge(u, v, rel_type)
        if edge is not None:
            edges.append(edge)

    return nodes, edges


def apply_hierarchical_layout(
    nodes: list[PositionedNode],
    direction: Direction = Direction.VERTICAL,
    horizontal_spacing: float = HORIZONTAL_SPACING,
    vertical_spacing: float = VERTICAL_SPACING,
) -> list[PositionedNode]:
    """
    Position nodes in generation rows (or columns, for a horizontal layout).

    Within a generation nodes keep their input order and are spread evenly,
    centered on the origin. Generations are spaced evenly along the other axis,
    oldest first. Returns new nodes; the input is not modified.
    """
    generation_groups: dict[int, list[PositionedNode]] = {}
    for node in nodes:
        generation_groups.setdefault(node.generation, []).append(node)

    positioned: list[PositionedNode] = []
    for generation in sorted(generation_groups):
        nodes_in_gen = generation_groups[generation]
        depth_pos = generation * vertical_spacing
        count = len(nodes_in_gen)

        for index, node in enumerate(nodes_in_gen):
            breadth_pos = (index - count / 2) * horizontal_spacing + horizontal_spacing / 2
            if direction is Direction.VERTICAL:
                positioned.append(replace(node, x=breadth_pos, y=depth_pos))
            else:
                positioned.append(replace(node, x=depth_pos, y=breadth_pos))

    return positioned


def layout_tree(
    snapshot: Snapshot,
    root_id: str | None = None,
    direction: Direction = Direction.VERTICAL,
    horizontal_spacing: float = HORIZONTAL_SPACING,
    vertical_spacing: float = VERTICAL_SPACING,
) -> TreeLayout:
    """Build, number and position the whole tree for a snapshot."""
    G = build_graph(snapshot)
    generations = compute_generations(G, root_id)
    nodes, edges = build_tree_elements(G, generations)
    nodes = apply_hierarchical_layout(nodes, direction, horizontal_spacing, vertical_spacing)
    return TreeLayout(nodes=nodes, edges=edges)


def filter_by_depth(layout: TreeLayout, focus_id: str, max_depth: int) -> TreeLayout:
    """
    Restrict a layout to a window of generations around a focus person.

    Keeps generations from focus - floor(max_depth / 2) to focus + ceil(max_depth / 2)
    and only the edges whose endpoints both survive. An unknown focus returns the
    layout unchanged.
    """
    if max_depth < 0:
        raise ValueError(f"max_depth must be non-negative, got {max_depth}")

    focus = next((n for n in layout.nodes if n.id == focus_id), None)
    if focus is None:
        return layout

    min_generation = focus.generation - math.floor(max_depth / 2)
    max_generation = focus.generation + math.ceil(max_depth / 2)

    nodes = [n for n in layout.nodes if min_generation <= n.generation <= max_generation]
    kept = {n.id for n in nodes}
    edges = [e for e in layout.edges if e.source in kept and e.target in kept]
    return TreeLayout(nodes=nodes, edges=edges)
