"""Hand-off of a positioned tree layout to Graphviz for rendering."""

from pathlib import Path

import pydot

from layout import TreeLayout
from models import Gender

# Layout coordinates are pixel-like; positions are written in points
POINTS_PER_UNIT = 0.5

# -n2 makes neato read pinned `pos` values as points instead of inches
NEATO_PROG = ["neato", "-n2"]


def _fillcolor(gender: Gender | None) -> str:
    if gender is Gender.MALE:
        return "lightblue"
    if gender is Gender.FEMALE:
        return "lightpink"
    return "lightgray"


def layout_to_dot(layout: TreeLayout) -> pydot.Dot:
    """
    Convert a positioned layout into a pydot graph with pinned node positions.

    Node positions are fixed (`pos="x,y!"`) so Graphviz draws the layout as
    computed instead of ranking it again. Layout y grows downwards and Graphviz y
    grows upwards, so y is negated.
    """
    P = pydot.Dot(graph_type="digraph")
    P.set("layout", "neato")
    P.set("splines", "line")
    P.set("outputorder", "edgesfirst")

    for node in layout.nodes:
        person = node.person
        birth_year = person.date_of_birth.year if person.date_of_birth else ""
        death_year = person.date_of_death.year if person.date_of_death else ""
        label = f"{person.first_name}\n{person.last_name or ''}\n{birth_year}-{death_year}"

        P.add_node(
            pydot.Node(
                node.id,
                label=label,
                shape="box",
                style="rounded,filled",
                fillcolor=_fillcolor(person.gender),
                fontsize="10",
                pos=f"{node.x * POINTS_PER_UNIT},{-node.y * POINTS_PER_UNIT}!",
            )
        )

    for edge in layout.edges:
        if edge.directed:
            P.add_edge(pydot.Edge(edge.source, edge.target, color="darkgray"))
        else:
            P.add_edge(
                pydot.Edge(
                    edge.source,
                    edge.target,
                    dir="none",
                    color="indianred",
                    penwidth="2",
                )
            )

    return P


def plot_layout(layout: TreeLayout, output_path: Path | None = None):
    """
    Render a positioned layout with Graphviz.

    Args:
        layout: Positioned nodes and display edges from `layout.layout_tree`
        output_path: Path to save the output image (png, svg or pdf). If None,
            displays interactively.
    """
    P = layout_to_dot(layout)

    if output_path:
        ext = output_path.suffix.lower().lstrip(".")
        if ext == "dot":
            P.write_raw(str(output_path))
            return
        if ext not in ("png", "svg", "pdf"):
            ext = "png"
        P.write(str(output_path), prog=NEATO_PROG, format=ext)
    else:
        import tempfile

        import matplotlib.image as mpimg
        import matplotlib.pyplot as plt

        with tempfile.NamedTemporaryFile(suffix=".png", delete=False) as f:
            P.write(f.name, prog=NEATO_PROG, format="png")
            img = mpimg.imread(f.name)
            plt.figure(figsize=(20, 16))
            plt.imshow(img)
            plt.axis("off")
            plt.tight_layout()
            plt.show()
