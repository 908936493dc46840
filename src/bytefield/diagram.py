"""Cursor-based layout of byte field diagrams.

A :class:`Diagram` owns everything one generation needs: the geometry and
cursor (:class:`LayoutState`), the named attribute registry, and the ordered
scene. Drawing calls read the cursor, append nodes to the scene in call order
and advance the cursor; nothing is shared between diagrams.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from . import svg
from .attributes import ALL_BORDERS, MONO_FAMILY, NamedAttributes, resolve
from .errors import HeaderIndexError
from .svg import Node
from .text import build_label, build_span, center_baseline, format_box_label, hex_label

DEFAULT_COLUMN_LABELS = tuple("0123456789abcdef")


@dataclass
class LayoutState:
    left_margin: float = 40
    right_margin: float = 1
    bottom_margin: float = 1
    box_width: float = 40
    boxes_per_row: int = 16
    row_height: float = 30

    # Column offset of the next box, and top of the row being drawn.
    box_index: float = 0
    diagram_y: float = 0

    @property
    def row_width(self) -> float:
        return self.box_width * self.boxes_per_row


GEOMETRY_FIELDS = (
    "left_margin",
    "right_margin",
    "bottom_margin",
    "box_width",
    "boxes_per_row",
    "row_height",
    "box_index",
    "diagram_y",
)


@dataclass
class PlacedLabel:
    """A box label as drawn, kept for fit checking."""

    label: Node
    available_width: float


@dataclass
class Diagram:
    state: LayoutState = field(default_factory=LayoutState)
    attributes: NamedAttributes = field(default_factory=NamedAttributes)
    scene: List[Node] = field(default_factory=list)
    box_labels: List[PlacedLabel] = field(default_factory=list)

    # Attribute specs and labels.

    def register_attrs(self, key: Any, attrs: Any) -> None:
        self.attributes.register(key, attrs)

    def resolve(self, spec: Any) -> Dict[str, Any]:
        return dict(resolve(spec, self.attributes))

    def build_label(self, label: Any, spec: Any = "plain", *content: Any) -> Node:
        return build_label(self.attributes, label, spec, *content)

    def build_span(self, spec: Any, content: Iterable[Any] = ()) -> Node:
        return build_span(self.attributes, spec, content)

    def hex_label(self, n: Any, digits: int = 2, spec: Any = "hex") -> Node:
        return hex_label(self.attributes, n, digits, spec)

    # Scene.

    def append_scene(self, node: Node) -> None:
        self.scene.append(node)

    def draw_line(self, x1: float, y1: float, x2: float, y2: float, spec: Any = None) -> None:
        options = self.resolve(spec)
        options.setdefault("stroke", "#000000")
        options.setdefault("stroke-width", 1)
        self.append_scene(svg.element("line", {**options, "x1": x1, "y1": y1, "x2": x2, "y2": y2}))

    def draw_column_headers(self, spec: Any = None) -> None:
        """Draw the row of column labels, by default the hex digits 0 to f.

        Accepts ``labels``, ``height`` (14), ``font-size`` (11) and
        ``font-family``; other text attributes are passed through.
        """
        options = self.resolve(spec)
        labels: Sequence[Any] = options.pop("labels", DEFAULT_COLUMN_LABELS)
        height = options.pop("height", 14)
        options.setdefault("font-size", 11)
        options.setdefault("font-family", MONO_FAMILY)
        state = self.state
        y = state.diagram_y + 0.5 * height
        for i in range(int(state.boxes_per_row)):
            try:
                label = labels[i]
            except IndexError:
                raise HeaderIndexError(
                    f"column header {i} is missing: {len(labels)} labels given for "
                    f"{state.boxes_per_row} boxes per row"
                ) from None
            x = state.left_margin + (i + 0.5) * state.box_width
            attrs = {
                **options,
                "x": x,
                "y": y,
                "dominant-baseline": "middle",
                "text-anchor": "middle",
            }
            self.append_scene(svg.element("text", attrs, label))
        state.diagram_y += height

    def draw_row_header(self, label: Any, spec: Any = None) -> None:
        """Draw ``label`` right-aligned in the left margin of the current row.

        A pre-built text node is positioned as-is; anything else is converted
        to a string and styled with a default ``font-size`` of 11.
        """
        options = self.resolve(spec)
        options.setdefault("font-size", 11)
        options.setdefault("font-family", MONO_FAMILY)
        options.setdefault("dominant-baseline", "middle")
        position = {
            "x": self.state.left_margin - 5,
            "y": self.state.diagram_y + 0.5 * self.state.row_height,
            "text-anchor": "end",
        }
        if isinstance(label, Node):
            placement = {
                **position,
                "dominant-baseline": options["dominant-baseline"],
                **{key: options[key] for key in ("x", "y", "text-anchor") if key in options},
            }
            self.append_scene(svg.merge_attrs(label, placement))
            return
        self.append_scene(svg.element("text", {**options, **position}, label))

    # Cursor.

    def next_row(self, height: Optional[float] = None) -> None:
        self.state.diagram_y += self.state.row_height if height is None else height
        self.state.box_index = 0

    def draw_box(self, label: Any = None, spec: Any = None) -> None:
        """Draw one box at the cursor and advance ``box_index`` by its span.

        ``label`` may be a number (hex, two digits per spanned cell), a string,
        a pre-built text node, or ``None``. Spec keys: ``span`` (1),
        ``borders`` (all four sides), ``fill`` and ``height`` (row height).
        """
        options = self.resolve(spec)
        state = self.state
        span = options.get("span", 1)
        borders = options.get("borders", ALL_BORDERS)
        fill = options.get("fill")
        height = options.get("height", state.row_height)

        left = state.left_margin + state.box_index * state.box_width
        width = span * state.box_width
        right = left + width
        top = state.diagram_y
        bottom = top + height

        if fill:
            self.append_scene(svg.rect(left, top, width, height, fill=fill))
        if "top" in borders:
            self.draw_line(left, top, right, top)
        if "bottom" in borders:
            self.draw_line(left, bottom, right, bottom)
        if "right" in borders:
            self.draw_line(right, top, right, bottom)
        if "left" in borders:
            self.draw_line(left, top, left, bottom)
        if label is not None:
            placed = svg.merge_attrs(
                format_box_label(self.attributes, label, span),
                {"x": (left + right) / 2.0, "y": top + 1 + height / 2.0, "text-anchor": "middle"},
            )
            placed = center_baseline(placed)
            self.append_scene(placed)
            self.box_labels.append(PlacedLabel(placed, width))
        state.box_index += span

    def draw_group_label_header(self, span: Any, label: Any) -> None:
        self.draw_box(
            self.build_label(label, ["math", {"font-size": 12}]),
            {"span": span, "borders": frozenset(), "height": 14},
        )

    def draw_gap(self, height: float = 70, gap: float = 10, edge: float = 15) -> None:
        """Draw a full-width discontinuity marker and advance by ``height``."""
        state = self.state
        y = state.diagram_y
        top = y + edge
        left = state.left_margin
        right = left + state.row_width
        bottom = y + height - edge
        self.draw_line(left, y, left, top)
        self.draw_line(right, y, right, top)
        self.draw_line(left, top, right, bottom - gap, "dotted")
        self.draw_line(right, y, right, bottom - gap)
        self.draw_line(left, top + gap, right, bottom, "dotted")
        self.draw_line(left, top + gap, left, bottom)
        self.draw_line(left, bottom, left, y + height)
        self.draw_line(right, bottom, right, y + height)
        state.diagram_y += height

    def draw_bottom(self) -> None:
        y = self.state.diagram_y
        left = self.state.left_margin
        self.draw_line(left, y, left + self.state.row_width, y)

    # Output.

    @property
    def width(self) -> float:
        return self.state.left_margin + self.state.right_margin + self.state.row_width

    @property
    def height(self) -> float:
        return self.state.diagram_y + self.state.bottom_margin

    def emit(self) -> str:
        return svg.document(self.width, self.height, self.scene)


__all__ = ["DEFAULT_COLUMN_LABELS", "Diagram", "GEOMETRY_FIELDS", "LayoutState", "PlacedLabel"]
