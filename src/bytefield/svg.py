"""Scene nodes and their serialization to SVG markup."""
from __future__ import annotations

import math
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

SVG_NS = "http://www.w3.org/2000/svg"
ET.register_namespace("", SVG_NS)


@dataclass
class Node:
    """One SVG element: tag, attribute map and ordered mixed content."""

    tag: str
    attrs: Dict[str, Any] = field(default_factory=dict)
    content: List[Union[str, "Node"]] = field(default_factory=list)

    def children(self) -> List["Node"]:
        return [item for item in self.content if isinstance(item, Node)]

    def text_content(self) -> str:
        return "".join(
            item.text_content() if isinstance(item, Node) else item for item in self.content
        )


def _q(tag: str) -> str:
    return f"{{{SVG_NS}}}{tag}"


def element(tag: str, attrs: Optional[Mapping[str, Any]] = None, *content: Any) -> Node:
    return Node(tag, dict(attrs or {}), [_content_item(item) for item in content])


def _kw(attrs: Mapping[str, Any]) -> Dict[str, Any]:
    # Keyword arguments spell SVG attributes with underscores: stroke_width, class_.
    return {key.rstrip("_").replace("_", "-"): value for key, value in attrs.items()}


def _content_item(item: Any) -> Union[str, Node]:
    return item if isinstance(item, Node) else str(item)


def merge_attrs(node: Node, attrs: Mapping[str, Any]) -> Node:
    return Node(node.tag, {**node.attrs, **attrs}, list(node.content))


def add_attrs(node: Node, **attrs: Any) -> Node:
    return merge_attrs(node, _kw(attrs))


def get_attrs(node: Node) -> Dict[str, Any]:
    return dict(node.attrs)


def get_content(node: Node) -> List[Union[str, Node]]:
    return list(node.content)


def set_content(node: Node, *content: Any) -> Node:
    return Node(node.tag, dict(node.attrs), [_content_item(item) for item in content])


def add_content(node: Node, *content: Any) -> Node:
    return Node(
        node.tag, dict(node.attrs), list(node.content) + [_content_item(item) for item in content]
    )


def line(x1: float, y1: float, x2: float, y2: float, **attrs: Any) -> Node:
    return element("line", {"x1": x1, "y1": y1, "x2": x2, "y2": y2, **_kw(attrs)})


def rect(x: float, y: float, width: float, height: float, **attrs: Any) -> Node:
    return element("rect", {"x": x, "y": y, "width": width, "height": height, **_kw(attrs)})


def circle(cx: float, cy: float, r: float, **attrs: Any) -> Node:
    return element("circle", {"cx": cx, "cy": cy, "r": r, **_kw(attrs)})


def ellipse(cx: float, cy: float, rx: float, ry: float, **attrs: Any) -> Node:
    return element("ellipse", {"cx": cx, "cy": cy, "rx": rx, "ry": ry, **_kw(attrs)})


def path(d: str, **attrs: Any) -> Node:
    return element("path", {"d": d, **_kw(attrs)})


def polygon(*points: Any, **attrs: Any) -> Node:
    coords = " ".join(f"{_fmt(x)},{_fmt(y)}" for x, y in points)
    return element("polygon", {"points": coords, **_kw(attrs)})


def text(content: Any, **attrs: Any) -> Node:
    return element("text", _kw(attrs), content)


def tspan(content: Any, **attrs: Any) -> Node:
    return element("tspan", _kw(attrs), content)


def group(*content: Any, **attrs: Any) -> Node:
    return element("g", _kw(attrs), *content)


def to_element(node: Node) -> ET.Element:
    elem = ET.Element(_q(node.tag), _attr_strings(node.attrs))
    last: Optional[ET.Element] = None
    for item in node.content:
        if isinstance(item, Node):
            last = to_element(item)
            elem.append(last)
        elif last is None:
            elem.text = (elem.text or "") + item
        else:
            last.tail = (last.tail or "") + item
    return elem


def _attr_strings(attrs: Mapping[str, Any]) -> Dict[str, str]:
    return {
        str(key): _attr_value(value)
        for key, value in attrs.items()
        if value is not None
    }


def _attr_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return _fmt(value)
    return str(value)


def document(width: float, height: float, body: List[Node]) -> str:
    root = ET.Element(_q("svg"), {"width": _fmt(width), "height": _fmt(height)})
    for node in body:
        root.append(to_element(node))
    return _pretty_xml(root)


def _pretty_xml(root: ET.Element) -> str:
    # Only top-level children are indented; whitespace inside <text> would render.
    children = list(root)
    if children:
        root.text = "\n  "
        for child in children:
            child.tail = "\n  "
        children[-1].tail = "\n"
    return ET.tostring(root, encoding="unicode") + "\n"


def _fmt(value: float) -> str:
    if isinstance(value, int):
        return str(value)
    if math.isfinite(value) and math.isclose(value, round(value)):
        return str(int(round(value)))
    return f"{value:.3f}".rstrip("0").rstrip(".")


__all__ = [
    "Node",
    "SVG_NS",
    "add_attrs",
    "add_content",
    "circle",
    "document",
    "element",
    "ellipse",
    "get_attrs",
    "get_content",
    "group",
    "line",
    "merge_attrs",
    "path",
    "polygon",
    "rect",
    "set_content",
    "text",
    "to_element",
    "tspan",
]
