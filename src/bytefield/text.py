"""Builds styled text labels with arbitrarily nested tspan children."""
from __future__ import annotations

import math
from numbers import Integral, Real
from typing import Any, Iterable, List, Union

from .attributes import NamedAttributes, resolve
from .errors import UnrecognizedLabelType
from .svg import Node, add_attrs


def build_label(registry: NamedAttributes, label: Any, spec: Any = "plain", *content: Any) -> Node:
    """Build a ``text`` node starting with ``label``.

    Any list or tuple in ``content`` becomes a nested ``tspan``: its first
    element is the tspan's attribute spec and the rest is expanded the same
    way, to any depth. Other content items are appended as strings.
    """
    attrs = dict(resolve(spec, registry))
    return Node("text", attrs, [str(label)] + _expand(registry, content))


def build_span(registry: NamedAttributes, spec: Any, content: Iterable[Any]) -> Node:
    return Node("tspan", dict(resolve(spec, registry)), _expand(registry, content))


def _expand(registry: NamedAttributes, content: Iterable[Any]) -> List[Union[str, Node]]:
    expanded: List[Union[str, Node]] = []
    for item in content:
        if isinstance(item, (list, tuple)):
            nested_spec, nested = (item[0], item[1:]) if item else (None, ())
            expanded.append(build_span(registry, nested_spec, nested))
        elif isinstance(item, Node):
            expanded.append(item)
        else:
            expanded.append(str(item))
    return expanded


def hex_label(registry: NamedAttributes, n: Any, digits: int = 2, spec: Any = "hex") -> Node:
    """Format ``n`` as zero-padded lowercase hex, styled as ``hex`` plus ``spec``."""
    if not _is_integral(n):
        raise UnrecognizedLabelType(f"hex labels need a whole number, received: {n!r}")
    return build_label(registry, format(int(n), f"0{int(digits)}x"), ["hex", spec])


def format_box_label(registry: NamedAttributes, label: Any, span: Any) -> Node:
    if _is_number(label):
        return hex_label(registry, label, int(span * 2))
    if isinstance(label, Node):
        return label
    if isinstance(label, str):
        return build_label(registry, label)
    raise UnrecognizedLabelType(f"Don't know how to format box label: {label!r}")


def center_baseline(node: Node) -> Node:
    """Return ``node`` with every element in its tree vertically centered."""
    content = [center_baseline(item) if isinstance(item, Node) else item for item in node.content]
    centered = add_attrs(node, dominant_baseline="middle")
    centered.content = content
    return centered


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _is_integral(value: Any) -> bool:
    if not _is_number(value):
        return False
    return isinstance(value, Integral) or (math.isfinite(value) and value == math.floor(value))


__all__ = ["build_label", "build_span", "center_baseline", "format_box_label", "hex_label"]
