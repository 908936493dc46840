"""Attribute specs: a small language for composing SVG attribute maps.

A spec is one of four shapes. ``Empty`` resolves to ``{}``, ``Direct`` to its
own map, ``Named`` to the map registered under its key, and ``Composite`` to
the left-to-right merge of its parts (later keys overwrite earlier ones).
Scripts supply raw Python values which ``as_spec`` converts: ``None``, a
``dict``, a ``str`` key, or a ``list``/``tuple`` of further specs.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from .errors import InvalidAttributeSpec, InvalidRegistrationArgument, UnresolvedAttributeName

Attrs = Dict[str, Any]

_SYMBOL_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")

ALL_BORDERS = frozenset({"left", "right", "top", "bottom"})

SERIF_FAMILY = "Palatino, Georgia, Times New Roman, serif"
MONO_FAMILY = "Courier New, monospace"

DEFAULT_NAMED_ATTRIBUTES: Dict[str, Attrs] = {
    "hex": {"font-size": 18, "font-family": MONO_FAMILY},
    "plain": {"font-size": 18, "font-family": SERIF_FAMILY},
    "math": {"font-size": 18, "font-family": SERIF_FAMILY, "font-style": "italic"},
    # Subscripts inside nested tspans.
    "sub": {"font-size": "70%", "baseline-shift": "sub"},
    "bold": {"font-weight": "bold"},
    "dotted": {"stroke-dasharray": "1,1"},
    # Open-sided boxes for groups of related cells and rows broken by a gap.
    "box-first": {"borders": frozenset({"left", "top", "bottom"})},
    "box-related": {"borders": frozenset({"top", "bottom"})},
    "box-last": {"borders": frozenset({"right", "top", "bottom"})},
    "box-above": {"borders": frozenset({"left", "right", "top"})},
    "box-below": {"borders": frozenset({"left", "right", "bottom"})},
}


@dataclass(frozen=True)
class Empty:
    pass


@dataclass(frozen=True)
class Direct:
    attrs: Mapping[str, Any]


@dataclass(frozen=True)
class Named:
    key: str


@dataclass(frozen=True)
class Composite:
    specs: Tuple["AttributeSpec", ...]


AttributeSpec = Union[Empty, Direct, Named, Composite]

EMPTY = Empty()


def is_symbol(value: Any) -> bool:
    return isinstance(value, str) and bool(_SYMBOL_RE.match(value))


def as_spec(raw: Any) -> AttributeSpec:
    """Convert a raw script value into a tagged attribute spec."""
    if isinstance(raw, (Empty, Direct, Named, Composite)):
        return raw
    if raw is None:
        return EMPTY
    if isinstance(raw, Mapping):
        return Direct(raw)
    if isinstance(raw, str):
        return Named(raw)
    if isinstance(raw, (list, tuple)):
        return Composite(tuple(as_spec(item) for item in raw))
    raise InvalidAttributeSpec(f"Invalid attribute spec: {raw!r}")


class NamedAttributes:
    """Registry of attribute maps that specs can refer to by key."""

    def __init__(self, initial: Optional[Mapping[str, Attrs]] = None) -> None:
        source = DEFAULT_NAMED_ATTRIBUTES if initial is None else initial
        self._table: Dict[str, Attrs] = {key: dict(value) for key, value in source.items()}

    def register(self, key: Any, attrs: Any) -> None:
        if not is_symbol(key):
            raise InvalidRegistrationArgument(
                f"first argument to register_attrs must be a symbolic name, received: {key!r}"
            )
        if not isinstance(attrs, Mapping):
            raise InvalidRegistrationArgument(
                f"second argument to register_attrs must be a dict, received: {attrs!r}"
            )
        self._table[key] = attrs

    def lookup(self, key: str) -> Attrs:
        try:
            return self._table[key]
        except KeyError:
            raise UnresolvedAttributeName(f"Could not resolve attribute spec: {key}") from None

    def __contains__(self, key: object) -> bool:
        return key in self._table

    def keys(self):
        return self._table.keys()


def resolve(spec: Any, registry: NamedAttributes) -> Mapping[str, Any]:
    """Expand ``spec`` into a single flat attribute map.

    ``Direct`` maps are returned as-is rather than copied, so callers must
    copy before mutating the result.
    """
    spec = as_spec(spec)
    if isinstance(spec, Empty):
        return {}
    if isinstance(spec, Direct):
        return spec.attrs
    if isinstance(spec, Named):
        return registry.lookup(spec.key)
    if isinstance(spec, Composite):
        merged: Attrs = {}
        for part in spec.specs:
            merged.update(resolve(part, registry))
        return merged
    raise InvalidAttributeSpec(f"Invalid attribute spec: {spec!r}")


__all__ = [
    "ALL_BORDERS",
    "AttributeSpec",
    "Composite",
    "DEFAULT_NAMED_ATTRIBUTES",
    "Direct",
    "EMPTY",
    "Empty",
    "MONO_FAMILY",
    "Named",
    "NamedAttributes",
    "as_spec",
    "is_symbol",
    "resolve",
]
