"""Public API for bytefield."""
from .bytefield import build_diagram, generate, render_png
from .diagram import Diagram, LayoutState
from .errors import (
    BytefieldError,
    HeaderIndexError,
    InvalidAttributeSpec,
    InvalidRegistrationArgument,
    ScriptError,
    UnrecognizedLabelType,
    UnresolvedAttributeName,
)

__all__ = [
    "BytefieldError",
    "Diagram",
    "HeaderIndexError",
    "InvalidAttributeSpec",
    "InvalidRegistrationArgument",
    "LayoutState",
    "ScriptError",
    "UnrecognizedLabelType",
    "UnresolvedAttributeName",
    "build_diagram",
    "generate",
    "render_png",
]
