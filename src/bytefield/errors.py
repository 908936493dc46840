"""Error types raised while building byte field diagrams."""
from __future__ import annotations

from typing import Optional


class BytefieldError(ValueError):
    """Structured diagram error with stable code for CLI mapping."""

    code = "E_DIAGRAM"

    def __init__(self, message: str, *, code: Optional[str] = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code
        self.message = message

    def __str__(self) -> str:
        return self.message


class InvalidAttributeSpec(BytefieldError):
    """Raised when a value cannot be interpreted as an attribute spec."""

    code = "E_ATTR_SPEC"


class UnresolvedAttributeName(BytefieldError):
    """Raised when a named attribute spec is not registered."""

    code = "E_ATTR_NAME"


class InvalidRegistrationArgument(BytefieldError):
    code = "E_ATTR_REGISTER"


class UnrecognizedLabelType(BytefieldError):
    code = "E_LABEL_TYPE"


class HeaderIndexError(BytefieldError, IndexError):
    """Raised when column headers run out of labels before the row ends."""

    code = "E_HEADER_INDEX"


class ScriptError(BytefieldError):
    """Raised when a diagram script is malformed or uses a forbidden construct."""

    code = "E_SCRIPT"

    def __init__(
        self,
        message: str,
        *,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ) -> None:
        location = f" (line {line}, column {column})" if line is not None else ""
        super().__init__(message + location)
        self.line = line
        self.column = column


__all__ = [
    "BytefieldError",
    "HeaderIndexError",
    "InvalidAttributeSpec",
    "InvalidRegistrationArgument",
    "ScriptError",
    "UnrecognizedLabelType",
    "UnresolvedAttributeName",
]
