"""Byte field diagram scripts to SVG, and SVG to PNG."""
from __future__ import annotations

from typing import Optional

from .diagram import Diagram, LayoutState
from .script import DEFAULT_MAX_STEPS, run_script


def build_diagram(
    source: str,
    *,
    state: Optional[LayoutState] = None,
    max_steps: int = DEFAULT_MAX_STEPS,
) -> Diagram:
    """Run a diagram script against a fresh diagram and return it."""
    diagram = Diagram(state=state or LayoutState())
    return run_script(diagram, source, max_steps=max_steps)


def generate(source: str, *, max_steps: int = DEFAULT_MAX_STEPS) -> str:
    """Convert a diagram script to SVG text."""
    return build_diagram(source, max_steps=max_steps).emit()


def render_png(svg_text: str, *, scale: float = 1.0) -> bytes:
    import cairosvg

    return cairosvg.svg2png(bytestring=svg_text.encode("utf-8"), scale=scale)


__all__ = ["build_diagram", "generate", "render_png"]
