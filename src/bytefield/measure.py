"""Text measurement for checking that box labels fit inside their boxes."""
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from PIL import ImageFont

from .diagram import Diagram, PlacedLabel

DEFAULT_FONT_SIZE = 16.0
GENERIC_FONT_FALLBACKS = {
    "sans-serif": ["Helvetica", "Arial", "Liberation Sans", "DejaVu Sans"],
    "serif": ["Times New Roman", "Times", "Liberation Serif", "DejaVu Serif"],
    "monospace": [
        "Courier New",
        "Courier",
        "Liberation Mono",
        "DejaVu Sans Mono",
    ],
}


@dataclass
class LabelFit:
    text: str
    width: float
    available_width: float

    @property
    def overflow(self) -> float:
        return self.width - self.available_width


class TextMeasurer:
    """Caches Pillow fonts and measures rendered text widths."""

    FONT_DIRS = [
        Path("/System/Library/Fonts"),
        Path("/System/Library/Fonts/Supplemental"),
        Path("/Library/Fonts"),
        Path("~/Library/Fonts").expanduser(),
        Path("/usr/share/fonts"),
        Path("/usr/local/share/fonts"),
        Path("C:/Windows/Fonts"),
    ]

    def __init__(self) -> None:
        self._font_cache: Dict[Tuple[str, int], ImageFont.ImageFont] = {}
        self._font_paths: Dict[str, Optional[str]] = {}

    def font(self, size: float, family_list: Optional[str]) -> ImageFont.ImageFont:
        key_size = max(1, int(round(size)))
        families = [_strip_quotes(part.strip()) for part in (family_list or "").split(",")]
        families = [family for family in families if family]
        cache_key = (",".join(families).lower(), key_size)
        if cache_key in self._font_cache:
            return self._font_cache[cache_key]

        candidates: List[str] = []
        for family in families:
            for name in GENERIC_FONT_FALLBACKS.get(family.lower(), [family]):
                resolved = self._locate_font(name)
                if resolved:
                    candidates.append(resolved)
        candidates.append("DejaVuSans.ttf")

        font: Optional[ImageFont.ImageFont] = None
        for candidate in candidates:
            try:
                font = ImageFont.truetype(candidate, key_size)
                break
            except OSError:
                continue
        if font is None:
            font = ImageFont.load_default()
        self._font_cache[cache_key] = font
        return font

    def measure(self, text: str, size: float, family_list: Optional[str]) -> float:
        return float(self.font(size, family_list).getlength(text))

    def _locate_font(self, family: str) -> Optional[str]:
        key = family.lower()
        if key in self._font_paths:
            return self._font_paths[key]
        normalized = re.sub(r"[^a-z0-9]+", "", key)
        if not normalized:
            self._font_paths[key] = None
            return None
        aliases = {normalized, normalized + "mt", normalized + "psmt"}
        best_match: Optional[Tuple[int, str]] = None
        for directory in self.FONT_DIRS:
            if not directory.is_dir():
                continue
            for path in directory.rglob("*.ttf"):
                stem = re.sub(r"[^a-z0-9]+", "", path.stem.lower())
                if stem in aliases:
                    score = 0
                elif stem.startswith(normalized):
                    score = 1
                else:
                    continue
                if best_match is None or score < best_match[0]:
                    best_match = (score, str(path))
        resolved = best_match[1] if best_match else None
        self._font_paths[key] = resolved
        return resolved


_TEXT_MEASURER = TextMeasurer()


def measure_label(placed: PlacedLabel, measurer: Optional[TextMeasurer] = None) -> LabelFit:
    measurer = measurer or _TEXT_MEASURER
    label = placed.label
    text = label.text_content()
    size = _parse_length(label.attrs.get("font-size"), DEFAULT_FONT_SIZE)
    width = measurer.measure(text, size, label.attrs.get("font-family"))
    return LabelFit(text, width, placed.available_width)


def check_label_fit(diagram: Diagram, measurer: Optional[TextMeasurer] = None) -> List[LabelFit]:
    """Return the box labels wider than the boxes they were drawn in."""
    fits = [measure_label(placed, measurer) for placed in diagram.box_labels]
    return [fit for fit in fits if fit.overflow > 0]


def _strip_quotes(value: str) -> str:
    if (value.startswith('"') and value.endswith('"')) or (
        value.startswith("'") and value.endswith("'")
    ):
        return value[1:-1]
    return value


def _parse_length(value: object, default: float) -> float:
    if value is None:
        return default
    if isinstance(value, (int, float)):
        return float(value)
    match = re.match(r"^-?\d+(?:\.\d+)?", str(value))
    if match:
        return float(match.group(0))
    return default


__all__ = ["LabelFit", "TextMeasurer", "check_label_fit", "measure_label"]
