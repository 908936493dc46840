from __future__ import annotations

import sys
import unittest
from fractions import Fraction
from pathlib import Path

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = TESTS_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from bytefield.attributes import NamedAttributes
from bytefield.errors import UnrecognizedLabelType
from bytefield.svg import Node
from bytefield.text import build_label, build_span, center_baseline, format_box_label, hex_label

PLAIN = {"font-size": 18, "font-family": "Palatino, Georgia, Times New Roman, serif"}
HEX = {"font-size": 18, "font-family": "Courier New, monospace"}


class BuildLabelTests(unittest.TestCase):
    def setUp(self) -> None:
        self.registry = NamedAttributes()

    def test_defaults_to_plain_style(self) -> None:
        label = build_label(self.registry, "Length")
        self.assertEqual(label.tag, "text")
        self.assertEqual(label.attrs, PLAIN)
        self.assertEqual(label.content, ["Length"])

    def test_explicit_none_spec_means_no_attributes(self) -> None:
        self.assertEqual(build_label(self.registry, "x", None).attrs, {})

    def test_non_string_content_is_stringified(self) -> None:
        label = build_label(self.registry, 7, "plain", 8, " and ", 9.5)
        self.assertEqual(label.content, ["7", "8", " and ", "9.5"])

    def test_nested_sequences_become_spans(self) -> None:
        self.registry.register("outer", {"fill": "red"})
        self.registry.register("inner", {"font-weight": "bold"})
        label = build_label(self.registry, "X", "math", "Y", ["outer", "Z", ["inner", "W"]])

        self.assertEqual(label.content[:2], ["X", "Y"])
        outer = label.content[2]
        self.assertIsInstance(outer, Node)
        self.assertEqual(outer.tag, "tspan")
        self.assertEqual(outer.attrs, {"fill": "red"})
        self.assertEqual(outer.content[0], "Z")
        inner = outer.content[1]
        self.assertEqual(inner.tag, "tspan")
        self.assertEqual(inner.attrs, {"font-weight": "bold"})
        self.assertEqual(inner.content, ["W"])
        self.assertEqual(label.text_content(), "XYZW")

    def test_nested_spec_may_be_composite_or_map(self) -> None:
        label = build_label(self.registry, "x", "math", (["sub", {"fill": "blue"}], "0"))
        span = label.content[1]
        self.assertEqual(span.attrs, {"font-size": "70%", "baseline-shift": "sub", "fill": "blue"})
        self.assertEqual(span.content, ["0"])

    def test_empty_sequence_is_an_empty_span(self) -> None:
        label = build_label(self.registry, "x", "plain", [])
        self.assertEqual(label.content[1], Node("tspan", {}, []))

    def test_build_span(self) -> None:
        span = build_span(self.registry, "bold", ["a", ["sub", "1"]])
        self.assertEqual(span.tag, "tspan")
        self.assertEqual(span.attrs, {"font-weight": "bold"})
        self.assertEqual(span.content[0], "a")
        self.assertEqual(span.content[1].attrs["baseline-shift"], "sub")

    def test_attributes_are_copied_from_registry(self) -> None:
        label = build_label(self.registry, "x")
        label.attrs["font-size"] = 1
        self.assertEqual(self.registry.lookup("plain")["font-size"], 18)


class HexLabelTests(unittest.TestCase):
    def setUp(self) -> None:
        self.registry = NamedAttributes()

    def test_two_digits_by_default(self) -> None:
        label = hex_label(self.registry, 0x41)
        self.assertEqual(label.content, ["41"])
        self.assertEqual(label.attrs, HEX)

    def test_zero_padding_and_lowercase(self) -> None:
        self.assertEqual(hex_label(self.registry, 0xAB, 4).content, ["00ab"])
        self.assertEqual(hex_label(self.registry, 0x12345, 2).content, ["12345"])

    def test_whole_valued_reals_are_accepted(self) -> None:
        self.assertEqual(hex_label(self.registry, 65.0).content, ["41"])
        self.assertEqual(hex_label(self.registry, Fraction(255, 1)).content, ["ff"])

    def test_fractional_numbers_are_rejected(self) -> None:
        for bad in (65.9, Fraction(1, 2), float("inf"), float("nan"), "41", True):
            with self.subTest(bad=bad):
                with self.assertRaises(UnrecognizedLabelType):
                    hex_label(self.registry, bad)

    def test_override_spec_wins_over_hex_style(self) -> None:
        label = hex_label(self.registry, 1, 2, {"font-size": 12})
        self.assertEqual(label.attrs["font-size"], 12)
        self.assertEqual(label.attrs["font-family"], "Courier New, monospace")


class FormatBoxLabelTests(unittest.TestCase):
    def setUp(self) -> None:
        self.registry = NamedAttributes()

    def test_number_uses_two_digits_per_cell(self) -> None:
        self.assertEqual(format_box_label(self.registry, 0x41, 1).content, ["41"])
        self.assertEqual(format_box_label(self.registry, 0x41, 2).content, ["0041"])
        self.assertEqual(format_box_label(self.registry, Fraction(10), 1).content, ["0a"])

    def test_node_is_used_unchanged(self) -> None:
        node = build_label(self.registry, "pre-built", "math")
        self.assertIs(format_box_label(self.registry, node, 3), node)

    def test_string_uses_plain_style(self) -> None:
        label = format_box_label(self.registry, "Type", 1)
        self.assertEqual(label.attrs, PLAIN)
        self.assertEqual(label.content, ["Type"])

    def test_other_types_fail(self) -> None:
        for bad in (True, [1, 2], {"a": 1}, 2j, object(), 65.9):
            with self.subTest(bad=bad):
                with self.assertRaises(UnrecognizedLabelType):
                    format_box_label(self.registry, bad, 1)


class CenterBaselineTests(unittest.TestCase):
    def test_every_node_is_centered_and_input_is_untouched(self) -> None:
        registry = NamedAttributes()
        label = build_label(registry, "a", "plain", ["bold", "b", ["sub", "c"]])
        centered = center_baseline(label)

        nodes = [centered]
        seen = 0
        while nodes:
            node = nodes.pop()
            seen += 1
            self.assertEqual(node.attrs["dominant-baseline"], "middle")
            nodes.extend(node.children())
        self.assertEqual(seen, 3)
        self.assertEqual(centered.text_content(), "abc")
        self.assertNotIn("dominant-baseline", label.attrs)
        self.assertNotIn("dominant-baseline", label.content[1].attrs)


if __name__ == "__main__":
    unittest.main()
