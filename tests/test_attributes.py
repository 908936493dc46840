from __future__ import annotations

import sys
import unittest
from pathlib import Path

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = TESTS_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from bytefield.attributes import (
    DEFAULT_NAMED_ATTRIBUTES,
    EMPTY,
    Composite,
    Direct,
    Named,
    NamedAttributes,
    as_spec,
    resolve,
)
from bytefield.errors import (
    InvalidAttributeSpec,
    InvalidRegistrationArgument,
    UnresolvedAttributeName,
)


class ResolveTests(unittest.TestCase):
    def setUp(self) -> None:
        self.registry = NamedAttributes()

    def test_empty_resolves_to_empty_map(self) -> None:
        self.assertEqual(resolve(EMPTY, self.registry), {})
        self.assertEqual(resolve(None, self.registry), {})

    def test_direct_map_is_returned_unchanged(self) -> None:
        attrs = {"fill": "red", "span": 2}
        self.assertIs(resolve(attrs, self.registry), attrs)
        self.assertIs(resolve(Direct(attrs), self.registry), attrs)

    def test_named_lookup(self) -> None:
        self.assertEqual(resolve("bold", self.registry), {"font-weight": "bold"})
        self.assertEqual(resolve(Named("dotted"), self.registry), {"stroke-dasharray": "1,1"})

    def test_unknown_name_fails(self) -> None:
        with self.assertRaises(UnresolvedAttributeName) as ctx:
            resolve("no-such-style", self.registry)
        self.assertEqual(ctx.exception.code, "E_ATTR_NAME")
        self.assertIn("no-such-style", str(ctx.exception))

    def test_registered_name_resolves_to_registered_map(self) -> None:
        attrs = {"fill": "#ccc"}
        self.registry.register("shaded", attrs)
        self.assertIs(resolve("shaded", self.registry), attrs)

    def test_registration_overwrites_without_caching(self) -> None:
        self.registry.register("shade", {"fill": "red"})
        self.assertEqual(resolve(["shade"], self.registry), {"fill": "red"})
        self.registry.register("shade", {"fill": "blue"})
        self.assertEqual(resolve(["shade"], self.registry), {"fill": "blue"})

    def test_composite_last_write_wins(self) -> None:
        a = {"x": 1}
        b = {"x": 2}
        self.assertEqual(resolve([a, b], self.registry), {"x": 2})
        self.assertEqual(resolve([b, a], self.registry), {"x": 1})

    def test_composite_merges_nested_specs_left_to_right(self) -> None:
        result = resolve(["hex", [{"font-size": 12}, "bold"]], self.registry)
        self.assertEqual(
            result,
            {"font-size": 12, "font-family": "Courier New, monospace", "font-weight": "bold"},
        )

    def test_composite_does_not_deep_merge(self) -> None:
        result = resolve([{"borders": {"left", "top"}}, "box-related"], self.registry)
        self.assertEqual(result["borders"], frozenset({"top", "bottom"}))

    def test_composite_result_is_a_new_map(self) -> None:
        attrs = {"fill": "red"}
        result = resolve([attrs], self.registry)
        self.assertEqual(result, attrs)
        self.assertIsNot(result, attrs)

    def test_empty_composite(self) -> None:
        self.assertEqual(resolve([], self.registry), {})
        self.assertEqual(resolve(Composite(()), self.registry), {})

    def test_invalid_specs_fail(self) -> None:
        for bad in (42, 1.5, object(), ["bold", 7]):
            with self.subTest(bad=bad):
                with self.assertRaises(InvalidAttributeSpec):
                    resolve(bad, self.registry)


class AsSpecTests(unittest.TestCase):
    def test_conversions(self) -> None:
        self.assertEqual(as_spec(None), EMPTY)
        self.assertEqual(as_spec({"a": 1}), Direct({"a": 1}))
        self.assertEqual(as_spec("hex"), Named("hex"))
        self.assertEqual(
            as_spec(["hex", {"a": 1}, None]),
            Composite((Named("hex"), Direct({"a": 1}), EMPTY)),
        )
        self.assertEqual(as_spec(("bold",)), Composite((Named("bold"),)))

    def test_existing_variant_passes_through(self) -> None:
        spec = Named("plain")
        self.assertIs(as_spec(spec), spec)


class NamedAttributesTests(unittest.TestCase):
    def test_defaults_are_seeded(self) -> None:
        registry = NamedAttributes()
        for key in (
            "hex",
            "plain",
            "math",
            "sub",
            "bold",
            "dotted",
            "box-first",
            "box-related",
            "box-last",
            "box-above",
            "box-below",
        ):
            self.assertIn(key, registry)
        self.assertEqual(registry.lookup("box-first")["borders"], frozenset({"left", "top", "bottom"}))

    def test_rejects_non_symbolic_key(self) -> None:
        registry = NamedAttributes()
        for key in (5, "two words", "", None, "9lives"):
            with self.subTest(key=key):
                with self.assertRaises(InvalidRegistrationArgument):
                    registry.register(key, {})

    def test_rejects_non_mapping_value(self) -> None:
        registry = NamedAttributes()
        with self.assertRaises(InvalidRegistrationArgument) as ctx:
            registry.register("ok", [("fill", "red")])
        self.assertEqual(ctx.exception.code, "E_ATTR_REGISTER")

    def test_registries_are_isolated(self) -> None:
        first = NamedAttributes()
        second = NamedAttributes()
        first.register("hex", {"font-size": 9})
        first.register("custom", {"fill": "red"})
        self.assertEqual(second.lookup("hex")["font-size"], 18)
        self.assertNotIn("custom", second)
        self.assertEqual(DEFAULT_NAMED_ATTRIBUTES["hex"]["font-size"], 18)


if __name__ == "__main__":
    unittest.main()
