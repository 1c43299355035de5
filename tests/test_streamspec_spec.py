from __future__ import annotations

import unittest

from streamspec.errors import SpecError
from streamspec.spec import (
    Accessor,
    FieldRef,
    Scale,
    Spec,
    Streaming,
    Temporal,
    as_field,
    ensure_spec,
    merge_scales,
    spec_from_dict,
)


class SpecFromDictTests(unittest.TestCase):
    def test_full_payload(self) -> None:
        fn = lambda row: row["v"]  # noqa: E731
        spec = spec_from_dict(
            {
                "marks": [
                    {
                        "type": "line",
                        "encode": {"x": "t", "y": fn, "shape": None},
                        "scales": {"y": {"type": "linear", "nice": True, "zero": True}},
                        "transforms": [{"type": "stackY", "orderBy": "v"}],
                        "tooltip": False,
                    }
                ],
                "scales": {"x": {"type": "time", "mask": "HH:mm"}},
                "coordinate": {"type": "polar", "transforms": [{"type": "transpose"}], "innerRadius": 0.3},
                "axes": {"x": {"title": "Time", "grid": True}, "y": False},
                "legend": False,
                "tooltip": {"title": "T", "items": [{"field": "v", "name": "Value"}]},
                "annotations": [{"type": "lineY", "value": 5, "label": "limit"}],
                "interactions": [{"type": "tooltip", "shared": True}],
                "streaming": {"maxItems": 50, "mode": "replace", "throttle": 200},
                "temporal": {"mode": "key", "field": "ts", "keyField": "id"},
                "theme": "light",
                "themeOverrides": {"text": "#000000"},
                "animate": False,
            }
        )
        mark = spec.marks[0]
        self.assertEqual(mark.encode["x"], FieldRef("t"))
        self.assertEqual(mark.encode["y"], Accessor(fn))
        self.assertNotIn("shape", mark.encode)
        self.assertEqual(mark.scales["y"].options, {"zero": True})
        self.assertEqual(mark.transforms[0].options, {"orderBy": "v"})
        self.assertIs(mark.tooltip, False)
        self.assertEqual(spec.scales["x"], Scale(type="time", mask="HH:mm"))
        assert spec.coordinate is not None
        self.assertEqual(spec.coordinate.options, {"innerRadius": 0.3})
        assert spec.axes is not None
        self.assertIs(spec.axes.y, False)
        self.assertIs(spec.legend, False)
        self.assertEqual(spec.streaming, Streaming(max_items=50, mode="replace", throttle=200))
        self.assertEqual(spec.temporal, Temporal(mode="key", field="ts", key_field="id"))
        self.assertEqual(spec.theme_overrides, {"text": "#000000"})
        self.assertEqual(spec.interactions[0].options, {"shared": True})

    def test_snake_case_aliases(self) -> None:
        spec = spec_from_dict(
            {
                "streaming": {"max_items": 5},
                "temporal": {"mode": "key", "field": "ts", "key_field": "id"},
            }
        )
        assert spec.streaming is not None and spec.temporal is not None
        self.assertEqual(spec.streaming.max_items, 5)
        self.assertEqual(spec.temporal.key_field, "id")

    def test_errors_name_the_offending_path(self) -> None:
        cases = [
            ({"marks": {}}, "marks must be a list"),
            ({"marks": [{"encode": {}}]}, "marks[0].type"),
            ({"marks": [{"type": "line", "encode": {"x": 3}}]}, "marks[0].encode.x"),
            ({"temporal": {"mode": "window", "field": "t"}}, "temporal.mode"),
            ({"temporal": {"mode": "axis"}}, "temporal.field"),
            ({"streaming": {"maxItems": "many"}}, "streaming.maxItems"),
            ({"theme": "sepia"}, "theme"),
            ({"axes": {"x": {"title": 4}}}, "axes.x.title"),
        ]
        for payload, fragment in cases:
            with self.subTest(payload=payload):
                with self.assertRaises(SpecError) as ctx:
                    spec_from_dict(payload)
                self.assertIn(fragment, str(ctx.exception))

    def test_dataclass_validation_surfaces_as_spec_error(self) -> None:
        with self.assertRaises(SpecError):
            spec_from_dict({"streaming": {"maxItems": 0}})
        with self.assertRaises(SpecError):
            spec_from_dict({"temporal": {"mode": "axis", "field": "t", "range": -5}})

    def test_spec_error_is_value_error(self) -> None:
        with self.assertRaises(ValueError):
            spec_from_dict({"marks": "line"})

    def test_ensure_spec_passes_spec_through(self) -> None:
        spec = Spec()
        self.assertIs(ensure_spec(spec), spec)
        self.assertIsInstance(ensure_spec({}), Spec)


class GrammarTests(unittest.TestCase):
    def test_as_field_dispatch(self) -> None:
        self.assertEqual(as_field("x"), FieldRef("x"))
        self.assertIsInstance(as_field(len), Accessor)
        with self.assertRaises(SpecError):
            as_field(1.5)

    def test_field_resolution(self) -> None:
        row = {"v": 3}
        self.assertEqual(FieldRef("v").resolve(row), 3)
        self.assertIsNone(FieldRef("w").resolve(row))
        self.assertEqual(Accessor(lambda r: r["v"] + 1).resolve(row), 4)

    def test_merge_scales_is_shallow_and_mark_wins(self) -> None:
        base = {"x": Scale(type="time", nice=True), "y": Scale(type="linear")}
        merged = merge_scales(base, {"x": Scale(type="linear")})
        self.assertEqual(merged["x"], Scale(type="linear"))
        self.assertEqual(merged["y"], Scale(type="linear"))
        self.assertEqual(base["x"].type, "time")
        self.assertEqual(merge_scales(None, None), {})

    def test_unbounded_ranges(self) -> None:
        self.assertIsNone(Temporal(mode="axis", field="t", range="Infinity").window_minutes)
        self.assertIsNone(Temporal(mode="axis", field="t", range=float("inf")).window_minutes)
        self.assertEqual(Temporal(mode="axis", field="t", range=5).window_minutes, 5.0)

    def test_spec_rejects_unknown_theme(self) -> None:
        with self.assertRaises(ValueError):
            Spec(theme="sepia")


if __name__ == "__main__":
    unittest.main()
