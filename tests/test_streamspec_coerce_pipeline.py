from __future__ import annotations

import datetime as dt
import unittest

from streamspec.coerce import coerce_time_fields, collect_time_fields
from streamspec.instants import EPOCH, MINUTE_MS, to_datetime
from streamspec.pipeline import build_options, sliding_domain
from streamspec.spec import FieldRef, Mark, Scale, Spec, Temporal
from streamspec.theme import theme_config

BASE = 1_700_000_000_000


def _minute_rows(count: int) -> list[dict[str, object]]:
    return [{"t": BASE + i * MINUTE_MS, "v": i} for i in range(count)]


def _line_spec(temporal: Temporal | None = None, **scales: Scale) -> Spec:
    return Spec(
        marks=(Mark(type="line", encode={"x": FieldRef("t"), "y": FieldRef("v")}),),
        scales=scales,
        temporal=temporal,
    )


class CollectTimeFieldsTests(unittest.TestCase):
    def test_time_scaled_channels_and_temporal_field(self) -> None:
        spec = Spec(
            marks=(
                Mark(type="line", encode={"x": FieldRef("t"), "y": FieldRef("v")}),
                Mark(type="point", encode={"x": FieldRef("u")}, scales={"x": Scale(type="linear")}),
            ),
            scales={"x": Scale(type="time")},
            temporal=Temporal(mode="frame", field="ts"),
        )
        self.assertEqual(collect_time_fields(spec), {"t", "ts"})

    def test_band_bound_temporal_field_is_excluded(self) -> None:
        spec = Spec(
            marks=(
                Mark(
                    type="interval",
                    encode={"x": FieldRef("v"), "y": FieldRef("ts")},
                    scales={"y": Scale(type="band")},
                ),
            ),
            temporal=Temporal(mode="frame", field="ts"),
        )
        self.assertEqual(collect_time_fields(spec), set())

    def test_interval_ordinal_counts_as_band(self) -> None:
        spec = Spec(
            marks=(Mark(type="interval", encode={"x": FieldRef("ts"), "y": FieldRef("v")}),),
            scales={"x": Scale(type="ordinal")},
            temporal=Temporal(mode="frame", field="ts"),
        )
        self.assertEqual(collect_time_fields(spec), set())
        line = Spec(
            marks=(Mark(type="line", encode={"x": FieldRef("ts"), "y": FieldRef("v")}),),
            scales={"x": Scale(type="ordinal")},
            temporal=Temporal(mode="frame", field="ts"),
        )
        self.assertEqual(collect_time_fields(line), {"ts"})

    def test_no_temporal_no_time_scales(self) -> None:
        self.assertEqual(collect_time_fields(_line_spec()), set())


class CoerceTimeFieldsTests(unittest.TestCase):
    def test_values_become_aware_datetimes_on_copies(self) -> None:
        rows = [{"t": BASE, "v": 1}, {"t": "2024-01-01T00:00:00Z"}, {"t": None}, {"v": 2}]
        out = coerce_time_fields(rows, {"t"})
        self.assertEqual(out[0]["t"], to_datetime(BASE))
        self.assertEqual(out[1]["t"], dt.datetime(2024, 1, 1, tzinfo=dt.timezone.utc))
        self.assertIsNone(out[2]["t"])
        self.assertNotIn("t", out[3])
        self.assertEqual(rows[0]["t"], BASE)

    def test_nothing_to_do_returns_input(self) -> None:
        rows = [{"t": 1}]
        self.assertIs(coerce_time_fields(rows, set()), rows)
        empty: list[dict[str, object]] = []
        self.assertIs(coerce_time_fields(empty, {"t"}), empty)


class BuildOptionsTests(unittest.TestCase):
    def test_band_bound_temporal_values_are_not_converted(self) -> None:
        rows = [{"v": 1, "ts": 100}, {"v": 2, "ts": 200}, {"v": 3, "ts": 200}]
        spec = Spec(
            marks=(
                Mark(
                    type="interval",
                    encode={"x": FieldRef("v"), "y": FieldRef("ts")},
                    scales={"y": Scale(type="band")},
                ),
            ),
            temporal=Temporal(mode="frame", field="ts"),
        )
        options = build_options(spec, rows)
        self.assertEqual([r["ts"] for r in options["data"]], [200, 200])

    def test_root_carries_theme_and_filtered_data(self) -> None:
        rows = _minute_rows(11)
        options = build_options(_line_spec(Temporal(mode="axis", field="t", range=5)), rows)
        self.assertEqual(options["theme"], theme_config("dark"))
        self.assertEqual([r["v"] for r in options["data"]], [5, 6, 7, 8, 9, 10])
        self.assertEqual(options["data"][0]["t"], to_datetime(BASE + 5 * MINUTE_MS))
        self.assertEqual(rows[0]["t"], BASE)

    def test_axis_mode_attaches_sliding_domain(self) -> None:
        rows = _minute_rows(11)
        options = build_options(_line_spec(Temporal(mode="axis", field="t", range=5)), rows)
        scale = options["children"][0]["scale"]["x"]
        self.assertEqual(scale["type"], "time")
        self.assertEqual(scale["domainMax"], to_datetime(BASE + 10 * MINUTE_MS))
        self.assertEqual(scale["domainMin"], to_datetime(BASE + 5 * MINUTE_MS))
        self.assertEqual(scale["mask"], "HH:mm:ss")

    def test_unbounded_window_starts_at_earliest_row(self) -> None:
        rows = _minute_rows(4)
        options = build_options(_line_spec(Temporal(mode="axis", field="t")), rows)
        scale = options["children"][0]["scale"]["x"]
        self.assertEqual(scale["domainMin"], to_datetime(BASE))
        self.assertEqual(scale["domainMax"], to_datetime(BASE + 3 * MINUTE_MS))

    def test_declared_mask_and_scale_options_are_kept(self) -> None:
        spec = _line_spec(Temporal(mode="axis", field="t", range=5), x=Scale(type="time", mask="HH:mm", nice=True))
        scale = build_options(spec, _minute_rows(3))["children"][0]["scale"]["x"]
        self.assertEqual(scale["mask"], "HH:mm")
        self.assertTrue(scale["nice"])
        self.assertIn("domainMin", scale)

    def test_temporal_field_on_y_channel(self) -> None:
        spec = Spec(
            marks=(Mark(type="line", encode={"x": FieldRef("v"), "y": FieldRef("t")}),),
            temporal=Temporal(mode="axis", field="t", range=5),
        )
        child = build_options(spec, _minute_rows(3))["children"][0]
        self.assertIn("domainMax", child["scale"]["y"])
        self.assertNotIn("x", child.get("scale", {}))

    def test_interval_and_band_children_are_skipped(self) -> None:
        temporal = Temporal(mode="axis", field="t", range=5)
        interval = Spec(
            marks=(Mark(type="interval", encode={"x": FieldRef("t"), "y": FieldRef("v")}),),
            temporal=temporal,
        )
        self.assertNotIn("scale", build_options(interval, _minute_rows(3))["children"][0])
        banded = _line_spec(temporal, x=Scale(type="band"))
        scale = build_options(banded, _minute_rows(3))["children"][0]["scale"]["x"]
        self.assertEqual(scale, {"type": "band"})

    def test_interval_ordinal_temporal_values_stay_raw(self) -> None:
        spec = Spec(
            marks=(Mark(type="interval", encode={"x": FieldRef("ts"), "y": FieldRef("v")}),),
            scales={"x": Scale(type="ordinal")},
            temporal=Temporal(mode="frame", field="ts"),
        )
        options = build_options(spec, [{"ts": 100, "v": 1}, {"ts": 200, "v": 2}])
        self.assertEqual(options["children"][0]["scale"]["x"]["type"], "band")
        self.assertEqual(options["data"], [{"ts": 200, "v": 2}])

    def test_out_of_range_epoch_does_not_break_render(self) -> None:
        spec = _line_spec(Temporal(mode="axis", field="t"), x=Scale(type="time"))
        options = build_options(spec, [{"t": 1_700_000_000_000_000, "v": 1}])
        self.assertEqual(options["data"][0]["t"], EPOCH)
        self.assertEqual(options["children"][0]["scale"]["x"]["domainMax"], EPOCH)

    def test_very_wide_window_clamps_domain(self) -> None:
        spec = _line_spec(Temporal(mode="axis", field="t", range=1e13))
        scale = build_options(spec, _minute_rows(3))["children"][0]["scale"]["x"]
        self.assertEqual(scale["domainMin"], dt.datetime(1, 1, 1, tzinfo=dt.timezone.utc))
        self.assertEqual(scale["domainMax"], to_datetime(BASE + 2 * MINUTE_MS))
        self.assertEqual(scale["mask"], "YY/MM/DD")

    def test_empty_rows_attach_no_domain(self) -> None:
        options = build_options(_line_spec(Temporal(mode="axis", field="t", range=5)), [])
        self.assertEqual(options["data"], [])
        self.assertNotIn("scale", options["children"][0])

    def test_sliding_domain_outside_axis_mode(self) -> None:
        rows = _minute_rows(2)
        self.assertIsNone(sliding_domain(_line_spec(Temporal(mode="frame", field="t")), rows))
        self.assertIsNone(sliding_domain(_line_spec(), rows))


if __name__ == "__main__":
    unittest.main()
