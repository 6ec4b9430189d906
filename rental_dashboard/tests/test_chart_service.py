import os
import sys
import unittest
from pathlib import Path


os.environ.setdefault("DASHBOARD_DB_URL", "sqlite+pysqlite:///:memory:")

APP_DIR = Path(__file__).resolve().parents[1]
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from schemas.forecast import ForecastPointDto, SeriesPointDto
from services.chart_service import (
    CATEGORY_LABEL_FONT,
    CHART_PADDING,
    DEFAULT_LINE_COLOR,
    VALUE_LABEL_FONT,
    DegenerateSeries,
    SvgSurface,
    build_draw_commands,
    compute_chart_points,
    format_category_label,
    line_color_for,
    render,
    render_svg,
    summarize_series,
    trend_labels,
)


def series(*values, start_month=1):
    return [
        SeriesPointDto(label=f"2025-{start_month + index:02d}-01", value=value)
        for index, value in enumerate(values)
    ]


class ChartCoordinateTests(unittest.TestCase):
    def test_increasing_series_spans_the_padded_width(self):
        points = compute_chart_points(series(5, 8, 13, 21, 34), 600, 250)

        xs = [point.x for point in points]
        self.assertTrue(all(left < right for left, right in zip(xs, xs[1:])))
        self.assertEqual(xs[0], CHART_PADDING)
        self.assertEqual(xs[-1], 600 - CHART_PADDING)
        self.assertEqual(points[0].y, 250 - CHART_PADDING)
        self.assertEqual(points[-1].y, CHART_PADDING)

    def test_values_map_linearly_between_axes(self):
        points = compute_chart_points(series(0, 50, 100), 600, 240)

        self.assertEqual([point.x for point in points], [40, 300, 560])
        self.assertEqual([point.y for point in points], [200, 120, 40])

    def test_flat_series_renders_at_mid_height(self):
        points = compute_chart_points(series(7, 7, 7, 7), 600, 250)

        ys = {point.y for point in points}
        self.assertEqual(ys, {125})

    def test_single_point_is_centered(self):
        (point,) = compute_chart_points(series(12), 600, 250)

        self.assertEqual(point.x, 300)
        self.assertEqual(point.y, 125)

    def test_empty_series_fails_fast(self):
        with self.assertRaises(DegenerateSeries):
            compute_chart_points([], 600, 250)
        with self.assertRaises(DegenerateSeries):
            render([], 600, 250, DEFAULT_LINE_COLOR)

    def test_narrow_canvas_collapses_plot_area(self):
        points = compute_chart_points(series(1, 2), 80, 60)

        self.assertEqual([point.x for point in points], [CHART_PADDING, CHART_PADDING])
        self.assertEqual([point.y for point in points], [CHART_PADDING, CHART_PADDING])
        self.assertIn("<svg", render_svg(series(1, 2), 80, 60, DEFAULT_LINE_COLOR))

    def test_input_sequence_is_not_mutated(self):
        points = series(3, 1, 2)
        snapshot = list(points)

        render(points, 600, 250, "#d97706")

        self.assertEqual(points, snapshot)


class ChartCommandTests(unittest.TestCase):
    def test_axes_are_drawn_before_the_polyline(self):
        commands = build_draw_commands(series(1, 2, 3), 600, 250, "#b45309")
        ops = [command.op for command in commands]

        self.assertEqual(ops[:3], ["clear", "line", "line"])
        self.assertEqual(ops[3], "polyline")
        self.assertEqual(commands[1].points, ((40, 40), (40, 210)))
        self.assertEqual(commands[2].points, ((40, 210), (560, 210)))
        self.assertEqual(commands[3].color, "#b45309")
        self.assertEqual(ops.count("circle"), 3)

    def test_single_point_has_marker_without_segment(self):
        commands = build_draw_commands(series(12), 600, 250, DEFAULT_LINE_COLOR)
        ops = [command.op for command in commands]

        self.assertNotIn("polyline", ops)
        self.assertEqual(ops.count("circle"), 1)

    def test_value_labels_sit_above_every_marker(self):
        commands = build_draw_commands(series(12, 12.5), 600, 250, DEFAULT_LINE_COLOR)
        circles = [command for command in commands if command.op == "circle"]
        value_labels = [command for command in commands if command.font == VALUE_LABEL_FONT]

        self.assertEqual([label.text for label in value_labels], ["12", "12.5"])
        for circle, label in zip(circles, value_labels):
            self.assertEqual(label.points[0][0], circle.points[0][0])
            self.assertEqual(label.points[0][1], circle.points[0][1] - 10)

    def test_category_labels_are_thinned_to_every_other_point(self):
        commands = build_draw_commands(series(1, 2, 3, 4, 5), 600, 250, DEFAULT_LINE_COLOR)
        category_labels = [command for command in commands if command.font == CATEGORY_LABEL_FONT]

        self.assertEqual([label.text for label in category_labels], ["Jan", "Mar", "May"])
        self.assertTrue(all(label.points[0][1] == 230 for label in category_labels))

    def test_command_payload_omits_unused_fields(self):
        commands = build_draw_commands(series(1, 2), 600, 250, DEFAULT_LINE_COLOR)

        self.assertEqual(commands[0].to_payload(), {"op": "clear"})
        self.assertEqual(
            commands[1].to_payload(),
            {"op": "line", "points": [[40, 40], [40, 210]], "color": "#d1d5db", "width": 1},
        )


class SvgSurfaceTests(unittest.TestCase):
    def test_redraw_replaces_previous_content(self):
        surface = SvgSurface(width=600, height=250)

        render(series(1, 2, 3), 600, 250, DEFAULT_LINE_COLOR, surface=surface)
        first_count = len(surface.elements)
        render(series(1, 2, 3), 600, 250, DEFAULT_LINE_COLOR, surface=surface)

        self.assertEqual(len(surface.elements), first_count)

    def test_svg_document_contains_chart_elements(self):
        svg = render_svg(series(4, 9), 600, 250, "#92400e")

        self.assertTrue(svg.startswith('<svg xmlns="http://www.w3.org/2000/svg" width="600" height="250"'))
        self.assertIn('<polyline points="40,210 560,40"', svg)
        self.assertIn('stroke="#92400e"', svg)
        self.assertEqual(svg.count("<circle"), 2)

    def test_labels_are_escaped(self):
        svg = render_svg([SeriesPointDto(label="<Q1 & Q2>", value=3)], 600, 250)

        self.assertIn("&lt;Q1 &amp; Q2&gt;", svg)
        self.assertNotIn("<Q1", svg)


class SeriesSummaryTests(unittest.TestCase):
    def test_summary_floors_extremes_at_zero(self):
        summary = summarize_series(series(10, 20, 25))

        self.assertEqual(summary, {"averageDemand": 18, "minDemand": 0, "maxDemand": 25, "months": 3})

    def test_average_rounds_half_up(self):
        self.assertEqual(summarize_series(series(1, 2))["averageDemand"], 2)
        self.assertEqual(summarize_series(series(2, 3))["averageDemand"], 3)

    def test_negative_values_lower_the_minimum(self):
        summary = summarize_series(series(-4, 6))

        self.assertEqual(summary["minDemand"], -4)
        self.assertEqual(summary["maxDemand"], 6)

    def test_trend_labels_compare_with_previous_point(self):
        self.assertEqual(
            trend_labels(series(3, 5, 5, 2)),
            ["-", "Increasing", "Stable", "Decreasing"],
        )

    def test_forecast_rows_convert_to_series_points(self):
        row = ForecastPointDto.model_validate({"month": "2025-10-01", "forecastedDemand": 14})

        self.assertEqual(row.to_series_point(), SeriesPointDto(label="2025-10-01", value=14))


class ChartFormattingTests(unittest.TestCase):
    def test_line_color_per_equipment_type(self):
        self.assertEqual(line_color_for("Crane"), "#b45309")
        self.assertEqual(line_color_for("Dump Truck"), "#78350f")
        self.assertEqual(line_color_for("Trencher"), DEFAULT_LINE_COLOR)
        self.assertEqual(line_color_for(None), DEFAULT_LINE_COLOR)

    def test_category_label_uses_short_month_name(self):
        self.assertEqual(format_category_label("2025-03-01"), "Mar")
        self.assertEqual(format_category_label("2025-11-01T00:00:00Z"), "Nov")
        self.assertEqual(format_category_label("2025-07"), "Jul")
        self.assertEqual(format_category_label("Week 12"), "Week 12")


if __name__ == "__main__":
    unittest.main()
