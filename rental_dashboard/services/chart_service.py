from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Sequence
from xml.sax.saxutils import escape, quoteattr

from schemas.forecast import SeriesPointDto


LOGGER = logging.getLogger("rental_dashboard.chart")

CHART_PADDING = 40
MARKER_RADIUS = 5
VALUE_LABEL_OFFSET = 10
CATEGORY_LABEL_OFFSET = 20
CATEGORY_LABEL_EVERY = 2

AXIS_COLOR = "#d1d5db"
AXIS_WIDTH = 1
LINE_WIDTH = 3
VALUE_LABEL_COLOR = "#78350f"
VALUE_LABEL_FONT = "12px sans-serif"
CATEGORY_LABEL_COLOR = "#6b7280"
CATEGORY_LABEL_FONT = "10px sans-serif"

DEFAULT_LINE_COLOR = "#f59e0b"
EQUIPMENT_LINE_COLORS = {
    "Excavator": "#f59e0b",
    "Bulldozer": "#d97706",
    "Crane": "#b45309",
    "Loader": "#92400e",
    "Dump Truck": "#78350f",
}


class DegenerateSeries(ValueError):
    pass


@dataclass(frozen=True)
class ChartPoint:
    label: str
    value: float
    x: float
    y: float


@dataclass(frozen=True)
class DrawCommand:
    op: str
    points: tuple[tuple[float, float], ...] = ()
    color: str | None = None
    width: float | None = None
    radius: float | None = None
    text: str | None = None
    font: str | None = None

    def to_payload(self) -> dict:
        payload = {"op": self.op}
        if self.points:
            payload["points"] = [[x, y] for x, y in self.points]
        for key in ("color", "width", "radius", "text", "font"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return payload


def line_color_for(equipment_name: str | None) -> str:
    return EQUIPMENT_LINE_COLORS.get(equipment_name or "", DEFAULT_LINE_COLOR)


def format_value(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def format_category_label(label: str) -> str:
    raw = (label or "").strip()
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).strftime("%b")
    except ValueError:
        pass
    try:
        return datetime.strptime(raw, "%Y-%m").strftime("%b")
    except ValueError:
        return raw


def compute_chart_points(
    points: Sequence[SeriesPointDto],
    width: float,
    height: float,
    padding: float = CHART_PADDING,
) -> list[ChartPoint]:
    """Map a series onto pixel space inside a ``padding`` margin.

    x runs from ``padding`` to ``width - padding`` by index; y grows
    downwards, so the minimum sits on the bottom axis. A single point is
    centred and a flat series is drawn at mid-height. A canvas narrower
    than the padding collapses the plot area to zero.
    """
    if not points:
        raise DegenerateSeries("Cannot chart an empty series.")

    count = len(points)
    values = [float(point.value) for point in points]
    min_value = min(values)
    max_value = max(values)
    value_range = max_value - min_value
    chart_width = max(width - 2 * padding, 0)
    chart_height = max(height - 2 * padding, 0)
    bottom = padding + chart_height
    mid_y = padding + chart_height / 2

    result = []
    for index, point in enumerate(points):
        if count == 1:
            x = padding + chart_width / 2
        else:
            x = padding + index / (count - 1) * chart_width
        if value_range == 0:
            y = mid_y
        else:
            y = bottom - (values[index] - min_value) / value_range * chart_height
        result.append(ChartPoint(label=point.label, value=values[index], x=x, y=y))
    return result


def build_draw_commands(
    points: Sequence[SeriesPointDto],
    width: float,
    height: float,
    stroke_color: str,
    padding: float = CHART_PADDING,
) -> list[DrawCommand]:
    chart_points = compute_chart_points(points, width, height, padding)

    commands = [
        DrawCommand(op="clear"),
        DrawCommand(
            op="line",
            points=((padding, padding), (padding, height - padding)),
            color=AXIS_COLOR,
            width=AXIS_WIDTH,
        ),
        DrawCommand(
            op="line",
            points=((padding, height - padding), (width - padding, height - padding)),
            color=AXIS_COLOR,
            width=AXIS_WIDTH,
        ),
    ]
    if len(chart_points) > 1:
        commands.append(
            DrawCommand(
                op="polyline",
                points=tuple((point.x, point.y) for point in chart_points),
                color=stroke_color,
                width=LINE_WIDTH,
            )
        )

    for index, point in enumerate(chart_points):
        commands.append(DrawCommand(op="circle", points=((point.x, point.y),), color=stroke_color, radius=MARKER_RADIUS))
        commands.append(
            DrawCommand(
                op="text",
                points=((point.x, point.y - VALUE_LABEL_OFFSET),),
                color=VALUE_LABEL_COLOR,
                text=format_value(point.value),
                font=VALUE_LABEL_FONT,
            )
        )
        if index % CATEGORY_LABEL_EVERY == 0:
            commands.append(
                DrawCommand(
                    op="text",
                    points=((point.x, height - padding + CATEGORY_LABEL_OFFSET),),
                    color=CATEGORY_LABEL_COLOR,
                    text=format_category_label(point.label),
                    font=CATEGORY_LABEL_FONT,
                )
            )
    return commands


@dataclass
class SvgSurface:
    width: float
    height: float
    elements: list[str] = field(default_factory=list)

    def clear(self) -> None:
        self.elements.clear()

    def line(self, start, end, color: str, width: float) -> None:
        self.elements.append(
            f'<line x1="{_num(start[0])}" y1="{_num(start[1])}" x2="{_num(end[0])}" y2="{_num(end[1])}" '
            f"stroke={quoteattr(color)} stroke-width=\"{_num(width)}\" />"
        )

    def polyline(self, points, color: str, width: float) -> None:
        coords = " ".join(f"{_num(x)},{_num(y)}" for x, y in points)
        self.elements.append(
            f'<polyline points="{coords}" fill="none" stroke={quoteattr(color)} '
            f'stroke-width="{_num(width)}" stroke-linejoin="round" />'
        )

    def circle(self, center, radius: float, color: str) -> None:
        self.elements.append(
            f'<circle cx="{_num(center[0])}" cy="{_num(center[1])}" r="{_num(radius)}" fill={quoteattr(color)} />'
        )

    def text(self, anchor, value: str, color: str, font: str) -> None:
        size, _, family = font.partition(" ")
        self.elements.append(
            f'<text x="{_num(anchor[0])}" y="{_num(anchor[1])}" fill={quoteattr(color)} '
            f"font-size={quoteattr(size)} font-family={quoteattr(family or 'sans-serif')} "
            f'text-anchor="middle">{escape(value)}</text>'
        )

    def to_svg(self) -> str:
        body = "".join(self.elements)
        return (
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{_num(self.width)}" height="{_num(self.height)}" '
            f'viewBox="0 0 {_num(self.width)} {_num(self.height)}">{body}</svg>'
        )


def paint(commands: Iterable[DrawCommand], surface) -> None:
    for command in commands:
        if command.op == "clear":
            surface.clear()
        elif command.op == "line":
            surface.line(command.points[0], command.points[1], command.color, command.width)
        elif command.op == "polyline":
            surface.polyline(command.points, command.color, command.width)
        elif command.op == "circle":
            surface.circle(command.points[0], command.radius, command.color)
        elif command.op == "text":
            surface.text(command.points[0], command.text, command.color, command.font)
        else:
            raise ValueError(f"Unknown draw command: {command.op}")


def render(
    points: Sequence[SeriesPointDto],
    width: float,
    height: float,
    stroke_color: str = DEFAULT_LINE_COLOR,
    surface=None,
) -> list[DrawCommand]:
    commands = build_draw_commands(points, width, height, stroke_color)
    if surface is not None:
        paint(commands, surface)
    LOGGER.debug("Rendered chart points=%s commands=%s size=%sx%s", len(points), len(commands), width, height)
    return commands


def render_svg(points: Sequence[SeriesPointDto], width: float, height: float, stroke_color: str = DEFAULT_LINE_COLOR) -> str:
    surface = SvgSurface(width=width, height=height)
    render(points, width, height, stroke_color, surface=surface)
    return surface.to_svg()


def summarize_series(points: Sequence[SeriesPointDto]) -> dict:
    if not points:
        raise DegenerateSeries("Cannot summarize an empty series.")
    values = [float(point.value) for point in points]
    return {
        "averageDemand": math.floor(sum(values) / len(values) + 0.5),
        "minDemand": min(min(values), 0),
        "maxDemand": max(max(values), 0),
        "months": len(values),
    }


def trend_labels(points: Sequence[SeriesPointDto]) -> list[str]:
    labels = []
    previous = None
    for point in points:
        if previous is None:
            labels.append("-")
        elif point.value > previous:
            labels.append("Increasing")
        elif point.value < previous:
            labels.append("Decreasing")
        else:
            labels.append("Stable")
        previous = point.value
    return labels


def _num(value: float) -> str:
    return format_value(round(float(value), 2))
