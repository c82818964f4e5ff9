"""Chart-agnostic graphics primitives. Frontend maps each type to Lightweight Charts drawing."""

from typing import Literal

ExtendOption = Literal["left", "right", "both", "none"]
LineStyle = Literal["solid", "dashed", "dotted"]
MarkerPosition = Literal["above", "below"]
MarkerShape = Literal["arrowUp", "arrowDown", "circle"]


def horizontal_line(
    price: float,
    width: float = 2,
    extend: ExtendOption = "both",
    color: str | None = None,
    style: LineStyle = "solid",
    title: str | None = None,
) -> dict:
    """Build a horizontal line primitive."""
    return {
        "type": "horizontalLine",
        "price": price,
        "width": width,
        "extend": extend,
        "color": color,
        "style": style,
        "title": title,
    }


def line_series(
    points: list[dict],
    color: str,
    width: float = 1,
    title: str | None = None,
) -> dict:
    """Build a polyline primitive. points: [{ time: int, value: float }]."""
    return {
        "type": "lineSeries",
        "points": points,
        "color": color,
        "width": width,
        "title": title,
    }


def marker(
    time: int,
    position: MarkerPosition,
    shape: MarkerShape,
    color: str,
    text: str | None = None,
) -> dict:
    """Build a bar marker primitive anchored to a bar time."""
    return {
        "type": "marker",
        "time": time,
        "position": position,
        "shape": shape,
        "color": color,
        "text": text,
    }
