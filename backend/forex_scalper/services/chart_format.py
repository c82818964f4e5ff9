"""Convert series, signals and levels to chart display format."""

from forex_scalper.schemas.chart_primitives import horizontal_line, line_series, marker
from forex_scalper.schemas.market import ChartType, PriceBar, Signal

EMA_COLORS = {"ema10": "#22d3ee", "ema20": "#facc15", "ema50": "#f472b6"}
TARGET_COLOR = "#10b981"
MANUAL_LEVEL_COLOR = "#94a3b8"
UP_COLOR = "#22c55e"
DOWN_COLOR = "#dc2626"


def _ema_lines(series: list[PriceBar]) -> list[dict]:
    lines: list[dict] = []
    for field_name, color in EMA_COLORS.items():
        points = [
            {"time": b.timestamp, "value": getattr(b, field_name)}
            for b in series
            if getattr(b, field_name) is not None
        ]
        lines.append(line_series(points, color=color, width=1, title=field_name.upper()))
    return lines


def _signal_markers(series: list[PriceBar], signals: list[Signal]) -> list[dict]:
    # Signals whose bar has left the window have nothing to sit on.
    in_window = {b.timestamp for b in series}
    markers: list[dict] = []
    for s in signals:
        if s.bar_time not in in_window:
            continue
        if s.kind == "BREAKOUT_UP":
            markers.append(marker(s.bar_time, "below", "arrowUp", UP_COLOR, text=s.strength))
        elif s.kind == "BREAKOUT_DOWN":
            markers.append(marker(s.bar_time, "above", "arrowDown", DOWN_COLOR, text=s.strength))
    return markers


def series_to_chart(
    series: list[PriceBar],
    signals: list[Signal],
    wyckoff_target: float | None,
    manual_levels: list[float],
    chart_type: ChartType = "candle",
) -> dict:
    """Graphics payload for the chart: EMA overlays, target/manual levels, signal markers."""
    levels = [
        horizontal_line(price=p, width=1, color=MANUAL_LEVEL_COLOR, style="dashed")
        for p in manual_levels
    ]
    target_line = None
    if wyckoff_target is not None:
        target_line = horizontal_line(
            price=wyckoff_target, width=2, color=TARGET_COLOR, style="dotted", title="Wyckoff"
        )
    return {
        "chartType": chart_type,
        "emaLines": _ema_lines(series),
        "wyckoffTarget": target_line,
        "manualLevels": levels,
        "markers": _signal_markers(series, signals),
    }
