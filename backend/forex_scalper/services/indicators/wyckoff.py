"""Wyckoff effort-vs-result price target.

A heuristic extrapolation from volume-spread analysis, not a statistically
validated model. The damping constant and the up-on-flat tie-break are fixed.
"""

from forex_scalper.schemas.market import PriceBar

MIN_BARS = 5
LOOKBACK = 5
DEFAULT_DAMPING = 0.5


def project_wyckoff_target(series: list[PriceBar], damping: float = DEFAULT_DAMPING) -> float | None:
    """Project a target from the latest bar's volume effort against the prior bars' spread."""
    if len(series) < MIN_BARS:
        return None

    current = series[-1]
    # Up to LOOKBACK bars before the latest (four when only MIN_BARS exist)
    window = series[max(0, len(series) - LOOKBACK - 1) : -1]
    avg_volume = sum(b.volume for b in window) / len(window)
    avg_spread = sum(b.high - b.low for b in window) / len(window)
    if avg_volume <= 0:
        return None

    effort_result_ratio = current.volume / avg_volume
    direction = 1 if current.close - current.open >= 0 else -1
    projection = direction * avg_spread * (1 + (effort_result_ratio - 1) * damping)
    return current.close + projection
