"""Range breakout with volume confirmation."""

from dataclasses import dataclass
from typing import Literal

from forex_scalper.schemas.market import PriceBar

DEFAULT_PERIOD = 20
DEFAULT_VOLUME_RATIO = 1.5


@dataclass(frozen=True)
class Breakout:
    kind: Literal["BREAKOUT_UP", "BREAKOUT_DOWN"]
    price: float  # Latest close
    level: float  # Breached range high/low
    volume_ratio: float


def detect_breakout(
    series: list[PriceBar],
    period: int = DEFAULT_PERIOD,
    volume_ratio_threshold: float = DEFAULT_VOLUME_RATIO,
) -> Breakout | None:
    """
    Compare the latest bar against the `period` bars before it.

    Up when close clears the range high, down when it drops under the range low;
    either way latest volume must exceed the range mean by volume_ratio_threshold.
    Returns None when history is short or nothing qualifies.
    """
    if len(series) < period + 1:
        return None

    current = series[-1]
    window = series[-(period + 1) : -1]
    high_region = max(b.high for b in window)
    low_region = min(b.low for b in window)
    avg_volume = sum(b.volume for b in window) / period
    if avg_volume <= 0:
        return None

    volume_ratio = current.volume / avg_volume
    if volume_ratio <= volume_ratio_threshold:
        return None

    if current.close > high_region:
        return Breakout("BREAKOUT_UP", current.close, high_region, volume_ratio)
    if current.close < low_region:
        return Breakout("BREAKOUT_DOWN", current.close, low_region, volume_ratio)
    return None
