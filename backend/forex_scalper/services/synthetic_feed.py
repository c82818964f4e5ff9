"""Procedural OHLCV feed: an initial random-walk history plus one-bar ticks."""

import math
import random
from collections.abc import Callable
from datetime import datetime, timedelta

from forex_scalper.schemas.market import PriceBar, Timeframe
from forex_scalper.services.indicators.moving_average import with_emas

# Bar spacing used to back-date the initial history
BAR_SPACING: dict[str, timedelta] = {
    "1M": timedelta(minutes=1),
    "5M": timedelta(minutes=5),
    "15M": timedelta(minutes=15),
}
# Per-tick volatility as a fraction of the previous close
TICK_VOLATILITY: dict[str, float] = {"1M": 0.0003, "5M": 0.0005, "15M": 0.0008}
# Simulation speed, not real market cadence
TICK_INTERVAL_SECONDS: dict[str, float] = {"1M": 3.0, "5M": 8.0}
DEFAULT_TICK_INTERVAL_SECONDS = 15.0

INITIAL_STEP = 0.002
INITIAL_WICK = 0.0005
TICK_WICK = 0.4
EXCEPTIONAL_VOLUME_MULT = 4.5
ELEVATED_VOLUME_MULT = 2.5

Clock = Callable[[], datetime]


def tick_interval(timeframe: str) -> float:
    return TICK_INTERVAL_SECONDS.get(timeframe, DEFAULT_TICK_INTERVAL_SECONDS)


def _bar_spacing(timeframe: str) -> timedelta:
    return BAR_SPACING.get(timeframe, BAR_SPACING["1M"])


def _stamp(moment: datetime) -> tuple[str, int]:
    # The HH:MM label is display-only and wraps at midnight; order bars by timestamp.
    return moment.strftime("%H:%M"), int(moment.timestamp() * 1000)


def generate_initial_series(
    base_price: float,
    count: int = 100,
    timeframe: Timeframe = "1M",
    rng: random.Random | None = None,
    now: Clock = datetime.now,
) -> list[PriceBar]:
    """Random walk of `count` bars from base_price, latest bar stamped now, EMAs attached."""
    rng = rng or random.Random()
    spacing = _bar_spacing(timeframe)
    end = now()
    current_price = base_price
    bars: list[PriceBar] = []

    for i in range(count):
        change = (rng.random() - 0.5) * (base_price * INITIAL_STEP)
        open_ = current_price
        close = current_price + change
        high = max(open_, close) + rng.random() * (base_price * INITIAL_WICK)
        low = min(open_, close) - rng.random() * (base_price * INITIAL_WICK)
        volume = math.floor(rng.random() * 1000) + 500
        label, ts = _stamp(end - (count - 1 - i) * spacing)
        bars.append(
            PriceBar(time=label, timestamp=ts, open=open_, high=high, low=low, close=close, volume=volume)
        )
        current_price = close

    return with_emas(bars)


def _volume_spike(rng: random.Random) -> float:
    # ~5% exceptional, ~15% elevated, the rest normal
    if rng.random() > 0.95:
        return EXCEPTIONAL_VOLUME_MULT
    if rng.random() > 0.8:
        return ELEVATED_VOLUME_MULT
    return 1.0


def next_bar(
    last: PriceBar,
    timeframe: Timeframe,
    rng: random.Random,
    now: Clock = datetime.now,
) -> PriceBar:
    volatility = last.close * TICK_VOLATILITY.get(timeframe, TICK_VOLATILITY["1M"])
    close = last.close + (rng.random() - 0.5) * volatility
    spike = _volume_spike(rng)
    label, ts = _stamp(now())
    # Keep the axis strictly increasing when ticks land within the same millisecond
    ts = max(ts, last.timestamp + 1)
    return PriceBar(
        time=label,
        timestamp=ts,
        open=last.close,
        high=max(last.close, close) + rng.random() * (volatility * TICK_WICK),
        low=min(last.close, close) - rng.random() * (volatility * TICK_WICK),
        close=close,
        volume=math.floor((rng.random() * 1000 + 400) * spike),
    )


def tick_series(
    previous: list[PriceBar],
    timeframe: Timeframe = "1M",
    rng: random.Random | None = None,
    now: Clock = datetime.now,
) -> list[PriceBar]:
    """Append one simulated bar, evict the oldest and recompute EMAs over the window."""
    if not previous:
        return previous
    bar = next_bar(previous[-1], timeframe, rng or random.Random(), now)
    return with_emas([*previous[1:], bar])
