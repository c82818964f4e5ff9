"""Exponential moving averages over bar closes."""

from collections.abc import Iterable, Iterator

from forex_scalper.schemas.market import PriceBar

EMA_PERIODS = (10, 20, 50)


def ema(values: Iterable[float], period: int) -> Iterator[float]:
    """
    Yield the EMA of values, one output per input.

    Seeded with the first value itself (not an SMA seed), then
    ema[i] = value[i] * k + ema[i - 1] * (1 - k) with k = 2 / (period + 1).
    """
    k = 2 / (period + 1)
    prev: float | None = None
    for value in values:
        prev = value if prev is None else value * k + prev * (1 - k)
        yield prev


def with_emas(bars: list[PriceBar]) -> list[PriceBar]:
    """Return new bars carrying EMA10/20/50 recomputed over the whole list."""
    closes = [b.close for b in bars]
    ema10, ema20, ema50 = (list(ema(closes, p)) for p in EMA_PERIODS)
    return [
        b.model_copy(update={"ema10": ema10[i], "ema20": ema20[i], "ema50": ema50[i]})
        for i, b in enumerate(bars)
    ]
