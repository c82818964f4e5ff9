"""Summary figures shown next to the chart."""

from forex_scalper.schemas.market import MarketMetrics, PriceBar

PIP_FACTOR = 10000
VOLUME_GAUGE_FULL = 2500


def compute_market_metrics(series: list[PriceBar]) -> MarketMetrics:
    if not series:
        return MarketMetrics()

    last = series[-1]
    volatility_pips = abs(last.close - series[-2].close) * PIP_FACTOR if len(series) > 1 else 0.0
    candle_change = (last.close / last.open - 1) * 100 if last.open else 0.0
    return MarketMetrics(
        ema10=last.ema10,
        ema20=last.ema20,
        ema50=last.ema50,
        volatility_pips=volatility_pips,
        average_close=sum(b.close for b in series) / len(series),
        candle_change_percent=candle_change,
        volume_gauge_percent=min(last.volume / VOLUME_GAUGE_FULL * 100, 100.0),
    )
