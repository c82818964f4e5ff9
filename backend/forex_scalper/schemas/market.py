from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Timeframe = Literal["1M", "5M", "15M"]
ChartType = Literal["line", "candle"]
SignalKind = Literal["BREAKOUT_UP", "BREAKOUT_DOWN", "TREND_CHANGE"]
SignalStrength = Literal["STRONG", "MODERATE", "WEAK"]

TIMEFRAMES: tuple[Timeframe, ...] = ("1M", "5M", "15M")


class Asset(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    name: str
    reference_price: float
    change_percent: float


class PriceBar(BaseModel):
    """One simulated candle. EMA fields are filled by rebuilding the series."""

    model_config = ConfigDict(frozen=True)

    time: str  # HH:MM label
    timestamp: int  # Unix ms
    open: float
    high: float
    low: float
    close: float
    volume: int = Field(ge=0)
    ema10: float | None = None
    ema20: float | None = None
    ema50: float | None = None


class Signal(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    asset: str
    kind: SignalKind
    strength: SignalStrength
    price: float
    timestamp: datetime
    details: str
    bar_time: int  # ms timestamp of the triggering bar


class MarketAnalysis(BaseModel):
    """Structured commentary returned by the generative-language service."""

    trend: Literal["BULLISH", "BEARISH", "NEUTRAL"]
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str
    signal: Literal["BUY", "SELL", "WAIT"]


class MarketMetrics(BaseModel):
    ema10: float | None = None
    ema20: float | None = None
    ema50: float | None = None
    volatility_pips: float = 0.0
    average_close: float | None = None
    candle_change_percent: float = 0.0
    volume_gauge_percent: float = 0.0


ASSETS: tuple[Asset, ...] = (
    Asset(symbol="EUR/USD", name="Euro / US Dollar", reference_price=1.0854, change_percent=0.12),
    Asset(symbol="GBP/USD", name="British Pound / US Dollar", reference_price=1.2645, change_percent=-0.05),
    Asset(symbol="USD/JPY", name="US Dollar / Yen", reference_price=149.23, change_percent=0.45),
    Asset(symbol="BTC/USD", name="Bitcoin / US Dollar", reference_price=52140.00, change_percent=1.20),
)


def find_asset(symbol: str) -> Asset:
    """Look up a catalog entry; raises KeyError for unknown symbols."""
    for asset in ASSETS:
        if asset.symbol == symbol.upper():
            return asset
    raise KeyError(symbol)


class AssetSelection(BaseModel):
    symbol: str


class TimeframeSelection(BaseModel):
    timeframe: Timeframe


class ChartTypeSelection(BaseModel):
    chart_type: ChartType
