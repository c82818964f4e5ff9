"""Per-process dashboard state and its mutation entry points."""

import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime

from forex_scalper.config import settings
from forex_scalper.schemas.market import (
    TIMEFRAMES,
    Asset,
    ChartType,
    MarketAnalysis,
    PriceBar,
    Signal,
    Timeframe,
    find_asset,
)
from forex_scalper.services.indicators.wyckoff import project_wyckoff_target
from forex_scalper.services.signal_emitter import SignalEmitter
from forex_scalper.services.synthetic_feed import generate_initial_series, tick_series
from forex_scalper.services.voice import VoiceAlerter

logger = logging.getLogger(__name__)

CommentaryService = Callable[[str, list[PriceBar]], Awaitable[MarketAnalysis | None]]


@dataclass(frozen=True)
class TickResult:
    bar: PriceBar
    signal: Signal | None
    wyckoff_target: float | None


class DashboardSession:
    """
    Owns the series, the signal emitter and the user's view settings.

    The series is only replaced, never edited in place: tick() swaps in a new
    window and a context switch regenerates it from the asset's reference price.
    """

    def __init__(
        self,
        commentary: CommentaryService | None = None,
        voice: VoiceAlerter | None = None,
        emitter: SignalEmitter | None = None,
        asset: str = settings.default_asset,
        timeframe: Timeframe = settings.default_timeframe,
        capacity: int = settings.window_capacity,
        rng: random.Random | None = None,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._commentary = commentary
        self.voice = voice
        self.emitter = emitter or SignalEmitter(
            notifier=voice.speak if voice else None,
            period=settings.breakout_period,
            volume_ratio_threshold=settings.breakout_volume_ratio,
            strong_ratio=settings.strong_volume_ratio,
            history=settings.signal_history,
            cooldown_seconds=settings.alert_cooldown_seconds,
            now=now,
        )
        self._rng = rng or random.Random()
        self._now = now
        self.capacity = capacity
        self.asset: Asset = find_asset(asset)
        self.timeframe: Timeframe = timeframe
        self.chart_type: ChartType = "candle"
        self.fullscreen = False
        self.manual_levels: list[float] = []
        self.series: list[PriceBar] = []
        self.wyckoff_target: float | None = None
        self.analysis: MarketAnalysis | None = None
        self.analysis_loading = False
        self._reset_series()

    @property
    def signals(self) -> list[Signal]:
        return self.emitter.signals

    @property
    def voice_busy(self) -> bool:
        return self.voice is not None and self.voice.busy

    def _reset_series(self) -> None:
        self.series = generate_initial_series(
            self.asset.reference_price, self.capacity, self.timeframe, rng=self._rng, now=self._now
        )
        self.emitter.reset()
        self.analysis = None
        self.wyckoff_target = project_wyckoff_target(self.series, settings.wyckoff_damping)

    def tick(self) -> TickResult | None:
        """Advance the feed one bar and run detection. None when there is no series."""
        if not self.series:
            return None
        self.series = tick_series(self.series, self.timeframe, rng=self._rng, now=self._now)
        self.wyckoff_target = project_wyckoff_target(self.series, settings.wyckoff_damping)
        signal = self.emitter.process(self.series, self.asset.symbol, self.timeframe)
        return TickResult(bar=self.series[-1], signal=signal, wyckoff_target=self.wyckoff_target)

    def select_asset(self, symbol: str) -> None:
        self.asset = find_asset(symbol)
        logger.info("Asset selected: %s", self.asset.symbol)
        self._reset_series()

    def select_timeframe(self, timeframe: Timeframe) -> None:
        if timeframe not in TIMEFRAMES:
            raise ValueError(f"Unknown timeframe {timeframe!r}")
        self.timeframe = timeframe
        logger.info("Timeframe selected: %s", timeframe)
        self._reset_series()

    def set_chart_type(self, chart_type: ChartType) -> None:
        self.chart_type = chart_type

    def toggle_fullscreen(self) -> bool:
        self.fullscreen = not self.fullscreen
        return self.fullscreen

    def add_level(self) -> float | None:
        """Pin the latest close as a manual horizontal level."""
        if not self.series:
            return None
        price = self.series[-1].close
        self.manual_levels = [*self.manual_levels, price]
        return price

    def clear_levels(self) -> None:
        self.manual_levels = []

    async def request_analysis(self) -> MarketAnalysis | None:
        """
        Ask the commentary service about the current window.

        The result is stored even if the asset or timeframe changed while the
        request was in flight (known limitation).
        """
        if not self.series or self._commentary is None:
            return None
        symbol = self.asset.symbol
        self.analysis_loading = True
        try:
            result = await self._commentary(symbol, list(self.series))
        finally:
            self.analysis_loading = False
        self.analysis = result
        if result is not None and self.voice is not None:
            self.voice.speak(f"AI analysis for {symbol}: trend {result.trend}. Signal {result.signal}.")
        return result
