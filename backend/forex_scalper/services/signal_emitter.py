"""Turn breakout detections into Signal records and rate-limited voice alerts."""

import logging
import time
import uuid
from collections.abc import Callable
from datetime import datetime

from forex_scalper.schemas.market import PriceBar, Signal, SignalStrength
from forex_scalper.services.indicators.breakout import (
    DEFAULT_PERIOD,
    DEFAULT_VOLUME_RATIO,
    Breakout,
    detect_breakout,
)

logger = logging.getLogger(__name__)

DEFAULT_HISTORY = 10
DEFAULT_STRONG_RATIO = 3.0
DEFAULT_COOLDOWN_SECONDS = 20.0

VoiceNotifier = Callable[[str], object]


def classify_strength(volume_ratio: float, strong_ratio: float = DEFAULT_STRONG_RATIO) -> SignalStrength:
    return "STRONG" if volume_ratio >= strong_ratio else "MODERATE"


def alert_phrase(breakout: Breakout, symbol: str) -> str:
    direction = "Buy" if breakout.kind == "BREAKOUT_UP" else "Sell"
    return f"{direction} opportunity on {symbol}. Breakout detected."


class SignalEmitter:
    """
    Owns the recent-signals list and the process-wide voice cooldown.

    Cooldown is READY until an alert is forwarded, then COOLING until
    cooldown_seconds have elapsed; the transition back is checked lazily on
    the next detection.
    """

    def __init__(
        self,
        notifier: VoiceNotifier | None = None,
        period: int = DEFAULT_PERIOD,
        volume_ratio_threshold: float = DEFAULT_VOLUME_RATIO,
        strong_ratio: float = DEFAULT_STRONG_RATIO,
        history: int = DEFAULT_HISTORY,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        monotonic: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._notifier = notifier
        self._period = period
        self._volume_ratio_threshold = volume_ratio_threshold
        self._strong_ratio = strong_ratio
        self._history = history
        self._cooldown_seconds = cooldown_seconds
        self._monotonic = monotonic
        self._now = now
        self._signals: list[Signal] = []
        self._last_alert_at: float | None = None

    @property
    def signals(self) -> list[Signal]:
        """Most recent first."""
        return list(self._signals)

    @property
    def cooling(self) -> bool:
        if self._last_alert_at is None:
            return False
        return self._monotonic() - self._last_alert_at < self._cooldown_seconds

    def reset(self) -> None:
        """Drop recent signals; the cooldown is process-wide and survives."""
        self._signals = []

    def process(self, series: list[PriceBar], symbol: str, timeframe: str) -> Signal | None:
        breakout = detect_breakout(
            series, period=self._period, volume_ratio_threshold=self._volume_ratio_threshold
        )
        if breakout is None:
            return None

        signal = Signal(
            id=uuid.uuid4().hex[:9],
            asset=symbol,
            kind=breakout.kind,
            strength=classify_strength(breakout.volume_ratio, self._strong_ratio),
            price=breakout.price,
            timestamp=self._now(),
            details=f"Breakout at {breakout.price:.5f} on the {timeframe} chart.",
            bar_time=series[-1].timestamp,
        )
        self._signals = [signal, *self._signals][: self._history]
        logger.debug(
            "Signal %s %s at %.5f (volume ratio %.2f)",
            signal.kind,
            symbol,
            signal.price,
            breakout.volume_ratio,
        )

        if not self.cooling:
            self._forward(alert_phrase(breakout, symbol))
        return signal

    def _forward(self, phrase: str) -> None:
        # Stamp before calling out so a failing notifier still starts the cooldown
        self._last_alert_at = self._monotonic()
        if self._notifier is None:
            return
        logger.info("Voice alert: %s", phrase)
        try:
            self._notifier(phrase)
        except Exception:
            logger.exception("Voice alert notifier failed")
