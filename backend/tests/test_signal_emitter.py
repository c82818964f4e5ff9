from datetime import datetime, timedelta

from forex_scalper.schemas.market import PriceBar
from forex_scalper.services.signal_emitter import SignalEmitter, classify_strength

T0 = datetime(2026, 1, 5, 12, 0)


class FakeClock:
    def __init__(self) -> None:
        self.seconds = 0.0

    def monotonic(self) -> float:
        return self.seconds

    def now(self) -> datetime:
        return T0 + timedelta(seconds=self.seconds)


def _bar(close: float, volume: int = 1000, high: float | None = None, low: float | None = None) -> PriceBar:
    return PriceBar(
        time="12:00",
        timestamp=0,
        open=close,
        high=close if high is None else high,
        low=close if low is None else low,
        close=close,
        volume=volume,
    )


def _series(close: float = 1.0920, volume: int = 1800) -> list[PriceBar]:
    window = [_bar(1.0850, high=1.0900, low=1.0800) for _ in range(20)]
    return window + [_bar(close, volume=volume)]


def _emitter(clock: FakeClock, calls: list[str], **kwargs) -> SignalEmitter:
    return SignalEmitter(notifier=calls.append, monotonic=clock.monotonic, now=clock.now, **kwargs)


def test_no_breakout_no_signal():
    clock, calls = FakeClock(), []
    emitter = _emitter(clock, calls)
    assert emitter.process(_series(volume=1200), "EUR/USD", "1M") is None
    assert emitter.signals == []
    assert calls == []


def test_breakout_builds_signal_and_alert():
    clock, calls = FakeClock(), []
    emitter = _emitter(clock, calls)
    series = _series()
    series[-1] = series[-1].model_copy(update={"timestamp": 1_767_614_460_000})
    signal = emitter.process(series, "EUR/USD", "1M")
    assert signal is not None
    assert signal.kind == "BREAKOUT_UP"
    assert signal.bar_time == 1_767_614_460_000
    assert signal.strength == "MODERATE"
    assert signal.price == 1.0920
    assert signal.asset == "EUR/USD"
    assert signal.timestamp == T0
    assert "1.09200" in signal.details and "1M" in signal.details
    assert emitter.signals == [signal]
    assert calls == ["Buy opportunity on EUR/USD. Breakout detected."]


def test_breakout_down_phrase():
    clock, calls = FakeClock(), []
    emitter = _emitter(clock, calls)
    signal = emitter.process(_series(close=1.0700, volume=2000), "GBP/USD", "5M")
    assert signal is not None and signal.kind == "BREAKOUT_DOWN"
    assert calls == ["Sell opportunity on GBP/USD. Breakout detected."]


def test_strength_classification():
    assert classify_strength(1.6) == "MODERATE"
    assert classify_strength(2.99) == "MODERATE"
    assert classify_strength(3.0) == "STRONG"
    clock, calls = FakeClock(), []
    signal = _emitter(clock, calls).process(_series(volume=3000), "EUR/USD", "1M")
    assert signal is not None and signal.strength == "STRONG"


def test_signal_ids_are_unique():
    clock, calls = FakeClock(), []
    emitter = _emitter(clock, calls)
    ids = {emitter.process(_series(), "EUR/USD", "1M").id for _ in range(10)}
    assert len(ids) == 10


def test_signal_list_capped_most_recent_first():
    clock, calls = FakeClock(), []
    emitter = _emitter(clock, calls)
    emitted = []
    for _ in range(15):
        clock.seconds += 1
        emitted.append(emitter.process(_series(), "EUR/USD", "1M"))
    assert len(emitter.signals) == 10
    assert emitter.signals == list(reversed(emitted))[:10]
    stamps = [s.timestamp for s in emitter.signals]
    assert stamps == sorted(stamps, reverse=True)


def test_cooldown_limits_alerts():
    clock, calls = FakeClock(), []
    emitter = _emitter(clock, calls)
    emitter.process(_series(), "EUR/USD", "1M")
    assert emitter.cooling
    clock.seconds = 19.9
    emitter.process(_series(), "EUR/USD", "1M")
    assert len(calls) == 1
    assert len(emitter.signals) == 2
    clock.seconds = 20.0
    assert not emitter.cooling
    emitter.process(_series(), "EUR/USD", "1M")
    assert len(calls) == 2


def test_cooldown_is_process_wide():
    clock, calls = FakeClock(), []
    emitter = _emitter(clock, calls)
    emitter.process(_series(), "EUR/USD", "1M")
    clock.seconds = 5
    emitter.reset()
    emitter.process(_series(close=1.0700, volume=2000), "BTC/USD", "15M")
    assert len(calls) == 1
    assert len(emitter.signals) == 1


def test_failing_notifier_still_starts_cooldown():
    clock = FakeClock()
    attempts = []

    def notifier(phrase: str) -> None:
        attempts.append(phrase)
        raise RuntimeError("audio device gone")

    emitter = SignalEmitter(notifier=notifier, monotonic=clock.monotonic, now=clock.now)
    assert emitter.process(_series(), "EUR/USD", "1M") is not None
    clock.seconds = 5
    emitter.process(_series(), "EUR/USD", "1M")
    assert len(attempts) == 1


def test_without_notifier_signals_still_emitted():
    clock = FakeClock()
    emitter = SignalEmitter(monotonic=clock.monotonic, now=clock.now)
    assert emitter.process(_series(), "EUR/USD", "1M") is not None
    assert emitter.cooling
