import asyncio
import random
from datetime import datetime

import pytest

from forex_scalper.schemas.market import MarketAnalysis, PriceBar
from forex_scalper.services.dashboard_session import DashboardSession

NOW = datetime(2026, 1, 5, 12, 0)
ANALYSIS = MarketAnalysis(trend="BEARISH", confidence=0.6, reasoning="Lower highs.", signal="SELL")


class FakeVoice:
    def __init__(self, busy: bool = False) -> None:
        self.busy = busy
        self.spoken: list[str] = []

    def speak(self, text: str) -> bool:
        self.spoken.append(text)
        return True


def _session(**kwargs) -> DashboardSession:
    kwargs.setdefault("rng", random.Random(42))
    return DashboardSession(now=lambda: NOW, **kwargs)


def test_initial_state():
    session = _session()
    assert session.asset.symbol == "EUR/USD"
    assert session.timeframe == "1M"
    assert session.chart_type == "candle"
    assert len(session.series) == 60
    assert session.series[0].open == 1.0854
    assert session.wyckoff_target is not None
    assert session.signals == []


def test_tick_keeps_capacity_and_updates_target():
    session = _session()
    for _ in range(200):
        result = session.tick()
        assert result is not None
        assert len(session.series) == 60
        assert result.bar == session.series[-1]
        assert result.wyckoff_target == session.wyckoff_target


def test_signals_stay_capped_over_many_ticks():
    session = _session(rng=random.Random(8))
    seen = 0
    for _ in range(2000):
        result = session.tick()
        if result.signal is not None:
            seen += 1
            assert session.signals[0] == result.signal
        assert len(session.signals) <= 10
    assert seen > 0


def test_tick_on_empty_series():
    session = _session()
    session.series = []
    assert session.tick() is None


def test_select_asset_regenerates_series():
    session = _session()
    for _ in range(500):
        session.tick()
    session.analysis = ANALYSIS
    session.select_asset("USD/JPY")
    assert session.asset.symbol == "USD/JPY"
    assert session.series[0].open == 149.23
    assert len(session.series) == 60
    assert session.signals == []
    assert session.analysis is None


def test_select_unknown_asset():
    session = _session()
    with pytest.raises(KeyError):
        session.select_asset("XAU/USD")
    assert session.asset.symbol == "EUR/USD"


def test_select_timeframe():
    session = _session()
    session.select_timeframe("15M")
    gaps = {b.timestamp - a.timestamp for a, b in zip(session.series, session.series[1:])}
    assert gaps == {15 * 60_000}
    with pytest.raises(ValueError):
        session.select_timeframe("4H")
    assert session.timeframe == "15M"


def test_levels_chart_type_fullscreen():
    session = _session()
    price = session.add_level()
    assert price == session.series[-1].close
    session.tick()
    session.add_level()
    assert session.manual_levels == [price, session.series[-1].close]
    session.clear_levels()
    assert session.manual_levels == []
    session.set_chart_type("line")
    assert session.chart_type == "line"
    assert session.toggle_fullscreen() is True
    assert session.toggle_fullscreen() is False


def test_add_level_without_data():
    session = _session()
    session.series = []
    assert session.add_level() is None
    assert session.manual_levels == []


def test_request_analysis_stores_and_speaks():
    seen: list[tuple[str, list[PriceBar]]] = []

    async def commentary(symbol: str, bars: list[PriceBar]) -> MarketAnalysis | None:
        seen.append((symbol, bars))
        return ANALYSIS

    voice = FakeVoice()
    session = _session(commentary=commentary, voice=voice)
    result = asyncio.run(session.request_analysis())
    assert result == ANALYSIS
    assert session.analysis == ANALYSIS
    assert not session.analysis_loading
    assert seen[0][0] == "EUR/USD"
    assert len(seen[0][1]) == 60
    assert voice.spoken == ["AI analysis for EUR/USD: trend BEARISH. Signal SELL."]


def test_request_analysis_failure_is_none():
    async def commentary(symbol: str, bars: list[PriceBar]) -> MarketAnalysis | None:
        return None

    voice = FakeVoice()
    session = _session(commentary=commentary, voice=voice)
    assert asyncio.run(session.request_analysis()) is None
    assert session.analysis is None
    assert voice.spoken == []


def test_request_analysis_without_data():
    async def commentary(symbol: str, bars: list[PriceBar]) -> MarketAnalysis | None:
        raise AssertionError("should not be called")

    session = _session(commentary=commentary)
    session.series = []
    assert asyncio.run(session.request_analysis()) is None


def test_stale_analysis_is_applied_after_context_switch():
    async def main(session: DashboardSession, release: asyncio.Event) -> None:
        task = asyncio.create_task(session.request_analysis())
        await asyncio.sleep(0)
        assert session.analysis_loading
        session.select_asset("BTC/USD")
        release.set()
        await task

    release = asyncio.Event()

    async def commentary(symbol: str, bars: list[PriceBar]) -> MarketAnalysis | None:
        await release.wait()
        return ANALYSIS

    voice = FakeVoice()
    session = _session(commentary=commentary, voice=voice)
    asyncio.run(main(session, release))
    assert session.asset.symbol == "BTC/USD"
    assert session.analysis == ANALYSIS
    assert voice.spoken == ["AI analysis for EUR/USD: trend BEARISH. Signal SELL."]


def test_breakout_forwards_to_voice():
    voice = FakeVoice()
    session = _session(voice=voice, rng=random.Random(8))
    for _ in range(2000):
        session.tick()
        if session.signals:
            break
    assert session.signals
    assert voice.spoken[0].endswith("on EUR/USD. Breakout detected.")
