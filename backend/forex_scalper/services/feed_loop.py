import asyncio
import logging
from collections.abc import Awaitable, Callable

from forex_scalper.schemas.market import ChartType, Timeframe
from forex_scalper.services.chart_format import series_to_chart
from forex_scalper.services.dashboard_session import DashboardSession, TickResult
from forex_scalper.services.indicators.market_metrics import compute_market_metrics
from forex_scalper.services.synthetic_feed import tick_interval

logger = logging.getLogger(__name__)

QUEUE_SIZE = 200


def _graphics(session: DashboardSession) -> dict:
    return series_to_chart(
        session.series,
        session.signals,
        session.wyckoff_target,
        session.manual_levels,
        session.chart_type,
    )


def make_snapshot_payload(session: DashboardSession) -> dict:
    """Full dashboard state; sent on connect and after every context change."""
    analysis = session.analysis.model_dump() if session.analysis else None
    return {
        "event": "snapshot",
        "asset": session.asset.model_dump(),
        "timeframe": session.timeframe,
        "chartType": session.chart_type,
        "fullscreen": session.fullscreen,
        "manualLevels": list(session.manual_levels),
        "bars": [b.model_dump() for b in session.series],
        "signals": [s.model_dump(mode="json") for s in session.signals],
        "wyckoffTarget": session.wyckoff_target,
        "metrics": compute_market_metrics(session.series).model_dump(),
        "analysis": analysis,
        "analysisLoading": session.analysis_loading,
        "voiceBusy": session.voice_busy,
        "graphics": _graphics(session),
    }


def make_upsert_payload(session: DashboardSession, result: TickResult) -> dict:
    return {
        "event": "upsert",
        "bar": result.bar.model_dump(),
        # EMAs are recomputed over the whole window, so every bar may have moved
        "bars": [b.model_dump() for b in session.series],
        "wyckoffTarget": result.wyckoff_target,
        "metrics": compute_market_metrics(session.series).model_dump(),
        "graphics": _graphics(session),
    }


def make_signal_payload(result: TickResult) -> dict | None:
    if result.signal is None:
        return None
    return {"event": "signal", "signal": result.signal.model_dump(mode="json")}


class FeedLoop:
    """
    Drives the session with one repeating tick task per (asset, timeframe).

    A context switch cancels the running task and starts a fresh one. Ticks
    and session mutations share one lock, so no two ticks ever overlap.
    """

    def __init__(
        self,
        session: DashboardSession,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._session = session
        self._sleep = sleep
        self._queues: set[asyncio.Queue[dict]] = set()
        self._task: asyncio.Task[None] | None = None
        self._lock = asyncio.Lock()

    @property
    def session(self) -> DashboardSession:
        return self._session

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        interval = tick_interval(self._session.timeframe)
        logger.info(
            "Feed loop started: %s %s every %.0fs",
            self._session.asset.symbol,
            self._session.timeframe,
            interval,
        )
        self._task = asyncio.create_task(self._run(interval))

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def subscribe(self) -> asyncio.Queue[dict]:
        queue: asyncio.Queue[dict] = asyncio.Queue(maxsize=QUEUE_SIZE)
        async with self._lock:
            self._queues.add(queue)
            payload = make_snapshot_payload(self._session)
        await queue.put(payload)
        return queue

    async def unsubscribe(self, queue: asyncio.Queue[dict]) -> None:
        async with self._lock:
            self._queues.discard(queue)

    async def tick_once(self) -> TickResult | None:
        async with self._lock:
            result = self._session.tick()
            if result is None:
                return None
            payloads = [make_upsert_payload(self._session, result)]
            signal_payload = make_signal_payload(result)
            if signal_payload is not None:
                payloads.append(signal_payload)
        for payload in payloads:
            await self.broadcast(payload)
        return result

    async def _run(self, interval: float) -> None:
        while True:
            try:
                await self._sleep(interval)
                await self.tick_once()
            except asyncio.CancelledError:
                break
            except Exception:
                # A failed tick is skipped; the next interval tries again.
                logger.exception("Feed tick failed")

    async def _switch(self, mutate: Callable[[], None]) -> dict:
        await self.stop()
        try:
            async with self._lock:
                mutate()
                payload = make_snapshot_payload(self._session)
        finally:
            self.start()
        await self.broadcast(payload)
        return payload

    async def select_asset(self, symbol: str) -> dict:
        return await self._switch(lambda: self._session.select_asset(symbol))

    async def select_timeframe(self, timeframe: Timeframe) -> dict:
        return await self._switch(lambda: self._session.select_timeframe(timeframe))

    async def update_view(self, mutate: Callable[[DashboardSession], object]) -> dict:
        """Apply a view-only change (levels, chart type, fullscreen) and rebroadcast."""
        async with self._lock:
            mutate(self._session)
            payload = make_snapshot_payload(self._session)
        await self.broadcast(payload)
        return payload

    async def set_chart_type(self, chart_type: ChartType) -> dict:
        return await self.update_view(lambda s: s.set_chart_type(chart_type))

    async def broadcast(self, payload: dict) -> None:
        async with self._lock:
            queues = list(self._queues)
        for queue in queues:
            if queue.full():
                try:
                    queue.get_nowait()
                except asyncio.QueueEmpty:
                    pass
            await queue.put(payload)
