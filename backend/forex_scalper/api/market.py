"""Market API: endpoints for the dashboard frontend. All state lives in the FeedLoop's session."""
import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect

from forex_scalper.schemas.market import (
    ASSETS,
    TIMEFRAMES,
    Asset,
    AssetSelection,
    ChartTypeSelection,
    MarketAnalysis,
    TimeframeSelection,
)
from forex_scalper.services.feed_loop import FeedLoop, make_snapshot_payload

logger = logging.getLogger(__name__)

HEARTBEAT_SECONDS = 30

router = APIRouter(prefix="/api/v1", tags=["market"])


def get_feed_loop() -> FeedLoop:
    # Dependency override in main.py will supply singleton.
    raise RuntimeError("feed loop dependency is not configured")


@router.get("/assets", response_model=list[Asset])
async def list_assets() -> list[Asset]:
    """[Frontend] Return the static asset catalog for the market selector."""
    return list(ASSETS)


@router.get("/timeframes")
async def list_timeframes() -> dict[str, list[str]]:
    """[Frontend] Return supported timeframes for the timeframe buttons."""
    return {"timeframes": list(TIMEFRAMES)}


@router.get("/state")
async def get_state(feed_loop: FeedLoop = Depends(get_feed_loop)) -> dict:
    """[Frontend] Return the full dashboard snapshot (series, signals, target, metrics, graphics)."""
    return make_snapshot_payload(feed_loop.session)


@router.post("/asset")
async def select_asset(body: AssetSelection, feed_loop: FeedLoop = Depends(get_feed_loop)) -> dict:
    """[Frontend] Switch asset: regenerates the series and restarts the feed timer."""
    try:
        return await feed_loop.select_asset(body.symbol)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=f"Unknown asset {body.symbol}") from e


@router.post("/timeframe")
async def select_timeframe(body: TimeframeSelection, feed_loop: FeedLoop = Depends(get_feed_loop)) -> dict:
    """[Frontend] Switch timeframe: regenerates the series and restarts the feed timer."""
    return await feed_loop.select_timeframe(body.timeframe)


@router.post("/chart-type")
async def set_chart_type(body: ChartTypeSelection, feed_loop: FeedLoop = Depends(get_feed_loop)) -> dict:
    return await feed_loop.set_chart_type(body.chart_type)


@router.post("/levels")
async def add_level(feed_loop: FeedLoop = Depends(get_feed_loop)) -> dict:
    """[Frontend] Pin the latest close as a support/resistance line."""
    if not feed_loop.session.series:
        raise HTTPException(status_code=409, detail="No price data yet.")
    return await feed_loop.update_view(lambda s: s.add_level())


@router.delete("/levels")
async def clear_levels(feed_loop: FeedLoop = Depends(get_feed_loop)) -> dict:
    return await feed_loop.update_view(lambda s: s.clear_levels())


@router.post("/fullscreen")
async def toggle_fullscreen(feed_loop: FeedLoop = Depends(get_feed_loop)) -> dict:
    return await feed_loop.update_view(lambda s: s.toggle_fullscreen())


@router.post("/analysis", response_model=MarketAnalysis)
async def request_analysis(feed_loop: FeedLoop = Depends(get_feed_loop)) -> MarketAnalysis:
    """[Frontend] Ask the generative model for commentary on the current window.
    Refused while a voice alert is playing, like the disabled analysis button."""
    session = feed_loop.session
    if not session.series or session.voice_busy:
        raise HTTPException(status_code=409, detail="Analysis unavailable right now. Try again shortly.")
    await feed_loop.broadcast({"event": "analysis", "loading": True, "analysis": None})
    result = None
    try:
        result = await session.request_analysis()
    finally:
        await feed_loop.broadcast(
            {"event": "analysis", "loading": False, "analysis": result.model_dump() if result else None}
        )
    if result is None:
        logger.warning("No analysis available for %s", session.asset.symbol)
        raise HTTPException(
            status_code=503,
            detail="Analysis temporarily unavailable. Check network or try again later.",
        )
    return result


@router.websocket("/stream")
async def stream_dashboard(
    websocket: WebSocket,
    feed_loop: FeedLoop = Depends(get_feed_loop),
) -> None:
    """[Frontend] Stream dashboard events: snapshot on connect, then upsert per tick,
    signal, analysis and audio events; heartbeat when idle."""
    await websocket.accept()
    queue = await feed_loop.subscribe()
    try:
        while True:
            try:
                payload = await asyncio.wait_for(queue.get(), timeout=HEARTBEAT_SECONDS)
                await websocket.send_json(payload)
            except asyncio.TimeoutError:
                await websocket.send_json({"event": "heartbeat"})
    except WebSocketDisconnect:
        pass
    finally:
        await feed_loop.unsubscribe(queue)
