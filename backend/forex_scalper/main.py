import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from forex_scalper.api.market import get_feed_loop, router as market_router
from forex_scalper.config import settings
from forex_scalper.services.dashboard_session import DashboardSession
from forex_scalper.services.feed_loop import FeedLoop
from forex_scalper.services.gemini_client import GeminiClient
from forex_scalper.services.voice import BroadcastAudioSink, VoiceAlerter

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

gemini_client = GeminiClient()
voice_alerter = VoiceAlerter(gemini_client.synthesize_speech, sample_rate=settings.audio_sample_rate)
session = DashboardSession(commentary=gemini_client.analyze_market, voice=voice_alerter)
feed_loop = FeedLoop(session)
voice_alerter.attach_sink(BroadcastAudioSink(feed_loop.broadcast))


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    feed_loop.start()
    try:
        yield
    finally:
        await feed_loop.stop()


app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/healthz")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(market_router)
app.dependency_overrides[get_feed_loop] = lambda: feed_loop
