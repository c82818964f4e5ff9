"""Gemini REST client: market commentary and speech synthesis. Failures never propagate."""

import base64
import binascii
import json
import logging

import httpx
from pydantic import ValidationError

from forex_scalper.config import settings
from forex_scalper.schemas.market import MarketAnalysis, PriceBar

logger = logging.getLogger(__name__)

SUMMARY_BARS = 20
SYSTEM_INSTRUCTION = (
    "You are a senior Forex Quant Trader specializing in Price Action and Volume Spread Analysis. "
    "Provide concise, high-probability signals."
)
ANALYSIS_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "trend": {"type": "STRING", "description": "BULLISH, BEARISH, or NEUTRAL"},
        "confidence": {"type": "NUMBER", "description": "Scale 0 to 1"},
        "reasoning": {"type": "STRING"},
        "signal": {"type": "STRING", "description": "BUY, SELL, or WAIT"},
    },
    "required": ["trend", "confidence", "reasoning", "signal"],
}
SPEECH_PREFIX = "Attention: "


def summarize_bars(bars: list[PriceBar], limit: int = SUMMARY_BARS) -> str:
    """Render the last `limit` bars one per line for the prompt."""
    lines = []
    for b in bars[-limit:]:
        ema10 = f"{b.ema10:.5f}" if b.ema10 is not None else "n/a"
        lines.append(f"Time: {b.time}, C: {b.close:.5f}, V: {b.volume}, EMA10: {ema10}")
    return "\n".join(lines)


def build_analysis_prompt(symbol: str, bars: list[PriceBar]) -> str:
    return (
        f"Analyze the following Forex market data for {symbol}.\n"
        "Identify if there is a strong breakout or trend reversal.\n"
        "Note the alignment of EMA 10, 20, and 50.\n"
        "Verify if volume supports the move.\n"
        "Data:\n"
        f"{summarize_bars(bars)}"
    )


def _first_part(payload: dict) -> dict:
    """First content part of the first candidate, or {} when the payload has another shape."""
    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        return {}
    content = candidates[0].get("content")
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list) or not parts or not isinstance(parts[0], dict):
        return {}
    return parts[0]


class GeminiClient:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else settings.gemini_api_key
        self._base_url = (base_url or settings.gemini_base_url).rstrip("/")
        self._transport = transport

    async def _generate(self, model: str, body: dict) -> dict:
        url = f"{self._base_url}/models/{model}:generateContent"
        headers = {"x-goog-api-key": self._api_key or ""}
        async with httpx.AsyncClient(
            timeout=settings.http_timeout_seconds, transport=self._transport
        ) as client:
            response = await client.post(url, json=body, headers=headers)
            response.raise_for_status()
        return response.json()

    async def analyze_market(self, symbol: str, bars: list[PriceBar]) -> MarketAnalysis | None:
        """Ask the model for trend/confidence/reasoning/signal. None on any failure."""
        if not self._api_key:
            logger.warning("Gemini analysis skipped: no API key configured")
            return None
        body = {
            "contents": [{"role": "user", "parts": [{"text": build_analysis_prompt(symbol, bars)}]}],
            "systemInstruction": {"parts": [{"text": SYSTEM_INSTRUCTION}]},
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": ANALYSIS_SCHEMA,
            },
        }
        try:
            payload = await self._generate(settings.analysis_model, body)
            text = _first_part(payload).get("text")
            if not isinstance(text, str):
                logger.warning("Gemini analysis for %s returned no text part", symbol)
                return None
            return MarketAnalysis.model_validate(json.loads(text))
        except (httpx.HTTPError, json.JSONDecodeError, ValidationError, AttributeError, TypeError) as e:
            logger.warning("Gemini analysis failed for %s: %s", symbol, e)
            return None

    async def synthesize_speech(self, text: str) -> bytes | None:
        """Return raw 16-bit PCM for `text`, or None when nothing usable came back."""
        if not self._api_key:
            logger.warning("Speech synthesis skipped: no API key configured")
            return None
        body = {
            "contents": [{"parts": [{"text": f"{SPEECH_PREFIX}{text}"}]}],
            "generationConfig": {
                "responseModalities": ["AUDIO"],
                "speechConfig": {
                    "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": settings.tts_voice_name}},
                },
            },
        }
        try:
            payload = await self._generate(settings.tts_model, body)
            data = (_first_part(payload).get("inlineData") or {}).get("data")
            if not data or not isinstance(data, str):
                logger.warning("Speech synthesis returned no audio")
                return None
            return base64.b64decode(data, validate=True)
        except (httpx.HTTPError, json.JSONDecodeError, binascii.Error, AttributeError, TypeError) as e:
            logger.warning("Speech synthesis failed: %s", e)
            return None
