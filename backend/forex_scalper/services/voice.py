"""Voice alerts: synthesize speech, decode PCM, hand the clip to an audio sink.

At most one request is in flight; a new request while busy is dropped, not queued.
"""

import array
import asyncio
import base64
import io
import logging
import sys
import wave
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_RATE = 24000
PCM_SCALE = 32768.0

SpeechSynthesizer = Callable[[str], Awaitable[bytes | None]]


@dataclass(frozen=True)
class AudioClip:
    pcm: bytes  # Signed 16-bit little-endian, interleaved
    num_channels: int
    sample_rate: int

    @property
    def frame_count(self) -> int:
        return len(self.pcm) // (2 * self.num_channels) if self.num_channels else 0

    @property
    def duration(self) -> float:
        return self.frame_count / self.sample_rate if self.sample_rate else 0.0

    def channels(self) -> list[list[float]]:
        """Per-channel samples normalized to [-1, 1), for sinks that play float buffers."""
        samples = array.array("h")
        samples.frombytes(self.pcm)
        if sys.byteorder == "big":
            samples.byteswap()
        return [
            [s / PCM_SCALE for s in samples[ch :: self.num_channels]]
            for ch in range(self.num_channels)
        ]


def decode_pcm16(data: bytes, sample_rate: int = DEFAULT_SAMPLE_RATE, num_channels: int = 1) -> AudioClip:
    """Wrap raw signed 16-bit LE PCM, dropping any trailing partial frame."""
    usable = len(data) - len(data) % (2 * num_channels)
    return AudioClip(pcm=data[:usable], num_channels=num_channels, sample_rate=sample_rate)


def encode_wav(clip: AudioClip) -> bytes:
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wav:
        wav.setnchannels(clip.num_channels)
        wav.setsampwidth(2)
        wav.setframerate(clip.sample_rate)
        wav.writeframes(clip.pcm)
    return buf.getvalue()


class AudioSink(Protocol):
    async def play(self, clip: AudioClip) -> None: ...


class BroadcastAudioSink:
    """Ship clips to stream subscribers as base64 WAV for browser playback."""

    def __init__(self, broadcast: Callable[[dict], Awaitable[None]]) -> None:
        self._broadcast = broadcast

    async def play(self, clip: AudioClip) -> None:
        await self._broadcast(
            {
                "event": "audio",
                "format": "wav",
                "sampleRate": clip.sample_rate,
                "duration": clip.duration,
                "data": base64.b64encode(encode_wav(clip)).decode("ascii"),
            }
        )


class VoiceAlerter:
    def __init__(
        self,
        synthesize: SpeechSynthesizer,
        sink: AudioSink | None = None,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._synthesize = synthesize
        self._sink = sink
        self._sample_rate = sample_rate
        self._sleep = sleep
        self._task: asyncio.Task[None] | None = None

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def task(self) -> asyncio.Task[None] | None:
        return self._task

    def attach_sink(self, sink: AudioSink | None) -> None:
        self._sink = sink

    def speak(self, text: str) -> bool:
        """Start speaking `text` in the background. False when dropped."""
        if self.busy:
            logger.debug("Voice busy, dropping: %s", text)
            return False
        try:
            self._task = asyncio.get_running_loop().create_task(self._run(text))
        except RuntimeError:
            logger.warning("Voice alert dropped: no running event loop")
            return False
        return True

    async def _run(self, text: str) -> None:
        try:
            pcm = await self._synthesize(text)
            if not pcm:
                return
            clip = decode_pcm16(pcm, self._sample_rate)
            if self._sink is None:
                logger.debug("No audio sink, skipping playback")
                return
            await self._sink.play(clip)
            # Busy until the clip would have finished playing
            await self._sleep(clip.duration)
        except Exception:
            logger.exception("Voice alert failed")
