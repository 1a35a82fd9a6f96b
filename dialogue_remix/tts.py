"""Speech synthesis via edge-tts with retry logic and bounded concurrency."""

import asyncio
import io
import logging
from collections.abc import Awaitable, Callable

import edge_tts
from pydub import AudioSegment

from dialogue_remix.config import SpeechConfig
from dialogue_remix.constants import TTS_NATIVE_RATE, TTS_MAX_WORKERS
from dialogue_remix.errors import ExternalServiceError
from dialogue_remix.models import WaveBuffer
from dialogue_remix.resample import silence
from dialogue_remix.sources import audio_to_mono

logger = logging.getLogger(__name__)

Synthesizer = Callable[[str, str], Awaitable[WaveBuffer]]


async def _stream_audio(text: str, voice: str, rate: str) -> bytes:
    """Collect the audio chunks of one edge-tts stream."""
    communicate = edge_tts.Communicate(text, voice, rate=rate)
    data = bytearray()
    async for chunk in communicate.stream():
        if chunk["type"] == "audio":
            data.extend(chunk["data"])
    return bytes(data)


def decode_speech(data: bytes) -> WaveBuffer:
    """Decode an MP3 payload from the provider into mono float samples."""
    audio = AudioSegment.from_file(io.BytesIO(data), format="mp3")
    return WaveBuffer(samples=audio_to_mono(audio), sample_rate=audio.frame_rate)


async def synthesize(text: str, voice: str, config: SpeechConfig | None = None) -> WaveBuffer:
    """Synthesize ``text`` with ``voice``, retrying with exponential backoff.

    Blank text never reaches the provider: it resolves to a single zero sample
    at the native rate. Empty payloads count as failures. After the last
    attempt the provider's message is raised as ExternalServiceError.
    """
    if not text or not text.strip():
        return WaveBuffer(samples=silence(), sample_rate=TTS_NATIVE_RATE)

    config = config or SpeechConfig()
    last_error = None
    for attempt in range(config.retry_count):
        try:
            data = await _stream_audio(text, voice, config.rate)
            if data:
                speech = decode_speech(data)
                logger.debug("Synthesized %.2fs with %s", speech.duration, voice)
                return speech
            last_error = Exception(f"TTS produced no audio for: {text[:50]}...")
        except Exception as e:
            last_error = e

        logger.warning("Synthesis attempt %d/%d failed for %s: %s",
                       attempt + 1, config.retry_count, voice, last_error)
        if attempt < config.retry_count - 1:
            await asyncio.sleep(config.retry_base_delay * (2 ** attempt))

    raise ExternalServiceError(str(last_error)) from last_error


async def synthesize_all(
    jobs: list[tuple[str, str]],
    synthesizer: Synthesizer | None = None,
    max_workers: int = TTS_MAX_WORKERS,
    deadline: float | None = None,
) -> list[WaveBuffer]:
    """Run every (text, voice) job concurrently, at most ``max_workers`` at once.

    Results come back in job order. The first failure, or the deadline
    expiring, cancels every request still in flight.
    """
    if synthesizer is None:
        synthesizer = synthesize
    semaphore = asyncio.Semaphore(max_workers)
    total = len(jobs)

    async def run(index: int, text: str, voice: str) -> WaveBuffer:
        async with semaphore:
            logger.info("Synthesizing segment %d/%d with %s", index + 1, total, voice)
            return await synthesizer(text, voice)

    tasks = [asyncio.ensure_future(run(i, text, voice)) for i, (text, voice) in enumerate(jobs)]
    try:
        return list(await asyncio.wait_for(asyncio.gather(*tasks), timeout=deadline))
    except asyncio.TimeoutError as e:
        raise ExternalServiceError(f"Synthesis did not finish within {deadline}s") from e
    finally:
        pending = [task for task in tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)


def synthesize_many(
    jobs: list[tuple[str, str]],
    synthesizer: Synthesizer | None = None,
    max_workers: int = TTS_MAX_WORKERS,
    deadline: float | None = None,
) -> list[WaveBuffer]:
    """Sync wrapper around synthesize_all()."""
    if not jobs:
        return []
    return asyncio.run(synthesize_all(jobs, synthesizer, max_workers, deadline))
