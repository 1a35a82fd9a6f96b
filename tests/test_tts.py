"""Tests for TTS module (Layer 1g)."""

import asyncio
import io
import shutil
from unittest.mock import patch, MagicMock

import numpy as np
import pytest
from pydub import AudioSegment

from conftest import fake_synthesizer
from dialogue_remix.config import SpeechConfig
from dialogue_remix.errors import ExternalServiceError
from dialogue_remix.models import WaveBuffer
from dialogue_remix.tts import decode_speech, synthesize, synthesize_all, synthesize_many

NO_RETRY_DELAY = SpeechConfig(retry_count=3, retry_base_delay=0)
SPEECH = WaveBuffer(samples=np.full(2400, 0.1, dtype=np.float32), sample_rate=24000)


def _communicate_factory(chunks_per_call):
    """Mock edge_tts.Communicate whose stream() yields the next chunk list (or raises it)."""
    calls = iter(chunks_per_call)

    def factory(text, voice, **kwargs):
        result = next(calls)
        mock = MagicMock()

        async def stream():
            if isinstance(result, Exception):
                raise result
            for chunk in result:
                yield chunk
        mock.stream = stream
        return mock
    return factory


@patch("dialogue_remix.tts.decode_speech", return_value=SPEECH)
@patch("dialogue_remix.tts.edge_tts.Communicate")
def test_synthesize_collects_audio_chunks(mock_comm, mock_decode):
    """Audio chunks are concatenated; metadata chunks are ignored."""
    mock_comm.side_effect = _communicate_factory([[
        {"type": "audio", "data": b"ab"},
        {"type": "WordBoundary", "offset": 0},
        {"type": "audio", "data": b"cd"},
    ]])
    result = asyncio.run(synthesize("Hello", "en-US-AriaNeural", NO_RETRY_DELAY))
    assert result is SPEECH
    mock_decode.assert_called_once_with(b"abcd")
    assert mock_comm.call_args.kwargs["rate"] == NO_RETRY_DELAY.rate


@patch("dialogue_remix.tts.edge_tts.Communicate")
def test_synthesize_blank_text_skips_provider(mock_comm):
    """Blank text resolves to one zero sample without a network call."""
    result = asyncio.run(synthesize("   ", "en-US-AriaNeural"))
    assert len(result) == 1
    assert result.samples[0] == 0.0
    assert result.sample_rate == 24000
    mock_comm.assert_not_called()


@patch("dialogue_remix.tts.decode_speech", return_value=SPEECH)
@patch("dialogue_remix.tts.edge_tts.Communicate")
def test_synthesize_retries_then_succeeds(mock_comm, mock_decode):
    mock_comm.side_effect = _communicate_factory([
        Exception("Network error"),
        [{"type": "audio", "data": b"ok"}],
    ])
    assert asyncio.run(synthesize("Hello", "v", NO_RETRY_DELAY)) is SPEECH
    assert mock_comm.call_count == 2


@patch("dialogue_remix.tts.decode_speech", return_value=SPEECH)
@patch("dialogue_remix.tts.edge_tts.Communicate")
def test_synthesize_empty_payload_counts_as_failure(mock_comm, mock_decode):
    mock_comm.side_effect = _communicate_factory([[], [], [{"type": "audio", "data": b"ok"}]])
    assert asyncio.run(synthesize("Hello", "v", NO_RETRY_DELAY)) is SPEECH
    assert mock_comm.call_count == 3


@patch("dialogue_remix.tts.edge_tts.Communicate")
def test_synthesize_retry_exhausted_surfaces_provider_message(mock_comm):
    mock_comm.side_effect = _communicate_factory([Exception("Permanent failure")] * 3)
    with pytest.raises(ExternalServiceError, match="Permanent failure"):
        asyncio.run(synthesize("Hello", "v", NO_RETRY_DELAY))
    assert mock_comm.call_count == 3


@pytest.mark.skipif(not shutil.which("ffmpeg"), reason="ffmpeg required for MP3")
def test_decode_speech_mp3():
    buffer = io.BytesIO()
    AudioSegment.silent(duration=200, frame_rate=24000).export(buffer, format="mp3")
    result = decode_speech(buffer.getvalue())
    assert result.sample_rate == 24000
    assert len(result) > 0


def test_synthesize_all_keeps_job_order():
    """Results line up with jobs even when later jobs finish first."""
    async def slow_first(text, voice):
        await asyncio.sleep(0.05 if text == "first" else 0)
        return WaveBuffer(samples=np.full(1, len(text), dtype=np.float32), sample_rate=24000)

    results = asyncio.run(synthesize_all([("first", "v"), ("second!", "v")], slow_first, max_workers=2))
    assert [r.samples[0] for r in results] == [5, 7]


def test_synthesize_all_bounds_concurrency():
    active = 0
    highest = 0

    async def tracked(text, voice):
        nonlocal active, highest
        active += 1
        highest = max(highest, active)
        await asyncio.sleep(0.01)
        active -= 1
        return SPEECH

    jobs = [(str(i), "v") for i in range(10)]
    asyncio.run(synthesize_all(jobs, tracked, max_workers=3))
    assert highest == 3


def test_synthesize_all_failure_cancels_in_flight():
    """One failed request aborts the batch and cancels the rest."""
    cancelled = []

    async def flaky(text, voice):
        if text == "bad":
            raise ExternalServiceError("voice not found")
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.append(text)
            raise
        return SPEECH

    with pytest.raises(ExternalServiceError, match="voice not found"):
        asyncio.run(synthesize_all([("a", "v"), ("bad", "v"), ("b", "v")], flaky, max_workers=3))
    assert sorted(cancelled) == ["a", "b"]


def test_synthesize_all_deadline():
    async def hang(text, voice):
        await asyncio.sleep(10)
        return SPEECH

    with pytest.raises(ExternalServiceError, match="within"):
        asyncio.run(synthesize_all([("a", "v")], hang, deadline=0.05))


def test_synthesize_many_sync_wrapper():
    results = synthesize_many([("Hi", "v"), ("", "v")], fake_synthesizer)
    assert len(results) == 2
    assert len(results[0]) == 12000
    assert len(results[1]) == 1
    assert synthesize_many([], fake_synthesizer) == []


@patch("dialogue_remix.tts.decode_speech", return_value=SPEECH)
@patch("dialogue_remix.tts.edge_tts.Communicate")
def test_synthesize_logs_speech_duration(mock_comm, mock_decode, caplog):
    mock_comm.side_effect = _communicate_factory([[{"type": "audio", "data": b"ok"}]])
    with caplog.at_level("DEBUG", logger="dialogue_remix.tts"):
        asyncio.run(synthesize("Hello", "en-US-AriaNeural", NO_RETRY_DELAY))
    assert "Synthesized 0.10s with en-US-AriaNeural" in caplog.text
