"""Shared fixtures for dialogue remix tests."""

import numpy as np
import pytest
from pydub import AudioSegment

from dialogue_remix.captions import write_captions
from dialogue_remix.models import Caption, WaveBuffer


def make_tone(seconds, sample_rate=44100, freq=220.0, amplitude=0.5):
    """Float32 sine tone."""
    t = np.arange(int(seconds * sample_rate)) / sample_rate
    return (np.sin(2 * np.pi * freq * t) * amplitude).astype(np.float32)


def write_wav(path, samples, sample_rate=44100, channels=1):
    """Write float samples (interleaved when stereo) as a 16-bit WAV via pydub."""
    pcm = np.clip(samples * 32767, -32768, 32767).astype(np.int16)
    AudioSegment(
        data=pcm.tobytes(),
        sample_width=2,
        frame_rate=sample_rate,
        channels=channels,
    ).export(str(path), format="wav")
    return str(path)


async def fake_synthesizer(text, voice):
    """Stand-in for edge-tts: 0.5s tone at 24 kHz, silence for blank text."""
    if not text.strip():
        return WaveBuffer(samples=np.zeros(1, dtype=np.float32), sample_rate=24000)
    return WaveBuffer(samples=make_tone(0.5, sample_rate=24000, freq=330.0), sample_rate=24000)


@pytest.fixture
def stereo_recording(tmp_path):
    """2.5s stereo WAV at 44.1 kHz with a different tone per channel."""
    left = make_tone(2.5, freq=220.0)
    right = make_tone(2.5, freq=440.0, amplitude=0.3)
    interleaved = np.column_stack([left, right]).flatten()
    return write_wav(tmp_path / "original.wav", interleaved, channels=2)


@pytest.fixture
def two_speaker_captions():
    return [
        Caption(speaker="speaker0", start=0.0, end=1.0, text="Hello there."),
        Caption(speaker="speaker1", start=1.0, end=2.0, text="Hi, how are you?"),
    ]


@pytest.fixture
def captions_file(tmp_path, two_speaker_captions):
    return write_captions(two_speaker_captions, str(tmp_path / "captions.xml"))
