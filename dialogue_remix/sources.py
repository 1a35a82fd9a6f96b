"""Segment source resolution: original recording extraction or synthesized speech.

The original recording is decoded once per operation into a read-only mono
mixdown; every extraction slices that shared array.
"""

import logging
import os
from dataclasses import dataclass

import numpy as np
from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError

from dialogue_remix.config import MixConfig
from dialogue_remix.constants import MIN_CAPTION_SECONDS
from dialogue_remix.errors import MissingSourceError
from dialogue_remix.models import Caption, WaveBuffer
from dialogue_remix.resample import resample, conform, silence

logger = logging.getLogger(__name__)


def audio_to_mono(audio: AudioSegment) -> np.ndarray:
    """Convert a pydub AudioSegment to channel-averaged float32 samples."""
    samples = np.array(audio.get_array_of_samples(), dtype=np.float64)
    if audio.channels > 1:
        samples = samples.reshape((-1, audio.channels)).mean(axis=1)
    full_scale = float(1 << (8 * audio.sample_width - 1))
    return (samples / full_scale).astype(np.float32)


@dataclass(frozen=True)
class SourceRecording:
    """Decoded original recording, mixed down to mono at its native rate."""

    samples: np.ndarray
    sample_rate: int
    path: str = ""

    @classmethod
    def from_audio(cls, audio: AudioSegment, path: str = "") -> "SourceRecording":
        samples = audio_to_mono(audio)
        samples.setflags(write=False)
        return cls(samples=samples, sample_rate=audio.frame_rate, path=path)

    @classmethod
    def load(cls, path: str) -> "SourceRecording":
        """Decode ``path`` once. Missing or undecodable files raise MissingSourceError."""
        if not path or not os.path.exists(path):
            raise MissingSourceError(f"Original recording not found: {path or '(none given)'}")
        try:
            audio = AudioSegment.from_file(path)
        except (CouldntDecodeError, OSError, IndexError) as e:
            raise MissingSourceError(f"Could not decode original recording {path}: {e}") from e
        logger.info(
            "Decoded %s: %d Hz, %d channel(s), %.2fs",
            path, audio.frame_rate, audio.channels, len(audio) / 1000,
        )
        return cls.from_audio(audio, path=path)

    def __len__(self) -> int:
        return len(self.samples)

    def extract(self, start: float, end: float) -> np.ndarray:
        """Mono samples over [start, end) at the native rate (at least one sample)."""
        first = max(0, int(np.floor(start * self.sample_rate)))
        last = min(len(self.samples), int(np.floor(end * self.sample_rate)))
        out = silence(last - first)
        if last > first:
            out[:last - first] = self.samples[first:last]
        return out


def caption_length(caption: Caption, sample_rate: int) -> int:
    """Nominal caption length in samples at ``sample_rate``."""
    seconds = max(MIN_CAPTION_SECONDS, caption.duration)
    return max(1, round(seconds * sample_rate))


def needs_synthesis(caption: Caption, voices: dict[str, str | None]) -> bool:
    return bool(voices.get(caption.speaker))


def resolve(
    caption: Caption,
    voices: dict[str, str | None],
    recording: SourceRecording | None,
    config: MixConfig,
    speech: WaveBuffer | None = None,
) -> np.ndarray:
    """Produce the samples for one caption at the target rate.

    Speakers without a voice replay the original recording over the caption's
    time range; speakers with a voice use ``speech``, the waveform already
    returned by the synthesis provider. Under the fixed duration policy the
    result is conformed to the caption length.
    """
    if needs_synthesis(caption, voices):
        if speech is None:
            raise ValueError(f"No synthesized speech supplied for {caption.speaker} at {caption.start}s")
        segment = resample(speech.samples, speech.sample_rate, config.sample_rate)
        source = "synthesized"
    else:
        if recording is None:
            raise MissingSourceError(
                f"Original recording is required for {caption.speaker} (no voice assigned)"
            )
        raw = recording.extract(caption.start, caption.end)
        segment = resample(raw, recording.sample_rate, config.sample_rate)
        source = "original"

    if config.policy.duration == "fixed":
        segment = conform(segment, caption_length(caption, config.sample_rate))

    logger.debug(
        "Resolved %s %.3f-%.3fs from %s: %d samples",
        caption.speaker, caption.start, caption.end, source, len(segment),
    )
    return segment
