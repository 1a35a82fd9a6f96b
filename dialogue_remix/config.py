"""Configuration objects passed explicitly to the engine and its collaborators."""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from dialogue_remix.constants import (
    SAMPLE_RATE,
    FADE_MS,
    CROSSFADE_MS,
    NORMALIZE_CEILING,
    DURATION_POLICIES,
    PLACEMENT_POLICIES,
    DEFAULT_DURATION_POLICY,
    DEFAULT_PLACEMENT_POLICY,
    TTS_RATE,
    TTS_RETRY_COUNT,
    TTS_RETRY_BASE_DELAY,
    TTS_MAX_WORKERS,
    DEEPGRAM_BASE_URL,
    DEEPGRAM_MODEL,
    DEEPGRAM_TIMEOUT,
    DEEPGRAM_API_KEY_ENV,
)
from dialogue_remix.errors import InputError


@dataclass(frozen=True)
class TimelinePolicy:
    """How segments are sized and written into a timeline.

    duration:
      "fixed"     pad/truncate every segment to its caption length, fade both edges
      "natural"   keep the resampled length, fade the tail only
    placement:
      "crossfade" blend the leading window against existing content, add the rest
      "additive"  sum into existing content
      "overwrite" replace existing content
    """

    duration: str = DEFAULT_DURATION_POLICY
    placement: str = DEFAULT_PLACEMENT_POLICY

    def __post_init__(self):
        if self.duration not in DURATION_POLICIES:
            raise InputError(
                f"Unknown duration policy '{self.duration}' "
                f"(expected one of: {', '.join(DURATION_POLICIES)})"
            )
        if self.placement not in PLACEMENT_POLICIES:
            raise InputError(
                f"Unknown placement policy '{self.placement}' "
                f"(expected one of: {', '.join(PLACEMENT_POLICIES)})"
            )


@dataclass(frozen=True)
class MixConfig:
    sample_rate: int = SAMPLE_RATE
    fade_ms: float = FADE_MS
    crossfade_ms: float = CROSSFADE_MS
    ceiling: float = NORMALIZE_CEILING
    policy: TimelinePolicy = field(default_factory=TimelinePolicy)
    max_workers: int = TTS_MAX_WORKERS
    deadline: float | None = None      # seconds for all synthesis requests

    def __post_init__(self):
        if self.sample_rate <= 0:
            raise InputError(f"Sample rate must be positive, got {self.sample_rate}")
        if self.fade_ms < 0 or self.crossfade_ms < 0:
            raise InputError("Fade and crossfade windows must not be negative")
        if not 0 < self.ceiling <= 1:
            raise InputError(f"Normalization ceiling must be in (0, 1], got {self.ceiling}")
        if self.max_workers < 1:
            raise InputError(f"Worker count must be at least 1, got {self.max_workers}")
        if self.deadline is not None and self.deadline <= 0:
            raise InputError(f"Deadline must be positive, got {self.deadline}")

    @property
    def fade_samples(self) -> int:
        return int(self.sample_rate * self.fade_ms / 1000)

    @property
    def crossfade_samples(self) -> int:
        return int(self.sample_rate * self.crossfade_ms / 1000)

    def settings(self) -> dict:
        """Plain-dict view for the provenance manifest."""
        return {
            "sample_rate": self.sample_rate,
            "fade_ms": self.fade_ms,
            "crossfade_ms": self.crossfade_ms,
            "ceiling": self.ceiling,
            "duration_policy": self.policy.duration,
            "placement_policy": self.policy.placement,
            "max_workers": self.max_workers,
            "deadline": self.deadline,
        }


@dataclass(frozen=True)
class SpeechConfig:
    rate: str = TTS_RATE
    retry_count: int = TTS_RETRY_COUNT
    retry_base_delay: float = TTS_RETRY_BASE_DELAY


@dataclass(frozen=True)
class TranscriptionConfig:
    api_key: str
    model: str = DEEPGRAM_MODEL
    base_url: str = DEEPGRAM_BASE_URL
    timeout: float = DEEPGRAM_TIMEOUT

    @classmethod
    def from_env(cls, api_key: str | None = None, **kwargs) -> "TranscriptionConfig":
        """Build a config from an explicit key or DEEPGRAM_API_KEY (.env honoured)."""
        if not api_key:
            load_dotenv()
            api_key = os.environ.get(DEEPGRAM_API_KEY_ENV, "").strip()
        if not api_key:
            raise InputError(
                f"Missing Deepgram API key: pass --api-key or set {DEEPGRAM_API_KEY_ENV}"
            )
        return cls(api_key=api_key, **kwargs)
