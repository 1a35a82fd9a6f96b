"""Per-speaker timelines with sample-accurate placement."""

import logging
import math

import numpy as np

from dialogue_remix.config import MixConfig, TimelinePolicy
from dialogue_remix.effects import apply_fade, crossfade_into, normalize
from dialogue_remix.models import Caption

logger = logging.getLogger(__name__)


def speaker_order(captions: list[Caption]) -> list[str]:
    """Unique speaker labels in order of first appearance."""
    seen = []
    for caption in captions:
        if caption.speaker not in seen:
            seen.append(caption.speaker)
    return seen


class Timeline:
    """Fixed-length mono buffers, one per speaker.

    The length is set at construction and never changes; writes that run
    past the end are clamped.
    """

    def __init__(
        self,
        speakers: list[str],
        length: int,
        sample_rate: int,
        policy: TimelinePolicy | None = None,
        fade_samples: int = 0,
        crossfade_samples: int = 0,
    ):
        self.length = max(1, length)
        self.sample_rate = sample_rate
        self.policy = policy or TimelinePolicy()
        self.fade_samples = fade_samples
        self.crossfade_samples = crossfade_samples
        self.tracks: dict[str, np.ndarray] = {
            speaker: np.zeros(self.length, dtype=np.float32) for speaker in speakers
        }

    @classmethod
    def from_captions(cls, captions: list[Caption], config: MixConfig) -> "Timeline":
        end = max(c.end for c in captions)
        return cls(
            speaker_order(captions),
            math.ceil(end * config.sample_rate),
            config.sample_rate,
            policy=config.policy,
            fade_samples=config.fade_samples,
            crossfade_samples=config.crossfade_samples,
        )

    @property
    def speakers(self) -> list[str]:
        return list(self.tracks)

    def track(self, speaker: str) -> np.ndarray:
        if speaker not in self.tracks:
            self.tracks[speaker] = np.zeros(self.length, dtype=np.float32)
        return self.tracks[speaker]

    def place(self, speaker: str, start_sample: int, samples: np.ndarray) -> int:
        """Write ``samples`` into the speaker's track at ``start_sample``.

        Returns the number of samples written. The segment is faded first
        (both edges under the fixed duration policy, tail only under the
        natural policy), then written per the placement policy.
        """
        target = self.track(speaker)
        start_sample = max(0, start_sample)
        allowed = min(len(samples), self.length - start_sample)
        if allowed <= 0:
            logger.debug("Skipped %s write at %d: past timeline end %d", speaker, start_sample, self.length)
            return 0
        if allowed < len(samples):
            logger.debug("Clamped %s write at %d from %d to %d samples", speaker, start_sample, len(samples), allowed)

        faded = apply_fade(
            samples,
            self.fade_samples,
            fade_in=self.policy.duration == "fixed",
            fade_out=True,
        )[:allowed]
        region = target[start_sample:start_sample + allowed]

        if self.policy.placement == "overwrite":
            region[:] = faded
        elif self.policy.placement == "additive":
            region += faded
        else:
            crossfade_into(region, faded, self.crossfade_samples)
        return allowed

    def normalized(self, ceiling: float) -> dict[str, np.ndarray]:
        """Peak-normalize every finished track."""
        return {speaker: normalize(track, ceiling) for speaker, track in self.tracks.items()}
