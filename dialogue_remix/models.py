"""Data models for dialogue reconstruction."""

from dataclasses import dataclass

import numpy as np


@dataclass
class Caption:
    speaker: str       # diarized label, e.g. "speaker0"
    start: float       # seconds
    end: float         # seconds, > start
    text: str = ""

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass
class WaveBuffer:
    samples: np.ndarray    # mono float32 in [-1, 1]
    sample_rate: int

    def __len__(self) -> int:
        return len(self.samples)

    @property
    def duration(self) -> float:
        return len(self.samples) / self.sample_rate
