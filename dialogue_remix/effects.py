"""Audio effects: edge fades, crossfade blending and peak normalization."""

import numpy as np

from dialogue_remix.constants import NORMALIZE_CEILING, SILENCE_THRESHOLD


def _ramp(window: int) -> np.ndarray:
    """Linear weights k/W for k in [0, W)."""
    return np.arange(window, dtype=np.float64) / window


def apply_fade(
    samples: np.ndarray,
    window: int,
    fade_in: bool = True,
    fade_out: bool = True,
) -> np.ndarray:
    """Apply a linear ramp-in and/or ramp-out over ``window`` samples.

    Sample k of the head is scaled by k/W; the tail mirrors it so the last
    sample lands on zero. Returns a new array, the input is not modified.
    """
    out = np.array(samples, dtype=np.float32, copy=True)
    n = min(window, len(out))
    if window <= 0 or n == 0:
        return out

    weights = _ramp(window)[:n]
    if fade_in:
        out[:n] = out[:n] * weights
    if fade_out:
        out[len(out) - n:] = out[len(out) - n:] * weights[::-1]
    return out


def crossfade_into(region: np.ndarray, incoming: np.ndarray, window: int) -> None:
    """Blend ``incoming`` into ``region`` in place.

    The first ``window`` samples follow existing*(1 - k/C) + incoming*(k/C);
    everything after the window is summed. window == 0 is plain addition.
    ``region`` and ``incoming`` must have the same length.
    """
    n = min(max(window, 0), len(incoming))
    if n:
        weights = _ramp(window)[:n]
        region[:n] = region[:n] * (1.0 - weights) + incoming[:n] * weights
    region[n:] += incoming[n:]


def peak(samples: np.ndarray) -> float:
    """Maximum absolute amplitude (0.0 for an empty buffer)."""
    if len(samples) == 0:
        return 0.0
    return float(np.max(np.abs(samples)))


def normalize(samples: np.ndarray, ceiling: float = NORMALIZE_CEILING) -> np.ndarray:
    """Scale a finished track so its peak sits at ``ceiling``.

    Near-silent tracks (peak below SILENCE_THRESHOLD) are returned unchanged.
    """
    level = peak(samples)
    if level < SILENCE_THRESHOLD:
        return samples
    scaled = samples.astype(np.float64) * (ceiling / level)
    return np.clip(scaled, -1.0, 1.0).astype(np.float32)
