"""Sample-rate conversion and duration conforming for mono float buffers."""

import numpy as np


def silence(length: int = 1) -> np.ndarray:
    """Return ``length`` zero samples (at least one)."""
    return np.zeros(max(1, length), dtype=np.float32)


def resample(samples: np.ndarray | None, src_rate: int, dst_rate: int) -> np.ndarray:
    """Linearly interpolate ``samples`` from src_rate to dst_rate.

    Empty or missing input yields a single zero sample so downstream
    fixed-length steps never see a zero-length buffer. Equal rates return
    the input object untouched.
    """
    if samples is None or len(samples) == 0:
        return silence()
    if src_rate == dst_rate:
        return samples

    src = np.asarray(samples, dtype=np.float32)
    src_len = len(src)
    dst_len = max(1, round(src_len * dst_rate / src_rate))

    factor = (src_len - 1) / (dst_len - 1) if dst_len > 1 else 0.0
    pos = np.arange(dst_len, dtype=np.float64) * factor
    i0 = np.minimum(np.floor(pos).astype(np.int64), src_len - 1)
    i1 = np.minimum(i0 + 1, src_len - 1)
    t = pos - i0

    out = src[i0] * (1.0 - t) + src[i1] * t
    return out.astype(np.float32)


def conform(samples: np.ndarray, target_len: int) -> np.ndarray:
    """Truncate or zero-pad ``samples`` to exactly ``target_len`` samples."""
    if len(samples) == target_len:
        return samples
    if len(samples) > target_len:
        return samples[:target_len]
    out = np.zeros(target_len, dtype=np.float32)
    out[:len(samples)] = samples
    return out


def seconds_to_samples(seconds: float, sample_rate: int) -> int:
    """Absolute offset of a timestamp, floored to a sample index."""
    return max(0, int(np.floor(seconds * sample_rate)))
