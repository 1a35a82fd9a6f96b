"""Tests for resampling and duration conforming (Layer 1a)."""

import numpy as np
import pytest

from dialogue_remix.resample import resample, conform, silence, seconds_to_samples


def test_resample_identity_returns_same_object():
    """Equal rates return the input untouched."""
    buf = np.linspace(-1, 1, 100, dtype=np.float32)
    assert resample(buf, 22050, 22050) is buf


@pytest.mark.parametrize("src_len,src_rate,dst_rate", [
    (24000, 24000, 22050),
    (44100, 44100, 22050),
    (1000, 16000, 48000),
    (3, 8000, 22050),
    (7, 48000, 8000),
])
def test_resample_output_length(src_len, src_rate, dst_rate):
    """Length is max(1, round(len * dst/src))."""
    buf = np.random.default_rng(0).uniform(-1, 1, src_len).astype(np.float32)
    out = resample(buf, src_rate, dst_rate)
    assert len(out) == max(1, round(src_len * dst_rate / src_rate))
    assert out.dtype == np.float32


def test_resample_empty_input_is_one_zero_sample():
    for empty in (None, np.array([], dtype=np.float32)):
        out = resample(empty, 24000, 22050)
        assert len(out) == 1
        assert out[0] == 0.0


def test_resample_keeps_endpoints():
    """First and last samples map exactly onto the source endpoints."""
    buf = np.array([0.1, 0.5, -0.3, 0.9], dtype=np.float32)
    out = resample(buf, 4, 10)
    assert out[0] == pytest.approx(0.1)
    assert out[-1] == pytest.approx(0.9)


def test_resample_linear_ramp_stays_linear():
    """Interpolating a ramp gives a ramp."""
    buf = np.arange(11, dtype=np.float32) / 10
    out = resample(buf, 10, 21)
    assert np.allclose(np.diff(out), np.diff(out)[0], atol=1e-6)


def test_resample_single_sample_output():
    """A downsample that rounds to one sample does not divide by zero."""
    out = resample(np.array([0.4, 0.2], dtype=np.float32), 48000, 8000)
    assert len(out) == 1
    assert out[0] == pytest.approx(0.4)


def test_resample_deterministic():
    buf = np.random.default_rng(1).uniform(-1, 1, 5000).astype(np.float32)
    assert np.array_equal(resample(buf, 24000, 22050), resample(buf, 24000, 22050))


def test_conform_truncates_to_prefix():
    buf = np.arange(10, dtype=np.float32)
    out = conform(buf, 4)
    assert np.array_equal(out, buf[:4])


def test_conform_pads_tail_with_zeros():
    buf = np.ones(3, dtype=np.float32)
    out = conform(buf, 7)
    assert len(out) == 7
    assert np.array_equal(out[:3], buf)
    assert not out[3:].any()


def test_conform_equal_length_is_identity():
    buf = np.ones(5, dtype=np.float32)
    assert conform(buf, 5) is buf


def test_silence_minimum_one_sample():
    assert len(silence(0)) == 1
    assert len(silence(5)) == 5


def test_seconds_to_samples_floors():
    assert seconds_to_samples(1.0, 22050) == 22050
    assert seconds_to_samples(0.99999, 22050) == 22049
    assert seconds_to_samples(-0.5, 22050) == 0
