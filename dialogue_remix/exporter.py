"""Compose stereo, encode WAV, and publish all outputs atomically."""

import io
import json
import logging
import os
import re
import shutil
import tempfile
from datetime import datetime, timezone

import numpy as np
from pydub import AudioSegment

from dialogue_remix.constants import PCM_SAMPLE_WIDTH, VERSION
from dialogue_remix.errors import EncodeError
from dialogue_remix.resample import conform, silence

logger = logging.getLogger(__name__)


def track_filename(speaker: str) -> str:
    """Filesystem-safe WAV name for a speaker label.

    "speaker0" → "speaker0.wav", "Dr. Who" → "Dr_Who.wav"
    """
    stem = re.sub(r"[^A-Za-z0-9_-]+", "_", speaker).strip("_")
    return f"{stem or 'speaker'}.wav"


def track_filenames(speakers: list[str], reserved: tuple[str, ...] = ()) -> dict[str, str]:
    """Unique WAV name per speaker, in speaker order.

    Labels that sanitize to the same name, or to a reserved name, get a
    numeric suffix ("Dr_Who.wav", "Dr_Who_2.wav"). Comparison ignores case.
    """
    taken = {name.lower() for name in reserved}
    names = {}
    for speaker in speakers:
        filename = track_filename(speaker)
        stem = filename[:-len(".wav")]
        n = 1
        while filename.lower() in taken:
            n += 1
            filename = f"{stem}_{n}.wav"
        taken.add(filename.lower())
        names[speaker] = filename
    return names


def compose_stereo(left: np.ndarray, right: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Zero-pad both channels to the longer length (never truncates)."""
    length = max(len(left), len(right))
    return conform(left, length), conform(right, length)


def to_audio_segment(samples: np.ndarray, sample_rate: int) -> AudioSegment:
    """Convert mono float samples to a 16-bit pydub AudioSegment."""
    if len(samples) == 0:
        samples = silence()
    pcm = np.clip(np.round(samples * 32767.0), -32768, 32767).astype(np.int16)
    return AudioSegment(
        data=pcm.tobytes(),
        sample_width=PCM_SAMPLE_WIDTH,
        frame_rate=sample_rate,
        channels=1,
    )


def encode_wav(channels: list[np.ndarray], sample_rate: int) -> bytes:
    """Serialize one (mono) or two (stereo) float channels as 16-bit PCM WAV."""
    if len(channels) not in (1, 2):
        raise EncodeError(f"Expected 1 or 2 channels, got {len(channels)}")
    try:
        if len(channels) == 1:
            audio = to_audio_segment(channels[0], sample_rate)
        else:
            left, right = compose_stereo(*channels)
            audio = AudioSegment.from_mono_audiosegments(
                to_audio_segment(left, sample_rate),
                to_audio_segment(right, sample_rate),
            )
        buffer = io.BytesIO()
        audio.export(buffer, format="wav")
    except (ValueError, OSError) as e:
        raise EncodeError(f"WAV encoding failed: {e}") from e
    return buffer.getvalue()


def build_manifest(
    project: str,
    captions_source: str,
    recording_source: str,
    settings: dict,
    voices: dict,
    names: dict,
    files: list[str],
    stats: dict,
) -> dict:
    return {
        "project": project,
        "captions": captions_source,
        "recording": recording_source,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "producer_version": VERSION,
        "settings": settings,
        "voices": voices,
        "speakers": names,
        "files": files,
        "stats": stats,
    }


def publish(outputs: dict[str, bytes | str], output_dir: str) -> list[str]:
    """Write every output into a staging directory, then move them into place.

    Nothing is moved until every file has been written, and the staging
    directory is removed whatever happens. Returns the final paths.
    """
    try:
        os.makedirs(output_dir, exist_ok=True)
        staging = tempfile.mkdtemp(prefix=".staging-", dir=output_dir)
    except OSError as e:
        raise EncodeError(f"Could not prepare output directory {output_dir}: {e}") from e

    try:
        for filename, content in outputs.items():
            path = os.path.join(staging, filename)
            if isinstance(content, bytes):
                with open(path, "wb") as f:
                    f.write(content)
            else:
                with open(path, "w", encoding="utf-8") as f:
                    f.write(content)

        paths = []
        for filename in outputs:
            final_path = os.path.join(output_dir, filename)
            os.replace(os.path.join(staging, filename), final_path)
            paths.append(final_path)
    except OSError as e:
        raise EncodeError(f"Writing outputs to {output_dir} failed: {e}") from e
    finally:
        shutil.rmtree(staging, ignore_errors=True)

    logger.info("Published %d file(s) to %s", len(paths), output_dir)
    return paths


def manifest_json(manifest: dict) -> str:
    return json.dumps(manifest, indent=2) + "\n"
