"""Diarized transcription via Deepgram, producing the caption handoff file.

Uploads the recording to Deepgram's pre-recorded endpoint with diarization
and utterance segmentation enabled, then writes captions.xml, a copy of the
original recording and (optionally) per-speaker isolated stems.
"""

import logging
import mimetypes
import os

import httpx
import numpy as np

from dialogue_remix.captions import captions_to_xml
from dialogue_remix.config import TranscriptionConfig
from dialogue_remix.constants import (
    CAPTIONS_FILENAME,
    PLACEHOLDER_SRT_FILENAME,
    ORIGINAL_BASENAME,
)
from dialogue_remix.effects import normalize
from dialogue_remix.errors import ExternalServiceError, InputError
from dialogue_remix.exporter import encode_wav, publish, track_filenames
from dialogue_remix.models import Caption
from dialogue_remix.sources import SourceRecording
from dialogue_remix.timeline import speaker_order

logger = logging.getLogger(__name__)


def request_utterances(
    audio: bytes,
    content_type: str,
    config: TranscriptionConfig,
    transport: httpx.BaseTransport | None = None,
) -> list[dict]:
    """POST ``audio`` to Deepgram and return its utterance list.

    Non-2xx responses raise ExternalServiceError with the body verbatim.
    """
    params = {
        "model": config.model,
        "diarize": "true",
        "punctuate": "true",
        "utterances": "true",
    }
    headers = {
        "Authorization": f"Token {config.api_key}",
        "Content-Type": content_type,
    }
    try:
        with httpx.Client(timeout=config.timeout, transport=transport) as client:
            response = client.post(config.base_url, params=params, headers=headers, content=audio)
    except httpx.HTTPError as e:
        raise ExternalServiceError(f"Deepgram request failed: {e}") from e

    if response.status_code >= 400:
        raise ExternalServiceError(f"Deepgram error {response.status_code}: {response.text}")
    try:
        payload = response.json()
    except ValueError as e:
        raise ExternalServiceError(f"Deepgram returned invalid JSON: {response.text[:200]}") from e
    return (payload.get("results") or {}).get("utterances") or []


def utterances_to_captions(utterances: list[dict]) -> list[Caption]:
    """Map Deepgram utterances to captions labelled "speaker<N>".

    Zero-length utterances are dropped so the handoff file always validates.
    """
    captions = []
    for u in utterances:
        start = float(u.get("start", 0.0))
        end = float(u.get("end", 0.0))
        if end <= start:
            logger.warning("Dropping zero-length utterance at %.3fs", start)
            continue
        captions.append(Caption(
            speaker=f"speaker{u.get('speaker', 0)}",
            start=max(0.0, start),
            end=end,
            text=(u.get("transcript") or "").strip(),
        ))
    return captions


def speaker_stems(captions: list[Caption], recording: SourceRecording) -> dict[str, np.ndarray]:
    """Full-length mono copy of the recording per speaker, silent outside their captions."""
    stems = {}
    for speaker in speaker_order(captions):
        stem = np.zeros(len(recording), dtype=np.float32)
        for c in captions:
            if c.speaker != speaker:
                continue
            first = max(0, int(np.floor(c.start * recording.sample_rate)))
            last = min(len(recording), int(np.floor(c.end * recording.sample_rate)))
            if last > first:
                stem[first:last] = recording.samples[first:last]
        stems[speaker] = normalize(stem)
    return stems


def transcribe_file(
    audio_path: str,
    output_dir: str,
    config: TranscriptionConfig,
    stems: bool = False,
    transport: httpx.BaseTransport | None = None,
) -> list[str]:
    """Transcribe ``audio_path`` and publish the handoff files into output_dir.

    Returns the published paths, captions.xml first.
    """
    if not os.path.exists(audio_path):
        raise InputError(f"Audio file not found: {audio_path}")
    with open(audio_path, "rb") as f:
        audio = f.read()
    if not audio:
        raise InputError(f"Audio file is empty: {audio_path}")

    content_type = mimetypes.guess_type(audio_path)[0] or "application/octet-stream"
    logger.info("Uploading %s (%d bytes, %s) for transcription", audio_path, len(audio), content_type)
    captions = utterances_to_captions(request_utterances(audio, content_type, config, transport))
    if not captions:
        raise InputError("No utterances detected")
    logger.info("Received %d utterance(s) from %d speaker(s)",
                len(captions), len(speaker_order(captions)))

    extension = os.path.splitext(audio_path)[1].lower() or ".wav"
    outputs: dict[str, bytes | str] = {
        CAPTIONS_FILENAME: captions_to_xml(captions),
        f"{ORIGINAL_BASENAME}{extension}": audio,
        PLACEHOLDER_SRT_FILENAME: "",
    }
    if stems:
        recording = SourceRecording.load(audio_path)
        stem_tracks = speaker_stems(captions, recording)
        for speaker, filename in track_filenames(list(stem_tracks)).items():
            outputs[f"stem_{filename}"] = encode_wav([stem_tracks[speaker]], recording.sample_rate)
    return publish(outputs, output_dir)
