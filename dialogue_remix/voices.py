"""Voice assignment and speaker display names."""

import json
import logging
import os
import re

from dialogue_remix.errors import InputError

logger = logging.getLogger(__name__)

# Hardcoded English voice pool (avoids network call at startup)
VOICE_POOL = [
    "en-US-AriaNeural",
    "en-US-DavisNeural",
    "en-US-TonyNeural",
    "en-US-JennyNeural",
    "en-US-SaraNeural",
    "en-US-GuyNeural",
    "en-GB-SoniaNeural",
    "en-GB-RyanNeural",
    "en-GB-ThomasNeural",
    "en-AU-NatashaNeural",
    "en-AU-WilliamNeural",
    "en-CA-ClaraNeural",
    "en-CA-LiamNeural",
    "en-IN-NeerjaNeural",
    "en-IN-PrabhatNeural",
    "en-IE-EmilyNeural",
]

_NUMBERED_SPEAKER_RE = re.compile(r"^speaker\s*(\d+)$", re.IGNORECASE)


def default_name(speaker: str) -> str:
    """Map "speaker0" to "Speaker 0"; any other label is used as-is."""
    match = _NUMBERED_SPEAKER_RE.match(speaker)
    if match:
        return f"Speaker {match.group(1)}"
    return speaker


def parse_pairs(values: list[str] | None, option: str) -> dict[str, str]:
    """Parse repeated SPEAKER=VALUE command-line options into a dict."""
    result = {}
    for item in values or []:
        speaker, sep, value = item.partition("=")
        if not sep or not speaker.strip():
            raise InputError(f"Invalid {option} '{item}': expected SPEAKER=VALUE")
        result[speaker.strip()] = value.strip()
    return result


def load_cast(cast_path: str | None) -> dict:
    """Load a cast file mapping speaker labels to {"name": ..., "voice": ...}.

    Returns an empty dict when no path is given. A missing or malformed file
    is an InputError, since the user asked for it explicitly.
    """
    if not cast_path:
        return {}
    if not os.path.exists(cast_path):
        raise InputError(f"Cast file not found: {cast_path}")
    try:
        with open(cast_path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InputError(f"Malformed cast file {cast_path}: {e}") from e
    if not isinstance(data, dict):
        raise InputError(f"Cast file {cast_path} must contain a JSON object")
    return data


def assign_voices(
    speakers: list[str],
    cast: dict | None = None,
    overrides: dict[str, str] | None = None,
) -> dict[str, str | None]:
    """Resolve the voice for each speaker.

    Priority: command-line override → cast file → none (replay original).
    An empty override explicitly keeps the original audio.
    """
    cast = cast or {}
    overrides = overrides or {}
    voices = {}
    for speaker in speakers:
        if speaker in overrides:
            voice = overrides[speaker]
        else:
            voice = (cast.get(speaker) or {}).get("voice", "")
        voices[speaker] = voice or None
        if voice and voice not in VOICE_POOL:
            logger.info("Voice %s for %s is not in the bundled pool", voice, speaker)
    unknown = set(overrides) - set(speakers)
    if unknown:
        logger.warning("Voice given for unknown speaker(s): %s", ", ".join(sorted(unknown)))
    return voices


def speaker_names(
    speakers: list[str],
    cast: dict | None = None,
    overrides: dict[str, str] | None = None,
) -> dict[str, str]:
    """Display name for each speaker: override → cast file → default_name()."""
    cast = cast or {}
    overrides = overrides or {}
    names = {}
    for speaker in speakers:
        name = overrides.get(speaker) or (cast.get(speaker) or {}).get("name", "")
        names[speaker] = name or default_name(speaker)
    return names
