"""Read and write the caption handoff file.

Format:
    <?xml version="1.0" encoding="UTF-8"?>
    <captions>
      <caption speaker="speaker0" start="0.08" end="1.52">Hello there.</caption>
    </captions>

This file is the only contract between transcription and mixing, so the
loader validates everything the engine relies on.
"""

import math
import os
import xml.etree.ElementTree as ET
from xml.sax.saxutils import escape, quoteattr

from dialogue_remix.errors import InputError
from dialogue_remix.models import Caption

_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}


def escape_xml(text: str) -> str:
    """Escape &, <, >, " and ' for element text."""
    if not text:
        return ""
    return escape(text, _XML_ENTITIES)


def _parse_seconds(value: str | None, name: str, index: int) -> float:
    if value is None:
        raise InputError(f"Caption {index + 1} is missing its '{name}' attribute")
    try:
        seconds = float(value)
    except ValueError:
        raise InputError(f"Caption {index + 1} has a non-numeric {name}: {value!r}") from None
    if not math.isfinite(seconds):
        raise InputError(f"Caption {index + 1} has an invalid {name}: {value!r}")
    return seconds


def parse_captions(xml_text: str) -> list[Caption]:
    """Parse caption XML into validated Caption objects, in document order."""
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise InputError(f"Malformed caption XML: {e}") from e

    captions = []
    for i, element in enumerate(root.iter("caption")):
        speaker = (element.get("speaker") or "").strip()
        if not speaker:
            raise InputError(f"Caption {i + 1} has no speaker")
        start = _parse_seconds(element.get("start"), "start", i)
        end = _parse_seconds(element.get("end"), "end", i)
        if start < 0:
            raise InputError(f"Caption {i + 1} starts before zero ({start})")
        if end <= start:
            raise InputError(f"Caption {i + 1} ends at or before its start ({start} → {end})")
        captions.append(Caption(speaker=speaker, start=start, end=end, text=(element.text or "").strip()))

    if not captions:
        raise InputError("No captions found")
    return captions


def load_captions(path: str) -> list[Caption]:
    """Load and validate a caption handoff file."""
    if not os.path.exists(path):
        raise InputError(f"Caption file not found: {path}")
    try:
        with open(path, encoding="utf-8") as f:
            xml_text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise InputError(f"Could not read caption file {path}: {e}") from e
    return parse_captions(xml_text)


def captions_to_xml(captions: list[Caption]) -> str:
    """Serialize captions to the handoff XML format."""
    lines = ['<?xml version="1.0" encoding="UTF-8"?>', "<captions>"]
    for c in captions:
        lines.append(
            f"  <caption speaker={quoteattr(c.speaker)} start=\"{c.start}\" end=\"{c.end}\">"
            f"{escape_xml(c.text)}</caption>"
        )
    lines.append("</captions>")
    return "\n".join(lines) + "\n"


def write_captions(captions: list[Caption], path: str) -> str:
    """Write the caption handoff file. Returns the path written."""
    with open(path, "w", encoding="utf-8") as f:
        f.write(captions_to_xml(captions))
    return path
