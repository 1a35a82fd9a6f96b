"""Subtitle track built from the original caption timestamps."""

from datetime import timedelta

import srt

from dialogue_remix.models import Caption


def _timestamp(seconds: float) -> timedelta:
    """Round to whole milliseconds, as SRT timestamps carry."""
    return timedelta(milliseconds=round(seconds * 1000))


def build_subtitles(captions: list[Caption], names: dict[str, str]) -> list[srt.Subtitle]:
    """One subtitle per caption, in caption order, prefixed with the speaker name."""
    return [
        srt.Subtitle(
            index=i + 1,
            start=_timestamp(c.start),
            end=_timestamp(c.end),
            content=f"{names.get(c.speaker, c.speaker)}: {c.text}",
        )
        for i, c in enumerate(captions)
    ]


def render_srt(captions: list[Caption], names: dict[str, str]) -> str:
    """Render the SRT text. Captions keep their input order (no re-sorting)."""
    return srt.compose(build_subtitles(captions, names), reindex=False)
