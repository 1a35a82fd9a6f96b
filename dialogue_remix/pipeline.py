"""The generate operation: captions + voices + recording → tracks and subtitles."""

import functools
import logging
import os
from dataclasses import dataclass, field

import numpy as np

from dialogue_remix.captions import load_captions
from dialogue_remix.config import MixConfig, SpeechConfig
from dialogue_remix.constants import (
    COMBINED_WAV_FILENAME,
    COMBINED_SRT_FILENAME,
    MANIFEST_FILENAME,
)
from dialogue_remix.effects import peak
from dialogue_remix.exporter import (
    build_manifest,
    encode_wav,
    manifest_json,
    publish,
    track_filenames,
)
from dialogue_remix.models import Caption, WaveBuffer
from dialogue_remix.resample import seconds_to_samples
from dialogue_remix.sources import SourceRecording, needs_synthesis, resolve
from dialogue_remix.subtitles import render_srt
from dialogue_remix.timeline import Timeline, speaker_order
from dialogue_remix.tts import Synthesizer, synthesize, synthesize_many
from dialogue_remix.voices import speaker_names

logger = logging.getLogger(__name__)


@dataclass
class MixResult:
    """Finished, normalized tracks for one generate operation."""

    tracks: dict[str, np.ndarray]
    sample_rate: int
    speakers: list[str]
    names: dict[str, str]
    stats: dict = field(default_factory=dict)

    def stereo_pair(self) -> tuple[np.ndarray, np.ndarray]:
        """Left = first speaker, right = second (silent when there is only one)."""
        left = self.tracks[self.speakers[0]]
        if len(self.speakers) > 1:
            right = self.tracks[self.speakers[1]]
        else:
            right = np.zeros_like(left)
        if len(self.speakers) > 2:
            logger.warning(
                "Stereo mix carries only %s and %s; %s left out",
                self.speakers[0], self.speakers[1], ", ".join(self.speakers[2:]),
            )
        return left, right


def mix(
    captions: list[Caption],
    voices: dict[str, str | None],
    recording: SourceRecording | None,
    config: MixConfig,
    speech: dict[int, WaveBuffer] | None = None,
    names: dict[str, str] | None = None,
) -> MixResult:
    """Resolve every caption, place it on its speaker's timeline, normalize.

    ``speech`` maps caption index → synthesized waveform for every caption
    whose speaker has a voice. Captions are placed in order of start time
    (stable for equal starts) whatever their order in the handoff file.
    """
    speech = speech or {}
    timeline = Timeline.from_captions(captions, config)
    logger.info("Timeline: %d speaker(s), %d samples at %d Hz",
                len(timeline.speakers), timeline.length, config.sample_rate)

    synthesized = extracted = 0
    for i, caption in sorted(enumerate(captions), key=lambda item: item[1].start):
        segment = resolve(caption, voices, recording, config, speech=speech.get(i))
        if needs_synthesis(caption, voices):
            synthesized += 1
        else:
            extracted += 1
        timeline.place(caption.speaker, seconds_to_samples(caption.start, config.sample_rate), segment)

    raw_peaks = {speaker: round(peak(track), 6) for speaker, track in timeline.tracks.items()}
    tracks = timeline.normalized(config.ceiling)
    speakers = timeline.speakers
    stats = {
        "captions": len(captions),
        "synthesized": synthesized,
        "extracted": extracted,
        "duration_seconds": round(timeline.length / config.sample_rate, 3),
        "peaks_before_normalize": raw_peaks,
    }
    return MixResult(
        tracks=tracks,
        sample_rate=config.sample_rate,
        speakers=speakers,
        names=names or speaker_names(speakers),
        stats=stats,
    )


def synthesize_captions(
    captions: list[Caption],
    voices: dict[str, str | None],
    config: MixConfig,
    synthesizer: Synthesizer,
) -> dict[int, WaveBuffer]:
    """Synthesize every voiced caption concurrently; keyed by caption index."""
    indices = [i for i, c in enumerate(captions) if needs_synthesis(c, voices)]
    jobs = [(captions[i].text, voices[captions[i].speaker]) for i in indices]
    if jobs:
        logger.info("Synthesizing %d caption(s) with up to %d worker(s)", len(jobs), config.max_workers)
    results = synthesize_many(jobs, synthesizer, config.max_workers, config.deadline)
    return dict(zip(indices, results))


def render_outputs(result: MixResult, captions: list[Caption]) -> dict[str, bytes | str]:
    """Encode every artifact in memory: per-speaker WAVs, stereo WAV, SRT."""
    outputs: dict[str, bytes | str] = {}
    reserved = (COMBINED_WAV_FILENAME, COMBINED_SRT_FILENAME, MANIFEST_FILENAME)
    for speaker, filename in track_filenames(result.speakers, reserved).items():
        outputs[filename] = encode_wav([result.tracks[speaker]], result.sample_rate)
    outputs[COMBINED_WAV_FILENAME] = encode_wav(list(result.stereo_pair()), result.sample_rate)
    outputs[COMBINED_SRT_FILENAME] = render_srt(captions, result.names)
    return outputs


def generate(
    captions_path: str,
    output_dir: str,
    voices: dict[str, str | None],
    recording_path: str | None = None,
    config: MixConfig | None = None,
    speech_config: SpeechConfig | None = None,
    names: dict[str, str] | None = None,
    synthesizer: Synthesizer | None = None,
) -> list[str]:
    """Run one full generate operation and publish its outputs.

    Any failure aborts before anything is published. Returns the paths of
    the published files.
    """
    config = config or MixConfig()
    captions = load_captions(captions_path)
    speakers = speaker_order(captions)
    voices = {speaker: voices.get(speaker) or None for speaker in speakers}
    names = names or speaker_names(speakers)

    recording = None
    if any(not needs_synthesis(c, voices) for c in captions):
        recording = SourceRecording.load(recording_path)

    if synthesizer is None:
        synthesizer = functools.partial(synthesize, config=speech_config or SpeechConfig())
    speech = synthesize_captions(captions, voices, config, synthesizer)

    result = mix(captions, voices, recording, config, speech=speech, names=names)
    outputs = render_outputs(result, captions)

    manifest = build_manifest(
        project=os.path.basename(os.path.abspath(output_dir)),
        captions_source=os.path.abspath(captions_path),
        recording_source=os.path.abspath(recording_path) if recording else "",
        settings=config.settings(),
        voices=voices,
        names=names,
        files=list(outputs),
        stats=result.stats,
    )
    outputs[MANIFEST_FILENAME] = manifest_json(manifest)
    return publish(outputs, output_dir)
