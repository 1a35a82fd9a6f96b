"""CLI interface with subcommand routing."""

import argparse
import logging
import os
import shutil
import sys

from dialogue_remix.captions import load_captions
from dialogue_remix.config import MixConfig, SpeechConfig, TimelinePolicy, TranscriptionConfig
from dialogue_remix.constants import (
    OUTPUT_DIR,
    ORIGINAL_BASENAME,
    SAMPLE_RATE,
    FADE_MS,
    CROSSFADE_MS,
    NORMALIZE_CEILING,
    DURATION_POLICIES,
    PLACEMENT_POLICIES,
    DEFAULT_DURATION_POLICY,
    DEFAULT_PLACEMENT_POLICY,
    TTS_MAX_WORKERS,
    TTS_RATE,
    VERSION,
)
from dialogue_remix.errors import RemixError
from dialogue_remix.pipeline import generate
from dialogue_remix.timeline import speaker_order
from dialogue_remix.transcribe import transcribe_file
from dialogue_remix.voices import (
    VOICE_POOL,
    assign_voices,
    load_cast,
    parse_pairs,
    speaker_names,
)


def _check_ffmpeg():
    """Warn when ffmpeg is missing; only non-WAV decoding needs it."""
    if not shutil.which("ffmpeg"):
        print("Warning: ffmpeg not found: only WAV recordings can be decoded "
              "and synthesis output cannot be read.", file=sys.stderr)
        print("Install with: brew install ffmpeg (or apt install ffmpeg)", file=sys.stderr)


def cmd_transcribe(args):
    """Diarize a recording and write the caption handoff file."""
    config = TranscriptionConfig.from_env(api_key=args.api_key)
    if args.stems:
        _check_ffmpeg()
    print(f"Transcribing {args.audio}...")
    paths = transcribe_file(args.audio, args.out, config, stems=args.stems)
    captions = load_captions(paths[0])
    speakers = speaker_order(captions)
    print(f"Detected {len(captions)} utterances from {len(speakers)} speaker(s): {', '.join(speakers)}")
    for path in paths:
        print(f"  wrote {path}")
    print(f"Run 'dialogue-remix generate {paths[0]} --audio {paths[1]}' to build the mix.")


def cmd_generate(args):
    """Rebuild the dialogue from captions, original audio and synthesized voices."""
    _check_ffmpeg()
    captions = load_captions(args.captions)
    speakers = speaker_order(captions)
    cast = load_cast(args.cast)
    voices = assign_voices(speakers, cast=cast, overrides=parse_pairs(args.voice, "--voice"))
    names = speaker_names(speakers, cast=cast, overrides=parse_pairs(args.name, "--name"))

    config = MixConfig(
        sample_rate=args.sample_rate,
        fade_ms=args.fade_ms,
        crossfade_ms=args.crossfade_ms,
        ceiling=args.ceiling,
        policy=TimelinePolicy(duration=args.duration, placement=args.placement),
        max_workers=args.workers,
        deadline=args.deadline,
    )

    recording = args.audio
    if recording is None:
        recording = _find_original(os.path.dirname(os.path.abspath(args.captions)))

    print(f"Generating {len(captions)} captions for {len(speakers)} speaker(s)")
    for speaker in speakers:
        source = voices[speaker] or "original audio"
        print(f"  {names[speaker]:<15} ({speaker}) → {source}")

    paths = generate(
        args.captions,
        args.out,
        voices,
        recording_path=recording,
        config=config,
        speech_config=SpeechConfig(rate=args.tts_rate),
        names=names,
    )
    for path in paths:
        print(f"  wrote {path}")
    print("Done.")


def _find_original(directory: str) -> str | None:
    """Locate the original<ext> copy written by 'transcribe' next to the captions."""
    if not os.path.isdir(directory):
        return None
    for filename in sorted(os.listdir(directory)):
        if os.path.splitext(filename)[0] == ORIGINAL_BASENAME:
            return os.path.join(directory, filename)
    return None


def cmd_voices(args):
    """List available voices."""
    filter_str = args.filter.lower() if args.filter else None
    voices = VOICE_POOL
    if filter_str:
        voices = [v for v in voices if filter_str in v.lower()]
    if not voices:
        print("No matching voices found.")
        return
    print("Available voices:")
    for v in voices:
        print(f"  {v}")


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="dialogue-remix",
        description="Dialogue Remix: rebuild a conversation from original and synthesized speech",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log pipeline progress")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # transcribe
    tr_parser = subparsers.add_parser("transcribe", help="Diarize a recording into captions.xml")
    tr_parser.add_argument("audio", help="Path to the recording")
    tr_parser.add_argument("--out", default=OUTPUT_DIR, help="Output directory")
    tr_parser.add_argument("--api-key", help="Deepgram API key (default: $DEEPGRAM_API_KEY)")
    tr_parser.add_argument("--stems", action="store_true", help="Also write per-speaker stems of the original")
    tr_parser.set_defaults(func=cmd_transcribe)

    # generate
    gen_parser = subparsers.add_parser("generate", help="Build per-speaker, stereo and subtitle outputs")
    gen_parser.add_argument("captions", help="Caption handoff file (captions.xml)")
    gen_parser.add_argument("--audio", help="Original recording (default: original.* next to the captions)")
    gen_parser.add_argument("--voice", action="append", metavar="SPEAKER=VOICE",
                            help="Synthesize a speaker with this voice (repeatable)")
    gen_parser.add_argument("--name", action="append", metavar="SPEAKER=NAME",
                            help="Display name used in subtitles (repeatable)")
    gen_parser.add_argument("--cast", help="JSON file mapping speakers to {name, voice}")
    gen_parser.add_argument("--out", default=OUTPUT_DIR, help="Output directory")
    gen_parser.add_argument("--sample-rate", type=int, default=SAMPLE_RATE, help="Output sample rate (Hz)")
    gen_parser.add_argument("--fade-ms", type=float, default=FADE_MS, help="Edge fade window (ms)")
    gen_parser.add_argument("--crossfade-ms", type=float, default=CROSSFADE_MS, help="Crossfade window (ms)")
    gen_parser.add_argument("--ceiling", type=float, default=NORMALIZE_CEILING, help="Peak after normalization")
    gen_parser.add_argument("--duration", choices=DURATION_POLICIES, default=DEFAULT_DURATION_POLICY,
                            help="Segment duration policy")
    gen_parser.add_argument("--placement", choices=PLACEMENT_POLICIES, default=DEFAULT_PLACEMENT_POLICY,
                            help="How segments are written into a timeline")
    gen_parser.add_argument("--workers", type=int, default=TTS_MAX_WORKERS, help="Concurrent synthesis requests")
    gen_parser.add_argument("--deadline", type=float, help="Overall synthesis deadline (seconds)")
    gen_parser.add_argument("--tts-rate", default=TTS_RATE, help='edge-tts speech rate, e.g. "-10%%"')
    gen_parser.set_defaults(func=cmd_generate)

    # voices
    voices_parser = subparsers.add_parser("voices", help="List available voices")
    voices_parser.add_argument("--filter", help="Filter voices by substring")
    voices_parser.set_defaults(func=cmd_voices)

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return

    try:
        args.func(args)
    except RemixError as e:
        print(f"Error [{e.tag}]: {e.message}", file=sys.stderr)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
