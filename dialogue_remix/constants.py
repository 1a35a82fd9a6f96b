"""All magic numbers and configuration constants."""

SAMPLE_RATE = 22050                 # Hz, output rate of every track
FADE_MS = 10                        # ms edge fade applied to each placed segment
CROSSFADE_MS = 20                   # ms blend window at the head of each write
NORMALIZE_CEILING = 0.98            # peak amplitude after normalization
SILENCE_THRESHOLD = 1e-8            # peaks below this are left untouched
MIN_CAPTION_SECONDS = 0.001         # floor for a caption's nominal duration
DURATION_POLICIES = ("fixed", "natural")
PLACEMENT_POLICIES = ("crossfade", "additive", "overwrite")
DEFAULT_DURATION_POLICY = "fixed"
DEFAULT_PLACEMENT_POLICY = "crossfade"

TTS_NATIVE_RATE = 24000             # Hz, edge-tts default output format
TTS_RATE = "+0%"                    # edge-tts speech rate
TTS_RETRY_COUNT = 3                 # max attempts per synthesis request
TTS_RETRY_BASE_DELAY = 1.0          # seconds, base delay for exponential backoff
TTS_MAX_WORKERS = 4                 # concurrent synthesis requests

PCM_SAMPLE_WIDTH = 2                # bytes, 16-bit PCM output

DEEPGRAM_BASE_URL = "https://api.deepgram.com/v1/listen"
DEEPGRAM_MODEL = "nova-2"
DEEPGRAM_TIMEOUT = 300.0            # seconds, upload + transcription
DEEPGRAM_API_KEY_ENV = "DEEPGRAM_API_KEY"

CAPTIONS_FILENAME = "captions.xml"
PLACEHOLDER_SRT_FILENAME = "captions.srt"
ORIGINAL_BASENAME = "original"
COMBINED_WAV_FILENAME = "combined.wav"
COMBINED_SRT_FILENAME = "combined.srt"
MANIFEST_FILENAME = "output.json"
OUTPUT_DIR = "outputs"
VERSION = "0.1.0"
