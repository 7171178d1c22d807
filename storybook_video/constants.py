"""All magic numbers and configuration constants."""

HOLD_SECONDS = 4.0                  # on-screen time per page
FADE_SECONDS = 0.5                  # fade-out at the end of each page
AUDIO_POLICY = "shortest"           # "shortest" truncates, "extend" grows hold to fit narration
AUDIO_POLICIES = ("shortest", "extend")
FRAME_RATE = 25                     # fps for every segment (concat needs it uniform)
VIDEO_CODEC = "libx264"
PIXEL_FORMAT = "yuv420p"
AUDIO_CODEC = "aac"
AUDIO_SAMPLE_RATE = 44100
AUDIO_CHANNEL_LAYOUT = "stereo"
WHOOSH_NAME = "whoosh.mp3"          # staged once per export scope
WHOOSH_FILE = "assets/whoosh.mp3"   # optional bundled page-turn sound
WHOOSH_MS = 700                     # length of the procedural whoosh
MANIFEST_NAME = "list.txt"
MANIFEST_HEADER = "ffconcat version 1.0"
OUTPUT_NAME = "output.mp4"
DIAGNOSTIC_TAIL = 2000              # chars of ffmpeg stderr kept in errors
PAGE_SIZE = (1280, 720)             # rendered page canvas (even, so yuv420p is happy)
PAGE_MARGIN = 40
PAGE_FONT_SIZE = 34
TTS_RETRY_COUNT = 3                 # max retries per narration clip
TTS_RETRY_BASE_DELAY = 1.0          # seconds, base delay for exponential backoff
TTS_RATE = "-10%"                   # slightly slower read-aloud pace
NARRATOR_VOICE = "en-US-JennyNeural"
DOWNLOAD_TIMEOUT = 30               # seconds for fetching remote illustrations
DEFAULT_TITLE = "storybook"         # filename when the story has no title
OUTPUT_DIR = "output"
VERSION = "0.1.0"
