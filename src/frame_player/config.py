from os.path import join as pjoin
from pathlib import Path
from typing import final


# Paths
ROOT_DIR = str(Path(__file__).resolve().parent.parent.parent)
TESTING_DIR = pjoin(ROOT_DIR, "testing")
OUTPUT_DIR = pjoin(TESTING_DIR, "output")


@final
class PlayerConfig:
    """
    Defaults for players and viewers.
    """
    DEFAULT_PIXEL_FORMAT = "RV32"
    DEFAULT_RATE = 1.0
    DEFAULT_RATE_REVERSE = 1.0

    # Worker wait when there is nothing to decode (seconds)
    IDLE_WAIT = 0.05
    # Forward jumps up to this many frames are decoded and discarded instead of seeking
    SEQUENTIAL_SKIP_LIMIT = 30
    # Sent with Buffering once the media is opened, the decoder buffers nothing
    BUFFERING_COMPLETE = 100.0

    # Lowest level forwarded to LogMessage callbacks unless --verbose is given
    DEFAULT_LOG_LEVEL = "WARNING"
    LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Viewers
    FPS_WINDOW = 60
    WINDOW_NAME = "Frame Player"
