import logging
import os
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse
from urllib.request import url2pathname

import cv2
import numpy as np

from .config import PlayerConfig
from .errors import MediaError
from .timing import round_half_up

logger = logging.getLogger(__name__)


def mrl_to_source(mrl: str) -> str:
    """
    Turns a media resource locator into something cv2.VideoCapture opens.

    file:// URLs become local paths, other URLs (http, rtsp, ...) are passed
    through, and anything without a scheme is treated as a path.
    """
    parsed = urlparse(mrl)
    if parsed.scheme == "file":
        path = url2pathname(parsed.path)
        if parsed.netloc and parsed.netloc != "localhost":
            path = f"//{parsed.netloc}{path}"
        return path
    return mrl


class Media:
    """A decodable video, with frame-accurate random access on top of sequential decoding."""

    def __init__(self, mrl: str, fps: Optional[float] = None):
        """
        Opens the media.

        Args:
            mrl: A file:// URL, a stream URL or a local path.
            fps: Frame rate to lay the frames out in time with, instead of the rate
                the decoder reports.

        Raises:
            MediaError: if the media cannot be opened or has no frames.
            ValueError: if `fps` is not positive.
        """
        if fps is not None and fps <= 0:
            raise ValueError(f"Frame rate must be positive, got {fps}")
        self.mrl = mrl
        self.source = mrl_to_source(mrl)
        if "://" not in self.source and not os.path.exists(self.source):
            raise MediaError(f"Video file not found: {self.source}")

        self.cap = cv2.VideoCapture(self.source)
        if not self.cap.isOpened():
            raise MediaError(f"Error opening video: {mrl}")

        self.width = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        self.height = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        self.decoder_fps = float(self.cap.get(cv2.CAP_PROP_FPS))
        self.fps = float(fps) if fps else self.decoder_fps
        self.frame_count = int(self.cap.get(cv2.CAP_PROP_FRAME_COUNT))
        if self.decoder_fps <= 0 or self.frame_count <= 0:
            self.cap.release()
            raise MediaError(f"Video reports no frames or frame rate: {mrl}")

        # Index of the frame the next cap.read() returns, None when unknown
        self._next_index: Optional[int] = 0
        logger.info(
            f"Opened {mrl}: {self.width}x{self.height}, {self.fps:.3f} fps, {self.frame_count} frames"
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()

    def __iter__(self):
        """Iterates over the frames from the beginning."""
        self._seek(0)
        return self

    def __next__(self) -> np.ndarray:
        ret, frame = self.cap.read()
        if not ret:
            raise StopIteration
        if self._next_index is not None:
            self._next_index += 1
        return frame

    @property
    def length(self) -> float:
        """Timestamp of the last frame in milliseconds."""
        return (self.frame_count - 1) * 1000.0 / self.fps

    @property
    def is_open(self) -> bool:
        return self.cap.isOpened()

    def release(self):
        """Releases the video capture object."""
        if self.cap.isOpened():
            self.cap.release()
            logger.debug(f"Released {self.mrl}")

    def index_for_time(self, time_ms: float) -> int:
        """The decodable frame shown at a time."""
        index = int(round_half_up(time_ms * self.fps / 1000.0))
        return max(0, min(index, self.frame_count - 1))

    def time_for_index(self, index: int) -> float:
        return index * 1000.0 / self.fps

    def _seek(self, index: int):
        self.cap.set(cv2.CAP_PROP_POS_FRAMES, index)
        self._next_index = index

    def read(self, index: int) -> np.ndarray:
        """
        Decodes the frame at an index.

        Raises:
            IndexError: if the index is outside the media or the frame cannot be decoded.
        """
        if not 0 <= index < self.frame_count:
            raise IndexError(f"Frame index {index} out of range (0-{self.frame_count - 1})")

        skip = None if self._next_index is None else index - self._next_index
        if skip is None or skip < 0 or skip > PlayerConfig.SEQUENTIAL_SKIP_LIMIT:
            self._seek(index)
            skip = 0

        ret = all(self.cap.grab() for _ in range(skip))
        frame = None
        if ret:
            ret, frame = self.cap.read()
        if not ret:
            # Decoder position is unknown now, the next read seeks
            self._next_index = None
            raise IndexError(f"Frame index {index} could not be decoded")
        self._next_index = index + 1
        return frame

    def read_at(self, time_ms: float) -> np.ndarray:
        """Decodes the frame shown at a time."""
        return self.read(self.index_for_time(time_ms))


def path_to_mrl(path_or_url: str) -> str:
    """Returns URLs unchanged and turns local paths into file:// URLs."""
    if "://" in path_or_url:
        return path_or_url
    return Path(path_or_url).resolve().as_uri()
