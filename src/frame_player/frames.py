from __future__ import annotations
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Tuple, Union
import logging
import cv2
import numpy as np

logger = logging.getLogger(__name__)


class PixelFormat(IntEnum):
    """Layouts a decoded frame can be delivered in."""
    RV32 = 0
    I420 = 1

    @classmethod
    def parse(cls, value: Union[int, str, PixelFormat]) -> Optional[PixelFormat]:
        """Returns the matching format, or None for anything unknown."""
        if isinstance(value, str):
            return cls.__members__.get(value.strip().upper())
        try:
            return cls(int(value))
        except (ValueError, TypeError):
            return None


@dataclass
class VideoFrame:
    """
    A frame buffer handed to frame callbacks.

    For RV32 `buffer` has shape (height, width, 4) in BGRA order. For I420 it is a
    flat plane of width*height*3/2 bytes: Y, then U at `u_offset`, then V at `v_offset`.
    """
    buffer: np.ndarray
    width: int
    height: int
    pixel_format: PixelFormat
    u_offset: int = 0
    v_offset: int = 0

    def __array__(self, dtype=None, copy=None):
        if dtype is None:
            return self.buffer
        return self.buffer.astype(dtype)

    @property
    def size(self) -> int:
        return int(self.buffer.size)

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.buffer.shape

    def matches(self, pixels: np.ndarray, pixel_format: PixelFormat, width: int, height: int) -> bool:
        """Whether converted pixels fit this buffer without a new frame setup."""
        return (
            self.pixel_format == pixel_format
            and (self.width, self.height) == (width, height)
            and self.buffer.shape == pixels.shape
        )

    def fill(self, pixels: np.ndarray):
        """Copies converted pixels into the buffer in place."""
        np.copyto(self.buffer, pixels)


def i420_offsets(width: int, height: int) -> Tuple[int, int]:
    """Returns the (u_offset, v_offset) of the chroma planes."""
    u_offset = width * height
    v_offset = u_offset + (width // 2) * (height // 2)
    return u_offset, v_offset


def convert_frame(bgr: np.ndarray, pixel_format: PixelFormat) -> np.ndarray:
    """Converts a decoded BGR (or grayscale) image to the given pixel format."""
    if bgr.ndim == 2:
        bgr = cv2.cvtColor(bgr, cv2.COLOR_GRAY2BGR)

    if pixel_format == PixelFormat.RV32:
        return cv2.cvtColor(bgr, cv2.COLOR_BGR2BGRA)

    height, width = bgr.shape[:2]
    # 4:2:0 subsampling needs even dimensions
    even_height, even_width = height - height % 2, width - width % 2
    if (even_height, even_width) != (height, width):
        logger.debug(f"Cropping {width}x{height} frame to {even_width}x{even_height} for I420")
        bgr = bgr[:even_height, :even_width]
    return cv2.cvtColor(bgr, cv2.COLOR_BGR2YUV_I420).reshape(-1)


def output_size(image: np.ndarray, pixel_format: PixelFormat) -> Tuple[int, int]:
    """Returns the (width, height) a decoded image has once converted."""
    height, width = image.shape[:2]
    if pixel_format == PixelFormat.I420:
        return width - width % 2, height - height % 2
    return width, height


def setup_frame(pixels: np.ndarray, pixel_format: PixelFormat, width: int, height: int) -> VideoFrame:
    """Allocates a new frame buffer for converted pixels of the given size."""
    if width == 0 or height == 0 or pixels.size == 0:
        raise ValueError("Cannot set up an empty video frame.")

    buffer = np.empty_like(pixels)
    if pixel_format == PixelFormat.I420:
        u_offset, v_offset = i420_offsets(width, height)
        return VideoFrame(buffer, width, height, pixel_format, u_offset, v_offset)
    return VideoFrame(buffer, width, height, pixel_format)


def to_bgr(frame: VideoFrame) -> np.ndarray:
    """Converts a delivered frame back to a BGR image for display or saving."""
    if frame.pixel_format == PixelFormat.RV32:
        return cv2.cvtColor(frame.buffer, cv2.COLOR_BGRA2BGR)
    planes = frame.buffer.reshape(frame.height * 3 // 2, frame.width)
    return cv2.cvtColor(planes, cv2.COLOR_YUV2BGR_I420)
