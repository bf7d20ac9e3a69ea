"""
Frame and time arithmetic shared by the player and its input controls.

Times are milliseconds. `length` is the timestamp of the last frame, so a media
with N frames at F fps has length (N - 1) * 1000 / F.
"""
import math
import time
from typing import Optional


def round_half_up(value: float) -> float:
    """Rounds halves away from zero (Python's round() rounds them to even)."""
    return math.floor(value + 0.5) if value >= 0 else math.ceil(value - 0.5)


def ms_per_frame(fps: float) -> float:
    return 1000.0 / fps


def total_frames(length: float, fps: float) -> int:
    """Number of addressable frames for a media of the given length."""
    if fps <= 0:
        return 0
    return int(math.ceil(length * fps / 1000.0)) + 1


def decimal_frame(time_ms: float, fps: float) -> float:
    """The (fractional) frame position of a time."""
    if fps <= 0:
        return 0.0
    return time_ms / ms_per_frame(fps)


def frame_for_time(time_ms: float, length: float, fps: float) -> int:
    return int(min(round_half_up(decimal_frame(time_ms, fps)), total_frames(length, fps)))


def clamp_time(time_ms: float, length: float) -> float:
    """Clamps to [0, length]; an unknown (zero) length only bounds from below."""
    if length != 0:
        return max(0.0, min(float(time_ms), float(length)))
    return max(0.0, float(time_ms))


def clamp_position(position: float) -> float:
    return max(0.0, min(float(position), 1.0))


def time_for_frame(frame: float, length: float, fps: float) -> float:
    frame = max(0.0, min(float(frame), float(total_frames(length, fps))))
    return min(frame * ms_per_frame(fps), float(length))


def previous_frame_time(time_ms: float, length: float, fps: float) -> Optional[float]:
    """Time of the frame before the current one, or None when already at the first frame."""
    current = decimal_frame(time_ms, fps)
    if current <= 0.0:
        return None
    return time_for_frame(math.ceil(current) - 1, length, fps)


def next_frame_time(time_ms: float, length: float, fps: float) -> float:
    """Time of the frame after the current one; the last step lands exactly on `length`."""
    current = decimal_frame(time_ms, fps)
    last = length / ms_per_frame(fps)
    if current < last - 1.0:
        return time_for_frame(math.floor(current) + 1, length, fps)
    return float(length)


def now_ms() -> float:
    return time.monotonic() * 1000.0


class PlaybackClock:
    """
    Estimates playback time between decoded frames.

    The decoder only reports the time of the frame it last produced, so while
    playing forward the current time is advanced by the elapsed wall-clock time
    scaled by the playback rate.
    """

    def __init__(self, clock=now_ms):
        self._clock = clock
        self.current = 0.0
        self._last_tick: Optional[float] = None

    def reset(self, time_ms: float):
        """Jumps to a time; the next advance() starts measuring from there."""
        self.current = float(time_ms)
        self._last_tick = None

    def advance(self, rate: float, length: float) -> float:
        now = self._clock()
        if self._last_tick is not None:
            self.current += (now - self._last_tick) * rate
            self.current = min(self.current, float(length))
        self._last_tick = now
        return self.current
