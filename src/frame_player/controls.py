from __future__ import annotations
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .player import Player, PlayerState


class Input:
    """Playback controls of the current input: timing, seeking and rates."""

    def __init__(self, player: Player):
        self._player = player

    @property
    def length(self) -> float:
        return self._player.length

    @property
    def fps(self) -> float:
        return self._player.fps

    @property
    def state(self) -> PlayerState:
        return self._player.state

    @property
    def has_vout(self) -> bool:
        """Whether a frame buffer has been set up for the current media."""
        return self._player.video_frame is not None

    @property
    def position(self) -> float:
        return self._player.position

    @position.setter
    def position(self, position: float):
        self._player.position = position

    @property
    def time(self) -> float:
        return self._player.time

    @time.setter
    def time(self, time: float):
        self._player.time = time

    @property
    def rate(self) -> float:
        """Forward playback speed, 1.0 is real time."""
        return self._player._rate

    @rate.setter
    def rate(self, rate: float):
        self._player._set_rate(rate)

    @property
    def rate_reverse(self) -> float:
        """Reverse playback speed in frames stepped back per frame period."""
        return self._player._rate_reverse

    @rate_reverse.setter
    def rate_reverse(self, rate_reverse: float):
        self._player._set_rate_reverse(rate_reverse)

    def __repr__(self) -> str:
        return f"<Input time={self.time:.1f} length={self.length:.1f} rate={self.rate} rate_reverse={self.rate_reverse}>"
