"""Shared fixtures: a small synthetic video whose frames identify themselves."""

import time
from pathlib import Path

import cv2
import numpy as np
import pytest

from frame_player import Player, PlayerOptions

FRAME_COUNT = 20
FPS = 10.0
WIDTH, HEIGHT = 64, 48
GRAY_STEP = 10


def gray_level(index: int) -> int:
    """Gray value frame `index` of the sample video is filled with."""
    return index * GRAY_STEP


def frame_index_of(image: np.ndarray) -> int:
    """Recovers the frame index from a decoded BGR/BGRA image."""
    return int(round(float(image[..., :3].mean()) / GRAY_STEP))


@pytest.fixture(scope="session")
def sample_video(tmp_path_factory) -> Path:
    """A 2 second MJPG video: 20 frames at 10 fps, frame k filled with gray level 10*k."""
    path = tmp_path_factory.mktemp("videos") / "sample.avi"
    writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), FPS, (WIDTH, HEIGHT))
    assert writer.isOpened()
    for index in range(FRAME_COUNT):
        writer.write(np.full((HEIGHT, WIDTH, 3), gray_level(index), dtype=np.uint8))
    writer.release()
    return path


@pytest.fixture(scope="session")
def sample_url(sample_video) -> str:
    return sample_video.resolve().as_uri()


@pytest.fixture()
def player():
    player = Player(PlayerOptions())
    yield player
    player.close()


class Recorder:
    """Collects every callback a player delivers, in order."""

    def __init__(self, player: Player):
        self.player = player
        self.events = []
        self.frames = []
        player.on_frame_ready = self._on_frame_ready
        for name in ("Opening", "MediaChanged", "LengthChanged", "Buffering", "Playing", "Paused",
                     "Stopped", "Forward", "Backward", "BeginReached", "EndReached",
                     "EncounteredError", "FrameSetup", "FrameCleanup", "SeekableChanged", "PausableChanged"):
            player.events.on(name, lambda *args, name=name: self.events.append((name, args)))

    def _on_frame_ready(self, video_frame, frame, time_ms):
        self.frames.append((frame_index_of(np.asarray(video_frame)), frame, time_ms))

    def names(self):
        return [name for name, _ in self.events]

    def wait_for(self, predicate, timeout: float = 5.0) -> bool:
        """Dispatches events on this thread until predicate() holds."""
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            self.player.process_events(timeout=0.02)
            if predicate():
                return True
        return predicate()

    def wait_for_event(self, name: str, timeout: float = 5.0) -> bool:
        return self.wait_for(lambda: name in self.names(), timeout)

    def settle(self, duration: float = 0.3):
        """Dispatches everything arriving within `duration` seconds."""
        deadline = time.monotonic() + duration
        while time.monotonic() < deadline:
            self.player.process_events(timeout=0.02)


@pytest.fixture()
def recorder(player) -> Recorder:
    return Recorder(player)
