import logging
import os
import time
from abc import ABC, abstractmethod
from collections import deque
from typing import Optional

import cv2
import numpy as np

from .config import OUTPUT_DIR, PlayerConfig
from .events import Callback
from .frames import VideoFrame, to_bgr
from .player import Player

logger = logging.getLogger(__name__)


class BaseViewer(ABC):
    """Abstract base class for windows that show the frames a player delivers."""

    def __init__(self, player: Player, output_dir: str = OUTPUT_DIR):
        self.player = player
        self.output_dir = output_dir
        self.current_frame: Optional[np.ndarray] = None
        self.current_frame_index = 0
        self.real_time_fps = 0.0
        self.frame_times = deque(maxlen=PlayerConfig.FPS_WINDOW)
        self._last_frame_at: Optional[float] = None

        player.events.on(Callback.FRAME_READY, self._on_frame_ready)
        player.events.on(Callback.PAUSED, self._on_paused)

    def _on_frame_ready(self, video_frame: VideoFrame, frame: int, time_ms: float):
        now = time.time()
        if self._last_frame_at is not None and self.player.playing:
            self.frame_times.append(now - self._last_frame_at)
            if len(self.frame_times) > 1:
                self.real_time_fps = len(self.frame_times) / sum(self.frame_times)
        self._last_frame_at = now

        self.current_frame_index = frame
        self.current_frame = to_bgr(video_frame)
        self._update_frame(self.current_frame.copy())

    def _on_paused(self):
        self.frame_times.clear()
        self._last_frame_at = None

    def _play(self):
        self.player.play()

    def _play_reverse(self):
        self.player.play_reverse()

    def _pause(self):
        self.player.pause()

    def _toggle_pause(self):
        self.player.toggle_pause()

    def _seek(self, frame_index: int):
        self.player.frame = frame_index

    def _save_frame(self) -> Optional[str]:
        if self.current_frame is None:
            logger.warning("No frame to save yet")
            return None
        os.makedirs(self.output_dir, exist_ok=True)
        filepath = os.path.join(self.output_dir, f"frame_{self.current_frame_index}.jpg")
        cv2.imwrite(filepath, self.current_frame)
        logger.info(f"Frame {self.current_frame_index} saved to {filepath}")
        return filepath

    @abstractmethod
    def _update_frame(self, frame: np.ndarray):
        """Shows a BGR frame. Must be implemented by subclasses."""
        pass

    @abstractmethod
    def show(self):
        """Displays the viewer. Must be implemented by subclasses."""
        pass
