import cv2
import numpy as np

from .base_viewer import BaseViewer
from .config import OUTPUT_DIR, PlayerConfig
from .player import Player
from .timing import ms_per_frame


class DesktopViewer(BaseViewer):
    """Shows a player in an OpenCV window, running its callbacks on the calling thread."""

    def __init__(self, player: Player, window_name: str = PlayerConfig.WINDOW_NAME, output_dir: str = OUTPUT_DIR):
        super().__init__(player, output_dir)
        self.window_name = window_name
        self.trackbar_name = "Frame"
        self._has_trackbar = False

    def _update_frame(self, frame: np.ndarray):
        # Display real-time FPS
        cv2.putText(frame, f"FPS: {self.real_time_fps:.2f}", (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 1, (0, 255, 0), 2)

        cv2.imshow(self.window_name, frame)
        if self._has_trackbar:
            cv2.setTrackbarPos(self.trackbar_name, self.window_name, self.current_frame_index)

    def _on_trackbar_change(self, frame_pos: int):
        # Moving the trackbar from _update_frame calls back here too
        if frame_pos != self.current_frame_index:
            self._seek(frame_pos)

    def _wait_ms(self) -> int:
        fps = self.player.fps
        return max(1, int(ms_per_frame(fps) / 2)) if fps > 0 else 10

    def _window_closed(self) -> bool:
        return cv2.getWindowProperty(self.window_name, cv2.WND_PROP_VISIBLE) < 1

    def show(self):
        """Displays the player in a desktop window until 'q' is pressed or the window is closed."""
        cv2.namedWindow(self.window_name, cv2.WINDOW_NORMAL)
        frames = self.player.frames
        if frames > 1:
            cv2.createTrackbar(self.trackbar_name, self.window_name, 0, frames - 1, self._on_trackbar_change)
            self._has_trackbar = True

        print("\nDesktop Viewer Controls:\n")
        print("  - Spacebar: Play/Pause")
        print("  - R: Play in reverse")
        print("  - , / .: Previous / next frame")
        print("  - S: Save current frame")
        print("  - Q: Quit")
        print("  - Use the trackbar to seek frames\n")

        while True:
            self.player.process_events()

            key = cv2.waitKey(self._wait_ms()) & 0xFF
            if key == ord('q') or self._window_closed():
                break
            elif key == ord(' '):
                self._toggle_pause()
            elif key == ord('r'):
                self._play_reverse()
            elif key == ord(','):
                self.player.previous_frame()
            elif key == ord('.'):
                self.player.next_frame()
            elif key == ord('s'):
                self._save_frame()

        cv2.destroyWindow(self.window_name)
