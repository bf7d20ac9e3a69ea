import io
import cv2
import ipywidgets as widgets
import numpy as np
from IPython.display import display
from PIL import Image

from .base_viewer import BaseViewer
from .config import OUTPUT_DIR
from .events import Callback
from .player import Player


class JupyterViewer(BaseViewer):
    """Shows a player in a Jupyter Notebook with interactive controls."""

    def __init__(self, player: Player, output_dir: str = OUTPUT_DIR):
        super().__init__(player, output_dir)

        # Widgets for video display and controls
        self.image_widget = widgets.Image(format='jpeg')
        self.play_button = widgets.Button(description="Play")
        self.reverse_button = widgets.Button(description="Reverse")
        self.pause_button = widgets.Button(description="Pause")
        self.previous_button = widgets.Button(description="<")
        self.next_button = widgets.Button(description=">")
        self.save_button = widgets.Button(description="Save Frame")
        self.progress_slider = widgets.IntSlider(
            min=0, max=max(self.player.frames - 1, 0), step=1, value=0, description='Frame'
        )
        self._moving_slider = False

        # Connect widget events to handlers
        self.play_button.on_click(lambda x: self._play())
        self.reverse_button.on_click(lambda x: self._play_reverse())
        self.pause_button.on_click(lambda x: self._pause())
        self.previous_button.on_click(lambda x: self.player.previous_frame())
        self.next_button.on_click(lambda x: self.player.next_frame())
        self.save_button.on_click(lambda x: self._save_frame())
        self.progress_slider.observe(self._seek_wrapper, names='value')
        player.events.on(Callback.LENGTH_CHANGED, self._on_length_changed)

        # Layout widgets
        controls = widgets.HBox([
            self.reverse_button, self.play_button, self.pause_button,
            self.previous_button, self.next_button, self.save_button,
        ])
        self.container = widgets.VBox([self.image_widget, self.progress_slider, controls])

    def _seek_wrapper(self, change):
        if not self._moving_slider:
            self._seek(change.new)

    def _on_length_changed(self, length: float):
        self.progress_slider.max = max(self.player.frames - 1, 0)

    def _update_frame(self, frame: np.ndarray):
        # Display real-time FPS
        cv2.putText(frame, f"FPS: {self.real_time_fps:.2f}", (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 1, (0, 255, 0), 2)

        # Convert to JPEG for display
        buffer = io.BytesIO()
        Image.fromarray(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)).save(buffer, format='JPEG')
        self.image_widget.value = buffer.getvalue()

        self._moving_slider = True
        try:
            self.progress_slider.value = min(self.current_frame_index, self.progress_slider.max)
        finally:
            self._moving_slider = False

    def show(self):
        """Displays the viewer in the notebook; callbacks run on the player's dispatcher thread."""
        self.player.start_dispatch_thread()
        display(self.container)
        if self.current_frame is not None:
            self._update_frame(self.current_frame.copy())
