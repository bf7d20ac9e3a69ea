"""Tests for the frame viewers that do not need a display."""

import os

import numpy as np
import pytest

from conftest import HEIGHT, WIDTH, Recorder, frame_index_of
from frame_player import BaseViewer, Player


class RecordingViewer(BaseViewer):
    def __init__(self, player, output_dir):
        super().__init__(player, output_dir)
        self.shown = []

    def _update_frame(self, frame: np.ndarray):
        self.shown.append(frame)

    def show(self):
        pass


@pytest.fixture()
def viewer(player, tmp_path):
    return RecordingViewer(player, str(tmp_path / "frames"))


@pytest.mark.integration()
class TestBaseViewer:
    def test_receives_bgr_frames(self, player, viewer, sample_url):
        recorder = Recorder(player)
        player.load(sample_url, at_time=400)
        assert recorder.wait_for(lambda: viewer.shown)

        assert viewer.shown[0].shape == (HEIGHT, WIDTH, 3)
        assert frame_index_of(viewer.shown[0]) == 4
        assert viewer.current_frame_index == 4

    def test_receives_frames_in_i420(self, sample_url, tmp_path):
        with Player(["--pixel-format=I420"]) as player:
            viewer = RecordingViewer(player, str(tmp_path))
            recorder = Recorder(player)
            player.load(sample_url, at_time=600)
            assert recorder.wait_for(lambda: viewer.shown)
            assert viewer.shown[0].shape == (HEIGHT, WIDTH, 3)
            assert frame_index_of(viewer.shown[0]) == 6

    def test_seek(self, player, viewer, sample_url):
        recorder = Recorder(player)
        player.load(sample_url)
        assert recorder.wait_for_event("Paused")
        viewer._seek(9)
        assert recorder.wait_for(lambda: viewer.current_frame_index == 9)

    def test_save_frame(self, player, viewer, sample_url):
        recorder = Recorder(player)
        player.load(sample_url, at_time=200)
        assert recorder.wait_for(lambda: viewer.shown)

        path = viewer._save_frame()
        assert path == os.path.join(viewer.output_dir, "frame_2.jpg")
        assert os.path.isfile(path)

    def test_save_without_frame(self, viewer):
        assert viewer._save_frame() is None
        assert not os.path.exists(viewer.output_dir)
