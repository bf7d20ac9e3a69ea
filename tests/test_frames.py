"""Unit tests for pixel formats and frame buffers."""

import numpy as np
import pytest

from frame_player import PixelFormat, VideoFrame, convert_frame, to_bgr
from frame_player.frames import i420_offsets, output_size, setup_frame


def bgr_image(width=64, height=48, value=100):
    return np.full((height, width, 3), value, dtype=np.uint8)


@pytest.mark.unit()
class TestPixelFormat:
    def test_parse(self):
        assert PixelFormat.parse("i420") == PixelFormat.I420
        assert PixelFormat.parse(0) == PixelFormat.RV32
        assert PixelFormat.parse(PixelFormat.I420) == PixelFormat.I420

    def test_parse_unknown(self):
        assert PixelFormat.parse("YUY2") is None
        assert PixelFormat.parse(5) is None
        assert PixelFormat.parse(None) is None


@pytest.mark.unit()
class TestConvertFrame:
    def test_rv32_is_bgra(self):
        pixels = convert_frame(bgr_image(), PixelFormat.RV32)
        assert pixels.shape == (48, 64, 4)
        assert pixels.dtype == np.uint8
        assert (pixels[..., 3] == 255).all()
        assert (pixels[..., :3] == 100).all()

    def test_grayscale_input(self):
        gray = np.full((48, 64), 30, dtype=np.uint8)
        assert convert_frame(gray, PixelFormat.RV32).shape == (48, 64, 4)

    def test_i420_is_a_flat_plane(self):
        pixels = convert_frame(bgr_image(), PixelFormat.I420)
        assert pixels.shape == (64 * 48 * 3 // 2,)

    def test_i420_crops_odd_dimensions(self):
        image = bgr_image(width=5, height=3)
        assert output_size(image, PixelFormat.I420) == (4, 2)
        assert output_size(image, PixelFormat.RV32) == (5, 3)
        assert convert_frame(image, PixelFormat.I420).size == 4 * 2 * 3 // 2

    def test_i420_offsets(self):
        assert i420_offsets(64, 48) == (3072, 3072 + 768)


@pytest.mark.unit()
class TestVideoFrame:
    def test_setup_rv32(self):
        pixels = convert_frame(bgr_image(), PixelFormat.RV32)
        frame = setup_frame(pixels, PixelFormat.RV32, 64, 48)
        assert (frame.width, frame.height) == (64, 48)
        assert frame.u_offset == frame.v_offset == 0
        assert frame.size == 64 * 48 * 4

    def test_setup_i420_sets_plane_offsets(self):
        pixels = convert_frame(bgr_image(), PixelFormat.I420)
        frame = setup_frame(pixels, PixelFormat.I420, 64, 48)
        assert frame.u_offset == 64 * 48
        assert frame.v_offset == 64 * 48 + 32 * 24

    def test_setup_rejects_empty_frames(self):
        with pytest.raises(ValueError):
            setup_frame(np.empty((0,), dtype=np.uint8), PixelFormat.I420, 0, 0)

    def test_fill_reuses_the_buffer(self):
        pixels = convert_frame(bgr_image(value=10), PixelFormat.RV32)
        frame = setup_frame(pixels, PixelFormat.RV32, 64, 48)
        buffer = frame.buffer

        frame.fill(convert_frame(bgr_image(value=200), PixelFormat.RV32))
        assert frame.buffer is buffer
        assert (buffer[..., :3] == 200).all()

    def test_matches(self):
        pixels = convert_frame(bgr_image(), PixelFormat.RV32)
        frame = setup_frame(pixels, PixelFormat.RV32, 64, 48)
        assert frame.matches(pixels, PixelFormat.RV32, 64, 48)
        assert not frame.matches(pixels, PixelFormat.I420, 64, 48)
        assert not frame.matches(convert_frame(bgr_image(32, 24), PixelFormat.RV32), PixelFormat.RV32, 32, 24)

    def test_asarray_returns_the_buffer(self):
        buffer = np.zeros((2, 2, 4), dtype=np.uint8)
        frame = VideoFrame(buffer, 2, 2, PixelFormat.RV32)
        assert np.asarray(frame) is buffer

    @pytest.mark.parametrize("pixel_format", list(PixelFormat))
    def test_to_bgr(self, pixel_format):
        image = bgr_image(value=120)
        pixels = convert_frame(image, pixel_format)
        frame = setup_frame(pixels, pixel_format, 64, 48)
        frame.fill(pixels)

        restored = to_bgr(frame)
        assert restored.shape == (48, 64, 3)
        assert abs(float(restored.mean()) - 120) < 3
