"""Tests for the command line entry point."""

import pytest

from frame_player.__main__ import main, parse_args


@pytest.mark.unit()
class TestParseArgs:
    def test_defaults(self):
        args = parse_args(["video.mp4"])
        assert args.video == "video.mp4"
        assert not args.play
        assert not args.reverse
        assert args.at == 0
        assert args.fps is None
        assert args.rate == 1.0
        assert args.pixel_format == "RV32"

    def test_options(self):
        args = parse_args(["video.mp4", "--play", "--at", "1500", "--fps", "25", "--pixel-format", "I420"])
        assert args.play
        assert args.at == 1500.0
        assert args.fps == 25.0
        assert args.pixel_format == "I420"

    def test_rejects_unknown_pixel_format(self):
        with pytest.raises(SystemExit):
            parse_args(["video.mp4", "--pixel-format", "YUY2"])


@pytest.mark.integration()
def test_main_with_missing_file(tmp_path):
    assert main([str(tmp_path / "missing.mp4")]) == 1
