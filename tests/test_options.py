"""Unit tests for engine-style player options."""

import pytest

from frame_player import PixelFormat, PlayerOptions, parse_options


@pytest.mark.unit()
class TestParseOptions:
    def test_defaults(self):
        options = parse_options()
        assert options == PlayerOptions(ignored=[])
        assert options.pixel_format == PixelFormat.RV32
        assert options.rate == 1.0
        assert options.rate_reverse == 1.0
        assert options.verbose is False
        assert options.dispatch_thread is False

    def test_unknown_options_are_ignored(self):
        options = parse_options(["--no-audio", "--avcodec-hw=any"])
        assert options.ignored == ["--no-audio", "--avcodec-hw=any"]
        assert options.pixel_format == PixelFormat.RV32

    def test_empty_options_are_skipped(self):
        assert parse_options(["", "--verbose"]).verbose is True

    def test_pixel_format(self):
        assert parse_options(["--pixel-format=I420"]).pixel_format == PixelFormat.I420
        assert parse_options(["--pixel-format", "rv32"]).pixel_format == PixelFormat.RV32

    def test_rates(self):
        options = parse_options(["--rate=2", "--rate-reverse=0.5"])
        assert options.rate == 2.0
        assert options.rate_reverse == 0.5

    def test_flags(self):
        options = parse_options(["-v", "--dispatch-thread"])
        assert options.verbose is True
        assert options.dispatch_thread is True

    @pytest.mark.parametrize("option", ["--rate=abc", "--rate=0", "--rate-reverse=-1", "--pixel-format=YUY2"])
    def test_malformed_values(self, option):
        with pytest.raises(ValueError):
            parse_options([option])
