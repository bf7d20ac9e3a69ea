import argparse
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .config import PlayerConfig
from .frames import PixelFormat

logger = logging.getLogger(__name__)


@dataclass
class PlayerOptions:
    """Settings a player is created with."""
    pixel_format: PixelFormat = PixelFormat[PlayerConfig.DEFAULT_PIXEL_FORMAT]
    rate: float = PlayerConfig.DEFAULT_RATE
    rate_reverse: float = PlayerConfig.DEFAULT_RATE_REVERSE
    verbose: bool = False
    dispatch_thread: bool = False
    ignored: Optional[List[str]] = None


def _pixel_format(value: str) -> PixelFormat:
    pixel_format = PixelFormat.parse(value)
    if pixel_format is None:
        raise argparse.ArgumentTypeError(f"unknown pixel format '{value}'")
    return pixel_format


def _positive_float(value: str) -> float:
    number = float(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive number, got '{value}'")
    return number


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="frame_player", add_help=False, exit_on_error=False)
    parser.add_argument("--pixel-format", type=_pixel_format, default=PixelFormat[PlayerConfig.DEFAULT_PIXEL_FORMAT])
    parser.add_argument("--rate", type=_positive_float, default=PlayerConfig.DEFAULT_RATE)
    parser.add_argument("--rate-reverse", type=_positive_float, default=PlayerConfig.DEFAULT_RATE_REVERSE)
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("--dispatch-thread", action="store_true")
    return parser


def parse_options(options: Optional[Sequence[str]] = None) -> PlayerOptions:
    """
    Parses engine-style player options such as ["--pixel-format=I420", "--rate=2"].

    Options the player does not understand (for example "--no-audio") are ignored.

    Raises:
        ValueError: if a known option has a malformed value.
    """
    args = [str(option) for option in (options or []) if str(option)]
    try:
        parsed, unknown = _build_parser().parse_known_args(args)
    except argparse.ArgumentError as e:
        raise ValueError(f"Invalid player option: {e}") from e

    for option in unknown:
        logger.debug(f"Ignoring unsupported player option {option}")

    return PlayerOptions(
        pixel_format=parsed.pixel_format,
        rate=parsed.rate,
        rate_reverse=parsed.rate_reverse,
        verbose=parsed.verbose,
        dispatch_thread=parsed.dispatch_thread,
        ignored=unknown,
    )
