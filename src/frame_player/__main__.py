import argparse
import logging
import sys

from .config import OUTPUT_DIR, PlayerConfig
from .desktop_viewer import DesktopViewer
from .media import path_to_mrl
from .player import PlayerState, create_player


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="frame_player", description="Frame-accurate video player.")
    parser.add_argument("video", help="Video file path or URL")
    parser.add_argument("--play", action="store_true", help="Start playing forward")
    parser.add_argument("--reverse", action="store_true", help="Start playing in reverse")
    parser.add_argument("--at", type=float, default=0, help="Start time in milliseconds")
    parser.add_argument("--fps", type=float, default=None, help="Frame rate for frame numbers")
    parser.add_argument("--rate", type=float, default=PlayerConfig.DEFAULT_RATE)
    parser.add_argument("--rate-reverse", type=float, default=PlayerConfig.DEFAULT_RATE_REVERSE)
    parser.add_argument("--pixel-format", default=PlayerConfig.DEFAULT_PIXEL_FORMAT, choices=["RV32", "I420"])
    parser.add_argument("--output-dir", default=OUTPUT_DIR, help="Where saved frames go")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=PlayerConfig.LOG_FORMAT,
    )

    options = [
        f"--pixel-format={args.pixel_format}",
        f"--rate={args.rate}",
        f"--rate-reverse={args.rate_reverse}",
    ]
    if args.verbose:
        options.append("--verbose")

    with create_player(options) as player:
        viewer = DesktopViewer(player, output_dir=args.output_dir)
        player.load(
            path_to_mrl(args.video),
            start_playing=args.play,
            start_playing_reverse=args.reverse,
            at_time=args.at,
            with_fps=args.fps,
        )
        if player.state == PlayerState.ERROR:
            return 1
        viewer.show()
    return 0


if __name__ == "__main__":
    sys.exit(main())
