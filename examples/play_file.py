import sys
from pathlib import Path

import cv2
import numpy as np
from frame_player import PixelFormat, PlayerState, create_player, path_to_mrl


def on_frame_ready(video_frame, frame, time):
    print(f"on_frame_ready: frame {frame} - time {time:.0f}ms")

    mat = np.asarray(video_frame).reshape(video_frame.height, video_frame.width, 4)
    cv2.imshow('frame', mat)
    cv2.waitKey(1)


def main():
    """Loads a video paused at its first frame and shows every frame the player delivers."""
    video_path = sys.argv[1] if len(sys.argv) > 1 else str(Path(__file__).resolve().parent / "test.mp4")

    with create_player(["--no-audio"]) as player:
        player.pixel_format = PixelFormat.RV32
        player.on_frame_ready = on_frame_ready
        player.input.rate = 1.0
        player.input.rate_reverse = 1.0

        play = False
        play_reverse = False
        time = 0
        player.load(path_to_mrl(video_path), play, play_reverse, time)

        while player.state not in (PlayerState.ERROR, PlayerState.ENDED):
            player.process_events(timeout=0.1)
            key = cv2.waitKey(1) & 0xFF
            if key == ord('q'):
                break
            elif key == ord(' '):
                player.toggle_pause()

    cv2.destroyAllWindows()


if __name__ == "__main__":
    main()
