import sys

from frame_player import Callback, DesktopViewer, create_player, path_to_mrl


def main():
    """Starts at the end of a video and plays it backwards at double speed."""
    video_path = sys.argv[1] if len(sys.argv) > 1 else "testing/resources/sample.mp4"

    with create_player(["--rate-reverse=2"]) as player:
        viewer = DesktopViewer(player)
        player.events.on(Callback.BEGIN_REACHED, lambda: print("Reached the first frame"))

        player.load(path_to_mrl(video_path))
        player.time = player.length
        player.play_reverse()
        viewer.show()


if __name__ == "__main__":
    main()
