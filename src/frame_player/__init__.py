import cv2

from .errors import PlayerError, MediaError, PlayerClosedError
from .frames import PixelFormat, VideoFrame, convert_frame, to_bgr
from .events import Callback, EventEmitter
from .options import PlayerOptions, parse_options
from .media import Media, mrl_to_source, path_to_mrl
from .controls import Input
from .player import Player, PlayerState, create_player, close_all
from .base_viewer import BaseViewer
from .desktop_viewer import DesktopViewer
from .jupyter_viewer import JupyterViewer

__version__ = "0.1.0"

# Version of the decoding engine
backend_version = cv2.__version__
