class PlayerError(Exception):
    """Base class for errors raised by frame_player."""


class MediaError(PlayerError, ValueError):
    """The media could not be opened or decoded."""


class PlayerClosedError(PlayerError, RuntimeError):
    """An operation was attempted on a closed player."""
