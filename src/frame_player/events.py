from collections import defaultdict
from enum import Enum
from typing import Callable, DefaultDict, List, Union
import logging
import threading

logger = logging.getLogger(__name__)


class Callback(str, Enum):
    """Names of everything a player reports to its consumer."""
    FRAME_SETUP = "FrameSetup"
    FRAME_READY = "FrameReady"
    FRAME_CLEANUP = "FrameCleanup"

    MEDIA_CHANGED = "MediaChanged"
    NOTHING_SPECIAL = "NothingSpecial"
    OPENING = "Opening"
    BUFFERING = "Buffering"
    PLAYING = "Playing"
    PAUSED = "Paused"
    STOPPED = "Stopped"
    FORWARD = "Forward"
    BACKWARD = "Backward"
    BEGIN_REACHED = "BeginReached"
    END_REACHED = "EndReached"
    ENCOUNTERED_ERROR = "EncounteredError"

    TIME_CHANGED = "TimeChanged"
    POSITION_CHANGED = "PositionChanged"
    SEEKABLE_CHANGED = "SeekableChanged"
    PAUSABLE_CHANGED = "PausableChanged"
    LENGTH_CHANGED = "LengthChanged"

    LOG_MESSAGE = "LogMessage"

    @property
    def attribute(self) -> str:
        """The player attribute holding the single assignable handler, e.g. on_frame_ready."""
        snake = "".join(f"_{c.lower()}" if c.isupper() else c for c in self.value)
        return f"on{snake}"


def _event_name(event: Union[str, Callback]) -> str:
    return event.value if isinstance(event, Callback) else str(event)


class EventEmitter:
    """A small thread-safe emitter keyed by callback name."""

    def __init__(self):
        self._listeners: DefaultDict[str, List[Callable]] = defaultdict(list)
        self._lock = threading.Lock()

    def on(self, event: Union[str, Callback], listener: Callable) -> Callable:
        with self._lock:
            self._listeners[_event_name(event)].append(listener)
        return listener

    def once(self, event: Union[str, Callback], listener: Callable) -> Callable:
        def wrapper(*args):
            self.off(event, wrapper)
            listener(*args)

        wrapper.listener = listener  # type: ignore[attr-defined]
        return self.on(event, wrapper)

    def off(self, event: Union[str, Callback], listener: Callable):
        name = _event_name(event)
        with self._lock:
            listeners = self._listeners.get(name, [])
            for registered in listeners:
                if registered is listener or getattr(registered, "listener", None) is listener:
                    listeners.remove(registered)
                    break

    def listeners(self, event: Union[str, Callback]) -> List[Callable]:
        with self._lock:
            return list(self._listeners.get(_event_name(event), []))

    def emit(self, event: Union[str, Callback], *args) -> bool:
        """Calls every listener of the event; returns whether there were any."""
        listeners = self.listeners(event)
        for listener in listeners:
            try:
                listener(*args)
            except Exception:
                logger.exception(f"Listener {listener!r} for {_event_name(event)} failed")
        return bool(listeners)
