"""
The frame player: a playback state machine over a Media decoder.

A worker thread decodes frames (forward playback, reverse stepping, paused seeks)
and posts them, together with state events, to a queue. Callbacks run on
whichever thread calls `process_events()`, or on a dispatcher thread started with
`start_dispatch_thread()`. Decoded frames share a single slot per stop generation,
so a consumer that falls behind only ever receives the newest frame.
"""
from __future__ import annotations
import atexit
import itertools
import logging
import queue
import threading
import weakref
from enum import Enum, IntEnum
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Union

import numpy as np

from .config import PlayerConfig
from .controls import Input
from .errors import MediaError, PlayerClosedError
from .events import Callback, EventEmitter
from .frames import PixelFormat, VideoFrame, convert_frame, output_size, setup_frame
from .media import Media
from .options import PlayerOptions, parse_options
from .timing import (
    PlaybackClock,
    clamp_position,
    clamp_time,
    frame_for_time,
    ms_per_frame,
    next_frame_time,
    previous_frame_time,
    time_for_frame,
    total_frames,
)

logger = logging.getLogger(__name__)

_player_ids = itertools.count(1)
_instances: "weakref.WeakSet[Player]" = weakref.WeakSet()

# Queue markers: frame slot of a generation, frame buffer teardown, wake a blocked process_events()
_FRAME = object()
_CLEANUP = object()
_WAKE = object()


class PlayerState(IntEnum):
    NOTHING_SPECIAL = 0
    OPENING = 1
    BUFFERING = 2
    PLAYING = 3
    PAUSED = 4
    STOPPED = 5
    ENDED = 6
    ERROR = 7


class _LoadState(Enum):
    UNLOADED = 0
    # Media opened paused, its first frame has not been delivered yet
    GETTING = 1
    LOADED = 2


class _CallbackAttribute:
    """Exposes one callback slot as an assignable attribute, e.g. player.on_frame_ready = fn."""

    def __init__(self, callback: Callback):
        self.callback = callback

    def __get__(self, player: Optional[Player], owner=None):
        if player is None:
            return self
        return player._callbacks.get(self.callback)

    def __set__(self, player: Player, handler: Optional[Callable]):
        if handler is None:
            player._callbacks.pop(self.callback, None)
        elif not callable(handler):
            raise TypeError(f"{self.callback.attribute} must be callable, got {type(handler).__name__}")
        else:
            player._callbacks[self.callback] = handler


class _LogForwarder(logging.Handler):
    """Forwards a player's log records to its LogMessage callback."""

    def __init__(self, player: Player, level: int):
        super().__init__(level)
        self._player = weakref.ref(player)
        # Records logged through the player's adapter carry its id
        player_id = player.id
        self.addFilter(lambda record: getattr(record, "player_id", None) == player_id)

    def emit(self, record: logging.LogRecord):
        player = self._player()
        if player is not None:
            player._post(Callback.LOG_MESSAGE, record.levelno, record.getMessage(), str(record.msg))


class Player:
    """A frame-accurate video player delivering decoded frames to callbacks."""

    on_frame_setup = _CallbackAttribute(Callback.FRAME_SETUP)
    on_frame_ready = _CallbackAttribute(Callback.FRAME_READY)
    on_frame_cleanup = _CallbackAttribute(Callback.FRAME_CLEANUP)

    on_media_changed = _CallbackAttribute(Callback.MEDIA_CHANGED)
    on_nothing_special = _CallbackAttribute(Callback.NOTHING_SPECIAL)
    on_opening = _CallbackAttribute(Callback.OPENING)
    on_buffering = _CallbackAttribute(Callback.BUFFERING)
    on_playing = _CallbackAttribute(Callback.PLAYING)
    on_paused = _CallbackAttribute(Callback.PAUSED)
    on_stopped = _CallbackAttribute(Callback.STOPPED)
    on_forward = _CallbackAttribute(Callback.FORWARD)
    on_backward = _CallbackAttribute(Callback.BACKWARD)
    on_begin_reached = _CallbackAttribute(Callback.BEGIN_REACHED)
    on_end_reached = _CallbackAttribute(Callback.END_REACHED)
    on_encountered_error = _CallbackAttribute(Callback.ENCOUNTERED_ERROR)

    on_time_changed = _CallbackAttribute(Callback.TIME_CHANGED)
    on_position_changed = _CallbackAttribute(Callback.POSITION_CHANGED)
    on_seekable_changed = _CallbackAttribute(Callback.SEEKABLE_CHANGED)
    on_pausable_changed = _CallbackAttribute(Callback.PAUSABLE_CHANGED)
    on_length_changed = _CallbackAttribute(Callback.LENGTH_CHANGED)

    on_log_message = _CallbackAttribute(Callback.LOG_MESSAGE)

    # Pixel format aliases, as in player.pixel_format = player.RV32
    RV32 = PixelFormat.RV32
    I420 = PixelFormat.I420

    def __init__(self, options: Union[None, PlayerOptions, Sequence[str]] = None):
        """
        Creates an idle player.

        Args:
            options: A PlayerOptions, or engine-style options such as ["--pixel-format=I420"].
        """
        if not isinstance(options, PlayerOptions):
            options = parse_options(options)
        self._options = options
        self.id = next(_player_ids)

        self._log = logging.LoggerAdapter(logger, {"player_id": self.id})
        self._log_forwarder = _LogForwarder(
            self, logging.DEBUG if options.verbose else logging.getLevelName(PlayerConfig.DEFAULT_LOG_LEVEL)
        )
        if options.verbose:
            logger.setLevel(logging.DEBUG)
        logger.addHandler(self._log_forwarder)

        self._lock = threading.RLock()
        self._wakeup = threading.Condition(self._lock)
        # Held by the worker while decoding, the media is only released under it
        self._decode_lock = threading.Lock()

        self._media: Optional[Media] = None
        self._mrl: Optional[str] = None
        self._with_fps: Optional[float] = None
        self._state = PlayerState.NOTHING_SPECIAL
        self._load_state = _LoadState.UNLOADED
        self._is_playing = False
        self._reverse = False
        self._seek_pending = False
        # Bumped by seeks, loads and stops; a frame decoded for an older target is dropped
        self._revision = 0
        self._last_index: Optional[int] = None
        self._clock = PlaybackClock()
        self._pixel_format = options.pixel_format
        self._rate = options.rate
        self._rate_reverse = options.rate_reverse
        self._closed = False

        self._callbacks: Dict[Callback, Callable] = {}
        self._emitter = EventEmitter()
        self._events: "queue.Queue[Tuple[Any, Tuple]]" = queue.Queue()
        # Latest undelivered frame per generation; stop() starts a new generation so
        # frames decoded afterwards queue their own marker behind the cleanup
        self._frame_slots: Dict[int, Tuple[np.ndarray, int, int, PixelFormat, int, float]] = {}
        self._generation = 0
        self._slot_lock = threading.Lock()
        self._video_frame: Optional[VideoFrame] = None
        self.dropped_frames = 0

        self._input = Input(self)

        self._worker = threading.Thread(target=self._run, name=f"frame-player-{self.id}", daemon=True)
        self._worker.start()
        self._dispatcher: Optional[threading.Thread] = None
        self._dispatch_stop = threading.Event()
        if options.dispatch_thread:
            self.start_dispatch_thread()

        _instances.add(self)
        self._log.debug(f"Player {self.id} created with {options}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        return f"<Player id={self.id} state={self.state.name} mrl={self._mrl!r} time={self.time:.1f}>"

    # ------------------------------------------------------------------ properties

    @property
    def events(self) -> EventEmitter:
        return self._emitter

    @property
    def input(self) -> Input:
        return self._input

    @property
    def mrl(self) -> Optional[str]:
        return self._mrl

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def playing(self) -> bool:
        return self._is_playing

    @property
    def playing_reverse(self) -> bool:
        return self._reverse

    @property
    def state(self) -> PlayerState:
        return self._state

    @property
    def length(self) -> float:
        """Media length in milliseconds, 0 when nothing is loaded."""
        media = self._media
        return media.length if media is not None else 0.0

    @property
    def fps(self) -> float:
        """Frame rate used for frame numbers: the load-time override, else the media's."""
        if self._with_fps:
            return self._with_fps
        media = self._media
        return media.fps if media is not None else 0.0

    @property
    def frames(self) -> int:
        return total_frames(self.length, self.fps)

    @property
    def video_frame(self) -> Optional[VideoFrame]:
        """The frame buffer last handed to FrameReady."""
        return self._video_frame

    @property
    def pixel_format(self) -> PixelFormat:
        return self._pixel_format

    @pixel_format.setter
    def pixel_format(self, pixel_format: Union[int, str, PixelFormat]):
        parsed = PixelFormat.parse(pixel_format)
        if parsed is None:
            self._log.warning(f"Ignoring unknown pixel format {pixel_format!r}")
            return
        with self._lock:
            self._pixel_format = parsed

    @property
    def time(self) -> float:
        return self._clock.current

    @time.setter
    def time(self, time_ms: float):
        with self._wakeup:
            self._ensure_open()
            if self._media is not None:
                self._seek_locked(float(time_ms))

    @property
    def position(self) -> float:
        length = self.length
        return self._clock.current / length if length else 0.0

    @position.setter
    def position(self, position: float):
        with self._wakeup:
            self._ensure_open()
            if self._media is not None:
                self._seek_locked(clamp_position(position) * self.length)

    @property
    def frame(self) -> int:
        return frame_for_time(self._clock.current, self.length, self.fps)

    @frame.setter
    def frame(self, frame: float):
        with self._wakeup:
            self._ensure_open()
            if self._media is not None:
                self._seek_locked(time_for_frame(frame, self.length, self.fps))

    # ------------------------------------------------------------------ operations

    def load(
        self,
        mrl: str,
        start_playing: bool = False,
        start_playing_reverse: bool = False,
        at_time: float = 0,
        with_fps: Optional[float] = None,
    ):
        """
        Loads a media and shows the frame at `at_time`.

        Args:
            mrl: A file:// URL, a stream URL or a local path. Empty values are ignored.
            start_playing: Start forward playback once loaded.
            start_playing_reverse: Start reverse playback once loaded.
            at_time: Time in milliseconds to start from.
            with_fps: Frame rate to use for frame numbers instead of the media's.

        Open failures do not raise, they put the player in the ERROR state and are
        reported through EncounteredError.
        """
        self._ensure_open()
        if not mrl:
            return

        with self._wakeup:
            self._stop_locked()
            self._release_media_locked()
            self._with_fps = float(with_fps) if with_fps else None
            self._mrl = str(mrl)

            self._state = PlayerState.OPENING
            self._post(Callback.MEDIA_CHANGED)
            self._post(Callback.OPENING)

            try:
                media = Media(self._mrl)
            except MediaError as e:
                self._fail(str(e))
                return

            self._media = media
            self._clock.reset(clamp_time(at_time, media.length))
            self._post(Callback.LENGTH_CHANGED, media.length)
            self._post(Callback.SEEKABLE_CHANGED, True)
            self._post(Callback.PAUSABLE_CHANGED, True)
            self._post(Callback.BUFFERING, PlayerConfig.BUFFERING_COMPLETE)

            if start_playing:
                self._start_locked(reverse=False)
            elif start_playing_reverse:
                self._start_locked(reverse=True)
            else:
                self._load_state = _LoadState.GETTING
                self._is_playing = False
            self._wakeup.notify_all()

    def play(self):
        """Plays forward at input.rate; playing after the end starts over."""
        with self._wakeup:
            self._ensure_open()
            if self._media is None:
                return
            if self._clock.current >= self.length:
                self._clock.reset(0)
            self._start_locked(reverse=False)

    def play_reverse(self):
        """Plays backwards, stepping input.rate_reverse frames per frame period."""
        with self._wakeup:
            self._ensure_open()
            if self._media is None or (self._is_playing and self._reverse):
                return
            self._start_locked(reverse=True)

    def pause(self):
        with self._wakeup:
            self._ensure_open()
            self._pause_locked()

    def toggle_pause(self):
        with self._wakeup:
            self._ensure_open()
            if self._is_playing:
                self._pause_locked()
            else:
                self.play()

    def stop(self):
        with self._wakeup:
            self._ensure_open()
            self._stop_locked()

    def previous_frame(self):
        """Pauses and shows the previous frame."""
        with self._wakeup:
            self._ensure_open()
            self._pause_locked()
            if self._media is None:
                return
            previous = previous_frame_time(self._clock.current, self.length, self.fps)
            if previous is not None:
                self._seek_locked(previous)

    def next_frame(self):
        """Pauses and shows the next frame, or the last one at the end."""
        with self._wakeup:
            self._ensure_open()
            self._pause_locked()
            if self._media is None:
                return
            self._seek_locked(next_frame_time(self._clock.current, self.length, self.fps))

    def close(self):
        """Stops all threads and releases the media. Safe to call more than once."""
        with self._wakeup:
            if self._closed:
                return
            self._closed = True
            self._is_playing = False
            self._reverse = False
            self._revision += 1
            self._release_media_locked()
            self._wakeup.notify_all()

        self._post(_WAKE)
        self._dispatch_stop.set()
        current = threading.current_thread()
        for thread in (self._worker, self._dispatcher):
            if thread is not None and thread is not current:
                thread.join()

        logger.removeHandler(self._log_forwarder)
        _instances.discard(self)
        logger.debug(f"Player {self.id} closed")

    # ------------------------------------------------------------------ event delivery

    def process_events(self, timeout: Optional[float] = 0.0) -> int:
        """
        Runs pending callbacks on the calling thread.

        Args:
            timeout: Seconds to wait for the first event; 0 only drains what is
                pending, None waits indefinitely.

        Returns:
            The number of events handled. A closed player handles nothing.
        """
        if self._closed:
            return 0
        try:
            if timeout == 0:
                item = self._events.get_nowait()
            else:
                item = self._events.get(timeout=timeout)
        except queue.Empty:
            return 0

        handled = 0
        # Events posted while dispatching wait for the next call
        pending = self._events.qsize()
        while True:
            self._dispatch(*item)
            handled += 1
            if self._closed or pending == 0:
                break
            pending -= 1
            try:
                item = self._events.get_nowait()
            except queue.Empty:
                break
        return handled

    def start_dispatch_thread(self):
        """Runs callbacks on a background thread instead of process_events() callers."""
        self._ensure_open()
        if self._dispatcher is not None and self._dispatcher.is_alive():
            return
        self._dispatch_stop.clear()
        self._dispatcher = threading.Thread(
            target=self._dispatch_loop, name=f"frame-player-{self.id}-dispatch", daemon=True
        )
        self._dispatcher.start()

    def _dispatch_loop(self):
        while not self._dispatch_stop.is_set():
            self.process_events(timeout=PlayerConfig.IDLE_WAIT)

    def _post(self, callback: Any, *args):
        self._events.put((callback, args))

    def _post_frame(self, pixels: np.ndarray, width: int, height: int, pixel_format: PixelFormat, frame: int, time_ms: float):
        with self._slot_lock:
            generation = self._generation
            needs_marker = generation not in self._frame_slots
            if not needs_marker:
                self.dropped_frames += 1
            self._frame_slots[generation] = (pixels, width, height, pixel_format, frame, time_ms)
        if needs_marker:
            self._post(_FRAME, generation)

    def _dispatch(self, callback: Any, args: Tuple):
        if callback is _FRAME:
            with self._slot_lock:
                slot = self._frame_slots.pop(args[0], None)
            if slot is None:
                return
            pixels, width, height, pixel_format, frame, time_ms = slot
            if self._video_frame is None or not self._video_frame.matches(pixels, pixel_format, width, height):
                if self._video_frame is not None:
                    self._call(Callback.FRAME_CLEANUP)
                self._video_frame = setup_frame(pixels, pixel_format, width, height)
                self._call(Callback.FRAME_SETUP, width, height, pixel_format, self._video_frame)
            self._video_frame.fill(pixels)
            self._call(Callback.FRAME_READY, self._video_frame, frame, time_ms)
        elif callback is _WAKE:
            return
        elif callback is _CLEANUP:
            if self._video_frame is not None:
                self._call(Callback.FRAME_CLEANUP)
                self._video_frame = None
        else:
            self._call(callback, *args)

    def _call(self, callback: Callback, *args):
        handler = self._callbacks.get(callback)
        if handler is not None:
            try:
                handler(*args)
            except Exception:
                # No player_id on this record, so it is not fed back to LogMessage
                logger.exception(f"{callback.attribute} handler of player {self.id} failed")
        self._emitter.emit(callback, *args)

    # ------------------------------------------------------------------ state changes, lock held

    def _ensure_open(self):
        if self._closed:
            raise PlayerClosedError(f"Player {self.id} is closed")

    def _set_rate(self, rate: float):
        rate = float(rate)
        if rate <= 0:
            raise ValueError(f"Playback rate must be positive, got {rate}")
        with self._wakeup:
            if self._is_playing and not self._reverse:
                # Time played so far counts at the old rate
                self._clock.advance(self._rate, self.length)
            self._rate = rate
            self._wakeup.notify_all()

    def _set_rate_reverse(self, rate_reverse: float):
        rate_reverse = float(rate_reverse)
        if rate_reverse <= 0:
            raise ValueError(f"Reverse playback rate must be positive, got {rate_reverse}")
        with self._lock:
            self._rate_reverse = rate_reverse

    def _start_locked(self, reverse: bool):
        self._is_playing = True
        self._reverse = reverse
        self._seek_pending = False
        self._load_state = _LoadState.LOADED
        self._clock.reset(self._clock.current)
        self._state = PlayerState.PLAYING
        self._post(Callback.PLAYING)
        self._post(Callback.BACKWARD if reverse else Callback.FORWARD)
        self._log.debug(f"Playing {'backward' if reverse else 'forward'} from {self._clock.current:.1f}ms")
        self._wakeup.notify_all()

    def _pause_locked(self):
        was_playing = self._is_playing
        self._is_playing = False
        self._reverse = False
        if was_playing:
            self._state = PlayerState.PAUSED
            self._post(Callback.PAUSED)

    def _stop_locked(self):
        was_active = self._state not in (PlayerState.NOTHING_SPECIAL, PlayerState.STOPPED)
        self._load_state = _LoadState.UNLOADED
        self._is_playing = False
        self._reverse = False
        self._seek_pending = False
        self._last_index = None
        self._rate_reverse = self._options.rate_reverse
        self._clock.reset(0)
        self._revision += 1
        with self._slot_lock:
            # Frames already decoded are still delivered, ahead of the cleanup
            self._generation += 1
        if was_active:
            self._state = PlayerState.STOPPED
            self._post(_CLEANUP)
            self._post(Callback.STOPPED)

    def _seek_locked(self, time_ms: float):
        self._clock.reset(clamp_time(time_ms, self.length))
        self._last_index = None
        self._revision += 1
        if not self._is_playing:
            if self._load_state == _LoadState.UNLOADED:
                self._load_state = _LoadState.GETTING
            else:
                self._seek_pending = True
        self._wakeup.notify_all()

    def _release_media_locked(self):
        if self._media is not None:
            with self._decode_lock:
                self._media.release()
            self._media = None

    def _fail(self, message: str):
        self._log.error(message)
        self._is_playing = False
        self._reverse = False
        self._seek_pending = False
        self._load_state = _LoadState.UNLOADED
        self._state = PlayerState.ERROR
        self._post(Callback.ENCOUNTERED_ERROR)

    # ------------------------------------------------------------------ decoding worker

    def _run(self):
        with self._wakeup:
            while not self._closed:
                delay = self._step()
                if self._closed:
                    break
                self._wakeup.wait(PlayerConfig.IDLE_WAIT if delay is None else delay)

    def _step(self) -> Optional[float]:
        """Does one unit of decoding work; returns seconds until the next one is due."""
        media = self._media
        if media is None or self._load_state == _LoadState.UNLOADED:
            return None

        if self._load_state == _LoadState.GETTING:
            self._seek_pending = False
            delivered = self._deliver(self._clock.current)
            if delivered:
                self._load_state = _LoadState.LOADED
                self._state = PlayerState.PAUSED
                self._post(Callback.PAUSED)
            return 0.0 if delivered is None else None

        if not self._is_playing:
            if self._seek_pending:
                self._seek_pending = False
                if self._deliver(self._clock.current) is None:
                    return 0.0
            return None

        if self._reverse:
            return self._step_reverse()
        return self._step_forward(media)

    def _step_forward(self, media: Media) -> Optional[float]:
        length = self.length
        current = self._clock.advance(self._rate, length)
        index = media.index_for_time(current)
        if index != self._last_index:
            delivered = self._deliver(current)
            if not delivered:
                return 0.0 if delivered is None else None

        if current >= length:
            self._is_playing = False
            self._state = PlayerState.ENDED
            self._post(Callback.END_REACHED)
            self._log.debug("End reached")
            return None

        until_next = (media.time_for_index(index + 1) - current) / self._rate
        return max(until_next / 1000.0, 0.001)

    def _step_reverse(self) -> Optional[float]:
        period = ms_per_frame(self.fps)
        current = self._clock.current
        if current > 0:
            current = clamp_time(current - period * self._rate_reverse, self.length)
            self._clock.reset(current)
            delivered = self._deliver(current)
            if not delivered:
                return 0.0 if delivered is None else None

        if current <= 0:
            self._is_playing = False
            self._reverse = False
            self._state = PlayerState.PAUSED
            self._post(Callback.BEGIN_REACHED)
            self._log.debug("Beginning reached")
            return None
        return period / 1000.0

    def _deliver(self, time_ms: float) -> Optional[bool]:
        """
        Decodes the frame shown at a time and hands it to the consumer.

        The lock is released while decoding so API calls do not wait on the decoder.

        Returns:
            True once the frame is posted, False if decoding failed, None if a seek,
            load or stop in the meantime made the frame stale.
        """
        media = self._media
        revision = self._revision
        index = media.index_for_time(time_ms)
        error: Optional[IndexError] = None
        self._lock.release()
        try:
            with self._decode_lock:
                try:
                    image = media.read(index)
                except IndexError as e:
                    error = e
        finally:
            self._lock.acquire()

        if self._closed or self._media is not media or self._revision != revision:
            return None
        if error is not None:
            self._fail(f"Decoding failed at {time_ms:.1f}ms: {error}")
            return False

        pixel_format = self._pixel_format
        width, height = output_size(image, pixel_format)
        pixels = convert_frame(image, pixel_format)
        self._last_index = index
        length = self.length
        self._post_frame(pixels, width, height, pixel_format, frame_for_time(time_ms, length, self.fps), time_ms)
        self._post(Callback.TIME_CHANGED, time_ms)
        self._post(Callback.POSITION_CHANGED, time_ms / length if length else 0.0)
        return True


def create_player(options: Union[None, PlayerOptions, Sequence[str]] = None) -> Player:
    """Creates a player, e.g. create_player(["--no-audio", "--pixel-format=RV32"])."""
    return Player(options)


def close_all():
    """Closes every player that is still open."""
    for player in list(_instances):
        player.close()


atexit.register(close_all)
