"""Playback of the extracted file through a replaceable engine.

The engine is created lazily, replaced on recovery and released on
:meth:`PlaybackController.dispose`. Each engine instance gets a new
generation number; callbacks registered for an older generation are
dropped, so a replaced engine can never mutate the current state.
"""
from __future__ import annotations

import functools
import logging
import os
import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, List, Optional, Protocol

from .core.models import PlaybackState
from .core.observable import Observable

logger = logging.getLogger(__name__)

STATE_CHANGED = 'state_changed'

# Engine event names.
EVENT_STATE = 'state'
EVENT_DURATION = 'duration'
EVENT_POSITION = 'position'
EVENT_COMPLETE = 'complete'


class Subscription(Protocol):
    def cancel(self) -> None:
        """Stop delivering events to the callback."""


class PlayerEngine(Protocol):
    """Contract of an audio playback backend.

    ``subscribe`` delivers ``bool`` (playing) for ``state``, ``timedelta``
    for ``duration`` and ``position``, and ``None`` for ``complete``.
    """

    def load(self, path: str) -> None: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def seek(self, position: timedelta) -> None: ...

    def subscribe(self, event: str, callback: Callable[[Any], None]) -> Subscription: ...

    def release(self) -> None: ...


@dataclass(frozen=True)
class RecoveryPolicy:
    """How hard the controller tries before reporting a playback error.

    Args:
        max_retries: extra load attempts after the first failure
        delay_seconds: pause before a retry and before reloading on repair
        recreate_before_retry: build a fresh engine before retrying a load
        recreate_on_load: build a fresh engine for every loaded file
        reload_on_stale_resume: reload the file when resuming a track whose
            position and duration both read zero
    """

    max_retries: int = 1
    delay_seconds: float = 0.5
    recreate_before_retry: bool = True
    recreate_on_load: bool = False
    reload_on_stale_resume: bool = False

    @classmethod
    def from_config(cls, values: Optional[dict]) -> "RecoveryPolicy":
        values = values or {}
        return cls(
            max_retries=int(values.get('max_retries', 1)),
            delay_seconds=float(values.get('delay_seconds', 0.5)),
            recreate_before_retry=bool(values.get('recreate_before_retry', True)),
            recreate_on_load=bool(values.get('recreate_on_load', False)),
            reload_on_stale_resume=bool(values.get('reload_on_stale_resume', False)),
        )


class PlaybackController(Observable):
    """Unloaded -> Loaded -> Playing/Paused, with an orthogonal error flag.

    The error flag is cleared only by a successful :meth:`load` or by
    :meth:`repair`.
    """

    def __init__(self, engine_factory: Callable[[], PlayerEngine],
                 recovery: Optional[RecoveryPolicy] = None,
                 path_exists: Callable[[str], bool] = os.path.exists,
                 sleep: Callable[[float], None] = time.sleep):
        super().__init__()
        self.engine_factory = engine_factory
        self.recovery = recovery or RecoveryPolicy()
        self._path_exists = path_exists
        self._sleep = sleep
        self._lock = threading.RLock()

        self._engine: Optional[PlayerEngine] = None
        self._subscriptions: List[Subscription] = []
        self._generation = 0

        self._loaded = False
        self._playing = False
        self._has_error = False
        self._error_message = ''
        self._current_file_path: Optional[str] = None
        self._duration = timedelta(0)
        self._position = timedelta(0)

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def state(self) -> PlaybackState:
        with self._lock:
            return PlaybackState(
                loaded=self._loaded,
                playing=self._playing,
                has_error=self._has_error,
                error_message=self._error_message,
                current_file_path=self._current_file_path,
                duration=self._duration,
                position=self._position,
            )

    # engine lifecycle

    def _create_engine(self) -> bool:
        with self._lock:
            self._generation += 1
            generation = self._generation
        self._dispose_engine()
        try:
            engine = self.engine_factory()
        except Exception as e:
            self._set_error(f"Error initializing player: {e}")
            return False

        with self._lock:
            self._engine = engine
        handlers = (
            (EVENT_STATE, self._on_state),
            (EVENT_DURATION, self._on_duration),
            (EVENT_POSITION, self._on_position),
            (EVENT_COMPLETE, functools.partial(self._on_complete, generation)),
        )
        try:
            for event, handler in handlers:
                self._subscriptions.append(
                    engine.subscribe(event, self._guard(generation, handler))
                )
        except Exception as e:
            self._set_error(f"Error initializing player: {e}")
            self._dispose_engine()
            return False
        logger.debug("Created playback engine generation %d", generation)
        return True

    def _dispose_engine(self) -> None:
        with self._lock:
            subscriptions, self._subscriptions = self._subscriptions, []
            engine, self._engine = self._engine, None

        for subscription in subscriptions:
            try:
                subscription.cancel()
            except Exception as e:
                logger.warning("Error cancelling engine subscription: %s", e)
        if engine is not None:
            try:
                engine.release()
            except Exception as e:
                logger.warning("Error releasing playback engine: %s", e)

    def _guard(self, generation: int, handler: Callable[[Any], None]) -> Callable[[Any], None]:
        def callback(value: Any = None) -> None:
            if generation != self._generation:
                logger.debug("Dropping event from stale engine generation %d", generation)
                return
            handler(value)
        return callback

    # engine events

    def _on_state(self, playing: Any) -> None:
        with self._lock:
            self._playing = bool(playing)
        self._notify(STATE_CHANGED)

    def _on_duration(self, duration: timedelta) -> None:
        with self._lock:
            self._duration = duration
        self._notify(STATE_CHANGED)

    def _on_position(self, position: timedelta) -> None:
        with self._lock:
            self._position = position
        self._notify(STATE_CHANGED)

    def _on_complete(self, generation: int, _: Any = None) -> None:
        # Delivered on a separate thread, so the engine may have been
        # swapped out after the guard let the event through.
        with self._lock:
            if generation != self._generation or self._engine is None:
                logger.debug("Ignoring completion from engine generation %d", generation)
                return
            try:
                self._engine.seek(timedelta(0))
            except Exception as e:
                logger.warning("Error rewinding after completion: %s", e)
            self._playing = False
            self._position = timedelta(0)
        self._notify(STATE_CHANGED)

    def _set_error(self, message: str) -> None:
        logger.error("AudioPlayer error: %s", message)
        with self._lock:
            self._has_error = True
            self._error_message = message
            self._loaded = False
        self._notify(STATE_CHANGED)

    # public operations

    def load(self, path: str) -> bool:
        """Load ``path`` into the engine, retrying once per the recovery policy."""
        with self._lock:
            self._has_error = False
            self._error_message = ''

        if not self._path_exists(path):
            self._set_error(f"File does not exist: {path}")
            return False

        with self._lock:
            if path != self._current_file_path:
                self._duration = timedelta(0)
                self._position = timedelta(0)
            self._current_file_path = path

        if self._engine is None or self.recovery.recreate_on_load:
            if not self._create_engine():
                return False

        attempt = 0
        while True:
            try:
                self._engine.load(path)
                break
            except Exception as e:
                if attempt >= self.recovery.max_retries:
                    self._set_error(f"Error loading audio: {e}")
                    return False
                attempt += 1
                logger.warning("Loading %s failed (%s), retry %d of %d",
                               path, e, attempt, self.recovery.max_retries)
                if self.recovery.recreate_before_retry and not self._create_engine():
                    return False
                self._sleep(self.recovery.delay_seconds)

        with self._lock:
            self._loaded = True
            self._playing = False
        logger.info("Loaded %s for playback", path)
        self._notify(STATE_CHANGED)
        return True

    def toggle_play(self) -> None:
        if not self._loaded or self._has_error or self._engine is None:
            return
        try:
            if self._playing:
                self._engine.pause()
                with self._lock:
                    self._playing = False
            else:
                if (self.recovery.reload_on_stale_resume and self._current_file_path
                        and self._position == timedelta(0) and self._duration == timedelta(0)):
                    logger.debug("Stale engine suspected, reloading %s", self._current_file_path)
                    if not self.load(self._current_file_path):
                        return
                self._engine.play()
                with self._lock:
                    self._playing = True
        except Exception as e:
            self._set_error(f"Error toggling playback: {e}")
            return
        self._notify(STATE_CHANGED)

    def seek_to(self, position: timedelta) -> None:
        if not self._loaded or self._engine is None:
            return
        try:
            self._engine.seek(position)
        except Exception as e:
            logger.warning("Error seeking: %s", e)

    def seek_by_percentage(self, fraction: float) -> None:
        if not self._loaded or self._duration <= timedelta(0):
            return
        fraction = min(1.0, max(0.0, float(fraction)))
        milliseconds = round(fraction * self._duration / timedelta(milliseconds=1))
        self.seek_to(timedelta(milliseconds=milliseconds))

    def repair(self) -> bool:
        """Recreate the engine and reload the last known file."""
        logger.info("Repairing playback engine")
        if not self._create_engine():
            return False
        with self._lock:
            self._has_error = False
            self._error_message = ''
            self._loaded = False
            self._playing = False
        path = self._current_file_path
        if path is None:
            self._notify(STATE_CHANGED)
            return True
        self._sleep(self.recovery.delay_seconds)
        return self.load(path)

    def dispose(self) -> None:
        """Release the engine; safe to call any number of times."""
        with self._lock:
            self._generation += 1
        self._dispose_engine()
        with self._lock:
            self._loaded = False
            self._playing = False
