"""libvlc playback engine (python-vlc).

Importing this module loads libvlc, so it is only imported when a player
is actually needed.
"""
from __future__ import annotations

import logging
import threading
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

import vlc

from .errors import PlaybackEngineError

logger = logging.getLogger(__name__)

def run_off_event_thread(target: Callable[..., None], *args: Any) -> None:
    """Run ``target`` on a daemon thread.

    libvlc must not be called back from its own event thread.
    """
    threading.Thread(target=target, args=args, daemon=True).start()


class VlcSubscription:
    """Detaches the libvlc callbacks registered for one engine event."""

    def __init__(self, event_manager, attachments: List[Tuple[Any, Callable]]):
        self._event_manager = event_manager
        self._attachments = attachments

    def cancel(self) -> None:
        attachments, self._attachments = self._attachments, []
        for event_type, _ in attachments:
            self._event_manager.event_detach(event_type)


class VlcEngine:
    """Adapts a ``vlc.MediaPlayer`` to the playback controller's engine contract.

    A seek requested while the player is stopped or ended is kept and
    applied once playback starts.
    """

    def __init__(self, *instance_args: str):
        self._instance = vlc.Instance(*instance_args)
        if self._instance is None:
            raise PlaybackEngineError("libvlc could not be initialised")
        self._player = self._instance.media_player_new()
        self._events = self._player.event_manager()
        self._lock = threading.Lock()
        self._released = False
        self._pending_seek_ms: Optional[int] = None

    def _check_alive(self) -> None:
        if self._released:
            raise PlaybackEngineError("libvlc player has been released")

    def load(self, path: str) -> None:
        with self._lock:
            self._check_alive()
            media = self._instance.media_new_path(path)
            if media is None:
                raise PlaybackEngineError(f"libvlc cannot open {path}")
            self._pending_seek_ms = None
            self._player.set_media(media)
            media.release()

    def play(self) -> None:
        with self._lock:
            self._check_alive()
            if self._player.get_state() == vlc.State.Ended:
                self._player.stop()
            if self._player.play() == -1:
                raise PlaybackEngineError("libvlc refused to start playback")

    def pause(self) -> None:
        with self._lock:
            self._check_alive()
            self._player.set_pause(1)

    def seek(self, position: timedelta) -> None:
        milliseconds = max(0, int(position / timedelta(milliseconds=1)))
        with self._lock:
            self._check_alive()
            state = self._player.get_state()
            if state in (vlc.State.Playing, vlc.State.Paused):
                self._pending_seek_ms = None
                self._player.set_time(milliseconds)
                return
            if state == vlc.State.Ended:
                # An ended player ignores set_time until it is stopped.
                self._player.stop()
            self._pending_seek_ms = milliseconds or None

    def _apply_pending_seek(self) -> None:
        with self._lock:
            milliseconds, self._pending_seek_ms = self._pending_seek_ms, None
            if milliseconds is None or self._released:
                return
            logger.debug("Applying deferred seek to %d ms", milliseconds)
            self._player.set_time(milliseconds)

    def _on_playing(self, callback: Callable[[Any], None]) -> Callable[[Any], None]:
        def handler(event) -> None:
            if self._pending_seek_ms is not None:
                run_off_event_thread(self._apply_pending_seek)
            callback(True)
        return handler

    def subscribe(self, event: str, callback: Callable[[Any], None]) -> VlcSubscription:
        et = vlc.EventType
        handlers: Dict[str, List[Tuple[Any, Callable]]] = {
            'state': [
                (et.MediaPlayerPlaying, self._on_playing(callback)),
                (et.MediaPlayerPaused, lambda e: callback(False)),
                (et.MediaPlayerStopped, lambda e: callback(False)),
            ],
            'duration': [
                (et.MediaPlayerLengthChanged,
                 lambda e: callback(timedelta(milliseconds=e.u.new_length))),
            ],
            'position': [
                (et.MediaPlayerTimeChanged,
                 lambda e: callback(timedelta(milliseconds=e.u.new_time))),
            ],
            'complete': [
                (et.MediaPlayerEndReached, lambda e: run_off_event_thread(callback, None)),
            ],
        }
        if event not in handlers:
            raise ValueError(f"Unknown engine event: {event}")

        attachments = handlers[event]
        for event_type, handler in attachments:
            self._events.event_attach(event_type, handler)
        return VlcSubscription(self._events, attachments)

    def release(self) -> None:
        with self._lock:
            if self._released:
                return
            self._released = True
            self._pending_seek_ms = None
            logger.debug("Releasing libvlc player")
            self._player.stop()
            self._player.release()
            self._instance.release()
