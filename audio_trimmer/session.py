"""Selected file and trim range for one trimming session."""
from __future__ import annotations

import logging

from .core.models import AudioFile, TrimRange
from .core.observable import Observable
from .core.trim_range import accept_start, accept_end

logger = logging.getLogger(__name__)

FILE_SELECTED = 'file_selected'
RANGE_CHANGED = 'range_changed'


class AudioFileSession(Observable):
    """Holds the current :class:`AudioFile` and its :class:`TrimRange`.

    Every edit of the range goes through the trim range checks; rejected
    edits leave the range untouched and return ``False``.
    """

    def __init__(self) -> None:
        super().__init__()
        self._audio_file = AudioFile()
        self._range = TrimRange(0.0, self._audio_file.duration_seconds)

    @property
    def audio_file(self) -> AudioFile:
        return self._audio_file

    @property
    def trim_range(self) -> TrimRange:
        return self._range

    @property
    def start(self) -> float:
        return self._range.start

    @property
    def end(self) -> float:
        return self._range.end

    def select_file(self, path: str, display_name: str, duration: float) -> AudioFile:
        """Replace the selected file and reset the range to the whole file."""
        self._audio_file = AudioFile(path=path, display_name=display_name,
                                     duration_seconds=float(duration))
        self._range = TrimRange(0.0, self._audio_file.duration_seconds)
        logger.info("Selected %s (%.1fs)", display_name, self._audio_file.duration_seconds)
        self._notify(FILE_SELECTED)
        return self._audio_file

    def set_start(self, value: float) -> bool:
        if not accept_start(value, self._range.end, self._audio_file.duration_seconds):
            logger.debug("Start %.3f rejected for range %s", value, self._range)
            return False
        self._range = TrimRange(float(value), self._range.end)
        self._notify(RANGE_CHANGED)
        return True

    def set_end(self, value: float) -> bool:
        if not accept_end(value, self._range.start, self._audio_file.duration_seconds):
            logger.debug("End %.3f rejected for range %s", value, self._range)
            return False
        self._range = TrimRange(self._range.start, float(value))
        self._notify(RANGE_CHANGED)
        return True
