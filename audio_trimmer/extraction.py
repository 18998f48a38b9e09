"""Extraction lifecycle: one transcode call per "Extract" action.

The controller does not lock against overlapping requests. Callers must not
issue a new request while the current result is ``PROCESSING``;
:class:`audio_trimmer.app.TrimApp` enforces this.
"""
from __future__ import annotations

import logging
import os
from typing import Optional, Protocol

from .core.models import ExtractionResult
from .core.observable import Observable
from .core.timeutils import safe_filename_timecode
from .services.transcoder import TranscodeResult

logger = logging.getLogger(__name__)

NO_FILE_SELECTED = 'Please select an MP3 file first'
RESULT_CHANGED = 'result_changed'


class Transcoder(Protocol):
    def transcode(self, input_path: str, start: float, end: float,
                  output_path: str) -> TranscodeResult:
        """Re-encode ``[start, end]`` of ``input_path`` into ``output_path``."""


def build_output_filename(display_name: Optional[str], start: float, end: float) -> str:
    """``<base>_<start>_<end>.mp3`` with timecodes made safe for file names."""
    base = (display_name or '').split('.')[0] or 'extract'
    return f"{base}_{safe_filename_timecode(start)}_{safe_filename_timecode(end)}.mp3"


def build_output_path(directory: str, display_name: Optional[str], start: float,
                      end: float) -> str:
    return os.path.join(directory, build_output_filename(display_name, start, end))


class ExtractionController(Observable):
    """State machine NONE -> PROCESSING -> SUCCESS | ERROR.

    Every failure, including exceptions raised by the transcoder itself, ends
    up as an ``ERROR`` result; nothing is raised to the caller.
    """

    def __init__(self, transcoder: Transcoder):
        super().__init__()
        self.transcoder = transcoder
        self._result = ExtractionResult.initial()

    @property
    def result(self) -> ExtractionResult:
        return self._result

    def _set_result(self, result: ExtractionResult) -> ExtractionResult:
        self._result = result
        self._notify(RESULT_CHANGED)
        return result

    def request_extraction(self, input_path: Optional[str], start: float, end: float,
                           output_path: str) -> ExtractionResult:
        if input_path is None:
            return self._set_result(ExtractionResult.failure(NO_FILE_SELECTED))

        self._set_result(ExtractionResult.processing())
        logger.info("Extracting %.3f-%.3f from %s", start, end, input_path)
        try:
            outcome = self.transcoder.transcode(input_path, start, end, output_path)
        except Exception as e:
            logger.exception("Transcoder failed to run")
            return self._set_result(ExtractionResult.failure(
                f"FFmpeg error: {e}\n\nMake sure FFmpeg is installed and in your PATH."
            ))

        if outcome.success:
            return self._set_result(ExtractionResult.success(output_path))
        return self._set_result(ExtractionResult.failure(
            f"Error processing file: {outcome.diagnostic}"
        ))

    def reset(self, message: str = '') -> ExtractionResult:
        """Return to ``NONE``, optionally carrying an informational message."""
        return self._set_result(ExtractionResult.initial(message))
