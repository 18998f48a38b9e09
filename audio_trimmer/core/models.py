"""Value objects describing the selected file, the trim range and the
extraction and playback states."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Optional

DEFAULT_DURATION = 60.0


@dataclass(frozen=True)
class AudioFile:
    """The MP3 currently picked by the user."""

    path: Optional[str] = None
    display_name: Optional[str] = None
    duration_seconds: float = DEFAULT_DURATION

    @property
    def is_selected(self) -> bool:
        return self.path is not None and self.display_name is not None


@dataclass(frozen=True)
class TrimRange:
    start: float = 0.0
    end: float = DEFAULT_DURATION

    @property
    def length(self) -> float:
        return self.end - self.start


class ExtractionStatus(Enum):
    NONE = "none"
    PROCESSING = "processing"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of the latest extraction request.

    ``message`` is the text shown to the user; ``error`` keeps the bare
    error detail for ``ERROR`` results.
    """

    status: ExtractionStatus = ExtractionStatus.NONE
    message: str = ''
    output_path: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def initial(cls, message: str = '') -> "ExtractionResult":
        return cls(status=ExtractionStatus.NONE, message=message)

    @classmethod
    def processing(cls) -> "ExtractionResult":
        return cls(status=ExtractionStatus.PROCESSING, message='Processing...')

    @classmethod
    def success(cls, output_path: str) -> "ExtractionResult":
        return cls(
            status=ExtractionStatus.SUCCESS,
            message=f"Success! Extracted MP3 saved to: {output_path}",
            output_path=output_path,
        )

    @classmethod
    def failure(cls, error: str) -> "ExtractionResult":
        return cls(status=ExtractionStatus.ERROR, message=f"Error: {error}", error=error)

    @property
    def is_processing(self) -> bool:
        return self.status is ExtractionStatus.PROCESSING

    @property
    def is_success(self) -> bool:
        return self.status is ExtractionStatus.SUCCESS

    @property
    def is_error(self) -> bool:
        return self.status is ExtractionStatus.ERROR

    @property
    def has_message(self) -> bool:
        return bool(self.message)


@dataclass(frozen=True)
class PlaybackState:
    """Snapshot of the playback controller."""

    loaded: bool = False
    playing: bool = False
    has_error: bool = False
    error_message: str = ''
    current_file_path: Optional[str] = None
    duration: timedelta = timedelta(0)
    position: timedelta = timedelta(0)

    @property
    def progress_percent(self) -> float:
        if self.duration <= timedelta(0):
            return 0.0
        ratio = self.position / self.duration
        return min(1.0, max(0.0, ratio))
