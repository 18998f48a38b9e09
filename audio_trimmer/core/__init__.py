"""
Core state and pure helpers for the MP3 trimmer.

Nothing in this package spawns processes or touches audio devices; the
external tools live in :mod:`audio_trimmer.services`.
"""

__all__ = [
    "parse_time_input",
    "format_time_position",
    "format_duration_position",
    "safe_filename_timecode",
    "is_valid_time_input",
    "accept_start",
    "accept_end",
    "AudioFile",
    "TrimRange",
    "ExtractionStatus",
    "ExtractionResult",
    "PlaybackState",
    "Observable",
]

from .timeutils import (
    parse_time_input,
    format_time_position,
    format_duration_position,
    safe_filename_timecode,
    is_valid_time_input,
)
from .trim_range import accept_start, accept_end
from .models import AudioFile, TrimRange, ExtractionStatus, ExtractionResult, PlaybackState
from .observable import Observable
