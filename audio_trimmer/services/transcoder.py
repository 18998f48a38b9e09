"""Transcoders producing the trimmed MP3.

Both backends re-encode the selected interval instead of stream-copying it:
copied MP3 frames can leave the output with a broken header on some
players. Output files are always overwritten.
"""
from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Optional

from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError, CouldntEncodeError
from pydub.utils import get_encoder_name

from .errors import TranscodeError

logger = logging.getLogger(__name__)

DEFAULT_BITRATE = '192k'
DEFAULT_CODEC = 'libmp3lame'


@dataclass(frozen=True)
class TranscodeResult:
    success: bool
    diagnostic: str = ''


def build_ffmpeg_command(input_path: str, start: float, end: float, output_path: str,
                         ffmpeg: Optional[str] = None, codec: str = DEFAULT_CODEC,
                         bitrate: str = DEFAULT_BITRATE):
    """ffmpeg argument list extracting ``[start, end]`` of ``input_path``."""
    return [
        ffmpeg or get_encoder_name(),
        '-y',
        '-i', input_path,
        '-ss', f"{start:.3f}",
        '-to', f"{end:.3f}",
        '-acodec', codec,
        '-b:a', bitrate,
        output_path,
    ]


class FfmpegTranscoder:
    """Runs ffmpeg as a child process."""

    def __init__(self, ffmpeg: Optional[str] = None, codec: str = DEFAULT_CODEC,
                 bitrate: str = DEFAULT_BITRATE):
        self.ffmpeg = ffmpeg
        self.codec = codec
        self.bitrate = bitrate

    def transcode(self, input_path: str, start: float, end: float,
                  output_path: str) -> TranscodeResult:
        """Extract ``[start, end]`` into ``output_path``.

        A non-zero exit is reported through the result with ffmpeg's stderr;
        ``TranscodeError`` is raised only when ffmpeg cannot be started.
        """
        command = build_ffmpeg_command(input_path, start, end, output_path,
                                       ffmpeg=self.ffmpeg, codec=self.codec,
                                       bitrate=self.bitrate)
        logger.debug("FFmpeg command: %s", ' '.join(command))
        try:
            result = subprocess.run(command, capture_output=True, text=True)
        except OSError as e:
            raise TranscodeError(str(e))

        if result.returncode == 0:
            logger.info("Extracted %s -> %s", input_path, output_path)
            return TranscodeResult(True, result.stderr)

        logger.error("FFmpeg exited with code %d", result.returncode)
        logger.debug("FFmpeg stderr: %s", result.stderr)
        logger.debug("FFmpeg stdout: %s", result.stdout)
        return TranscodeResult(False, result.stderr)


class PydubTranscoder:
    """Decodes the whole file with pydub and exports the selected slice."""

    def __init__(self, bitrate: str = DEFAULT_BITRATE):
        self.bitrate = bitrate

    def transcode(self, input_path: str, start: float, end: float,
                  output_path: str) -> TranscodeResult:
        try:
            audio = AudioSegment.from_file(input_path)
        except CouldntDecodeError as e:
            return TranscodeResult(False, str(e))

        start_ms = int(round(float(start) * 1000))
        # pydub slices are half-open; one extra millisecond keeps ``end``.
        end_ms = int(round(float(end) * 1000)) + 1
        segment = audio[start_ms:end_ms]

        try:
            segment.export(output_path, format='mp3', bitrate=self.bitrate)
        except CouldntEncodeError as e:
            return TranscodeResult(False, str(e))

        logger.info("Extracted %s -> %s", input_path, output_path)
        return TranscodeResult(True)


def create_transcoder(config):
    """Build the transcoder selected by the ``transcoder`` config key."""
    backend = config.get('transcoder', 'ffmpeg')
    if backend == 'pydub':
        return PydubTranscoder(bitrate=config.get('bitrate', DEFAULT_BITRATE))
    if backend != 'ffmpeg':
        raise ValueError(f"Unknown transcoder backend: {backend}")
    return FfmpegTranscoder(
        ffmpeg=config.get('ffmpeg_path'),
        codec=config.get('codec', DEFAULT_CODEC),
        bitrate=config.get('bitrate', DEFAULT_BITRATE),
    )
