"""Duration probe backed by ffprobe.

The probe never fails towards its caller: any problem is logged and the
default duration is returned instead.
"""
from __future__ import annotations

import logging
import math
import subprocess
from typing import Optional

from pydub.utils import get_prober_name

from audio_trimmer.core.models import DEFAULT_DURATION
from .errors import ProbeError

logger = logging.getLogger(__name__)


def parse_probe_duration(text: str, default: float = DEFAULT_DURATION) -> float:
    """Read ffprobe's ``-sexagesimal`` output (``H:MM:SS.micro``) or plain seconds."""
    text = (text or '').strip()
    parts = text.split(':')
    try:
        if len(parts) == 3:
            hours = int(parts[0])
            minutes = int(parts[1])
            seconds = float(parts[2])
            return hours * 3600 + minutes * 60 + seconds
        return float(text)
    except ValueError:
        return default


def run_ffprobe(path: str, ffprobe: Optional[str] = None) -> str:
    """Return ffprobe's raw duration output for ``path``.

    Raises ``ProbeError`` when ffprobe is missing or exits with an error.
    """
    command = [
        ffprobe or get_prober_name(),
        '-i', path,
        '-v', 'quiet',
        '-show_entries', 'format=duration',
        '-of', 'default=noprint_wrappers=1:nokey=1',
        '-sexagesimal',
    ]
    logger.debug("ffprobe command: %s", ' '.join(command))
    try:
        result = subprocess.run(command, capture_output=True, text=True)
    except (OSError, subprocess.SubprocessError) as e:
        raise ProbeError(str(e))
    if result.returncode != 0:
        raise ProbeError(f"ffprobe exited with code {result.returncode}: {result.stderr.strip()}")
    return result.stdout


def probe_duration(path: str, ffprobe: Optional[str] = None,
                   default: float = DEFAULT_DURATION) -> float:
    """Duration of ``path`` in seconds, or ``default`` when it cannot be read."""
    try:
        output = run_ffprobe(path, ffprobe=ffprobe)
    except ProbeError as e:
        logger.warning("Could not probe duration of %s: %s", path, e)
        return default
    duration = parse_probe_duration(output, default=default)
    if not math.isfinite(duration) or duration <= 0:
        logger.warning("ffprobe reported an unusable duration for %s: %r", path, output)
        return default
    logger.debug("Probed %s: %.3fs", path, duration)
    return duration


class FfprobeDurationProbe:
    """Callable probe bound to a configured ffprobe binary."""

    def __init__(self, ffprobe: Optional[str] = None, default: float = DEFAULT_DURATION):
        self.ffprobe = ffprobe
        self.default = default

    def __call__(self, path: str) -> float:
        return probe_duration(path, ffprobe=self.ffprobe, default=self.default)
