"""Pure timecode helpers shared by the session, the CLI and the services.

Text produced here is what the user sees in the start/end fields, and text
parsed here is whatever the user typed into them, so parsing never raises.
"""
from __future__ import annotations

import math
import re
from datetime import timedelta

_INT_RE = re.compile(r'^[+-]?\d+$')
_TIME_INPUT_RE = re.compile(r'^[0-9:.]*$')


def _int_or_zero(text: str) -> int:
    text = text.strip()
    if _INT_RE.match(text):
        return int(text)
    return 0


def _float_or_zero(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return value


def parse_time_input(text: str) -> float:
    """Convert a human timecode into seconds.

    Accepts ``"45.5"``, ``"1:30"``, ``"1:01:30.5"`` and partial input such
    as ``"1:"``. Anything that cannot be understood becomes ``0.0``.
    """
    if not text:
        return 0.0

    if ':' not in text:
        return _float_or_zero(text)

    main_and_fraction = text.split('.')
    main_part = main_and_fraction[0]
    fraction = 0.0
    if len(main_and_fraction) > 1 and main_and_fraction[1]:
        fraction = _float_or_zero('0.' + main_and_fraction[1])

    parts = main_part.split(':')
    if len(parts) == 3:
        hours, minutes, seconds = (_int_or_zero(p) for p in parts)
        return hours * 3600 + minutes * 60 + seconds + fraction
    if len(parts) == 2:
        minutes, seconds = (_int_or_zero(p) for p in parts)
        return minutes * 60 + seconds + fraction
    if len(parts) == 1:
        return _int_or_zero(parts[0]) + fraction
    return 0.0


def format_time_position(seconds: float) -> str:
    """Format seconds as ``m:ss.t``, or ``h:mm:ss.t`` from one hour up.

    Tenths are rounded half-up; a value that rounds to ten tenths is carried
    into the seconds field, so ``59.96`` reads ``1:00.0``.
    """
    seconds = max(0.0, float(seconds))
    whole = int(math.floor(seconds))
    tenths = int(math.floor((seconds - whole) * 10 + 0.5))
    if tenths >= 10:
        whole += 1
        tenths = 0

    hours = whole // 3600
    minutes = (whole % 3600) // 60
    secs = whole % 60

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}.{tenths}"
    return f"{minutes}:{secs:02d}.{tenths}"


def format_duration_position(value: timedelta) -> str:
    """Same layout as :func:`format_time_position` for a ``timedelta``."""
    return format_time_position(value.total_seconds())


def safe_filename_timecode(seconds: float) -> str:
    """Timecode usable inside a file name (``1:05.0`` -> ``1-05d0``)."""
    return format_time_position(seconds).replace(':', '-').replace('.', 'd')


def is_valid_time_input(text: str) -> bool:
    """True when ``text`` only holds characters a timecode can contain."""
    return bool(_TIME_INPUT_RE.match(text))
