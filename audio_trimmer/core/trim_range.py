"""Bounds checks applied to every proposed trim range edit.

A rejected candidate is not an error: callers keep the previous value,
which is what makes live typing in the start/end fields usable.
"""
from __future__ import annotations


def accept_start(candidate: float, current_end: float, duration: float) -> bool:
    """True when ``candidate`` may become the new start of the range."""
    return 0 <= candidate < current_end and candidate <= duration


def accept_end(candidate: float, current_start: float, duration: float) -> bool:
    """True when ``candidate`` may become the new end of the range."""
    return current_start < candidate <= duration
