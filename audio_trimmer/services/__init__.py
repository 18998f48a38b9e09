"""Service layer modules (external processes and audio devices).

Currently includes the ffprobe duration probe, the transcoders and the
libvlc playback engine.
"""

__all__ = [
    "probe",
    "transcoder",
    "player",
    "errors",
]
