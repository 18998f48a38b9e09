"""Custom exceptions for service layer operations."""


class ProbeError(Exception):
    """Raised when ffprobe cannot report a duration."""


class TranscodeError(Exception):
    """Raised when the transcoder cannot be started at all."""


class PlaybackEngineError(Exception):
    """Raised by a playback engine that refuses a load or play request."""


class ConfigError(Exception):
    """Raised when a configuration file cannot be loaded."""
