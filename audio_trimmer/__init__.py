"""
MP3 trimmer: pick an MP3, choose a time range, extract it with ffmpeg and
play the result.
"""

__version__ = "0.1.0"
