"""Composition root: one session, one extraction and one playback controller."""
from __future__ import annotations

import logging
import os
from typing import Callable, Optional

from .config import Config
from .core.models import ExtractionResult
from .core.timeutils import parse_time_input
from .extraction import ExtractionController, Transcoder, build_output_path
from .playback import PlaybackController, PlayerEngine, RecoveryPolicy
from .session import AudioFileSession
from .services.probe import FfprobeDurationProbe
from .services.transcoder import create_transcoder

logger = logging.getLogger(__name__)

SAVE_LOCATION_CANCELED = 'Save location selection canceled'


def vlc_engine_factory() -> PlayerEngine:
    from .services.player import VlcEngine
    return VlcEngine('--quiet')


class TrimApp:
    """Wires the three state containers together per user action."""

    def __init__(self, transcoder: Transcoder, probe: Callable[[str], float],
                 engine_factory: Callable[[], PlayerEngine] = vlc_engine_factory,
                 recovery: Optional[RecoveryPolicy] = None):
        self.probe = probe
        self.session = AudioFileSession()
        self.extraction = ExtractionController(transcoder)
        self.playback = PlaybackController(engine_factory, recovery=recovery)

    @classmethod
    def from_config(cls, config: Config,
                    engine_factory: Callable[[], PlayerEngine] = vlc_engine_factory) -> "TrimApp":
        return cls(
            transcoder=create_transcoder(config),
            probe=FfprobeDurationProbe(config.get('ffprobe_path'),
                                       default=float(config.get('default_duration', 60.0))),
            engine_factory=engine_factory,
            recovery=RecoveryPolicy.from_config(config.get('recovery')),
        )

    def select_file(self, path: Optional[str], display_name: Optional[str] = None) -> bool:
        """Probe and select ``path``; ``None`` means the picker was dismissed."""
        if path is None:
            return False
        name = display_name or os.path.basename(path)
        duration = self.probe(path)
        self.session.select_file(path, name, duration)
        self.extraction.reset(f"File selected: {name}")
        return True

    def set_start_text(self, text: str) -> bool:
        return self.session.set_start(parse_time_input(text))

    def set_end_text(self, text: str) -> bool:
        return self.session.set_end(parse_time_input(text))

    def extract(self, directory: Optional[str]) -> ExtractionResult:
        """Extract the current range into ``directory``.

        ``directory`` is ``None`` when the location chooser was dismissed.
        """
        current = self.extraction.result
        if current.is_processing:
            logger.warning("Extraction already in progress, ignoring request")
            return current

        audio_file = self.session.audio_file
        start, end = self.session.start, self.session.end
        if not audio_file.is_selected:
            return self.extraction.request_extraction(None, start, end, '')
        if directory is None:
            return self.extraction.reset(SAVE_LOCATION_CANCELED)

        output_path = build_output_path(directory, audio_file.display_name, start, end)
        return self.extraction.request_extraction(audio_file.path, start, end, output_path)

    def load_result(self) -> bool:
        """Load the last successful extraction into the player."""
        result = self.extraction.result
        if not result.is_success or result.output_path is None:
            return False
        return self.playback.load(result.output_path)

    def dispose(self) -> None:
        self.playback.dispose()
