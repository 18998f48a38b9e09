"""
Configuration handling for the MP3 trimmer
"""
import copy
import os
from typing import Any, Dict, Optional

import yaml

from .services.errors import ConfigError

DEFAULT_CONFIG_NAMES = ('config.yml', 'config.yaml')


class Config:
    """Application configuration: defaults, then YAML file, then CLI arguments."""

    DEFAULT_CONFIG = {
        'ffmpeg_path': None,        # None: let pydub locate ffmpeg/avconv
        'ffprobe_path': None,       # None: let pydub locate ffprobe/avprobe
        'transcoder': 'ffmpeg',     # 'ffmpeg' or 'pydub'
        'codec': 'libmp3lame',
        'bitrate': '192k',
        'default_duration': 60.0,
        'output_dir': None,         # None: ask for the directory
        'recovery': {
            'max_retries': 1,
            'delay_seconds': 0.5,
            'recreate_before_retry': True,
            'recreate_on_load': False,
            'reload_on_stale_resume': False,
        },
    }

    NESTED_KEYS = ('recovery',)

    def __init__(self, config_file: Optional[str] = None):
        """
        Args:
            config_file: path to a YAML configuration file (optional)
        """
        self.config = copy.deepcopy(self.DEFAULT_CONFIG)

        if config_file and os.path.exists(config_file):
            self.load_from_file(config_file)

    @classmethod
    def find_default_file(cls, directory: Optional[str] = None) -> Optional[str]:
        """Return ``config.yml`` or ``config.yaml`` from ``directory`` if present."""
        directory = directory or os.getcwd()
        for name in DEFAULT_CONFIG_NAMES:
            candidate = os.path.join(directory, name)
            if os.path.exists(candidate):
                return candidate
        return None

    def load_from_file(self, config_file: str) -> None:
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                file_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Error loading configuration file: {e}")

        if not file_config:
            return
        if not isinstance(file_config, dict):
            raise ConfigError(f"Configuration file {config_file} must contain a mapping")

        for key, value in file_config.items():
            if key in self.NESTED_KEYS and isinstance(value, dict):
                self._deep_merge(self.config.setdefault(key, {}), value)
            else:
                self.config[key] = value

    def _deep_merge(self, base: dict, update: dict) -> None:
        for key, value in update.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def update_from_args(self, args: Dict[str, Any]) -> None:
        """CLI arguments win over the file; ``None`` values are ignored."""
        for key, value in args.items():
            if value is not None:
                self.config[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self.config.get(key, default)

    def get_all(self) -> Dict[str, Any]:
        return self.config.copy()
