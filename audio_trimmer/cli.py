"""
Command-line interface for the MP3 trimmer
"""
import argparse
import logging
import os
import sys
from datetime import timedelta
from typing import Optional

from .app import TrimApp
from .config import Config
from .core import (
    format_time_position,
    format_duration_position,
    is_valid_time_input,
    parse_time_input,
    PlaybackState,
)
from .services.errors import ConfigError

logger = logging.getLogger(__name__)

PLAYER_PROMPT = "\n[p]lay/pause, [s]eek <time|percent%>, [r]epair, [q]uit: "


def ask(prompt: str) -> Optional[str]:
    """Read a line; an empty answer or Ctrl-C/Ctrl-D counts as cancellation."""
    try:
        value = input(prompt).strip()
    except (KeyboardInterrupt, EOFError):
        print()
        return None
    return value or None


def describe_range(app: TrimApp) -> str:
    trim_range = app.session.trim_range
    return (f"Range: {format_time_position(trim_range.start)} - "
            f"{format_time_position(trim_range.end)} "
            f"(clip {format_time_position(trim_range.length)} of "
            f"{format_time_position(app.session.audio_file.duration_seconds)})")


def describe_playback(state: PlaybackState) -> str:
    if state.has_error:
        return f"Player error: {state.error_message} (type 'r' to repair)"
    if not state.loaded:
        return "No file loaded"
    label = "Playing" if state.playing else "Paused"
    name = os.path.basename(state.current_file_path or '')
    return (f"{label}: {name} {format_duration_position(state.position)} / "
            f"{format_duration_position(state.duration)} "
            f"({state.progress_percent * 100:.0f}%)")


def apply_range_edit(app: TrimApp, label: str, text: Optional[str]) -> None:
    if text is None:
        return
    if not is_valid_time_input(text):
        print(f"Invalid {label} time '{text}': use digits, ':' and '.' only")
        return
    setter = app.set_start_text if label == 'start' else app.set_end_text
    if not setter(text):
        current = app.session.start if label == 'start' else app.session.end
        print(f"{label.capitalize()} {format_time_position(parse_time_input(text))} "
              f"is outside the allowed range, keeping {format_time_position(current)}")


def handle_player_command(app: TrimApp, command: str) -> bool:
    """Run one player command; returns False when the user wants to quit."""
    parts = command.split(None, 1)
    if not parts:
        return True
    verb = parts[0].lower()
    argument = parts[1].strip() if len(parts) > 1 else ''

    if verb in ('q', 'quit'):
        return False
    if verb in ('p', 'play', 'pause'):
        app.playback.toggle_play()
    elif verb in ('r', 'repair'):
        app.playback.repair()
    elif verb in ('s', 'seek'):
        if argument.endswith('%'):
            try:
                percent = float(argument[:-1])
            except ValueError:
                print(f"Invalid percentage: {argument}")
                return True
            app.playback.seek_by_percentage(percent / 100.0)
        else:
            app.playback.seek_to(timedelta(seconds=parse_time_input(argument)))
    else:
        print(f"Unknown command: {verb}")
    return True


def run_player(app: TrimApp) -> None:
    """Interactive playback of the extracted file."""
    if not app.load_result():
        print(describe_playback(app.playback.state))
    else:
        app.playback.toggle_play()

    while True:
        print(describe_playback(app.playback.state))
        command = ask(PLAYER_PROMPT)
        if command is None:
            break
        if not handle_player_command(app, command):
            break


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Extract a time range from an MP3 file')
    parser.add_argument('input', nargs='?', help='MP3 file to trim (asked for if omitted)')
    parser.add_argument('--start', type=str, help='Start time: seconds (45.5), m:ss or h:mm:ss.t')
    parser.add_argument('--end', type=str, help='End time, same format as --start')
    parser.add_argument('--output-dir', type=str, help='Directory for the extracted file')
    parser.add_argument('--config', type=str, help='Path to the YAML configuration file')
    parser.add_argument('--ffmpeg', dest='ffmpeg_path', type=str, help='ffmpeg executable')
    parser.add_argument('--ffprobe', dest='ffprobe_path', type=str, help='ffprobe executable')
    parser.add_argument('--bitrate', type=str, help='MP3 bitrate of the extract (default 192k)')
    parser.add_argument('--transcoder', choices=['ffmpeg', 'pydub'], help='Transcoding backend')
    parser.add_argument('--play', action='store_true', help='Play the extracted file afterwards')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    return parser


def main(argv=None) -> int:
    """Entry point of the ``mp3-trim`` command."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        config = Config(config_file=args.config or Config.find_default_file())
    except ConfigError as e:
        print(e)
        return 2
    config.update_from_args({
        'output_dir': args.output_dir,
        'ffmpeg_path': args.ffmpeg_path,
        'ffprobe_path': args.ffprobe_path,
        'bitrate': args.bitrate,
        'transcoder': args.transcoder,
    })

    try:
        app = TrimApp.from_config(config)
    except ValueError as e:
        print(e)
        return 2
    try:
        path = args.input or ask("MP3 file to trim: ")
        if not app.select_file(path):
            print("File selection canceled")
            return 0

        print(app.extraction.result.message)
        apply_range_edit(app, 'start', args.start)
        apply_range_edit(app, 'end', args.end)
        print(describe_range(app))

        directory = config.get('output_dir') or ask("Save to directory (empty to cancel): ")
        result = app.extract(directory)
        print(result.message)
        if result.is_error:
            return 1
        if result.is_success and args.play:
            run_player(app)
        return 0
    finally:
        app.dispose()


if __name__ == "__main__":
    sys.exit(main())
