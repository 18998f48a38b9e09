"""
Tests for the playback state machine, driven by an in-memory engine.
"""
import threading
import unittest
from datetime import timedelta
from unittest.mock import MagicMock

from audio_trimmer.playback import PlaybackController, RecoveryPolicy
from audio_trimmer.services.errors import PlaybackEngineError

from tests.fakes import FakeEngine


class TestPlaybackController(unittest.TestCase):

    def setUp(self):
        self.engines = []
        self.failing_loads = []  # per created engine, in creation order
        self.sleep = MagicMock()
        self.existing = {'/out/clip.mp3', '/out/other.mp3'}

    def _factory(self):
        failing = self.failing_loads.pop(0) if self.failing_loads else 0
        engine = FakeEngine(failing)
        self.engines.append(engine)
        return engine

    def _controller(self, **policy):
        return PlaybackController(
            self._factory,
            recovery=RecoveryPolicy(**policy),
            path_exists=lambda path: path in self.existing,
            sleep=self.sleep,
        )

    def test_initial_state(self):
        """A new controller is unloaded and error free."""
        state = self._controller().state

        self.assertFalse(state.loaded)
        self.assertFalse(state.playing)
        self.assertFalse(state.has_error)
        self.assertIsNone(state.current_file_path)
        self.assertEqual(state.progress_percent, 0.0)

    def test_missing_file_errors_without_engine_call(self):
        """A missing file is an error and no engine is created."""
        controller = self._controller()

        self.assertFalse(controller.load('/nowhere.mp3'))

        state = controller.state
        self.assertTrue(state.has_error)
        self.assertFalse(state.loaded)
        self.assertEqual(state.error_message, "File does not exist: /nowhere.mp3")
        self.assertEqual(self.engines, [])

    def test_load_then_toggle_plays(self):
        """Load followed by toggle starts playback."""
        controller = self._controller()

        self.assertTrue(controller.load('/out/clip.mp3'))
        controller.toggle_play()

        state = controller.state
        self.assertTrue(state.loaded)
        self.assertTrue(state.playing)
        self.assertEqual(state.current_file_path, '/out/clip.mp3')
        self.assertEqual(self.engines[0].calls, [('load', '/out/clip.mp3'), ('play',)])

    def test_toggle_pauses_when_playing(self):
        """Toggling a playing track pauses it."""
        controller = self._controller()
        controller.load('/out/clip.mp3')
        controller.toggle_play()

        controller.toggle_play()

        self.assertFalse(controller.state.playing)
        self.assertEqual(self.engines[0].calls[-1], ('pause',))

    def test_toggle_is_noop_when_not_loaded(self):
        """Toggle does nothing before a load."""
        controller = self._controller()

        controller.toggle_play()

        self.assertFalse(controller.state.playing)
        self.assertEqual(self.engines, [])

    def test_engine_streams_update_state(self):
        """Engine events update duration, position and the playing flag."""
        controller = self._controller()
        controller.load('/out/clip.mp3')
        engine = self.engines[0]

        engine.emit('duration', timedelta(seconds=40))
        engine.emit('position', timedelta(seconds=10))
        engine.emit('state', True)

        state = controller.state
        self.assertEqual(state.duration, timedelta(seconds=40))
        self.assertEqual(state.position, timedelta(seconds=10))
        self.assertTrue(state.playing)
        self.assertAlmostEqual(state.progress_percent, 0.25)

    def test_progress_is_clamped(self):
        """Progress never goes past 100%."""
        controller = self._controller()
        controller.load('/out/clip.mp3')
        self.engines[0].emit('duration', timedelta(seconds=10))
        self.engines[0].emit('position', timedelta(seconds=12))

        self.assertEqual(controller.state.progress_percent, 1.0)

    def test_completion_rewinds_and_stops(self):
        """Reaching the end rewinds and stops."""
        controller = self._controller()
        controller.load('/out/clip.mp3')
        controller.toggle_play()
        engine = self.engines[0]
        engine.emit('position', timedelta(seconds=30))

        engine.emit('complete')

        self.assertFalse(controller.state.playing)
        self.assertEqual(controller.state.position, timedelta(0))
        self.assertEqual(engine.calls[-1], ('seek', timedelta(0)))

    def test_completion_from_replaced_engine_touches_no_engine(self):
        """A completion that arrives after a repair leaves both engines alone."""
        controller = self._controller()
        controller.load('/out/clip.mp3')
        controller.toggle_play()
        first_generation = controller.generation

        controller.repair()
        controller._on_complete(first_generation)

        for engine in self.engines:
            self.assertNotIn('seek', [call[0] for call in engine.calls])

    def test_completion_racing_dispose_does_not_seek_released_engine(self):
        """Dispose wins over a completion thread waiting for the state lock."""
        controller = self._controller()
        controller.load('/out/clip.mp3')
        controller.toggle_play()
        engine = self.engines[0]
        complete = engine.listeners['complete'][0]

        with controller._lock:
            worker = threading.Thread(target=complete, args=(None,))
            worker.start()
            controller.dispose()
        worker.join(timeout=5)

        self.assertFalse(worker.is_alive())
        self.assertTrue(engine.released)
        self.assertNotIn('seek', [call[0] for call in engine.calls])

    def test_transient_failure_is_retried_once(self):
        """One failed load is retried on a fresh engine."""
        self.failing_loads = [1]
        controller = self._controller()

        self.assertTrue(controller.load('/out/clip.mp3'))

        state = controller.state
        self.assertTrue(state.loaded)
        self.assertFalse(state.has_error)
        self.sleep.assert_called_once_with(0.5)
        self.assertEqual(len(self.engines), 2)
        self.assertTrue(self.engines[0].released)

    def test_retry_without_recreating_engine(self):
        """The retry can reuse the same engine."""
        self.failing_loads = [1]
        controller = self._controller(recreate_before_retry=False, delay_seconds=0.1)

        self.assertTrue(controller.load('/out/clip.mp3'))

        self.assertEqual(len(self.engines), 1)
        self.assertEqual(len(self.engines[0].calls), 2)
        self.sleep.assert_called_once_with(0.1)

    def test_persistent_failure_surfaces_error(self):
        """A load that keeps failing is reported."""
        self.failing_loads = [5, 5]
        controller = self._controller()

        self.assertFalse(controller.load('/out/clip.mp3'))

        state = controller.state
        self.assertTrue(state.has_error)
        self.assertFalse(state.loaded)
        self.assertEqual(state.error_message, "Error loading audio: transient init failure")
        self.assertEqual(self.sleep.call_count, 1)

    def test_no_retries(self):
        """max_retries=0 reports the first failure."""
        self.failing_loads = [1]
        controller = self._controller(max_retries=0)

        self.assertFalse(controller.load('/out/clip.mp3'))
        self.sleep.assert_not_called()

    def test_error_blocks_toggle_until_reload(self):
        """Toggle is ignored while an error is shown."""
        controller = self._controller()
        controller.load('/out/clip.mp3')
        controller.load('/missing.mp3')

        controller.toggle_play()
        self.assertFalse(controller.state.playing)

        self.assertTrue(controller.load('/out/other.mp3'))
        self.assertFalse(controller.state.has_error)

    def test_factory_failure_is_reported(self):
        """A broken engine factory is reported as an error."""
        def broken_factory():
            raise OSError("libvlc not found")

        controller = PlaybackController(broken_factory, path_exists=lambda p: True, sleep=self.sleep)

        self.assertFalse(controller.load('/out/clip.mp3'))
        self.assertIn("Error initializing player: libvlc not found", controller.state.error_message)

    def test_toggle_fault_becomes_error(self):
        """An engine fault while toggling is reported."""
        controller = self._controller()
        controller.load('/out/clip.mp3')
        self.engines[0].play = MagicMock(side_effect=PlaybackEngineError("device busy"))

        controller.toggle_play()

        state = controller.state
        self.assertTrue(state.has_error)
        self.assertEqual(state.error_message, "Error toggling playback: device busy")

    def test_seek_requires_loaded(self):
        """Seeks before a load are ignored."""
        controller = self._controller()

        controller.seek_to(timedelta(seconds=3))
        controller.seek_by_percentage(0.5)

        self.assertEqual(self.engines, [])

    def test_seek_by_percentage_guards_zero_duration(self):
        """No seek by percentage while the duration is unknown."""
        controller = self._controller()
        controller.load('/out/clip.mp3')

        controller.seek_by_percentage(0.5)

        self.assertNotIn('seek', [call[0] for call in self.engines[0].calls])

    def test_seek_by_percentage_clamps(self):
        """Fractions outside 0..1 are clamped."""
        controller = self._controller()
        controller.load('/out/clip.mp3')
        engine = self.engines[0]
        engine.emit('duration', timedelta(seconds=100))

        controller.seek_by_percentage(0.25)
        controller.seek_by_percentage(1.5)
        controller.seek_by_percentage(-1)

        seeks = [call[1] for call in engine.calls if call[0] == 'seek']
        self.assertEqual(seeks, [timedelta(seconds=25), timedelta(seconds=100), timedelta(0)])

    def test_seek_fault_is_not_surfaced(self):
        """A failed seek is only logged."""
        controller = self._controller()
        controller.load('/out/clip.mp3')
        self.engines[0].seek = MagicMock(side_effect=PlaybackEngineError("no"))

        controller.seek_to(timedelta(seconds=1))

        self.assertFalse(controller.state.has_error)

    def test_repair_recreates_engine_and_reloads(self):
        """Repair builds a new engine and reloads the last file."""
        self.failing_loads = [5, 5]
        controller = self._controller()
        controller.load('/out/clip.mp3')
        self.assertTrue(controller.state.has_error)
        self.sleep.reset_mock()

        self.assertTrue(controller.repair())

        state = controller.state
        self.assertTrue(state.loaded)
        self.assertFalse(state.has_error)
        self.assertEqual(state.current_file_path, '/out/clip.mp3')
        self.assertEqual(len(self.engines), 3)
        self.assertTrue(self.engines[1].released)
        self.sleep.assert_called_once_with(0.5)

    def test_repair_without_file(self):
        """Repair with nothing loaded only rebuilds the engine."""
        controller = self._controller()

        self.assertTrue(controller.repair())

        self.assertFalse(controller.state.loaded)
        self.assertEqual(len(self.engines), 1)
        self.sleep.assert_not_called()

    def test_stale_engine_callbacks_are_dropped(self):
        """Callbacks of a replaced engine are ignored."""
        controller = self._controller()
        controller.load('/out/clip.mp3')
        stale_position = self.engines[0].listeners['position'][0]

        controller.repair()
        stale_position(timedelta(seconds=9))

        self.assertEqual(controller.state.position, timedelta(0))
        self.assertEqual(self.engines[0].listeners['position'], [])

    def test_recreate_on_load_uses_fresh_engine(self):
        """recreate_on_load builds an engine per file."""
        controller = self._controller(recreate_on_load=True)

        controller.load('/out/clip.mp3')
        controller.load('/out/other.mp3')

        self.assertEqual(len(self.engines), 2)
        self.assertTrue(self.engines[0].released)

    def test_new_file_resets_duration_and_position(self):
        """Loading another file clears duration and position."""
        controller = self._controller()
        controller.load('/out/clip.mp3')
        self.engines[0].emit('duration', timedelta(seconds=20))
        self.engines[0].emit('position', timedelta(seconds=5))

        controller.load('/out/other.mp3')

        self.assertEqual(controller.state.duration, timedelta(0))
        self.assertEqual(controller.state.position, timedelta(0))

    def test_stale_resume_reloads_before_play(self):
        """A zero position and duration trigger a reload before play."""
        controller = self._controller(reload_on_stale_resume=True)
        controller.load('/out/clip.mp3')

        controller.toggle_play()

        self.assertEqual(self.engines[0].calls,
                         [('load', '/out/clip.mp3'), ('load', '/out/clip.mp3'), ('play',)])
        self.assertTrue(controller.state.playing)

    def test_resume_with_known_duration_does_not_reload(self):
        """A known duration resumes without a reload."""
        controller = self._controller(reload_on_stale_resume=True)
        controller.load('/out/clip.mp3')
        self.engines[0].emit('duration', timedelta(seconds=20))

        controller.toggle_play()

        self.assertEqual(self.engines[0].calls, [('load', '/out/clip.mp3'), ('play',)])

    def test_dispose_is_idempotent(self):
        """dispose() can be called repeatedly."""
        controller = self._controller()
        controller.dispose()
        controller.load('/out/clip.mp3')

        controller.dispose()
        controller.dispose()

        self.assertTrue(self.engines[0].released)
        self.assertFalse(controller.state.loaded)

    def test_events_after_dispose_are_ignored(self):
        """Events after dispose do not change the state."""
        controller = self._controller()
        controller.load('/out/clip.mp3')
        callback = self.engines[0].listeners['state'][0]

        controller.dispose()
        callback(True)

        self.assertFalse(controller.state.playing)

    def test_listeners_are_notified(self):
        """Subscribers are told about state changes."""
        controller = self._controller()
        events = []
        controller.subscribe(lambda event, source: events.append(source.state.loaded))

        controller.load('/out/clip.mp3')

        self.assertEqual(events[-1], True)


if __name__ == "__main__":
    unittest.main()
