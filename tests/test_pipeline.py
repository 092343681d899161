"""
Tests for the SpellingPipeline
===============================
"""

from functools import partial
from unittest.mock import Mock

import numpy as np
import pytest

from conftest import hand_a, hand_b, hand_l
from core.events import Events
from core.pipeline import SpellingPipeline, first_hand
from core.types import DetectionResult
from modules.recognition.hold_confirmation import HoldConfirmationEngine
from modules.spelling.word_buffer import WordBuffer

T0 = 1000.0


def at(ms):
    return T0 + ms / 1000.0


def _append(log, name, **kwargs):
    log.append((name, kwargs))


def record(bus, *names):
    """Subscribe a recorder to the given events; returns the shared log."""
    log = []
    for name in names:
        bus.subscribe(name, partial(_append, log, name))
    return log


def hold(pipeline, joints_fn, start_ms, end_ms, step=33):
    """Feed the same pose every ``step`` ms; returns confirmed letters."""
    confirmed = []
    for ms in range(start_ms, end_ms + 1, step):
        result = pipeline.process([joints_fn()], at(ms))
        if result.confirmed_letter:
            confirmed.append(result.confirmed_letter)
    return confirmed


@pytest.fixture
def pipeline(event_bus):
    return SpellingPipeline(event_bus=event_bus)


class TestFirstHand:

    def test_none_and_empty(self):
        assert first_hand(None) is None
        assert first_hand([]) is None
        assert first_hand(np.zeros((0, 21, 3))) is None

    def test_picks_first(self):
        a, b = hand_a(), hand_b()
        assert first_hand([a, b]) is a
        stacked = np.stack([a, b])
        np.testing.assert_array_equal(first_hand(stacked), a)


class TestProcess:

    def test_classifies_first_hand_only(self, pipeline):
        result = pipeline.process([hand_a(), hand_b()], T0)
        assert result.hand_detected
        assert result.detection.symbol == "A"
        assert pipeline.detection == DetectionResult("A", 0.95)

    def test_no_hand(self, pipeline):
        result = pipeline.process([], T0)
        assert not result.hand_detected
        assert result.detection.is_none

    def test_hold_spells_letter(self, pipeline):
        assert hold(pipeline, hand_a, 0, 540) == ["A"]
        assert pipeline.word == "A"

    def test_spells_word(self, pipeline):
        hold(pipeline, hand_l, 0, 540)
        pipeline.process([], at(600))
        hold(pipeline, hand_a, 700, 1240)
        assert pipeline.word == "LA"

    def test_repeat_confirmation_not_appended(self, pipeline, event_bus):
        log = record(event_bus, Events.LETTER_CONFIRMED, Events.WORD_CHANGED)
        assert hold(pipeline, hand_a, 0, 1200) == ["A", "A"]
        assert pipeline.word == "A"

        letters = [kw for name, kw in log if name == Events.LETTER_CONFIRMED]
        assert [kw["appended"] for kw in letters] == [True, False]
        assert [name for name, _ in log].count(Events.WORD_CHANGED) == 1

    def test_short_hold_does_nothing(self, pipeline):
        assert hold(pipeline, hand_a, 0, 495) == []
        assert pipeline.word == ""

    def test_malformed_hand_breaks_hold(self, pipeline):
        hold(pipeline, hand_a, 0, 400)
        pipeline.process([np.zeros((20, 3))], at(420))
        assert pipeline.engine.candidate is None


class TestEvents:

    def test_detection_and_confirmation_events(self, pipeline, event_bus):
        log = record(event_bus, Events.DETECTION_UPDATED, Events.HOLD_STARTED,
                     Events.LETTER_CONFIRMED, Events.WORD_CHANGED)
        pipeline.process([hand_b()], at(0))
        pipeline.process([hand_b()], at(501))

        names = [name for name, _ in log]
        assert names == [
            Events.DETECTION_UPDATED, Events.HOLD_STARTED,
            Events.DETECTION_UPDATED, Events.LETTER_CONFIRMED, Events.WORD_CHANGED,
        ]
        assert log[0][1] == {"symbol": "B", "confidence": 0.96}
        assert log[3][1]["letter"] == "B"
        assert log[4][1] == {"word": "B"}

    def test_hold_started_once_per_hold(self, pipeline, event_bus):
        log = record(event_bus, Events.HOLD_STARTED)
        hold(pipeline, hand_a, 0, 300)
        assert len(log) == 1

    def test_hand_presence_transitions(self, pipeline, event_bus):
        log = record(event_bus, Events.HAND_DETECTED, Events.HAND_LOST)
        pipeline.process([hand_a()], at(0))
        pipeline.process([hand_a()], at(33))
        pipeline.process([], at(66))
        pipeline.process([], at(99))
        assert [name for name, _ in log] == [Events.HAND_DETECTED, Events.HAND_LOST]

    def test_failing_listener_does_not_break_frame(self, pipeline, event_bus):
        event_bus.subscribe(Events.LETTER_CONFIRMED, Mock(side_effect=RuntimeError("boom")))
        assert hold(pipeline, hand_a, 0, 540) == ["A"]
        assert pipeline.word == "A"


class TestCaptureControl:

    def test_inactive_ignores_frames(self, event_bus):
        pipeline = SpellingPipeline(event_bus=event_bus, config={"start_active": False})
        log = record(event_bus, Events.DETECTION_UPDATED)

        assert hold(pipeline, hand_a, 0, 1000) == []
        assert pipeline.word == ""
        assert pipeline.frame_count == 0
        assert log == []

    def test_deactivate_discards_pending_hold(self, pipeline):
        hold(pipeline, hand_a, 0, 400)
        pipeline.deactivate()
        assert pipeline.engine.candidate is None
        assert pipeline.detection.is_none

        pipeline.activate()
        # A fresh full hold is needed after reactivation
        assert hold(pipeline, hand_a, 450, 900) == []
        assert hold(pipeline, hand_a, 951, 951) == ["A"]

    def test_deactivate_events(self, pipeline, event_bus):
        log = record(event_bus, Events.DETECTION_UPDATED, Events.CAPTURE_DEACTIVATED)
        pipeline.deactivate()
        assert log == [
            (Events.DETECTION_UPDATED, {"symbol": None, "confidence": 0.0}),
            (Events.CAPTURE_DEACTIVATED, {}),
        ]

    def test_repeated_deactivate_is_noop(self, pipeline, event_bus):
        pipeline.deactivate()
        log = record(event_bus, Events.CAPTURE_DEACTIVATED)
        pipeline.deactivate()
        assert log == []

    def test_toggle(self, pipeline, event_bus):
        log = record(event_bus, Events.CAPTURE_ACTIVATED)
        assert pipeline.toggle() is False
        assert pipeline.toggle() is True
        assert len(log) == 1

    def test_word_survives_deactivation(self, pipeline):
        hold(pipeline, hand_b, 0, 540)
        pipeline.deactivate()
        assert pipeline.word == "B"

    def test_clear_word(self, pipeline, event_bus):
        log = record(event_bus, Events.WORD_CLEARED)
        hold(pipeline, hand_b, 0, 540)
        pipeline.clear_word()
        assert pipeline.word == ""
        assert len(log) == 1

    def test_clear_word_while_inactive(self, pipeline):
        hold(pipeline, hand_b, 0, 540)
        pipeline.deactivate()
        pipeline.clear_word()
        assert pipeline.word == ""


class TestBuildState:

    def test_state_fields(self, pipeline):
        pipeline.process([hand_a()], at(0))
        state = pipeline.build_state(at(250))
        assert state["symbol"] == "A"
        assert state["confidence"] == pytest.approx(0.95)
        assert state["active"] is True
        assert state["hand_detected"] is True
        assert state["hold_candidate"] == "A"
        assert state["hold_progress"] == pytest.approx(0.5)
        assert state["frame_count"] == 1
        assert state["word"] == ""


class TestTick:

    @pytest.fixture
    def frame(self):
        return np.zeros((480, 640, 3), dtype=np.uint8)

    @pytest.fixture
    def camera(self, frame):
        cam = Mock()
        cam.read_sync.return_value = (1, frame)
        return cam

    @pytest.fixture
    def detector(self):
        det = Mock()
        det.detect.return_value = [hand_a()]
        return det

    def make(self, event_bus, camera, detector, **config):
        return SpellingPipeline(
            engine=HoldConfirmationEngine(),
            word_buffer=WordBuffer(),
            camera=camera,
            detector=detector,
            event_bus=event_bus,
            config=config,
        )

    def test_tick_runs_detector_and_draws(self, event_bus, camera, detector, frame):
        pipeline = self.make(event_bus, camera, detector)
        result = pipeline.tick(now=5.0)

        detector.detect.assert_called_once_with(frame, 5000)
        detector.draw_landmarks.assert_called_once()
        assert result.frame is frame
        assert result.frame_id == 1
        assert result.detection.symbol == "A"

    def test_duplicate_frame_not_reprocessed(self, event_bus, camera, detector):
        pipeline = self.make(event_bus, camera, detector)
        pipeline.tick(now=5.0)
        result = pipeline.tick(now=5.1)

        assert detector.detect.call_count == 1
        assert pipeline.frame_count == 1
        assert result.frame is not None
        assert result.detection.symbol == "A"

    def test_timestamps_strictly_increase(self, event_bus, camera, detector, frame):
        pipeline = self.make(event_bus, camera, detector)
        camera.read_sync.side_effect = [(1, frame), (2, frame)]
        pipeline.tick(now=5.0)
        pipeline.tick(now=5.0)

        stamps = [c.args[1] for c in detector.detect.call_args_list]
        assert stamps == [5000, 5001]

    def test_no_frame(self, event_bus, camera, detector):
        camera.read_sync.return_value = (None, None)
        pipeline = self.make(event_bus, camera, detector)
        result = pipeline.tick(now=5.0)

        assert result.frame is None
        detector.detect.assert_not_called()

    def test_inactive_returns_frame_without_detecting(self, event_bus, camera, detector, frame):
        pipeline = self.make(event_bus, camera, detector, start_active=False)
        result = pipeline.tick(now=5.0)

        assert result.frame is frame
        detector.detect.assert_not_called()

    def test_landmark_drawing_disabled(self, event_bus, camera, detector):
        pipeline = self.make(event_bus, camera, detector, draw_landmarks=False)
        pipeline.tick(now=5.0)
        detector.draw_landmarks.assert_not_called()

    def test_no_hands_skips_drawing(self, event_bus, camera, detector):
        detector.detect.return_value = []
        pipeline = self.make(event_bus, camera, detector)
        result = pipeline.tick(now=5.0)

        assert not result.hand_detected
        detector.draw_landmarks.assert_not_called()
