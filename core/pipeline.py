"""
Per-frame orchestration of the fingerspelling recognizer.

    Camera -> HandDetector -> PoseClassifier -> HoldConfirmationEngine
    -> WordBuffer -> (events) -> Dashboard / LetterLogger

One call to tick() (or process() when joints come from elsewhere) runs
one complete classify-and-confirm cycle.  Everything happens on the
caller's thread; the pipeline is the single writer of the hold state and
the word buffer.
"""

import time
import logging
from typing import Optional

import numpy as np

from core.events import EventBus, Events
from core.types import DetectionResult, PipelineResult
from modules.recognition.hold_confirmation import HoldConfirmationEngine
from modules.recognition.pose_classifier import PoseClassifier
from modules.spelling.word_buffer import WordBuffer

logger = logging.getLogger(__name__)


def first_hand(hands):
    """Pick the joint set of the first detected hand, or None for zero hands."""
    if hands is None:
        return None
    if isinstance(hands, np.ndarray):
        if hands.ndim == 3 and hands.shape[0] > 0:
            return hands[0]
        return None
    hands = list(hands)
    return hands[0] if hands else None


class SpellingPipeline:
    """Composable recognize -> confirm -> spell pipeline.

    Camera and detector are optional so the pipeline can be driven
    directly with joint sets (tests, other landmark sources).
    """

    def __init__(
        self,
        classifier: Optional[PoseClassifier] = None,
        engine: Optional[HoldConfirmationEngine] = None,
        word_buffer: Optional[WordBuffer] = None,
        camera=None,
        detector=None,
        event_bus: Optional[EventBus] = None,
        config: Optional[dict] = None,
    ):
        config = config or {}
        self._classifier = classifier or PoseClassifier()
        self._engine = engine or HoldConfirmationEngine(config)
        self._word = word_buffer or WordBuffer()
        self._camera = camera
        self._detector = detector
        self._bus = event_bus or EventBus()

        self._active = config.get("start_active", True)
        self._draw_landmarks = config.get("draw_landmarks", True)

        self._frame_count = 0
        self._last_frame_id = None
        self._last_timestamp_ms = -1
        self._hand_present = False
        self._detection = DetectionResult.none()

    # =========================================================================
    # Per-frame cycle
    # =========================================================================

    def process(self, hands, now: Optional[float] = None) -> PipelineResult:
        """Run classification and hold confirmation for one frame.

        Args:
            hands: Zero or more joint sets; only the first is used
            now: Frame timestamp in seconds (defaults to time.time())

        Returns:
            PipelineResult for this frame
        """
        now = time.time() if now is None else now
        result = PipelineResult(now)
        result.word = self._word.current()

        if not self._active:
            return result

        self._frame_count += 1
        joints = first_hand(hands)
        result.hand_detected = joints is not None and len(joints) > 0
        self._update_hand_presence(result.hand_detected)

        detection = self._classifier.classify(joints)
        self._detection = detection
        result.detection = detection
        self._bus.emit(Events.DETECTION_UPDATED,
                       symbol=detection.symbol, confidence=detection.confidence)

        before = self._engine.state
        confirmed = self._engine.on_frame(detection, now)
        after = self._engine.state

        if after.is_holding and after.hold_start != before.hold_start:
            self._bus.emit(Events.HOLD_STARTED, symbol=after.candidate_symbol)

        if confirmed is not None:
            result.confirmed_letter = confirmed
            result.appended = self._word.append(confirmed)
            result.word = self._word.current()
            self._bus.emit(Events.LETTER_CONFIRMED, letter=confirmed,
                           appended=result.appended, word=result.word,
                           confidence=detection.confidence)
            if result.appended:
                self._bus.emit(Events.WORD_CHANGED, word=result.word)

        return result

    def tick(self, now: Optional[float] = None) -> PipelineResult:
        """Read one camera frame, detect hands and process it.

        The frame is returned for display even while inactive; it is only
        analysed when the pipeline is active and the frame is new.
        """
        now = time.time() if now is None else now

        frame_id, frame = self._camera.read_sync()
        if frame is None:
            result = PipelineResult(now)
            result.word = self._word.current()
            return result

        if not self._active or frame_id == self._last_frame_id:
            result = PipelineResult(now)
            result.word = self._word.current()
            result.frame = frame
            result.frame_id = frame_id
            result.detection = self._detection
            return result
        self._last_frame_id = frame_id

        timestamp_ms = max(int(now * 1000), self._last_timestamp_ms + 1)
        self._last_timestamp_ms = timestamp_ms
        hands = self._detector.detect(frame, timestamp_ms)

        result = self.process(hands, now)
        result.frame = frame
        result.frame_id = frame_id

        if self._draw_landmarks:
            for joints in hands[:1]:
                self._detector.draw_landmarks(frame, joints)

        return result

    def _update_hand_presence(self, present: bool):
        if present and not self._hand_present:
            self._bus.emit(Events.HAND_DETECTED)
        elif self._hand_present and not present:
            self._bus.emit(Events.HAND_LOST)
        self._hand_present = present

    # =========================================================================
    # Control input
    # =========================================================================

    def activate(self):
        """Start analysing frames from a fresh idle hold."""
        if self._active:
            return
        self._engine.reset()
        self._active = True
        self._last_frame_id = None
        logger.info("Capture activated")
        self._bus.emit(Events.CAPTURE_ACTIVATED)

    def deactivate(self):
        """Stop analysing frames; a hold in progress is discarded."""
        if not self._active:
            return
        self._active = False
        self._engine.reset()
        self._detection = DetectionResult.none()
        self._hand_present = False
        logger.info("Capture deactivated")
        self._bus.emit(Events.DETECTION_UPDATED, symbol=None, confidence=0.0)
        self._bus.emit(Events.CAPTURE_DEACTIVATED)

    def toggle(self) -> bool:
        """Flip the active state; returns the new state."""
        if self._active:
            self.deactivate()
        else:
            self.activate()
        return self._active

    def clear_word(self):
        """Empty the word buffer unconditionally."""
        self._word.clear()
        logger.info("Word cleared")
        self._bus.emit(Events.WORD_CLEARED)

    # =========================================================================
    # Presentation
    # =========================================================================

    def build_state(self, now: Optional[float] = None) -> dict:
        """State dict for Dashboard.render()."""
        now = time.time() if now is None else now
        return {
            "symbol": self._detection.symbol,
            "confidence": self._detection.confidence,
            "word": self._word.current(),
            "active": self._active,
            "hand_detected": self._hand_present,
            "hold_candidate": self._engine.candidate,
            "hold_progress": self._engine.hold_progress(now),
            "frame_count": self._frame_count,
        }

    @property
    def active(self) -> bool:
        return self._active

    @property
    def word(self) -> str:
        return self._word.current()

    @property
    def detection(self) -> DetectionResult:
        return self._detection

    @property
    def engine(self) -> HoldConfirmationEngine:
        return self._engine

    @property
    def frame_count(self) -> int:
        return self._frame_count
