#!/usr/bin/env python3
"""
Fingerspell - real-time fingerspelling from a webcam.

Pipeline:
    Camera -> MediaPipe HandLandmarker -> PoseClassifier
    -> HoldConfirmationEngine -> WordBuffer -> Dashboard

Usage:
    python main.py                     # default webcam, config/config.yaml
    python main.py --camera 1          # different camera index
    python main.py --hold-ms 700       # slower confirmation
    python main.py --no-display        # headless, letters go to the log

Keys:
    SPACE  start / stop recognition
    C      clear the spelled word
    Q/ESC  quit
"""

import sys
import os
import signal
import argparse
import logging

import cv2

PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, PROJECT_ROOT)

from modules.utils.config import Config
from modules.utils.logger import setup_logging, LetterLogger
from modules.capture.camera_manager import CameraManager
from modules.detection.hand_detector import HandDetector
from modules.recognition.pose_classifier import PoseClassifier
from modules.recognition.hold_confirmation import HoldConfirmationEngine
from modules.spelling.word_buffer import WordBuffer
from modules.visualization.dashboard import Dashboard

from core.events import EventBus, Events
from core.pipeline import SpellingPipeline

logger = logging.getLogger(__name__)

_KEY_ESC = 27


class FingerspellApp:
    """Wires camera, detector, pipeline and dashboard into the main loop."""

    def __init__(self, config: Config, display: bool = True):
        self._config = config
        self._display = display and config.get("visualization.enabled", True)
        self._running = False

        self._bus = EventBus()
        self._camera = CameraManager(config.camera)
        self._detector = HandDetector(config.detector)
        self._dashboard = Dashboard(config.visualization)
        self._letter_logger = LetterLogger()

        self._pipeline = SpellingPipeline(
            classifier=PoseClassifier(),
            engine=HoldConfirmationEngine(config.recognition),
            word_buffer=WordBuffer(),
            camera=self._camera,
            detector=self._detector,
            event_bus=self._bus,
            config=config.recognition,
        )

        self._bus.subscribe(Events.LETTER_CONFIRMED, self._letter_logger.on_letter_confirmed)
        self._bus.subscribe(Events.WORD_CLEARED, self._letter_logger.on_word_cleared)

    def start(self) -> bool:
        """Open devices and run until quit; False if startup failed."""
        if not self._camera.open():
            logger.error("Failed to open camera. Check connection and permissions.")
            self._bus.emit(Events.CAMERA_ERROR, device=self._config.get("camera.device_id", 0))
            return False

        if not self._detector.start():
            logger.error("Hand landmark model unavailable, cannot start")
            self._camera.stop()
            return False

        self._running = True
        self._bus.emit(Events.SYSTEM_STARTED)
        logger.info("Recognition %s. SPACE toggles, C clears, Q quits.",
                    "active" if self._pipeline.active else "paused")
        try:
            self._run_main_loop()
        finally:
            self._shutdown()
        return True

    def _run_main_loop(self):
        window_name = self._config.get("visualization.window_name", "Fingerspell")

        while self._running:
            result = self._pipeline.tick()

            if self._display and result.frame is not None:
                frame = self._dashboard.render(result.frame, self._pipeline.build_state())
                cv2.imshow(window_name, frame)

            key = cv2.waitKey(1) & 0xFF if self._display else 0xFF
            self._handle_key(key)

    def _handle_key(self, key: int):
        if key in (ord("q"), _KEY_ESC):
            self._running = False
        elif key == ord(" "):
            self._pipeline.toggle()
        elif key == ord("c"):
            self._pipeline.clear_word()

    def _shutdown(self):
        """Stop recognition first so a pending hold is never confirmed."""
        logger.info("Shutting down...")
        self._running = False
        self._pipeline.deactivate()
        self._camera.stop()
        self._detector.stop()
        if self._display:
            cv2.destroyAllWindows()
        self._bus.emit(Events.SYSTEM_SHUTDOWN, word=self._pipeline.word)
        logger.info("Final word: %s (%d letters confirmed)",
                    self._pipeline.word or "-", self._letter_logger.total_letters)

    def handle_signal(self, signum, frame):
        """Handle SIGINT/SIGTERM for graceful shutdown."""
        logger.info("Signal %d received, shutting down...", signum)
        self._running = False


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Fingerspell - webcam fingerspelling recognizer")
    parser.add_argument("--config", type=str, default=None, help="Path to config.yaml")
    parser.add_argument("--camera", type=int, default=None, help="Camera device ID")
    parser.add_argument("--model", type=str, default=None, help="Path to hand_landmarker.task")
    parser.add_argument("--hold-ms", type=int, default=None,
                        help="Hold duration (ms) needed to confirm a letter")
    parser.add_argument("--log-level", type=str, default=None, help="DEBUG, INFO, WARNING...")
    parser.add_argument("--no-display", action="store_true", help="Run without a window")
    parser.add_argument("--start-inactive", action="store_true",
                        help="Start with recognition paused")
    return parser.parse_args(argv)


def build_overrides(args) -> dict:
    """Translate command-line flags into config overrides."""
    overrides = {}
    if args.camera is not None:
        overrides.setdefault("camera", {})["device_id"] = args.camera
    if args.model:
        overrides.setdefault("detector", {})["model_path"] = args.model
    if args.hold_ms is not None:
        overrides.setdefault("recognition", {})["hold_threshold_ms"] = args.hold_ms
    if args.start_inactive:
        overrides.setdefault("recognition", {})["start_active"] = False
    if args.log_level:
        overrides.setdefault("logging", {})["level"] = args.log_level
    return overrides


def main(argv=None) -> int:
    args = parse_args(argv)

    config = Config()
    config.load(config_path=args.config)
    config.override(build_overrides(args))

    log_cfg = config.logging
    setup_logging(
        level=log_cfg.get("level", "INFO"),
        log_file=log_cfg.get("file"),
        max_size_mb=log_cfg.get("max_size_mb", 10),
        backup_count=log_cfg.get("backup_count", 3),
    )

    logger.info("=" * 50)
    logger.info("  FINGERSPELL  v%s", config.get("system.version", "1.0.0"))
    logger.info("  Hold threshold: %s ms", config.get("recognition.hold_threshold_ms", 500))
    logger.info("=" * 50)

    app = FingerspellApp(config, display=not args.no_display)

    signal.signal(signal.SIGINT, app.handle_signal)
    signal.signal(signal.SIGTERM, app.handle_signal)

    return 0 if app.start() else 1


if __name__ == "__main__":
    sys.exit(main())
