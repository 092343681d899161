"""
Hand Detection - MediaPipe Tasks HandLandmarker
================================================

Turns a BGR video frame into zero or more 21-joint hand arrays.  Runs in
VIDEO mode, which needs a strictly increasing timestamp per frame.
"""

import logging
import urllib.request
from pathlib import Path
from typing import List, Optional

import cv2
import numpy as np
import mediapipe as mp
from mediapipe.tasks import python
from mediapipe.tasks.python import vision

from modules.detection.landmark_extractor import (
    FINGER_TIPS, HAND_CONNECTIONS, LandmarkExtractor,
)
from modules.utils.logger import log_timing

logger = logging.getLogger(__name__)

HAND_LANDMARKER_MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/hand_landmarker/"
    "hand_landmarker/float16/1/hand_landmarker.task"
)
DEFAULT_MODEL_PATH = Path(__file__).parent.parent.parent / "models" / "hand_landmarker.task"


def download_model(url: str, save_path: Path) -> bool:
    """Download the hand landmarker model if not present."""
    if save_path.exists():
        return True

    try:
        save_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Downloading hand landmarker model to %s...", save_path)
        urllib.request.urlretrieve(url, save_path)
        logger.info("Model download complete")
        return True
    except OSError as e:
        logger.error("Failed to download model: %s", e)
        return False


class HandDetector:
    """MediaPipe HandLandmarker wrapper producing (21, 3) joint arrays.

    Example:
        >>> detector = HandDetector(config.detector)
        >>> detector.start()
        >>> hands = detector.detect(bgr_frame, timestamp_ms)
        >>> detector.stop()
    """

    def __init__(self, config: dict):
        self._model_path = Path(config.get("model_path") or DEFAULT_MODEL_PATH)
        self._auto_download = config.get("auto_download", True)
        self._num_hands = config.get("max_num_hands", 1)
        self._min_detect_conf = config.get("min_detection_confidence", 0.5)
        self._min_presence_conf = config.get("min_presence_confidence", 0.5)
        self._min_track_conf = config.get("min_tracking_confidence", 0.5)

        self._extractor = LandmarkExtractor()
        self._landmarker: Optional[vision.HandLandmarker] = None

    def start(self) -> bool:
        """Load the model; logs and returns False on failure."""
        if not self._model_path.exists():
            if not self._auto_download:
                logger.error("Hand landmarker model not found: %s", self._model_path)
                return False
            if not download_model(HAND_LANDMARKER_MODEL_URL, self._model_path):
                return False

        options = vision.HandLandmarkerOptions(
            base_options=python.BaseOptions(model_asset_path=str(self._model_path)),
            running_mode=vision.RunningMode.VIDEO,
            num_hands=self._num_hands,
            min_hand_detection_confidence=self._min_detect_conf,
            min_hand_presence_confidence=self._min_presence_conf,
            min_tracking_confidence=self._min_track_conf,
        )
        try:
            self._landmarker = vision.HandLandmarker.create_from_options(options)
        except (RuntimeError, ValueError) as e:
            logger.error("Failed to initialize HandLandmarker: %s", e)
            return False

        logger.info("HandLandmarker ready (model=%s, max_hands=%d)",
                    self._model_path.name, self._num_hands)
        return True

    def stop(self):
        """Release MediaPipe resources."""
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None
            logger.info("HandLandmarker closed")

    @log_timing
    def detect(self, bgr_frame: np.ndarray, timestamp_ms: int) -> List[np.ndarray]:
        """Detect hands in a BGR frame.

        Returns:
            One (21, 3) array of normalized coordinates per detected hand,
            in detector order
        """
        if self._landmarker is None:
            logger.warning("HandLandmarker not started")
            return []

        rgb = cv2.cvtColor(bgr_frame, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)
        result = self._landmarker.detect_for_video(mp_image, timestamp_ms)

        return [self._extractor.extract_landmarks(hand) for hand in result.hand_landmarks]

    def draw_landmarks(self, frame: np.ndarray, joints: np.ndarray,
                       color=(0, 255, 0), tip_color=(0, 0, 255)) -> np.ndarray:
        """Draw the hand skeleton on a BGR frame in place."""
        h, w = frame.shape[:2]
        self._extractor.set_frame_size(w, h)
        pixels = self._extractor.to_pixel_coords(np.asarray(joints))

        for start, end in HAND_CONNECTIONS:
            cv2.line(frame, tuple(int(v) for v in pixels[start]),
                     tuple(int(v) for v in pixels[end]), color, 2)
        for i, (x, y) in enumerate(pixels):
            cv2.circle(frame, (int(x), int(y)), 4,
                       tip_color if i in FINGER_TIPS else color, -1)
        return frame

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *args):
        self.stop()
