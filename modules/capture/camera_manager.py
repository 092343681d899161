"""
Synchronous OpenCV camera capture.

Frames are pulled on the pipeline's own thread, one per tick, so the
recognizer never races a background grabber.
"""

import logging
import cv2

logger = logging.getLogger(__name__)

_BACKENDS = {
    "v4l2": cv2.CAP_V4L2,
    "gstreamer": cv2.CAP_GSTREAMER,
    "dshow": cv2.CAP_DSHOW,
    "auto": cv2.CAP_ANY,
}


class CameraManager:
    """Owns one cv2.VideoCapture and hands out mirrored frames with ids."""

    def __init__(self, config: dict):
        self._device_id = config.get("device_id", 0)
        self._width = config.get("width", 640)
        self._height = config.get("height", 480)
        self._fps = config.get("fps", 30)
        self._backend = config.get("backend", "auto")
        self._flip_h = config.get("flip_horizontal", True)
        self._warmup_frames = config.get("warmup_frames", 5)

        self._cap = None
        self._frame_id = 0
        self._failed_reads = 0

    def open(self) -> bool:
        """Open the device; logs and returns False on failure."""
        backend = _BACKENDS.get(self._backend, cv2.CAP_ANY)

        self._cap = cv2.VideoCapture(self._device_id, backend)
        if not self._cap.isOpened():
            logger.error("Failed to open camera %d with backend %s",
                         self._device_id, self._backend)
            self._cap = None
            return False

        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self._width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self._height)
        self._cap.set(cv2.CAP_PROP_FPS, self._fps)

        actual_w = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        actual_h = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        if actual_w and actual_h:
            self._width, self._height = actual_w, actual_h
        logger.info("Camera %d opened: %dx%d", self._device_id, self._width, self._height)

        # Let auto-exposure settle
        for _ in range(self._warmup_frames):
            self._cap.read()

        return True

    def read_sync(self):
        """Read the next frame.

        Returns:
            tuple: (frame_id, BGR numpy array) or (None, None)
        """
        if self._cap is None:
            return None, None
        ret, frame = self._cap.read()
        if not ret or frame is None:
            self._failed_reads += 1
            if self._failed_reads == 1 or self._failed_reads % 100 == 0:
                logger.warning("Camera read failed (%d consecutive)", self._failed_reads)
            return None, None

        self._failed_reads = 0
        if self._flip_h:
            frame = cv2.flip(frame, 1)
        self._frame_id += 1
        return self._frame_id, frame

    @property
    def resolution(self) -> tuple:
        return (self._width, self._height)

    @property
    def is_open(self) -> bool:
        return self._cap is not None and self._cap.isOpened()

    def stop(self):
        """Release the device."""
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.info("Camera stopped")

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, *args):
        self.stop()

