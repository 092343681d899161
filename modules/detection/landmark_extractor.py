"""
21-point hand joint handling and the distance-based features used by the
letter classifier.

Everything here is derived from distances between joints of the same
frame, so the features are independent of where the hand sits in the
image and how it is rotated:
    - finger extension: tip farther from the wrist than the finger's PIP
    - hand scale: wrist -> middle finger MCP, for size-relative thresholds
"""

import math
import logging
from typing import Dict, Optional

import numpy as np

logger = logging.getLogger(__name__)

NUM_JOINTS = 21

# MediaPipe hand landmark indices
WRIST = 0
THUMB_CMC = 1
THUMB_MCP = 2
THUMB_IP = 3
THUMB_TIP = 4
INDEX_MCP = 5
INDEX_PIP = 6
INDEX_DIP = 7
INDEX_TIP = 8
MIDDLE_MCP = 9
MIDDLE_PIP = 10
MIDDLE_DIP = 11
MIDDLE_TIP = 12
RING_MCP = 13
RING_PIP = 14
RING_DIP = 15
RING_TIP = 16
PINKY_MCP = 17
PINKY_PIP = 18
PINKY_DIP = 19
PINKY_TIP = 20

FINGER_TIPS = [THUMB_TIP, INDEX_TIP, MIDDLE_TIP, RING_TIP, PINKY_TIP]

# (tip, reference joint) pairs for the extension test.  The thumb has no
# PIP, so its IP joint plays that role.
EXTENSION_JOINTS = {
    "thumb":  (THUMB_TIP, THUMB_IP),
    "index":  (INDEX_TIP, INDEX_PIP),
    "middle": (MIDDLE_TIP, MIDDLE_PIP),
    "ring":   (RING_TIP, RING_PIP),
    "pinky":  (PINKY_TIP, PINKY_PIP),
}

FOUR_FINGERS = ("index", "middle", "ring", "pinky")

# Skeleton connectivity for drawing
HAND_CONNECTIONS = [
    (0, 1), (1, 2), (2, 3), (3, 4),          # thumb
    (0, 5), (5, 6), (6, 7), (7, 8),          # index
    (5, 9), (9, 10), (10, 11), (11, 12),     # middle
    (9, 13), (13, 14), (14, 15), (15, 16),   # ring
    (13, 17), (17, 18), (18, 19), (19, 20),  # pinky
    (0, 17),                                 # palm base
]


def to_joint_array(joints) -> Optional[np.ndarray]:
    """Convert a joint set into a (21, 3) float array.

    Accepts a numpy array, a sequence of (x, y, z) triples, or a sequence
    of landmark objects exposing ``.x``, ``.y`` and ``.z`` (MediaPipe).

    Returns:
        np.ndarray of shape (21, 3), or None when the input is empty,
        does not hold exactly 21 points, or contains non-finite values.
    """
    if joints is None:
        return None

    if isinstance(joints, np.ndarray):
        array = joints.astype(np.float64, copy=False)
    else:
        try:
            points = list(joints)
        except TypeError:
            return None
        if not points:
            return None
        if all(hasattr(p, "x") and hasattr(p, "y") for p in points):
            points = [(p.x, p.y, getattr(p, "z", 0.0)) for p in points]
        try:
            array = np.asarray(points, dtype=np.float64)
        except (TypeError, ValueError):
            return None

    if array.shape != (NUM_JOINTS, 3):
        if array.size:
            logger.debug("Rejecting joint set with shape %s", array.shape)
        return None
    if not np.all(np.isfinite(array)):
        logger.debug("Rejecting joint set with non-finite coordinates")
        return None
    return array


class HandFeatures:
    """Per-frame derived features for one hand.

    Built once per classification and shared by every rule, so each
    distance the rules need is computed from the same joint snapshot.
    """

    __slots__ = ("joints", "extended", "scale")

    def __init__(self, joints: np.ndarray):
        self.joints = joints
        self.extended: Dict[str, bool] = {
            finger: self.dist(tip, WRIST) > self.dist(ref, WRIST)
            for finger, (tip, ref) in EXTENSION_JOINTS.items()
        }
        self.scale = self.dist(WRIST, MIDDLE_MCP)

    def dist(self, a: int, b: int) -> float:
        """3D Euclidean distance between joints ``a`` and ``b``."""
        pa = self.joints[a]
        pb = self.joints[b]
        return math.sqrt(
            (pa[0] - pb[0]) ** 2 + (pa[1] - pb[1]) ** 2 + (pa[2] - pb[2]) ** 2
        )

    def is_extended(self, finger: str) -> bool:
        return self.extended[finger]

    def extended_set(self) -> frozenset:
        """Names of the extended fingers among index/middle/ring/pinky."""
        return frozenset(f for f in FOUR_FINGERS if self.extended[f])

    @property
    def thumb_extended(self) -> bool:
        return self.extended["thumb"]

    @property
    def four_curled(self) -> bool:
        return not any(self.extended[f] for f in FOUR_FINGERS)

    def within(self, a: int, b: int, ratio: float) -> bool:
        """True if joints a and b are closer than ``ratio`` x hand scale."""
        return self.dist(a, b) < ratio * self.scale

    def beyond(self, a: int, b: int, ratio: float) -> bool:
        """True if joints a and b are farther apart than ``ratio`` x hand scale."""
        return self.dist(a, b) > ratio * self.scale

    def __repr__(self):
        ext = "".join("1" if self.extended[f] else "0" for f in EXTENSION_JOINTS)
        return f"HandFeatures(extended={ext}, scale={self.scale:.3f})"


class LandmarkExtractor:
    """Converts detector output into joint arrays and pixel coordinates."""

    def __init__(self):
        self._frame_width = 640
        self._frame_height = 480

    def set_frame_size(self, width: int, height: int):
        """Set frame dimensions for pixel coordinate conversion."""
        self._frame_width = width
        self._frame_height = height

    def extract_landmarks(self, hand_landmarks) -> np.ndarray:
        """Convert one hand's MediaPipe landmarks to a (21, 3) array."""
        landmarks = np.zeros((NUM_JOINTS, 3), dtype=np.float32)
        for i, lm in enumerate(hand_landmarks):
            if i >= NUM_JOINTS:
                break
            landmarks[i] = [lm.x, lm.y, lm.z]
        return landmarks

    def extract_features(self, joints) -> Optional[HandFeatures]:
        """Build HandFeatures, or None for a malformed joint set."""
        array = to_joint_array(joints)
        if array is None:
            return None
        return HandFeatures(array)

    def to_pixel_coords(self, landmarks: np.ndarray) -> np.ndarray:
        """Convert normalized landmarks to pixel coordinates.

        Returns:
            np.ndarray of shape (21, 2) with pixel x, y
        """
        pixels = np.zeros((len(landmarks), 2), dtype=np.int32)
        pixels[:, 0] = (landmarks[:, 0] * self._frame_width).astype(np.int32)
        pixels[:, 1] = (landmarks[:, 1] * self._frame_height).astype(np.int32)
        return pixels
