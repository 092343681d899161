"""
Shared fixtures and synthetic hand builders.

Hands are built upright in image space (y grows downward) with the wrist
at (0.5, 0.8).  Fingers are either straight up from their MCP or folded
back toward the palm; individual joints can be overridden to shape a
specific letter.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.events import EventBus
from modules.utils.config import Config

WRIST_POS = (0.5, 0.8)

_MCPS = {
    "index":  (5, (0.44, 0.62)),
    "middle": (9, (0.50, 0.60)),
    "ring":   (13, (0.56, 0.62)),
    "pinky":  (17, (0.61, 0.65)),
}

# y offsets from the MCP for (PIP, DIP, TIP)
_EXTENDED_OFFSETS = (-0.07, -0.12, -0.16)
_CURLED_OFFSETS = (-0.05, -0.02, 0.03)

_THUMB_BASE = [(0.42, 0.76), (0.37, 0.70), (0.33, 0.65)]  # CMC, MCP, IP
THUMB_TIP_EXTENDED = (0.20, 0.66)
THUMB_TIP_CURLED = (0.45, 0.70)


def make_hand(extended=(), thumb=False, overrides=None, z=0.0) -> np.ndarray:
    """Build a (21, 3) joint array.

    Args:
        extended: Names of the non-thumb fingers to straighten
        thumb: Whether the thumb sticks out
        overrides: {joint_index: (x, y)} applied last
    """
    joints = np.zeros((21, 3), dtype=np.float64)
    joints[:, 2] = z
    joints[0, :2] = WRIST_POS

    for i, pos in enumerate(_THUMB_BASE, start=1):
        joints[i, :2] = pos
    joints[4, :2] = THUMB_TIP_EXTENDED if thumb else THUMB_TIP_CURLED

    for finger, (mcp_idx, (x, y)) in _MCPS.items():
        offsets = _EXTENDED_OFFSETS if finger in extended else _CURLED_OFFSETS
        joints[mcp_idx, :2] = (x, y)
        for k, dy in enumerate(offsets, start=1):
            joints[mcp_idx + k, :2] = (x, y + dy)

    for idx, pos in (overrides or {}).items():
        joints[idx, :2] = pos
    return joints


def rotate_hand(joints: np.ndarray, degrees: float) -> np.ndarray:
    """Rotate a hand in the image plane around its wrist."""
    theta = np.radians(degrees)
    rot = np.array([[np.cos(theta), -np.sin(theta)],
                    [np.sin(theta), np.cos(theta)]])
    out = joints.copy()
    centered = joints[:, :2] - joints[0, :2]
    out[:, :2] = centered @ rot.T + joints[0, :2]
    return out


def scale_hand(joints: np.ndarray, factor: float, shift=(0.0, 0.0, 0.0)) -> np.ndarray:
    """Scale a hand around its wrist and translate it."""
    out = (joints - joints[0]) * factor + joints[0]
    return out + np.asarray(shift)


# Letter poses -----------------------------------------------------------------

def hand_y():
    return make_hand(extended=("pinky",), thumb=True)


def hand_a():
    return make_hand(thumb=True)


def hand_s():
    return make_hand(thumb=False)


def hand_b():
    return make_hand(extended=("index", "middle", "ring", "pinky"))


def hand_u():
    return make_hand(extended=("index", "middle"), overrides={8: (0.48, 0.45)})


def hand_v():
    return make_hand(extended=("index", "middle"), overrides={8: (0.38, 0.46)})


def hand_h():
    return rotate_hand(hand_u(), 90)


def hand_k():
    return make_hand(extended=("index", "middle"), thumb=True, overrides={4: (0.49, 0.55)})


def hand_l():
    return make_hand(extended=("index",), thumb=True)


def hand_d():
    return make_hand(extended=("index",), overrides={4: (0.49, 0.64)})


def hand_i():
    return make_hand(extended=("index",))


def hand_w():
    return make_hand(extended=("index", "middle", "ring"))


def hand_o():
    return make_hand(extended=("middle", "ring", "pinky"), overrides={4: (0.45, 0.67)})


def hand_c():
    return make_hand(extended=("ring", "pinky"), thumb=True)


LETTER_HANDS = {
    "Y": hand_y, "A": hand_a, "S": hand_s, "B": hand_b,
    "H": hand_h, "K": hand_k, "U": hand_u, "V": hand_v,
    "L": hand_l, "D": hand_d, "I": hand_i, "W": hand_w,
    "O": hand_o, "C": hand_c,
}


@pytest.fixture
def event_bus():
    """The singleton bus, emptied before and after each test."""
    bus = EventBus()
    bus.reset()
    yield bus
    bus.reset()


@pytest.fixture
def fresh_config():
    Config.reset()
    yield Config()
    Config.reset()
