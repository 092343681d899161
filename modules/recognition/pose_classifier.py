"""
Rule-based fingerspelling letter classifier.

Maps the 21 joints of one hand to a letter using only distances and
directions between joints of the same frame.  The rules form an ordered
decision list checked most-specific-first; the first rule that matches
wins.  Each rule is an independent pure function of HandFeatures so it
can be exercised on its own.

    Priority  Letter(s)     Shape
    1         Y             thumb + pinky out
    2         A             fist, thumb alongside the index
    3         S             fist, thumb tucked / across toward the pinky
    4         B             flat hand, thumb folded
    5         H, K, U, V    index + middle out
    6         L             index + thumb at a wide angle
    7         D, I          index alone
    8         W             index + middle + ring out
    9         O             thumb and index tips touching, others out
    10        C             curved index + middle, open gap to the thumb
"""

import logging
from typing import Callable, NamedTuple, Optional, Sequence

from core.types import DetectionResult
from modules.detection.landmark_extractor import (
    HandFeatures, LandmarkExtractor,
    WRIST, THUMB_TIP, INDEX_MCP, INDEX_PIP, INDEX_TIP,
    MIDDLE_MCP, MIDDLE_PIP, MIDDLE_TIP, PINKY_MCP,
)

logger = logging.getLogger(__name__)

# Size-relative thresholds (fractions of wrist -> middle MCP distance)
K_THUMB_TO_MIDDLE_PIP = 0.25
U_TIP_GAP = 0.30
D_THUMB_TO_MIDDLE_TIP = 0.30
O_THUMB_TO_INDEX_TIP = 0.25
C_THUMB_TO_INDEX_TIP = 0.30

# L compares against the wrist -> index tip span instead of hand scale
L_THUMB_INDEX_SPREAD = 0.70

_INDEX_MIDDLE = frozenset({"index", "middle"})
_INDEX_ONLY = frozenset({"index"})
_INDEX_MIDDLE_RING = frozenset({"index", "middle", "ring"})
_ALL_FOUR = frozenset({"index", "middle", "ring", "pinky"})


class PoseRule(NamedTuple):
    """One entry of the decision list."""
    name: str
    match: Callable[[HandFeatures], Optional[DetectionResult]]


# =============================================================================
# Rules
# =============================================================================

def match_y(f: HandFeatures) -> Optional[DetectionResult]:
    """Thumb and pinky extended, index/middle/ring curled."""
    if f.thumb_extended and f.extended_set() == {"pinky"}:
        return DetectionResult("Y", 0.95)
    return None


def match_a(f: HandFeatures) -> Optional[DetectionResult]:
    """Fist with the thumb extended along the index side."""
    if f.four_curled and f.thumb_extended:
        if f.dist(THUMB_TIP, INDEX_MCP) < f.dist(THUMB_TIP, PINKY_MCP):
            return DetectionResult("A", 0.95)
    return None


def match_s(f: HandFeatures) -> Optional[DetectionResult]:
    """Fist with the thumb curled, or reaching toward the pinky knuckle."""
    if f.four_curled:
        if (not f.thumb_extended
                or f.dist(THUMB_TIP, INDEX_MCP) > f.dist(THUMB_TIP, PINKY_MCP)):
            return DetectionResult("S", 0.95)
    return None


def match_b(f: HandFeatures) -> Optional[DetectionResult]:
    if f.extended_set() == _ALL_FOUR and not f.thumb_extended:
        return DetectionResult("B", 0.96)
    return None


def _is_horizontal(f: HandFeatures, tip: int, base: int) -> bool:
    """Finger direction (base knuckle -> tip) is more sideways than upright."""
    dx = f.joints[tip][0] - f.joints[base][0]
    dy = f.joints[tip][1] - f.joints[base][1]
    return abs(dx) > abs(dy)


def match_two_finger(f: HandFeatures) -> Optional[DetectionResult]:
    """H / K / U / V: only index and middle extended.

    H is the sideways, fingers-together version; K has the thumb resting
    on the middle finger's PIP; U and V split on the fingertip gap.
    """
    if f.extended_set() != _INDEX_MIDDLE:
        return None

    if (_is_horizontal(f, INDEX_TIP, INDEX_MCP)
            and _is_horizontal(f, MIDDLE_TIP, MIDDLE_MCP)
            and f.dist(INDEX_TIP, MIDDLE_TIP) < f.dist(INDEX_PIP, MIDDLE_PIP)):
        return DetectionResult("H", 0.91)

    if f.thumb_extended and f.within(THUMB_TIP, MIDDLE_PIP, K_THUMB_TO_MIDDLE_PIP):
        return DetectionResult("K", 0.92)

    if f.within(INDEX_TIP, MIDDLE_TIP, U_TIP_GAP):
        return DetectionResult("U", 0.93)
    return DetectionResult("V", 0.95)


def match_l(f: HandFeatures) -> Optional[DetectionResult]:
    if f.extended_set() == _INDEX_ONLY and f.thumb_extended:
        spread = f.dist(THUMB_TIP, INDEX_TIP)
        if spread > L_THUMB_INDEX_SPREAD * f.dist(WRIST, INDEX_TIP):
            return DetectionResult("L", 0.94)
    return None


def match_index_only(f: HandFeatures) -> Optional[DetectionResult]:
    """D / I: index alone among the four fingers.

    D needs the thumb closing the circle against the middle fingertip;
    otherwise a folded thumb reads as I.  An extended thumb that is
    neither L nor D falls through.
    """
    if f.extended_set() != _INDEX_ONLY:
        return None
    if f.within(THUMB_TIP, MIDDLE_TIP, D_THUMB_TO_MIDDLE_TIP):
        return DetectionResult("D", 0.95)
    if not f.thumb_extended:
        return DetectionResult("I", 0.95)
    return None


def match_w(f: HandFeatures) -> Optional[DetectionResult]:
    if f.extended_set() == _INDEX_MIDDLE_RING:
        return DetectionResult("W", 0.94)
    return None


def match_o(f: HandFeatures) -> Optional[DetectionResult]:
    if (f.within(THUMB_TIP, INDEX_TIP, O_THUMB_TO_INDEX_TIP)
            and f.is_extended("middle") and f.is_extended("ring")
            and f.is_extended("pinky")):
        return DetectionResult("O", 0.95)
    return None


def match_c(f: HandFeatures) -> Optional[DetectionResult]:
    """Index and middle tips hang below their PIPs (image y grows down)."""
    joints = f.joints
    index_curved = joints[INDEX_TIP][1] > joints[INDEX_PIP][1]
    middle_curved = joints[MIDDLE_TIP][1] > joints[MIDDLE_PIP][1]
    if (index_curved and middle_curved
            and f.beyond(THUMB_TIP, INDEX_TIP, C_THUMB_TO_INDEX_TIP)):
        return DetectionResult("C", 0.88)
    return None


DEFAULT_RULES = (
    PoseRule("Y", match_y),
    PoseRule("A", match_a),
    PoseRule("S", match_s),
    PoseRule("B", match_b),
    PoseRule("HKUV", match_two_finger),
    PoseRule("L", match_l),
    PoseRule("DI", match_index_only),
    PoseRule("W", match_w),
    PoseRule("O", match_o),
    PoseRule("C", match_c),
)


# =============================================================================
# Classifier
# =============================================================================

class PoseClassifier:
    """Evaluates the decision list against one hand per call.

    Holds no per-frame state: identical joints always give the same result.
    """

    def __init__(self, rules: Sequence[PoseRule] = DEFAULT_RULES,
                 extractor: Optional[LandmarkExtractor] = None):
        self._rules = tuple(rules)
        self._extractor = extractor or LandmarkExtractor()

    @property
    def rules(self) -> tuple:
        return self._rules

    def classify(self, joints) -> DetectionResult:
        """Classify a joint set.

        Args:
            joints: 21 (x, y, z) points for one hand, in any form accepted
                by ``to_joint_array``

        Returns:
            DetectionResult, ``DetectionResult.none()`` for malformed or
            unmatched input
        """
        features = self._extractor.extract_features(joints)
        if features is None:
            return DetectionResult.none()
        return self.classify_features(features)

    def classify_features(self, features: HandFeatures) -> DetectionResult:
        for rule in self._rules:
            result = rule.match(features)
            if result is not None:
                return result
        return DetectionResult.none()

    def explain(self, joints) -> Optional[str]:
        """Name of the rule that decided this joint set (None if no match)."""
        features = self._extractor.extract_features(joints)
        if features is None:
            return None
        for rule in self._rules:
            if rule.match(features) is not None:
                logger.debug("Rule %s matched %r", rule.name, features)
                return rule.name
        return None


_default_classifier = PoseClassifier()


def classify(joints) -> DetectionResult:
    """Classify with the shared default rule set."""
    return _default_classifier.classify(joints)
