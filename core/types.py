"""
Shared domain types for the fingerspelling recognizer.

Centralizes the value objects passed between the classifier, the
hold-confirmation engine and the presentation layer so modules do not
import each other just for their data types.
"""

import time
from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Letter Symbols
# =============================================================================

# Every symbol the pose classifier can emit, in rule priority order.
LETTER_SYMBOLS = ("Y", "A", "S", "B", "H", "K", "U", "V", "L", "D", "I", "W", "O", "C")


# =============================================================================
# Data Containers
# =============================================================================

@dataclass(frozen=True)
class DetectionResult:
    """Classifier output for a single frame.

    ``symbol`` is None when no rule matched; confidence is then 0.
    """
    symbol: Optional[str] = None
    confidence: float = 0.0

    @classmethod
    def none(cls) -> "DetectionResult":
        return _NONE_RESULT

    @property
    def is_none(self) -> bool:
        return self.symbol is None

    def __repr__(self):
        return f"DetectionResult({self.symbol or 'none'}, conf={self.confidence:.2f})"


_NONE_RESULT = DetectionResult()


@dataclass(frozen=True)
class HoldState:
    """Cross-frame state of the hold-confirmation engine.

    ``candidate_symbol`` and ``hold_start`` are set and cleared together.
    """
    candidate_symbol: Optional[str] = None
    hold_start: Optional[float] = None

    def __post_init__(self):
        if (self.candidate_symbol is None) != (self.hold_start is None):
            raise ValueError(
                "candidate_symbol and hold_start must be set together "
                f"(got {self.candidate_symbol!r}, {self.hold_start!r})"
            )

    @classmethod
    def idle(cls) -> "HoldState":
        return _IDLE_STATE

    @classmethod
    def holding(cls, symbol: str, since: float) -> "HoldState":
        return cls(candidate_symbol=symbol, hold_start=since)

    @property
    def is_holding(self) -> bool:
        return self.candidate_symbol is not None

    def elapsed_ms(self, now: float) -> float:
        """Milliseconds the current candidate has been held (0 when idle)."""
        if self.hold_start is None:
            return 0.0
        return (now - self.hold_start) * 1000.0


_IDLE_STATE = HoldState()


class PipelineResult:
    """Result of a single pipeline iteration."""

    __slots__ = (
        "frame", "frame_id", "timestamp", "hand_detected",
        "detection", "confirmed_letter", "appended", "word",
    )

    def __init__(self, timestamp: Optional[float] = None):
        self.frame = None
        self.frame_id = 0
        self.timestamp = time.time() if timestamp is None else timestamp
        self.hand_detected = False
        self.detection = DetectionResult.none()
        self.confirmed_letter: Optional[str] = None
        self.appended = False
        self.word = ""

    def __repr__(self):
        return (f"PipelineResult(frame={self.frame_id}, {self.detection!r}, "
                f"confirmed={self.confirmed_letter}, word={self.word!r})")
