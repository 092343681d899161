"""
Hold-to-confirm sequencing of per-frame letter detections.

A letter is confirmed only after the classifier has reported the same
symbol continuously for longer than the hold threshold.  Any interruption
(a different symbol, or no symbol) drops the candidate and the hold must
start over; there is no voting or partial credit.

State machine over HoldState:
    Idle     --symbol S-->                  Holding(S, now)
    Idle     --none-->                      Idle
    Holding  --other symbol / none-->       Idle
    Holding  --S, held > threshold-->       Idle, emits S
    Holding  --S, held <= threshold-->      Holding (same start)
"""

import logging
from typing import Optional, Tuple

from core.types import DetectionResult, HoldState

logger = logging.getLogger(__name__)

DEFAULT_HOLD_THRESHOLD_MS = 500


def advance_hold(
    state: HoldState,
    result: DetectionResult,
    now: float,
    threshold_ms: float = DEFAULT_HOLD_THRESHOLD_MS,
) -> Tuple[HoldState, Optional[str]]:
    """Apply one frame to the hold state.

    Args:
        state: Hold state before this frame
        result: Classifier output for this frame
        now: Frame timestamp in seconds
        threshold_ms: Hold duration that must be exceeded to confirm

    Returns:
        (next_state, confirmed_symbol or None)
    """
    symbol = result.symbol

    if not state.is_holding:
        if symbol is None:
            return state, None
        return HoldState.holding(symbol, now), None

    if symbol != state.candidate_symbol:
        return HoldState.idle(), None

    if state.elapsed_ms(now) > threshold_ms:
        return HoldState.idle(), symbol

    return state, None


class HoldConfirmationEngine:
    """Owns the HoldState for one recognition stream.

    Called once per frame; returns the confirmed letter on the frame the
    hold threshold is crossed.
    """

    def __init__(self, config: Optional[dict] = None):
        config = config or {}
        self._threshold_ms = float(
            config.get("hold_threshold_ms", DEFAULT_HOLD_THRESHOLD_MS)
        )
        self._state = HoldState.idle()
        self._confirmed_count = 0

    def on_frame(self, result: DetectionResult, now: float) -> Optional[str]:
        """Process one frame's detection.

        Returns:
            The confirmed symbol, or None
        """
        previous = self._state
        self._state, confirmed = advance_hold(previous, result, now, self._threshold_ms)

        if confirmed is not None:
            self._confirmed_count += 1
            logger.debug("Confirmed '%s' after %.0fms", confirmed, previous.elapsed_ms(now))
        elif self._state.is_holding and not previous.is_holding:
            logger.debug("Hold started: %s", self._state.candidate_symbol)
        elif previous.is_holding and not self._state.is_holding:
            logger.debug("Hold on '%s' interrupted after %.0fms",
                         previous.candidate_symbol, previous.elapsed_ms(now))
        return confirmed

    def reset(self):
        """Force Idle, discarding any hold in progress."""
        if self._state.is_holding:
            logger.debug("Discarding pending hold on '%s'", self._state.candidate_symbol)
        self._state = HoldState.idle()

    def hold_progress(self, now: float) -> float:
        """Fraction of the threshold the current hold has covered (0.0 - 1.0)."""
        if not self._state.is_holding or self._threshold_ms <= 0:
            return 0.0
        return max(0.0, min(1.0, self._state.elapsed_ms(now) / self._threshold_ms))

    @property
    def state(self) -> HoldState:
        return self._state

    @property
    def candidate(self) -> Optional[str]:
        return self._state.candidate_symbol

    @property
    def threshold_ms(self) -> float:
        return self._threshold_ms

    @property
    def confirmed_count(self) -> int:
        return self._confirmed_count
