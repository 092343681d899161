"""
Overlay rendering for the speller window: detected letter, confidence,
hold progress, the word spelled so far and the keyboard legend.
"""

import logging
import cv2
import numpy as np

logger = logging.getLogger(__name__)

_FONT = cv2.FONT_HERSHEY_SIMPLEX


class Dashboard:
    """Draws the speller state onto a BGR frame."""

    def __init__(self, config: dict):
        self._show_confidence_bar = config.get("show_confidence_bar", True)
        self._show_hold_progress = config.get("show_hold_progress", True)
        self._show_legend = config.get("show_legend", True)

        colors = config.get("colors", {})
        self._color_text = tuple(colors.get("text", [255, 255, 255]))
        self._color_accent = tuple(colors.get("accent", [255, 255, 0]))
        self._color_inactive = tuple(colors.get("inactive", [0, 0, 255]))
        self._color_conf_high = tuple(colors.get("confidence_high", [0, 255, 0]))
        self._color_conf_mid = tuple(colors.get("confidence_mid", [0, 255, 255]))
        self._color_conf_low = tuple(colors.get("confidence_low", [0, 0, 255]))

        panel = config.get("panel", {})
        self._panel_opacity = panel.get("opacity", 0.7)
        self._panel_height = panel.get("height", 90)

    def render(self, frame: np.ndarray, state: dict) -> np.ndarray:
        """Render the overlay.

        Args:
            frame: BGR frame to draw on (modified in place)
            state: SpellingPipeline.build_state() dict

        Returns:
            The same frame
        """
        h, w = frame.shape[:2]

        self._draw_panel(frame, w, h)
        self._draw_letter(frame, state)
        if self._show_confidence_bar:
            self._draw_confidence_bar(frame, w, state.get("confidence", 0.0))
        if self._show_hold_progress and state.get("hold_candidate"):
            self._draw_hold_progress(frame, w, state)
        self._draw_word(frame, h, state.get("word", ""))
        if not state.get("active", True):
            self._draw_inactive(frame, w, h)
        if self._show_legend:
            self._draw_legend(frame, w, h)
        return frame

    def _confidence_color(self, confidence: float) -> tuple:
        if confidence >= 0.9:
            return self._color_conf_high
        if confidence >= 0.7:
            return self._color_conf_mid
        return self._color_conf_low

    def _draw_panel(self, frame, w, h):
        """Semi-transparent bands behind the top and bottom text."""
        overlay = frame.copy()
        cv2.rectangle(overlay, (0, 0), (w, self._panel_height), (20, 20, 20), -1)
        cv2.rectangle(overlay, (0, h - self._panel_height), (w, h), (20, 20, 20), -1)
        cv2.addWeighted(overlay, self._panel_opacity, frame, 1 - self._panel_opacity, 0, frame)

    def _draw_letter(self, frame, state):
        symbol = state.get("symbol")
        if symbol:
            cv2.putText(frame, symbol, (20, 70), _FONT, 2.2 if len(symbol) == 1 else 1.6,
                        self._color_text, 4)
        else:
            cv2.putText(frame, "N/A", (20, 60), _FONT, 1.0, (150, 150, 150), 2)

    def _draw_confidence_bar(self, frame, w, confidence):
        bar_x, bar_y = 120, 30
        bar_w = max(50, w // 3)
        bar_h = 12
        cv2.rectangle(frame, (bar_x, bar_y), (bar_x + bar_w, bar_y + bar_h), (60, 60, 60), -1)
        fill = int(max(0.0, min(1.0, confidence)) * bar_w)
        if fill:
            cv2.rectangle(frame, (bar_x, bar_y), (bar_x + fill, bar_y + bar_h),
                          self._confidence_color(confidence), -1)
        cv2.putText(frame, f"Confidence: {round(confidence * 100)}%",
                    (bar_x, bar_y + 35), _FONT, 0.55, self._color_text, 1)

    def _draw_hold_progress(self, frame, w, state):
        progress = state.get("hold_progress", 0.0)
        x = w - 170
        cv2.putText(frame, f"Hold {state['hold_candidate']}", (x, 30), _FONT, 0.55,
                    self._color_text, 1)
        cv2.rectangle(frame, (x, 40), (x + 150, 52), (60, 60, 60), -1)
        cv2.rectangle(frame, (x, 40), (x + int(progress * 150), 52), self._color_accent, -1)

    def _draw_word(self, frame, h, word):
        text = (word or "...") + "|"
        color = self._color_text if word else (150, 150, 150)
        cv2.putText(frame, text, (20, h - self._panel_height + 45), _FONT, 1.2, color, 2)

    def _draw_inactive(self, frame, w, h):
        text = "Camera paused - press SPACE"
        size = cv2.getTextSize(text, _FONT, 0.8, 2)[0]
        cv2.putText(frame, text, ((w - size[0]) // 2, h // 2), _FONT, 0.8,
                    self._color_inactive, 2)

    def _draw_legend(self, frame, w, h):
        cv2.putText(frame, "SPACE start/stop   C clear   Q quit",
                    (20, h - 12), _FONT, 0.45, (180, 180, 180), 1)
