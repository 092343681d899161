"""
Lightweight event bus connecting the recognition pipeline to its consumers.

The pipeline publishes detections, confirmed letters and word changes;
the dashboard, letter logger or any embedding application subscribe
without the pipeline knowing about them.

Usage:
    bus = EventBus()
    bus.subscribe(Events.LETTER_CONFIRMED, on_letter)
    bus.emit(Events.LETTER_CONFIRMED, letter="A", word="CA")
"""

import time
import logging
import threading
from collections import defaultdict
from typing import Callable

logger = logging.getLogger(__name__)


class EventBus:
    """Synchronous publish/subscribe bus with priority ordering.

    Listeners run on the emitting thread, in descending priority.  A
    failing listener is logged and skipped; it never aborts the frame.
    """

    _instance = None

    def __new__(cls):
        """Singleton: one bus per application."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._listeners = defaultdict(list)  # event_name -> [(priority, callback)]
        self._lock = threading.Lock()
        self._event_history = []
        self._max_history = 100
        self._enabled = True
        self._initialized = True

    def subscribe(self, event_name: str, callback: Callable, priority: int = 0):
        """Register a listener.

        Args:
            event_name: Event to listen for
            callback: Called with the **kwargs given to emit()
            priority: Higher priority callbacks run first (default 0)
        """
        with self._lock:
            self._listeners[event_name].append((priority, callback))
            self._listeners[event_name].sort(key=lambda x: -x[0])
        logger.debug("Subscribed to '%s': %s (priority=%d)",
                     event_name, getattr(callback, "__name__", callback), priority)

    def unsubscribe(self, event_name: str, callback: Callable):
        with self._lock:
            self._listeners[event_name] = [
                (p, cb) for p, cb in self._listeners[event_name] if cb is not callback
            ]

    def emit(self, event_name: str, **kwargs):
        """Deliver an event to every listener registered for it."""
        if not self._enabled:
            return

        with self._lock:
            listeners = list(self._listeners.get(event_name, []))

        self._event_history.append({
            "event": event_name,
            "time": time.time(),
            "data": dict(kwargs),
        })
        if len(self._event_history) > self._max_history:
            self._event_history = self._event_history[-self._max_history:]

        for _, callback in listeners:
            try:
                callback(**kwargs)
            except Exception as e:
                logger.error("Event handler error [%s -> %s]: %s",
                             event_name, getattr(callback, "__name__", callback), e)

    def set_enabled(self, enabled: bool):
        self._enabled = enabled

    def clear(self, event_name: str = None):
        """Remove all listeners, optionally for a specific event."""
        with self._lock:
            if event_name:
                self._listeners.pop(event_name, None)
            else:
                self._listeners.clear()

    @property
    def registered_events(self) -> list:
        with self._lock:
            return [name for name, cbs in self._listeners.items() if cbs]

    @property
    def listener_count(self) -> int:
        with self._lock:
            return sum(len(cbs) for cbs in self._listeners.values())

    def get_history(self, last_n: int = 10, event_name: str = None) -> list:
        """Recent events, optionally filtered by name."""
        history = self._event_history
        if event_name:
            history = [e for e in history if e["event"] == event_name]
        return history[-last_n:]

    def reset(self):
        """Reset singleton state (for testing)."""
        with self._lock:
            self._listeners.clear()
        self._event_history.clear()
        self._enabled = True


# =============================================================================
# Standard Event Names
# =============================================================================

class Events:
    """Event names published by the spelling pipeline."""

    # Per-frame
    DETECTION_UPDATED = "detection_updated"
    HAND_DETECTED = "hand_detected"
    HAND_LOST = "hand_lost"

    # Hold / spelling
    HOLD_STARTED = "hold_started"
    LETTER_CONFIRMED = "letter_confirmed"
    WORD_CHANGED = "word_changed"
    WORD_CLEARED = "word_cleared"

    # Capture control
    CAPTURE_ACTIVATED = "capture_activated"
    CAPTURE_DEACTIVATED = "capture_deactivated"
    CAMERA_ERROR = "camera_error"

    # Lifecycle
    SYSTEM_STARTED = "system_started"
    SYSTEM_SHUTDOWN = "system_shutdown"
