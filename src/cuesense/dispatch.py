"""Named-slot callback registry shared by the audio and gesture engines.

Each slot has one primary listener plus any number of extra subscribers:

    registry = DispatchRegistry()
    registry.on_beat(lambda intensity: flash(intensity))   # primary, replaces
    registry.subscribe("beat", probe.append)                # additional

    registry.emit("beat", 0.8)

Registering a new primary listener replaces the previous one. Subscribers
run after the primary, in registration order. Every call is guarded: a
listener that raises is logged and skipped, and the emitting engine carries
on with its next tick.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger("cuesense.dispatch")

SLOTS = (
    "pinch",
    "swipe",
    "reset",
    "follow",
    "body_lean",
    "beat",
    "peak",
    "gesture_start",
    "gesture_end",
)


class DispatchRegistry:
    """Synchronous publish mechanism decoupling engines from their consumers."""

    def __init__(self):
        self._primary: dict[str, Optional[Callable]] = {s: None for s in SLOTS}
        self._subscribers: dict[str, list[Callable]] = {s: [] for s in SLOTS}
        self._lock = threading.Lock()
        self.error_count = 0

    def _check_slot(self, slot: str):
        if slot not in self._primary:
            raise ValueError(
                f"Unknown slot '{slot}'. Expected one of: {', '.join(SLOTS)}"
            )

    def on(self, slot: str, callback: Optional[Callable]):
        """Set the primary listener for a slot. Pass None to clear it."""
        self._check_slot(slot)
        with self._lock:
            if self._primary[slot] is not None and callback is not None:
                logger.debug("Replacing primary listener for '%s'", slot)
            self._primary[slot] = callback

    def subscribe(self, slot: str, callback: Callable) -> Callable:
        """Add an extra listener. Returns the callback for decorator use."""
        self._check_slot(slot)
        with self._lock:
            self._subscribers[slot].append(callback)
        return callback

    def unsubscribe(self, slot: str, callback: Callable) -> bool:
        """Remove a listener added with subscribe(). Returns True if found."""
        self._check_slot(slot)
        with self._lock:
            try:
                self._subscribers[slot].remove(callback)
            except ValueError:
                return False
        return True

    def listeners(self, slot: str) -> list[Callable]:
        self._check_slot(slot)
        with self._lock:
            primary = self._primary[slot]
            return ([primary] if primary else []) + list(self._subscribers[slot])

    def emit(self, slot: str, *args) -> int:
        """Call every listener of `slot` with `args`.

        Returns the number of listeners that completed without raising.
        """
        delivered = 0
        for callback in self.listeners(slot):
            try:
                callback(*args)
                delivered += 1
            except Exception as e:
                self.error_count += 1
                logger.error("Listener for '%s' raised: %s", slot, e)
        return delivered

    def clear(self, slot: Optional[str] = None):
        """Drop listeners for one slot, or for every slot."""
        slots = [slot] if slot else list(SLOTS)
        for s in slots:
            self._check_slot(s)
        with self._lock:
            for s in slots:
                self._primary[s] = None
                self._subscribers[s].clear()

    # Single-slot registration, one per event type

    def on_pinch(self, callback: Callable[[float], None]):
        self.on("pinch", callback)

    def on_swipe(self, callback: Callable[[str, float], None]):
        self.on("swipe", callback)

    def on_reset(self, callback: Callable[[], None]):
        self.on("reset", callback)

    def on_follow(self, callback: Callable[[float, float, bool], None]):
        self.on("follow", callback)

    def on_body_lean(self, callback: Callable[[float], None]):
        self.on("body_lean", callback)

    def on_beat(self, callback: Callable[[float], None]):
        self.on("beat", callback)

    def on_peak(self, callback: Callable[[float], None]):
        self.on("peak", callback)

    def on_gesture_start(self, callback: Callable[[], None]):
        self.on("gesture_start", callback)

    def on_gesture_end(self, callback: Callable[[], None]):
        self.on("gesture_end", callback)
