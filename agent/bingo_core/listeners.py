"""
Mouse/keyboard presence listeners → activity-triggered heartbeat.
PRIVACY: no keys, positions, or content are recorded — only "input happened".
"""

import threading
import time

from pynput import mouse, keyboard

from .config import log
from .constants import INPUT_THROTTLE_SEC


class InputListeners:
    """
    Calls on_activity() at most once per throttle_sec while the player is at
    the keyboard. Callbacks run on pynput's threads, so on_activity must only
    hand work off, never block.
    """

    def __init__(self, on_activity, throttle_sec=INPUT_THROTTLE_SEC, clock=time.monotonic):
        self._on_activity = on_activity
        self._throttle = throttle_sec
        self._clock = clock
        self._lock = threading.Lock()
        self._last_fired = None
        self._mouse = None
        self._keyboard = None

    def _activity(self, *_):
        now = self._clock()
        with self._lock:
            if self._last_fired is not None and (now - self._last_fired) < self._throttle:
                return
            self._last_fired = now
        try:
            self._on_activity()
        except Exception as e:
            log.error("Input activity callback failed: %s", e)

    def _on_click(self, x, y, button, pressed):
        if pressed:
            self._activity()

    def _new_mouse(self):
        listener = mouse.Listener(on_click=self._on_click, on_scroll=self._activity)
        listener.daemon = True
        return listener

    def _new_keyboard(self):
        listener = keyboard.Listener(on_press=self._activity)
        listener.daemon = True
        return listener

    def start(self):
        self._mouse = self._new_mouse()
        self._keyboard = self._new_keyboard()
        self._mouse.start()
        self._keyboard.start()
        log.info("Input listeners started (presence only — no keylogging)")

    def stop(self):
        for listener in (self._mouse, self._keyboard):
            if listener is not None:
                try:
                    listener.stop()
                except Exception as e:
                    log.debug("Listener stop error: %s", e)
        self._mouse = None
        self._keyboard = None

    def check_and_restart(self):
        """Watchdog: pynput listeners can die silently."""
        if self._mouse is not None and not self._mouse.is_alive():
            log.warning("Mouse listener died — restarting")
            self._mouse = self._new_mouse()
            self._mouse.start()
        if self._keyboard is not None and not self._keyboard.is_alive():
            log.warning("Keyboard listener died — restarting")
            self._keyboard = self._new_keyboard()
            self._keyboard.start()
