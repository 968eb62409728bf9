"""
EventTracker — what the companion currently knows about the service:
active events, the selected event, its activity log, and a status line.

Written by the refresh loop, read by whoever renders it. A failed fetch
degrades to "no live event list" with an offline status; it never raises.
"""

import threading

from .config import log


class EventTracker:
    """Thread-safe snapshot holder. on_selection_lost fires when a refresh drops the selected event."""

    def __init__(self, on_selection_lost=None):
        self._lock = threading.Lock()
        self._events = []
        self._selected_id = None
        self._activity_log = []
        self._online = True
        self._status = "Not loaded"
        self._on_selection_lost = on_selection_lost

    # ── Reads ─────────────────────────────────────────────────

    @property
    def events(self):
        with self._lock:
            return list(self._events)

    @property
    def selected_event_id(self):
        with self._lock:
            return self._selected_id

    @property
    def selected_event(self):
        with self._lock:
            return self._find(self._selected_id)

    @property
    def activity_log(self):
        with self._lock:
            return list(self._activity_log)

    @property
    def online(self):
        with self._lock:
            return self._online

    @property
    def status(self):
        with self._lock:
            return self._status

    def _find(self, event_id):
        if not event_id:
            return None
        for event in self._events:
            if event.bingo_id == event_id:
                return event
        return None

    # ── Writes ────────────────────────────────────────────────

    def select(self, event_id):
        """Select an event from the current list. Returns False if it isn't there."""
        with self._lock:
            if event_id and self._find(event_id) is None:
                log.warning("Cannot select unknown event %s", event_id)
                return False
            if event_id != self._selected_id:
                self._activity_log = []
            self._selected_id = event_id or None
        return True

    def clear(self):
        with self._lock:
            self._events = []
            self._selected_id = None
            self._activity_log = []
            self._status = "Logged out"

    def apply_events(self, events):
        """
        events is the normalized list, or None when the fetch failed.
        A selected event missing from a fresh list falls back to unselected.
        """
        lost = None
        with self._lock:
            if events is None:
                self._online = False
                self._events = []
                self._activity_log = []
                self._status = "No events available or connection failed"
                return
            self._online = True
            self._events = list(events)
            self._status = f"{len(events)} active event(s)" if events else "No active events"
            if self._selected_id and self._find(self._selected_id) is None:
                lost = self._selected_id
                self._selected_id = None
                self._activity_log = []

        if lost is not None:
            log.info("Previously selected event (ID: %s) no longer exists in active events", lost)
            if self._on_selection_lost is not None:
                try:
                    self._on_selection_lost(lost)
                except Exception as e:
                    log.error("Selection-lost callback failed: %s", e, exc_info=True)

    def apply_activity_log(self, event_id, entries):
        """entries is a list, or None when the fetch failed. Stale results are dropped."""
        with self._lock:
            if event_id != self._selected_id:
                return
            if entries is None:
                self._activity_log = []
                self._status = "Failed to load activity log. Check connection."
                return
            self._activity_log = list(entries)

    def activity_lines(self):
        """Display lines for the activity log, with the empty-state text."""
        entries = self.activity_log
        if not entries:
            return ["No recent activity.", "Start participating to see your team's progress!"]
        return [entry.display_text() for entry in entries]
