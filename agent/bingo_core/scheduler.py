"""
Liveness scheduler — heartbeat loop and refresh loop.

Each loop is one daemon thread waiting on its own stop Event, so stop()
takes effect at the next wait and start() after stop() never leaves two
threads ticking. Both loops stop on logout and on credential expiry.
"""

import threading
import time

from .config import log
from .constants import (
    HEARTBEAT_INTERVAL_SEC, HEARTBEAT_MIN_FRACTION,
    REFRESH_INTERVAL_SEC, ACTIVITY_REFRESH_SEC,
)
from .state import HeartbeatState


class PeriodicLoop:
    """Calls tick() every interval_sec on a background thread until stopped."""

    def __init__(self, name, interval_sec, tick, initial_delay_sec=0.0):
        self.name = name
        self.interval_sec = interval_sec
        self._tick = tick
        self._initial_delay = initial_delay_sec
        self._lock = threading.Lock()
        self._thread = None
        self._stop_event = None

    @property
    def running(self):
        with self._lock:
            return (
                self._thread is not None
                and self._thread.is_alive()
                and not self._stop_event.is_set()
            )

    def start(self):
        """Idempotent. Returns True if a new thread was started."""
        with self._lock:
            if (self._thread is not None and self._thread.is_alive()
                    and not self._stop_event.is_set()):
                return False
            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._run, args=(stop_event,),
                name=f"bingo-{self.name}", daemon=True,
            )
            self._stop_event = stop_event
            self._thread = thread
        thread.start()
        log.info("%s loop started (interval=%ds)", self.name.capitalize(), self.interval_sec)
        return True

    def stop(self):
        with self._lock:
            if self._stop_event is None or self._stop_event.is_set():
                return False
            self._stop_event.set()
        log.info("%s loop stopped", self.name.capitalize())
        return True

    def join(self, timeout=None):
        with self._lock:
            thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def _run(self, stop_event):
        delay = self._initial_delay
        while not stop_event.wait(delay):
            try:
                self._tick()
            except Exception as e:
                log.error("Unexpected error in %s loop: %s", self.name, e, exc_info=True)
            delay = self.interval_sec


class LivenessScheduler:
    """
    heartbeat: every heartbeatIntervalSec, skipped unless authenticated and
               at least 80% of the interval has passed since the last send
               (covers the tick and activity-triggered sends together).
    refresh:   every activityRefreshSec re-fetches the selected event's
               activity log; the active-event list is re-fetched once
               refreshIntervalSec has passed.
    """

    def __init__(self, sync_client, credentials, tracker, config=None,
                 heartbeat_state=None, clock=time.monotonic):
        self._sync = sync_client
        self._credentials = credentials
        self._tracker = tracker
        self._clock = clock
        self.heartbeat_state = heartbeat_state or HeartbeatState(clock)

        def setting(key, default):
            return config.get_int(key, default) if config is not None else default

        self.heartbeat_interval = setting("heartbeatIntervalSec", HEARTBEAT_INTERVAL_SEC)
        self.refresh_interval = setting("refreshIntervalSec", REFRESH_INTERVAL_SEC)
        activity_interval = setting("activityRefreshSec", ACTIVITY_REFRESH_SEC)

        self._events_lock = threading.Lock()
        self._last_events_at = None

        self.heartbeat_loop = PeriodicLoop("heartbeat", self.heartbeat_interval, self.heartbeat_tick)
        self.refresh_loop = PeriodicLoop("refresh", activity_interval, self.refresh_tick)

    # ─── Lifecycle ───────────────────────────────────────────

    def start_heartbeat(self):
        return self.heartbeat_loop.start()

    def stop_heartbeat(self):
        return self.heartbeat_loop.stop()

    def start_refresh(self):
        return self.refresh_loop.start()

    def stop_refresh(self):
        return self.refresh_loop.stop()

    def start_all(self, *_):
        self.start_heartbeat()
        self.start_refresh()

    def stop_all(self, *_):
        self.stop_heartbeat()
        self.stop_refresh()
        self.heartbeat_state.reset()
        with self._events_lock:
            self._last_events_at = None

    # ─── Heartbeat ───────────────────────────────────────────

    @property
    def min_heartbeat_gap(self):
        return self.heartbeat_interval * HEARTBEAT_MIN_FRACTION

    def heartbeat_tick(self):
        return self.send_heartbeat("tick")

    def trigger_heartbeat(self):
        """Activity-triggered heartbeat; suppressed like any other."""
        return self.send_heartbeat("activity")

    def send_heartbeat(self, source):
        if not self._credentials.is_authenticated:
            log.debug("Heartbeat (%s) skipped: not authenticated", source)
            return False
        if not self.heartbeat_state.try_claim(self.min_heartbeat_gap):
            log.debug("Heartbeat (%s) suppressed: sent < %.0fs ago", source, self.min_heartbeat_gap)
            return False
        return self._sync.send_heartbeat()

    # ─── Refresh ─────────────────────────────────────────────

    def refresh_tick(self):
        if not self._credentials.is_authenticated:
            return
        if self._events_due():
            self.refresh_events()
        self.refresh_activity_log()

    def _events_due(self):
        with self._events_lock:
            now = self._clock()
            if self._last_events_at is not None and (now - self._last_events_at) < self.refresh_interval:
                return False
            self._last_events_at = now
            return True

    def refresh_events(self):
        self._tracker.apply_events(self._sync.fetch_active_events())

    def refresh_activity_log(self):
        event_id = self._tracker.selected_event_id
        if not event_id:
            return
        self._tracker.apply_activity_log(event_id, self._sync.fetch_activity_log(event_id))
