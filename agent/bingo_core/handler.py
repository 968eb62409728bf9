"""
ActivityHandler — game event → classify → dedup gate → worker pool → submit.

on_game_event() runs on the thread that receives game events and only does
the cheap, pure part (classification + atomic dedup claim). Evidence capture
and network calls run on a bounded ThreadPoolExecutor, so a burst of kills
can't spawn unbounded threads or stall the event source.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

from .config import log
from .constants import SUBMIT_WORKERS, VALUABLE_DROP_THRESHOLD
from .classifier import classify
from .models import ActivityType


class ActivityHandler:

    def __init__(self, sync_client, deduplicator, evidence, config=None,
                 max_workers=SUBMIT_WORKERS, on_submitted=None):
        self._sync = sync_client
        self._dedup = deduplicator
        self._evidence = evidence
        self._config = config
        self._on_submitted = on_submitted
        self._executor = ThreadPoolExecutor(max_workers=max_workers,
                                            thread_name_prefix="bingo-worker")
        self._lock = threading.Lock()
        self._participating = False
        self._event_id = None

    # ─── Participation ───────────────────────────────────────

    @property
    def is_participating(self):
        with self._lock:
            return self._participating and bool(self._event_id)

    @property
    def event_id(self):
        with self._lock:
            return self._event_id

    def set_participating(self, participating, event_id=None):
        """Start/stop reporting for one event. Stopping never cancels in-flight work."""
        with self._lock:
            was = self._participating
            self._participating = bool(participating)
            self._event_id = event_id if participating else None
        log.info("Activity tracking set to: %s for event: %s", bool(participating), event_id)

        if participating and event_id:
            # Token fetch is a network call; keep it off the caller's thread.
            self.run_background(self._evidence.start_session)
        elif was:
            self._evidence.end_session()

    # ─── Event intake ────────────────────────────────────────

    def on_game_event(self, event):
        """
        Classify and dispatch. Never blocks on I/O and never raises.
        Returns the futures of the dispatched submissions.
        """
        with self._lock:
            if not self._participating or not self._event_id:
                return []
            event_id = self._event_id

        try:
            records = classify(event, team_id=self._sync.credentials.team_id,
                               threshold=self._threshold())
        except Exception as e:
            log.error("Classification failed for %r: %s", event, e, exc_info=True)
            return []

        futures = []
        for record in records:
            if not self._dedup.claim_record(record):
                log.debug("Duplicate %s for %s suppressed",
                          record.activity_type.value, record.subject_name)
                continue
            if record.activity_type is ActivityType.DROP:
                log.info("Valuable drop detected: %s from %s", record.drop_name, record.subject_name)
            elif record.activity_type is ActivityType.KILL:
                log.debug("Kill detected: %s", record.subject_name)
            else:
                log.info("%s detected: %s", record.activity_type.value, record.subject_name)
            futures.append(self.run_background(self._process, record, event_id))
        return futures

    def _threshold(self):
        if self._config is None:
            return VALUABLE_DROP_THRESHOLD
        return self._config.get_int("valuableDropThreshold", VALUABLE_DROP_THRESHOLD)

    def _screenshots_enabled(self):
        return self._config is None or self._config.get_bool("screenshotsEnabled", True)

    # ─── Worker side ─────────────────────────────────────────

    def _process(self, record, event_id):
        if record.activity_type is ActivityType.DROP and self._screenshots_enabled():
            try:
                record = self._evidence.attach_evidence(record, event_id,
                                                        self._sync.credentials.rsn)
            except Exception as e:
                log.error("Evidence pipeline failed for %s: %s", record.drop_name, e, exc_info=True)

        ok = self._sync.submit_activity(record, event_id)
        if not ok:
            log.warning("Activity lost: %s %s (single attempt)",
                        record.activity_type.value, record.subject_name)
            return False

        # Results for an event we stopped following are not interesting.
        if self._on_submitted is not None and self.event_id == event_id:
            self._on_submitted(record)
        return True

    def run_background(self, fn, *args):
        """Submit fn to the worker pool, logging anything it raises."""
        def job():
            try:
                return fn(*args)
            except Exception as e:
                log.error("Background task %s failed: %s",
                          getattr(fn, "__name__", fn), e, exc_info=True)
                return None
        try:
            return self._executor.submit(job)
        except RuntimeError:
            log.warning("Worker pool shut down — dropping %s", getattr(fn, "__name__", fn))
            return None

    def shutdown(self, wait=False):
        self._executor.shutdown(wait=wait)
