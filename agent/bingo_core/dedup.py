"""
Deduplicator — bounded recency map that suppresses re-reporting the same
logical event. In-memory only; a restart forgets everything.
"""

import threading
import time
from collections import OrderedDict

from .constants import DEDUP_WINDOW_SEC, DEDUP_MAX_ENTRIES, KILL_PROXIMITY_SEC
from .models import ActivityType


def make_key(record):
    """
    Identity of a record for deduplication: the subject, plus the item name
    for drops. Occurrence time is compared separately by claim_record().
    """
    if record.activity_type is ActivityType.DROP:
        return (record.subject_name, record.drop_name)
    return (record.subject_name,)


class Deduplicator:
    """
    key → (last-seen monotonic time, occurred_at or None), oldest first.

    Entries older than window_sec are evicted lazily on every access; the
    map never holds more than max_entries keys.
    """

    def __init__(self, window_sec=DEDUP_WINDOW_SEC, max_entries=DEDUP_MAX_ENTRIES,
                 clock=time.monotonic):
        self._window = window_sec
        self._max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        self._seen = OrderedDict()

    def __len__(self):
        with self._lock:
            self._evict(self._clock())
            return len(self._seen)

    def should_report(self, key) -> bool:
        """True if key has not been recorded within the window."""
        with self._lock:
            self._evict(self._clock())
            return key not in self._seen

    def record(self, key):
        with self._lock:
            now = self._clock()
            self._evict(now)
            self._insert(key, now)

    def claim(self, key) -> bool:
        """
        Atomic should_report + record. Exactly one of several concurrent
        callers with the same key gets True.
        """
        with self._lock:
            now = self._clock()
            self._evict(now)
            if key in self._seen:
                return False
            self._insert(key, now)
            return True

    def claim_record(self, record, proximity_sec=KILL_PROXIMITY_SEC) -> bool:
        """
        Atomic claim for an ActivityRecord. A record is a duplicate when one
        with the same identity was claimed for an occurrence less than
        proximity_sec away, so a kill and its loot collapse into one report
        whichever second each lands on.
        """
        key = make_key(record)
        with self._lock:
            now = self._clock()
            self._evict(now)
            previous = self._seen.get(key)
            if previous is not None:
                last_occurred = previous[1]
                if last_occurred is None or abs(record.occurred_at - last_occurred) < proximity_sec:
                    return False
            self._insert(key, now, record.occurred_at)
            return True

    def sweep(self):
        with self._lock:
            self._evict(self._clock())

    def clear(self):
        with self._lock:
            self._seen.clear()

    def _insert(self, key, now, occurred_at=None):
        self._seen.pop(key, None)
        self._seen[key] = (now, occurred_at)
        while len(self._seen) > self._max_entries:
            self._seen.popitem(last=False)

    def _evict(self, now):
        cutoff = now - self._window
        while self._seen:
            key, (seen_at, _) = next(iter(self._seen.items()))
            if seen_at > cutoff:
                break
            self._seen.popitem(last=False)
