"""
Credential state — the only mutable state shared by every component.

Single writer discipline: only a successful login (authenticate) and the
401 path (invalidate) write it; logout goes through the same guarded
transition. Everyone else reads a snapshot.

Consumers (scheduler, evidence pipeline, UI notifier) subscribe to
transitions instead of polling a flag. Each subscriber fires at most once
per transition, outside the lock.
"""

import threading
import time
from dataclasses import dataclass
from typing import Optional

from .config import log


@dataclass(frozen=True)
class Credential:
    rsn: str
    jwt: str
    team_id: str = ""
    expires_implicitly: bool = True

    def masked(self):
        return self.jwt[:6] + "..." if self.jwt else ""


class CredentialState:
    """
    Guarded authenticated ⇄ unauthenticated transitions.

    Subscribers are called as fn(credential) on login and fn(reason) on
    logout/invalidation, where reason is "expired" or "logout".
    """

    def __init__(self, credential=None):
        self._lock = threading.Lock()
        self._credential: Optional[Credential] = credential
        self._on_login = []
        self._on_logout = []

    # ── Reads ─────────────────────────────────────────────────

    @property
    def credential(self) -> Optional[Credential]:
        with self._lock:
            return self._credential

    @property
    def is_authenticated(self) -> bool:
        with self._lock:
            return self._credential is not None

    @property
    def rsn(self) -> str:
        cred = self.credential
        return cred.rsn if cred else ""

    @property
    def team_id(self) -> str:
        cred = self.credential
        return cred.team_id if cred else ""

    # ── Subscriptions ─────────────────────────────────────────

    def subscribe_login(self, callback):
        with self._lock:
            self._on_login.append(callback)

    def subscribe_logout(self, callback):
        with self._lock:
            self._on_logout.append(callback)

    def unsubscribe(self, callback):
        with self._lock:
            if callback in self._on_login:
                self._on_login.remove(callback)
            if callback in self._on_logout:
                self._on_logout.remove(callback)

    # ── Writes ────────────────────────────────────────────────

    def set_authenticated(self, credential: Credential):
        """Authenticate-success path. Login subscribers must tolerate repeats."""
        with self._lock:
            self._credential = credential
            subscribers = list(self._on_login)
        log.info("Authenticated as %s (team=%s)", credential.rsn, credential.team_id or "-")
        self._notify(subscribers, credential)

    def invalidate(self, reason="expired", expected=None) -> bool:
        """
        authenticated → unauthenticated. Returns True only for the caller that
        performed the transition; concurrent callers no-op.

        With expected set, only that credential is invalidated: a late 401 for
        a token that has since been replaced by a fresh login is ignored.
        """
        with self._lock:
            if self._credential is None:
                return False
            if expected is not None and self._credential != expected:
                return False
            self._credential = None
            subscribers = list(self._on_logout)
        if reason == "expired":
            log.warning("Credential invalidated (server returned 401)")
        else:
            log.info("Credential cleared (%s)", reason)
        self._notify(subscribers, reason)
        return True

    def _notify(self, subscribers, arg):
        for callback in subscribers:
            try:
                callback(arg)
            except Exception as e:
                log.error("Credential subscriber %r failed: %s", callback, e, exc_info=True)


class HeartbeatState:
    """Last-send timestamp behind a minimum-interval gate."""

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self.last_sent_at = None

    def try_claim(self, min_interval_sec) -> bool:
        """
        Atomically check the gate and stamp it. A tick and a manual trigger
        racing each other result in one send.
        """
        with self._lock:
            now = self._clock()
            if self.last_sent_at is not None and (now - self.last_sent_at) < min_interval_sec:
                return False
            self.last_sent_at = now
            return True

    def reset(self):
        with self._lock:
            self.last_sent_at = None

    @property
    def last_sent_at_epoch_millis(self):
        """Wall-clock equivalent of last_sent_at, for display."""
        with self._lock:
            if self.last_sent_at is None:
                return 0
            age = self._clock() - self.last_sent_at
        return int((time.time() - age) * 1000)
