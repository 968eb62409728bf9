"""
CompanionApp — wires the core together and exposes the collaborator surface:

  login() / logout()              credential lifecycle (persisted in config)
  select_event(event_id)          pick an event from the refreshed list
  set_participating(bool, id)     start/stop the whole reporting pipeline
  on_game_event(event)            feed from the game-event source
  on_jwt_expired(callback)        forced-logout notification for the UI

Background threads: scheduler loops, the bounded worker pool, and (when
enabled) pynput listeners. None of them block the game-event thread.
"""

import threading

from .constants import COMPANION_VERSION
from .config import log, SCREENSHOT_DIR
from .state import CredentialState
from .api import SyncClient
from .dedup import Deduplicator
from .evidence import EvidencePipeline, grab_screen
from .handler import ActivityHandler
from .tracker import EventTracker
from .scheduler import LivenessScheduler, PeriodicLoop

LISTENER_CHECK_SEC = 30


class CompanionApp:

    def __init__(self, config, session=None, capture=grab_screen,
                 screenshot_dir=SCREENSHOT_DIR, max_workers=None):
        self._config = config
        self.credentials = CredentialState()
        self.sync = SyncClient(config, self.credentials, session=session)
        self.dedup = Deduplicator()
        self.evidence = EvidencePipeline(self.sync, capture=capture,
                                         screenshot_dir=screenshot_dir, session=session)
        handler_kwargs = {"max_workers": max_workers} if max_workers else {}
        self.handler = ActivityHandler(self.sync, self.dedup, self.evidence, config,
                                       on_submitted=self._on_submitted, **handler_kwargs)
        self.tracker = EventTracker(on_selection_lost=self._on_selection_lost)
        self.scheduler = LivenessScheduler(self.sync, self.credentials, self.tracker, config)

        self._expired_callbacks = []
        self._expired_lock = threading.Lock()
        self._listeners = None
        self._listener_watchdog = None
        self._stopped = threading.Event()

        self.credentials.subscribe_login(self._on_login)
        self.credentials.subscribe_logout(self._on_logout)

    # ─── Credential lifecycle ────────────────────────────────

    def restore_session(self):
        """Adopt a saved JWT, if any. The first 401 will clear it."""
        jwt = self._config.get_str("jwtToken")
        rsn = self._config.get_str("rsn")
        if not jwt or not rsn:
            return False
        self.sync.restore(rsn, jwt, self._config.get_str("teamId"))
        log.info("Restored saved session for %s", rsn)
        return True

    def login(self, rsn=None, secret=None):
        """Authenticate with the given or configured RSN/token. Returns True on success."""
        rsn = rsn or self._config.get_str("rsn")
        secret = secret or self._config.get_str("authToken")
        credential = self.sync.authenticate(rsn, secret)
        if credential is None:
            log.warning("Login failed — get a token at %s", self._config.get_str("profileUrl"))
            return False
        return True

    def logout(self):
        return self.sync.logout()

    def on_jwt_expired(self, callback):
        """Register a no-arg callback fired once per forced logout."""
        with self._expired_lock:
            self._expired_callbacks.append(callback)

    def _on_login(self, credential):
        self._config.set("rsn", credential.rsn)
        self._config.set("jwtToken", credential.jwt)
        if credential.team_id:
            self._config.set("teamId", credential.team_id)
        self._save_config()
        self.scheduler.start_all()

    def _on_logout(self, reason):
        self.scheduler.stop_all()
        self.handler.set_participating(False)
        self.evidence.end_session()
        self.tracker.clear()
        self._config.unset("jwtToken")
        self._save_config()

        if reason != "expired":
            return
        with self._expired_lock:
            callbacks = list(self._expired_callbacks)
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                log.error("JWT-expired callback failed: %s", e, exc_info=True)

    def _save_config(self):
        try:
            self._config.save()
        except OSError as e:
            log.warning("Could not save config: %s", e)

    # ─── Event selection / participation ─────────────────────

    def refresh_now(self):
        """Blocking fetch of the event list + selected activity log."""
        self.scheduler.refresh_events()
        self.scheduler.refresh_activity_log()
        return self.tracker.events

    def select_event(self, event_id):
        """Select an event and return its SignupStatus (or None if unknown)."""
        if not self.tracker.select(event_id):
            return None
        if not event_id:
            self.set_participating(False)
            return None
        status = self.sync.get_signup_status(event_id)
        log.info("Selected event %s — %s", event_id, status.message)
        return status

    def set_participating(self, participating, event_id=None):
        if participating:
            if not self.credentials.is_authenticated:
                log.warning("Cannot participate: not logged in")
                return False
            event_id = event_id or self.tracker.selected_event_id
            if not event_id:
                log.warning("Cannot participate: no event selected")
                return False
            self.handler.set_participating(True, event_id)
            self.scheduler.start_all()
            return True

        self.handler.set_participating(False)
        self.scheduler.stop_all()
        return True

    def on_game_event(self, event):
        return self.handler.on_game_event(event)

    def _on_selection_lost(self, event_id):
        if self.handler.event_id == event_id:
            log.info("Stopping participation — event %s is no longer active", event_id)
            self.handler.set_participating(False)
            self.scheduler.stop_all()

    def _on_submitted(self, record):
        # A submission is proof of life: fold it into the heartbeat gate.
        self.scheduler.trigger_heartbeat()

    # ─── Run / stop ──────────────────────────────────────────

    def start_input_listeners(self):
        # pynput needs a display; only import it when listeners are wanted.
        from .listeners import InputListeners

        self._listeners = InputListeners(
            on_activity=lambda: self.handler.run_background(self.scheduler.trigger_heartbeat),
        )
        self._listeners.start()
        self._listener_watchdog = PeriodicLoop(
            "listener-watchdog", LISTENER_CHECK_SEC, self._listeners.check_and_restart,
            initial_delay_sec=LISTENER_CHECK_SEC,
        )
        self._listener_watchdog.start()

    def start(self, listen_for_input=False):
        log.info("Bingo companion v%s starting", COMPANION_VERSION)
        if self.credentials.is_authenticated:
            self.scheduler.start_all()
        if listen_for_input:
            try:
                self.start_input_listeners()
            except Exception as e:
                log.warning("Input listeners unavailable (%s) — activity heartbeats disabled", e)

    def stop(self):
        if self._stopped.is_set():
            return
        self._stopped.set()
        self.scheduler.stop_all()
        self.handler.set_participating(False)
        if self._listener_watchdog is not None:
            self._listener_watchdog.stop()
        if self._listeners is not None:
            self._listeners.stop()
        self.handler.shutdown(wait=True)
        log.info("Companion shut down.")
