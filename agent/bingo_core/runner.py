"""
Entry point, JSON-lines game-event source, and auto-restart wrapper.
"""

import json
import sys
import time

from .constants import COMPANION_VERSION
from .config import log, safe_print, setup_logging, ConfigStore
from .models import GameEvent
from .app import CompanionApp
from . import http_client


def read_events(stream):
    """
    Yield GameEvents from a JSON-lines stream. Blank lines are skipped,
    malformed ones are logged and skipped.
    """
    for lineno, line in enumerate(stream, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            yield GameEvent.from_dict(json.loads(line))
        except (ValueError, TypeError) as e:
            log.warning("Skipping malformed event on line %d: %s", lineno, e)


def main(argv=None):
    """
    bingo-companion [EVENT_ID]

    Reads game events as JSON lines on stdin and reports them for EVENT_ID
    (or the configured eventId).
    """
    argv = sys.argv[1:] if argv is None else argv
    setup_logging()
    safe_print("Bingo Companion v" + COMPANION_VERSION)
    safe_print()

    config = ConfigStore.load()
    app = CompanionApp(config)

    if not app.restore_session() and not app.login():
        safe_print("Set 'rsn' and 'authToken' in the config file first.")
        safe_print("Get a token at " + config.get_str("profileUrl"))
        sys.exit(1)

    app.on_jwt_expired(lambda: safe_print("Session expired — please log in again."))
    app.start(listen_for_input=config.get_bool("inputHeartbeats", True))

    events = app.refresh_now()
    event_id = argv[0] if argv else config.get_str("eventId")
    if not event_id and len(events) == 1:
        event_id = events[0].bingo_id
    if event_id:
        status = app.select_event(event_id)
        if status is not None:
            safe_print(f"Event {event_id}: {status.message}")
            app.set_participating(True, event_id)
    else:
        safe_print("No event selected — pass an event id or set 'eventId'.")

    try:
        for event in read_events(sys.stdin):
            app.on_game_event(event)
    finally:
        app.stop()


RAPID_CRASH_WINDOW_SEC = 120
RAPID_CRASH_LIMIT = 10


def restart_delay(crash_count):
    """Seconds to wait before restart N: 10s steps capped at 60s, 120s after a boot-loop."""
    if crash_count >= RAPID_CRASH_LIMIT:
        return 120
    return min(10 * crash_count, 60)


def run_with_auto_restart():
    """
    Run main() and restart it after a crash. The crash counter resets once
    a run has lasted longer than RAPID_CRASH_WINDOW_SEC.
    """
    crash_count = 0
    while True:
        started = time.time()
        try:
            main()
            return
        except KeyboardInterrupt:
            safe_print("\nCompanion stopped by user.")
            return
        except SystemExit as e:
            if e.code not in (0, None):
                log.error("Companion exited: %s", e)
            return
        except Exception as e:
            uptime = time.time() - started
            log.error("Companion crashed after %.0fs: %s", uptime, e, exc_info=True)
            crash_count = 1 if uptime > RAPID_CRASH_WINDOW_SEC else crash_count + 1

        wait = restart_delay(crash_count)
        if crash_count >= RAPID_CRASH_LIMIT:
            log.warning("%d rapid crashes in a row", crash_count)
        log.info("Restarting in %ds (crash %d)...", wait, crash_count)
        time.sleep(wait)
        http_client.http = http_client.reset_session(http_client.http)
