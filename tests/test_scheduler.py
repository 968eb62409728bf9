import threading
from unittest import mock

import pytest

from bingo_core.config import ConfigStore
from bingo_core.models import BingoEvent
from bingo_core.scheduler import LivenessScheduler, PeriodicLoop
from bingo_core.state import Credential, CredentialState
from bingo_core.tracker import EventTracker


class Clock:
    def __init__(self, now=5000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def creds():
    state = CredentialState()
    state.set_authenticated(Credential(rsn="Zezima", jwt="j", team_id="7"))
    return state


@pytest.fixture
def sync():
    fake = mock.Mock()
    fake.send_heartbeat.return_value = True
    return fake


def _scheduler(sync, creds, clock, tracker=None, **settings):
    config = ConfigStore(path=None, values=dict({"heartbeatIntervalSec": 100}, **settings))
    return LivenessScheduler(sync, creds, tracker or EventTracker(), config, clock=clock)


def test_two_heartbeats_within_80_percent_send_once(sync, creds, clock):
    scheduler = _scheduler(sync, creds, clock)
    assert scheduler.heartbeat_tick() is True
    clock.now += 50
    assert scheduler.trigger_heartbeat() is False
    assert sync.send_heartbeat.call_count == 1

    clock.now += 30   # 80s since the first send
    assert scheduler.heartbeat_tick() is True
    assert sync.send_heartbeat.call_count == 2


def test_heartbeat_skipped_when_logged_out(sync, clock):
    scheduler = _scheduler(sync, CredentialState(), clock)
    assert scheduler.heartbeat_tick() is False
    sync.send_heartbeat.assert_not_called()


def test_refresh_drops_vanished_selection(sync, creds, clock):
    lost = []
    tracker = EventTracker(on_selection_lost=lost.append)
    tracker.apply_events([BingoEvent("b1", "Summer"), BingoEvent("b2", "Winter")])
    assert tracker.select("b1")

    sync.fetch_active_events.return_value = [BingoEvent("b2", "Winter")]
    scheduler = _scheduler(sync, creds, clock, tracker)
    scheduler.refresh_tick()

    assert tracker.selected_event_id is None
    assert lost == ["b1"]
    sync.fetch_activity_log.assert_not_called()


def test_refresh_fetches_events_on_its_own_interval(sync, creds, clock):
    tracker = EventTracker()
    sync.fetch_active_events.return_value = [BingoEvent("b1", "Summer")]
    sync.fetch_activity_log.return_value = []
    scheduler = _scheduler(sync, creds, clock, tracker, refreshIntervalSec=300)

    scheduler.refresh_tick()
    tracker.select("b1")
    clock.now += 30
    scheduler.refresh_tick()
    clock.now += 300
    scheduler.refresh_tick()

    assert sync.fetch_active_events.call_count == 2
    assert sync.fetch_activity_log.call_count == 2


def test_failed_refresh_degrades_to_offline(sync, creds, clock):
    tracker = EventTracker()
    tracker.apply_events([BingoEvent("b1", "Summer")])
    tracker.select("b1")
    sync.fetch_active_events.return_value = None
    sync.fetch_activity_log.return_value = None

    _scheduler(sync, creds, clock, tracker).refresh_tick()

    assert tracker.events == []
    assert not tracker.online
    assert tracker.selected_event_id == "b1"
    assert tracker.activity_log == []


def test_periodic_loop_start_is_idempotent():
    ticked = threading.Event()
    loop = PeriodicLoop("test", 60, ticked.set)
    try:
        assert loop.start() is True
        assert loop.start() is False
        assert ticked.wait(5)
        assert loop.running
    finally:
        loop.stop()
        loop.join(5)
    assert not loop.running
    assert loop.stop() is False


def test_periodic_loop_survives_tick_errors():
    calls = []
    done = threading.Event()

    def tick():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")
        done.set()

    loop = PeriodicLoop("flaky", 0.01, tick)
    loop.start()
    try:
        assert done.wait(5)
    finally:
        loop.stop()
        loop.join(5)


def test_stop_all_on_logout_and_restart(sync, creds, clock):
    sync.fetch_active_events.return_value = []
    scheduler = _scheduler(sync, creds, clock, heartbeatIntervalSec=3600, activityRefreshSec=3600)
    creds.subscribe_logout(scheduler.stop_all)
    scheduler.start_all()
    try:
        assert scheduler.heartbeat_loop.running and scheduler.refresh_loop.running
        creds.invalidate()
        assert not scheduler.heartbeat_loop.running
        assert not scheduler.refresh_loop.running

        scheduler.start_all()
        scheduler.start_all()
        assert scheduler.heartbeat_loop.running
    finally:
        scheduler.stop_all()
