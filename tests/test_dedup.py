import threading

from bingo_core.dedup import Deduplicator, make_key
from bingo_core.models import ActivityRecord, ActivityType


class Clock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_should_report_then_record_then_suppressed():
    dedup = Deduplicator(window_sec=300, clock=Clock())
    key = ("Zulrah", 100)
    assert dedup.should_report(key) is True
    dedup.record(key)
    assert dedup.should_report(key) is False


def test_key_reportable_again_after_window():
    clock = Clock()
    dedup = Deduplicator(window_sec=300, clock=clock)
    dedup.record("k")
    clock.now += 299
    assert not dedup.should_report("k")
    clock.now += 2
    assert dedup.should_report("k")
    assert len(dedup) == 0


def test_claim_is_atomic_under_contention():
    dedup = Deduplicator()
    barrier = threading.Barrier(8)
    results = []
    lock = threading.Lock()

    def worker():
        barrier.wait()
        won = dedup.claim(("Vorkath", 1))
        with lock:
            results.append(won)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert results.count(True) == 1


def test_size_is_bounded():
    dedup = Deduplicator(max_entries=3, clock=Clock())
    for i in range(10):
        dedup.record(i)
    assert len(dedup) == 3
    assert dedup.should_report(0)
    assert not dedup.should_report(9)


def test_kill_and_loot_for_same_npc_share_a_key():
    kill = ActivityRecord(ActivityType.BOSS_KILL, "Zulrah", occurred_at=1_700_000_001)
    again = ActivityRecord(ActivityType.BOSS_KILL, "Zulrah", occurred_at=1_700_000_002)
    assert make_key(kill) == make_key(again)


def test_drops_key_on_item_name():
    a = ActivityRecord(ActivityType.DROP, "Zulrah", 1_700_000_001, drop_name="Tanzanite fang")
    b = ActivityRecord(ActivityType.DROP, "Zulrah", 1_700_000_001, drop_name="Magic fang")
    kill = ActivityRecord(ActivityType.BOSS_KILL, "Zulrah", 1_700_000_001)
    assert len({make_key(a), make_key(b), make_key(kill)}) == 3


def test_claim_record_collapses_nearby_occurrences():
    dedup = Deduplicator(clock=Clock())
    kill = ActivityRecord(ActivityType.BOSS_KILL, "Zulrah", 1_700_000_002)
    loot = ActivityRecord(ActivityType.BOSS_KILL, "Zulrah", 1_700_000_003)
    assert dedup.claim_record(kill) is True
    assert dedup.claim_record(loot) is False
    assert dedup.claim_record(kill) is False


def test_claim_record_reports_a_later_kill():
    dedup = Deduplicator(clock=Clock())
    first = ActivityRecord(ActivityType.KILL, "Goblin", 1_700_000_000)
    second = ActivityRecord(ActivityType.KILL, "Goblin", 1_700_000_003)
    other = ActivityRecord(ActivityType.KILL, "Cow", 1_700_000_000)
    assert dedup.claim_record(first) is True
    assert dedup.claim_record(other) is True
    assert dedup.claim_record(second) is True
