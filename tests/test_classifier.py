from bingo_core.classifier import classify, is_boss, is_raid_boss, is_valuable_drop
from bingo_core.models import ActivityType, EventKind, GameEvent, LootItem


def _loot(subject, *items):
    return GameEvent(subject, EventKind.LOOT_DROP, tuple(items), occurred_at=1_700_000_000)


def test_raid_boss_wins_over_boss_set():
    records = classify(GameEvent("Great Olm", occurred_at=1_700_000_000))
    assert [r.activity_type for r in records] == [ActivityType.RAID_COMPLETION]


def test_raid_check_runs_before_boss_check():
    # "Verzik Vitur" is a raid boss by substring; make sure it never lands as BOSS_KILL
    assert is_raid_boss("Verzik Vitur")
    records = classify(GameEvent("Verzik Vitur"))
    assert records[0].activity_type is ActivityType.RAID_COMPLETION


def test_boss_without_loot_yields_single_boss_kill():
    records = classify(GameEvent("Zulrah", occurred_at=1_700_000_000))
    assert len(records) == 1
    assert records[0].activity_type is ActivityType.BOSS_KILL
    assert records[0].drop_name is None
    assert records[0].subject_name == "Zulrah"


def test_unknown_subject_is_generic_kill():
    records = classify(GameEvent("Hill Giant"))
    assert [r.activity_type for r in records] == [ActivityType.KILL]


def test_dagannoth_kings_match_by_fragment():
    assert is_boss("Dagannoth Rex")
    assert classify(GameEvent("Dagannoth Supreme"))[0].activity_type is ActivityType.BOSS_KILL


def test_only_valuable_items_fan_out_to_drops():
    event = _loot("Vorkath",
                  LootItem("Dragonbone necklace", 1, 2_000_000),
                  LootItem("Bones", 1, 100))
    records = classify(event)
    kinds = [r.activity_type for r in records]
    assert kinds.count(ActivityType.BOSS_KILL) == 1
    assert kinds.count(ActivityType.DROP) == 1
    drop = records[1]
    assert drop.drop_name == "Dragonbone necklace"
    assert drop.subject_name == "Vorkath"
    assert drop.occurred_at == records[0].occurred_at


def test_rare_name_counts_despite_low_value():
    records = classify(_loot("Cerberus", LootItem("Primordial crystal", 1, 50_000)))
    assert [r.activity_type for r in records] == [ActivityType.BOSS_KILL, ActivityType.DROP]
    assert records[1].drop_name == "Primordial crystal"


def test_pet_match_is_case_insensitive():
    assert is_valuable_drop(LootItem("HELLPUPPY", 1, 0))
    assert is_valuable_drop(LootItem("Pet snakeling", 1, 0))


def test_value_threshold_is_strict_and_uses_quantity():
    assert not is_valuable_drop(LootItem("Rune arrow", 1000, 1000))
    assert is_valuable_drop(LootItem("Rune arrow", 1001, 1000))


def test_custom_threshold():
    event = _loot("Goblin", LootItem("Coins", 600, 1))
    assert len(classify(event, threshold=500)) == 2


def test_empty_subject_is_ignored():
    assert classify(GameEvent("")) == []
    assert classify(GameEvent("   ")) == []


def test_team_id_is_carried():
    records = classify(GameEvent("Kraken"), team_id="42")
    assert records[0].team_id == "42"
