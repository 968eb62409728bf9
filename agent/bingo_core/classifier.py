"""
Classifier — maps a raw game event to the activity records it should report.

Pure and deterministic given the tables in constants.py. Precedence for the
kill-type record, first match wins:
  raid boss  → RAID_COMPLETION
  boss       → BOSS_KILL
  otherwise  → KILL
Each valuable loot item adds one DROP record with the same subject and time.
"""

from .constants import (
    RAID_BOSS_NAMES, BOSS_NAMES, BOSS_NAME_FRAGMENTS,
    RARE_ITEM_FRAGMENTS, PET_FRAGMENTS, VALUABLE_DROP_THRESHOLD,
)
from .models import ActivityRecord, ActivityType


def is_raid_boss(name):
    return any(fragment in name for fragment in RAID_BOSS_NAMES)


def is_boss(name):
    return name in BOSS_NAMES or any(fragment in name for fragment in BOSS_NAME_FRAGMENTS)


def is_rare_item(item_name):
    lowered = item_name.lower()
    return any(fragment in lowered for fragment in RARE_ITEM_FRAGMENTS)


def is_pet_drop(item_name):
    lowered = item_name.lower()
    return any(fragment in lowered for fragment in PET_FRAGMENTS)


def is_valuable_drop(item, threshold=VALUABLE_DROP_THRESHOLD):
    return (
        item.total_value > threshold
        or is_rare_item(item.name)
        or is_pet_drop(item.name)
    )


def kill_type(name):
    if is_raid_boss(name):
        return ActivityType.RAID_COMPLETION
    if is_boss(name):
        return ActivityType.BOSS_KILL
    return ActivityType.KILL


def classify(event, team_id="", threshold=VALUABLE_DROP_THRESHOLD):
    """
    Returns the records for one event: [] (ignore), [kill] or [kill, drop...].
    Events without a subject name are ignored.
    """
    name = (event.subject_name or "").strip()
    if not name:
        return []

    occurred_at = int(event.occurred_at)
    records = [ActivityRecord(
        activity_type=kill_type(name),
        subject_name=name,
        occurred_at=occurred_at,
        team_id=team_id,
    )]

    for item in event.loot_items:
        if is_valuable_drop(item, threshold):
            records.append(ActivityRecord(
                activity_type=ActivityType.DROP,
                subject_name=name,
                occurred_at=occurred_at,
                team_id=team_id,
                drop_name=item.name,
            ))
    return records
