"""
Domain records: game events in, activity records out, plus the read-only
views returned by the competition service.
"""

import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from .constants import NAME_ABBREVIATIONS

# Anything past this is a millisecond timestamp (13 digits).
MAX_EPOCH_SECONDS = 10_000_000_000


def epoch_seconds(value):
    """Numeric epoch seconds or millis → float seconds."""
    seconds = float(value)
    if seconds > MAX_EPOCH_SECONDS:
        seconds /= 1000
    return seconds


class EventKind(Enum):
    KILL = "kill"
    LOOT_DROP = "loot"


class ActivityType(Enum):
    """Wire names match what the service stores."""
    RAID_COMPLETION = "RAID_COMPLETION"
    BOSS_KILL = "BOSS_KILL"
    KILL = "KILL"
    DROP = "DROP"


@dataclass(frozen=True)
class LootItem:
    name: str
    quantity: int = 1
    unit_value: int = 0

    @property
    def total_value(self) -> int:
        return self.unit_value * self.quantity


@dataclass(frozen=True)
class GameEvent:
    subject_name: str
    kind: EventKind = EventKind.KILL
    loot_items: Tuple[LootItem, ...] = ()
    occurred_at: float = field(default_factory=time.time)

    @classmethod
    def from_dict(cls, data):
        """
        Build from the JSON-lines event feed:
        {"subject": "Zulrah", "kind": "loot", "loot": [{"name", "quantity", "unitValue"}]}
        Raises ValueError on anything that can't be a game event.
        """
        if not isinstance(data, dict):
            raise ValueError("event must be an object")
        subject = data.get("subject") or data.get("subjectName") or ""
        try:
            kind = EventKind(str(data.get("kind", "kill")).lower())
        except ValueError:
            raise ValueError(f"unknown event kind: {data.get('kind')!r}")
        items = []
        for raw in data.get("loot") or data.get("lootItems") or []:
            if not isinstance(raw, dict) or not raw.get("name"):
                raise ValueError(f"bad loot item: {raw!r}")
            items.append(LootItem(
                name=str(raw["name"]),
                quantity=int(raw.get("quantity", 1)),
                unit_value=int(raw.get("unitValue", raw.get("unit_value", 0))),
            ))
        occurred_at = data.get("timestamp")
        return cls(
            subject_name=str(subject),
            kind=kind,
            loot_items=tuple(items),
            occurred_at=epoch_seconds(occurred_at) if occurred_at is not None else time.time(),
        )


@dataclass(frozen=True)
class ActivityRecord:
    activity_type: ActivityType
    subject_name: str
    occurred_at: int
    team_id: str = ""
    drop_name: Optional[str] = None
    screenshot_url: Optional[str] = None

    def with_screenshot(self, url):
        return replace(self, screenshot_url=url)

    def with_team(self, team_id):
        return replace(self, team_id=team_id)

    def to_payload(self, rsn):
        """JSON body for POST /api/bingo/activity/:eventId. Each record is one kill."""
        payload = {
            "rsn": rsn,
            "activityType": self.activity_type.value,
            "monsterName": self.subject_name,
            "killCount": 1,
            "totalKc": 1,
            "teamId": _team_id_value(self.team_id),
            "timestamp": self.occurred_at,
        }
        if self.drop_name is not None:
            payload["dropName"] = self.drop_name
        if self.screenshot_url is not None:
            payload["screenshotUrl"] = self.screenshot_url
        return payload


def _team_id_value(team_id):
    # The service keys teams by integer id; keep opaque ids as strings.
    text = str(team_id)
    return int(text) if text.isdigit() else text


@dataclass(frozen=True)
class SignupStatus:
    signed_up: bool = False
    accepted: bool = False
    message: str = ""

    def __str__(self):
        return (f"SignupStatus(signed_up={self.signed_up}, "
                f"accepted={self.accepted}, message={self.message!r})")


@dataclass(frozen=True)
class BingoEvent:
    bingo_id: str
    name: str
    group_id: str = ""
    duration_days: int = 0
    days_remaining: int = 0
    total_tiles: int = 25
    is_active: bool = False
    prize_pool: str = ""
    participants: int = 0


@dataclass(frozen=True)
class ActivityLogEntry:
    player_rsn: str
    activity_type: str
    timestamp: int
    monster_name: str = ""
    drop_name: str = ""
    total_kc: int = 0
    screenshot_url: str = ""
    team_id: str = ""

    @property
    def has_screenshot(self):
        return bool(self.screenshot_url)

    def formatted_time(self):
        return datetime.fromtimestamp(self.timestamp).strftime("%H:%M-%d/%m")

    def display_text(self):
        when = self.formatted_time()
        if self.activity_type == ActivityType.DROP.value:
            return f"[{when}] {self.player_rsn} - {self.drop_name} ({self.total_kc}kc)"
        if self.activity_type in (
            ActivityType.KILL.value,
            ActivityType.BOSS_KILL.value,
            ActivityType.RAID_COMPLETION.value,
        ):
            return (f"[{when}] {self.player_rsn} - "
                    f"{abbreviate_name(self.monster_name)} ({self.total_kc}kc)")
        return f"[{when}] {self.player_rsn} - {self.activity_type}"


def abbreviate_name(name):
    if not name:
        return name
    return NAME_ABBREVIATIONS.get(name.lower(), name)
