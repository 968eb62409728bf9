"""
Response-shape normalisation.

The service has shipped several response shapes for the same endpoint over
time (object, bare array, bare primitive; camelCase or lowercase keys).
Everything here turns whatever came back into one canonical shape so callers
never see backend drift. Nothing in this module raises on bad input.
"""

from datetime import datetime

from .config import log
from .constants import DEFAULT_TOTAL_TILES
from .models import BingoEvent, ActivityLogEntry, SignupStatus, epoch_seconds


# ─── Field helpers ───────────────────────────────────────────────

def _field(obj, *keys, default=None):
    """First non-null value among keys."""
    for key in keys:
        value = obj.get(key)
        if value is not None:
            return value
    return default


def _as_int(value, default=0):
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(float(value))
        except (TypeError, ValueError):
            return default


def _as_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def _as_str(value, default=""):
    if value is None:
        return default
    return str(value)


def _as_epoch_seconds(value):
    """Epoch seconds from an int, a digit string, epoch millis, or ISO-8601."""
    if value is None:
        return 0
    if isinstance(value, (int, float)):
        seconds = int(value)
    else:
        text = str(value).strip()
        if text.lstrip("-").isdigit():
            seconds = int(text)
        else:
            try:
                return int(datetime.fromisoformat(text.replace("Z", "+00:00")).timestamp())
            except ValueError:
                return 0
    return int(epoch_seconds(seconds))


# ─── Active events ───────────────────────────────────────────────

def parse_event(obj):
    """One event object → BingoEvent. Accepts camelCase or lowercase keys."""
    duration = _as_int(_field(obj, "durationDays", "durationdays"), 0)
    prize = _field(obj, "prizePool", "prizepool", "prize_pool", "prize",
                   "prizeAmount", "reward", default="")
    return BingoEvent(
        bingo_id=_as_str(_field(obj, "bingoId", "bingoid", "id")),
        name=_as_str(_field(obj, "name")),
        group_id=_as_str(_field(obj, "groupId", "groupid")),
        duration_days=duration,
        days_remaining=_as_int(_field(obj, "daysRemaining", "daysremaining"), duration),
        total_tiles=_as_int(_field(obj, "totalTiles", "totaltiles"), DEFAULT_TOTAL_TILES),
        is_active=_as_bool(_field(obj, "isActive", "isactive")),
        prize_pool=_as_str(prize),
        participants=_as_int(_field(obj, "participants", "participantCount"), 0),
    )


def _event_array(data):
    if isinstance(data, list):
        return data
    if not isinstance(data, dict):
        return None
    for key in ("activeEvents", "events"):
        if isinstance(data.get(key), list):
            return data[key]
    # Wrapped array under some other key, e.g. {"data": [...]}
    for value in data.values():
        if isinstance(value, list):
            return value
    return []


def normalize_events(data):
    """
    Bare array, {"events": [...]}, {"hasActiveEvent", "activeEvents"} or any
    object wrapping an array → list of BingoEvent.
    """
    events = _event_array(data)
    if events is None:
        log.warning("Active events response is a bare %s — treating as no events",
                    type(data).__name__)
        return []

    parsed = []
    for obj in events:
        if not isinstance(obj, dict):
            log.debug("Skipping non-object event entry: %r", obj)
            continue
        event = parse_event(obj)
        if not event.bingo_id:
            log.debug("Skipping event without id: %s", event.name)
            continue
        parsed.append(event)
    return parsed


# ─── Signup status ───────────────────────────────────────────────

def normalize_signup_status(data):
    """Object, bare boolean, or boolean string → SignupStatus."""
    if isinstance(data, dict):
        signed_up = _as_bool(_field(data, "signedUp", "signedup"))
        accepted = _as_bool(_field(data, "accepted"))
        message = _as_str(_field(data, "message"), default="")
        return SignupStatus(signed_up, accepted and signed_up, message or _signup_message(signed_up, accepted))
    if isinstance(data, (bool, str, int)):
        signed_up = _as_bool(data)
        return SignupStatus(signed_up, False, _signup_message(signed_up, False))
    return SignupStatus(False, False, "Unknown signup status")


def _signup_message(signed_up, accepted):
    if signed_up and accepted:
        return "Signed up & Accepted"
    if signed_up:
        return "Signed up"
    return "Not signed up"


# ─── Secrets ─────────────────────────────────────────────────────

def normalize_secret(data):
    """{"success", "value"}, {"value"} or a bare string → str or None."""
    if isinstance(data, dict):
        if "success" in data and not _as_bool(data.get("success")):
            return None
        value = data.get("value")
    else:
        value = data
    if not isinstance(value, str):
        return None
    value = value.strip().strip('"')
    return value or None


# ─── Activity log ────────────────────────────────────────────────

def parse_activity(obj):
    return ActivityLogEntry(
        player_rsn=_as_str(_field(obj, "playerRsn", "playerrsn", "rsn")),
        activity_type=_as_str(_field(obj, "activityType", "activitytype")),
        timestamp=_as_epoch_seconds(_field(obj, "timestamp")),
        monster_name=_as_str(_field(obj, "monsterName", "monstername")),
        drop_name=_as_str(_field(obj, "dropName", "dropname")),
        total_kc=_as_int(_field(obj, "totalKc", "totalkc"), 0),
        screenshot_url=_as_str(_field(obj, "screenshotUrl", "screenshoturl")),
        team_id=_as_str(_field(obj, "teamId", "teamid")),
    )


def normalize_activity_log(data):
    """{"activities": [...]} or a bare array → list of ActivityLogEntry."""
    if isinstance(data, dict):
        activities = data.get("activities")
    else:
        activities = data
    if not isinstance(activities, list):
        return []
    return [parse_activity(obj) for obj in activities if isinstance(obj, dict)]


# ─── Login ───────────────────────────────────────────────────────

def parse_login(data):
    """{"token", "user": {"teamId"}} → (token, team_id) or (None, "")."""
    if not isinstance(data, dict):
        return None, ""
    token = _field(data, "token", "jwt", "accessToken")
    user = data.get("user") if isinstance(data.get("user"), dict) else {}
    team_id = _field(user, "teamId", "teamid", default=_field(data, "teamId", "teamid", default=""))
    return (token if isinstance(token, str) and token else None), _as_str(team_id)
