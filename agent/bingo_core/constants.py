"""
Constants, intervals, thresholds, and the static classification tables.
"""

COMPANION_VERSION = "1.2.0"

# ─── Remote service ──────────────────────────────────────────────
DEFAULT_API_URL = "https://api.clan.bingo"
DEFAULT_PROFILE_URL = "https://clan.bingo/account/profile"
IMGUR_UPLOAD_URL = "https://api.imgur.com/3/image"

# ─── Intervals ───────────────────────────────────────────────────
HEARTBEAT_INTERVAL_SEC = 180       # Heartbeat every 3 minutes
HEARTBEAT_MIN_FRACTION = 0.8       # Suppress if last send < 80% of interval ago
REFRESH_INTERVAL_SEC = 300         # Re-fetch active events every 5 minutes
ACTIVITY_REFRESH_SEC = 30          # Re-fetch activity log every 30s
ACTIVITY_LOG_LIMIT = 50

# ─── Network ─────────────────────────────────────────────────────
API_TIMEOUT_READ = 15
API_TIMEOUT_SUBMIT = 30
API_TIMEOUT_UPLOAD = 30
BODY_EXCERPT_LEN = 200             # Max chars of a response body in the log

# ─── Dedup / workers ─────────────────────────────────────────────
DEDUP_WINDOW_SEC = 300             # Keys older than 5 minutes are evicted
DEDUP_MAX_ENTRIES = 2048
KILL_PROXIMITY_SEC = 3             # Kill + loot for the same NPC less than this apart are one report
SUBMIT_WORKERS = 4
INPUT_THROTTLE_SEC = 30            # Min gap between activity-triggered heartbeats

# ─── Classification ──────────────────────────────────────────────
VALUABLE_DROP_THRESHOLD = 1_000_000
DEFAULT_TOTAL_TILES = 25

# Raid bosses are matched by substring (ToB, CoX, ToA).
RAID_BOSS_NAMES = (
    "Maiden of Sugadinti",
    "Xarpus",
    "Verzik Vitur",
    "Great Olm",
    "Warden",
    "Tumeken",
)

# Regular bosses are matched exactly, plus anything containing "Dagannoth".
BOSS_NAMES = frozenset({
    "King Black Dragon",
    "Corporeal Beast",
    "Commander Zilyana",
    "General Graardor",
    "Kree'arra",
    "K'ril Tsutsaroth",
    "Kalphite Queen",
    "Chaos Elemental",
    "Zulrah",
    "Vorkath",
    "Alchemical Hydra",
    "The Nightmare",
    "Phosani's Nightmare",
    "Cerberus",
    "Abyssal Sire",
    "Kraken",
    "Thermonuclear Smoke Devil",
})
BOSS_NAME_FRAGMENTS = ("Dagannoth",)

RARE_ITEM_FRAGMENTS = (
    "dragon warhammer",
    "twisted bow",
    "scythe",
    "rapier",
    "avernic",
    "primordial",
    "eternal",
    "pegasian",
    "armadyl",
    "bandos",
    "zamorak",
    "saradomin",
    "elysian",
    "spectral",
    "arcane",
)

PET_FRAGMENTS = (
    "pet",
    "puppy",
    "kitten",
    "heron",
    "beaver",
    "squirrel",
)

# Short names for the activity log.
NAME_ABBREVIATIONS = {
    "theatre of blood": "T.o.B",
    "chambers of xeric": "C.o.X",
    "tombs of amascut": "T.o.A",
    "king black dragon": "KBD",
    "corporeal beast": "Corp",
    "commander zilyana": "Zilyana",
    "general graardor": "Graardor",
    "k'ril tsutsaroth": "K'ril",
    "dagannoth prime": "DK Prime",
    "dagannoth rex": "DK Rex",
    "dagannoth supreme": "DK Supreme",
    "barrows brothers": "Barrows",
    "giant mole": "Mole",
    "kalphite queen": "KQ",
    "chaos elemental": "Chaos Ele",
    "crazy archaeologist": "C.Arch",
    "chaos fanatic": "C.Fanatic",
    "alchemical hydra": "Hydra",
    "the gauntlet": "Gauntlet",
    "the corrupted gauntlet": "C.Gauntlet",
    "the nightmare": "Nightmare",
    "phosani's nightmare": "P.Nightmare",
    "thermonuclear smoke devil": "Thermy",
    "abyssal sire": "Sire",
    "grotesque guardians": "Guardians",
    "skeletal wyvern": "Wyvern",
}
