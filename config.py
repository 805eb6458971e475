# config.py — Broker Desk configuration
# Tuned for: one trading day per session, visible news moves, a few hours of idle income

import os

# -------------------- App / Server --------------------
HOST = "0.0.0.0"
PORT = 5000
LOG_LEVEL = os.getenv("BROKER_DESK_LOG_LEVEL", "INFO")
SAVE_PATH = os.getenv("BROKER_DESK_SAVE_PATH", "save/desk.json")

# -------------------- Admin --------------------
ADMIN_PASSWORD = "admin123"  # change this before hosting publicly

# -------------------- Game Basics --------------------
START_CASH = 100000          # virtual cash on a fresh desk
START_REPUTATION = 50
REPUTATION_MIN = 0
REPUTATION_MAX = 100
TICK_SECONDS = 1.0           # idle engine ticks every 1 second
FEED_LIMIT = 50              # feed lines kept for the UI
SAVE_EVERY_TICKS = 10        # idle ticks between best-effort saves

# -------------------- Prices --------------------
MIN_PRICE = 1.0              # floor so a price never reaches zero
HISTORY_LENGTH = 30          # rolling window of daily closes

# -------------------- News Generation --------------------
# Number of headlines per day: 0, 1, 2 or 3
NEWS_COUNT_WEIGHTS = (35, 40, 20, 5)

# Which pool a headline slot draws from
NEWS_SCOPE_WEIGHTS = {
    "company": 60,
    "sector": 30,
    "macro": 10,
}

# Magnitude of the daily return push per strength tier
STRENGTH_RANGES = {
    "small":  (0.010, 0.025),   # 1.0% - 2.5%
    "medium": (0.020, 0.045),   # 2.0% - 4.5%
    "large":  (0.040, 0.100),   # 4.0% - 10%
}

# How many days an effect keeps pushing prices
EFFECT_DAYS = {
    "company": (1, 2),
    "sector": (1, 2),
    "macro": (1, 1),
}

# -------------------- News Impact Weights --------------------
# INSTRUMENT = specifically named company
# CATEGORY = every company in the named sector
# GLOBAL = macro headline, whole market
INSTRUMENT_WEIGHT = 1.00
CATEGORY_WEIGHT = 0.60
GLOBAL_WEIGHT = 0.30

MACRO_TARGET = "market"
MACRO_CATEGORY = "Economy"

# Extra push on the tutorial ticker so the first close is a win
TUTORIAL_BOOST = (0.02, 0.06)

# -------------------- Reputation --------------------
REPUTATION_PNL_STEP = 5000   # dollars of daily P/L per reputation point
REPUTATION_MAX_DELTA = 3

CAREER_THRESHOLDS = (
    ("Partner", 90),
    ("Senior", 75),
    ("Associate", 60),
    ("Junior", 0),
)

# One new client per day, capital scales with career level
NEW_CLIENT_CAPITAL = {
    "Junior": 50000,
    "Associate": 250000,
    "Senior": 1000000,
    "Partner": 5000000,
}

# -------------------- Idle Income --------------------
# Base income per second (min, max); fund size slides between the two
BASE_INCOME_BY_CAREER = {
    "Junior":    (1, 5),
    "Associate": (5, 15),
    "Senior":    (20, 60),
    "Partner":   (100, 300),
}
FUND_SIZE_FOR_MAX_INCOME = 10000000
START_FUND_SIZE = 100000
MIN_FUND_SIZE = 10000

FUND_GROWTH_FACTOR = 0.01        # share of a winning day's return added to the fund
FUND_SHRINK_FACTOR = 0.005       # share of a losing day's return taken from the fund
FUND_SHRINK_THRESHOLD = -0.05    # only days worse than -5% shrink the fund

TAP_BOOST_INCREMENT = 2.0        # percent per tap
TAP_BOOST_MAX_PERCENT = 100.0
TAP_BOOST_DECAY_PER_SECOND = 0.2

MAX_OFFLINE_HOURS = 8
MAX_OFFLINE_SECONDS = MAX_OFFLINE_HOURS * 60 * 60
OFFLINE_MIN_SECONDS = 60         # shorter absences do not trigger a welcome back

# -------------------- Rewarded Boosts --------------------
MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS

REWARDED_BOOSTS = [
    {
        "id": "double-income",
        "name": "Double Fund Income",
        "description": "2x fund income for 30 minutes",
        "multiplier": 2.0,
        "duration_ms": 30 * MINUTE_MS,
        "cooldown_ms": 1 * HOUR_MS,
    },
    {
        "id": "instant-collect",
        "name": "Instant Offline Collect",
        "description": "Collect max offline earnings instantly",
        "multiplier": 1.0,
        "duration_ms": 0,
        "cooldown_ms": 24 * HOUR_MS,
    },
]
INSTANT_COLLECT_ID = "instant-collect"

# -------------------- Tutorial --------------------
TUTORIAL_TICKER = "NLSY"
