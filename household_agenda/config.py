from __future__ import annotations

import os
import re
from zoneinfo import ZoneInfo

AGENDA_TIMEZONE = os.getenv("AGENDA_TIMEZONE", "America/New_York")
LOCAL_TZ = ZoneInfo(AGENDA_TIMEZONE)
AGENDA_DEBUG = os.getenv("AGENDA_DEBUG", "0") == "1"

HHMM_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# -------------------------
# Storage
# -------------------------
AGENDA_DATA_FILE = os.getenv("AGENDA_DATA_FILE", "").strip()
AGENDA_STORE_URL = os.getenv("AGENDA_STORE_URL", "").rstrip("/")
AGENDA_STORE_TIMEOUT = float(os.getenv("AGENDA_STORE_TIMEOUT", "15"))
AGENDA_STORE_TOKEN = os.getenv("AGENDA_STORE_TOKEN", "").strip()

# Delete the freshly created event when marking the source item fails.
COMPENSATE_ON_FAILURE = os.getenv("AGENDA_COMPENSATE_ON_FAILURE", "1") == "1"

API_BASE = os.getenv("API_BASE", "/api")
DEFAULT_CONTEXT_ID = os.getenv("AGENDA_DEFAULT_CONTEXT", "household")
CORS_ALLOW_ORIGINS = os.getenv("CORS_ALLOW_ORIGINS", "")
cors_origins: list[str] = [
    origin.strip() for origin in CORS_ALLOW_ORIGINS.split(",") if origin.strip()
]

# -------------------------
# Scheduling defaults
# -------------------------
MINUTES_PER_DAY = 24 * 60
DEFAULT_DURATION_MINUTES = 30
DEFAULT_DURATION_BY_TYPE = {
    "task": 30,
    "milestone": 30,
    "goal": 60,
    "project": 90,
    "sop": 30,
}
TRANSITION_THRESHOLD_MINUTES = int(os.getenv("AGENDA_TRANSITION_THRESHOLD", "10"))
TRANSITION_HARMONY = 85
UNSCHEDULED_HARMONY = 50
WORKING_HOURS_START = os.getenv("AGENDA_DAY_START", "05:00")
WORKING_HOURS_END = os.getenv("AGENDA_DAY_END", "22:00")
SLOT_MINUTES = 15
MAX_CONFLICT_SUGGESTIONS = 3
DEFER_MORNING_HOUR = 9
DEFER_EVENING_HOUR = 18
