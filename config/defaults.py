from __future__ import annotations

from pathlib import Path

DEFAULT_FORUMS_API_BASE = "https://forums.unitedoperations.net/api"
DEFAULT_CALENDAR_PATH = "calendar/events?sortBy=start&sortDir=asc&hidden=0"
DEFAULT_POLLS_PATH = "forums/topics?forums=197&hidden=0&locked=0&sortDir=desc"

DEFAULT_HOURS_TO_REFRESH_FROM_FORUMS = 1.0
DEFAULT_ALERT_TIMES = "1 day,2 hours,30 minutes"
DEFAULT_GROUP_EXPIRY_HOURS = 8.0
DEFAULT_POLL_RULES_PATH = str(Path(__file__).resolve().parent / "poll_rules.yml")

DEFAULT_PLAYER_COUNT_FIELD = "players"
DEFAULT_PLAYER_COUNT_TICK_SECONDS = 60

DEFAULT_ADMIN_ROLES = "Admin"
FLIGHT_GAMES = ("BMS", "DCS")

DISCORD_MAX_MESSAGE_LEN = 1900
