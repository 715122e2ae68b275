import os
from datetime import datetime, timezone
import discord
from config.defaults import DEFAULT_ADMIN_ROLES
from config.defaults import DEFAULT_ALERT_TIMES
from config.defaults import DEFAULT_CALENDAR_PATH
from config.defaults import DEFAULT_FORUMS_API_BASE
from config.defaults import DEFAULT_GROUP_EXPIRY_HOURS
from config.defaults import DEFAULT_HOURS_TO_REFRESH_FROM_FORUMS
from config.defaults import DEFAULT_PLAYER_COUNT_FIELD
from config.defaults import DEFAULT_PLAYER_COUNT_TICK_SECONDS
from config.defaults import DEFAULT_POLL_RULES_PATH
from config.defaults import DEFAULT_POLLS_PATH
from config.defaults import DISCORD_MAX_MESSAGE_LEN
from config.defaults import FLIGHT_GAMES
from config.env import env_float
from config.env import env_int
from config.env import parse_channel_id
from config.env import parse_channel_map
from config.env import parse_str_set
from feeds.calendar_service import CalendarHandler
from feeds.poll_rules import load_poll_rules
from feeds.polls_service import PollsHandler
from feeds.source import ForumsClient
from jobs.player_alarms import PlayerAlarmJob
from lfg.service import GroupMatcher
from misc.errors import ConfigError
from misc.events_runtime import UOBot
from misc.notifier import DiscordNotifier
from misc.runtime_wiring import wire_bot_runtime
from reminders.intervals import parse_lead_times
from reminders.service import ReminderScheduler
from scheduling.timer_service import TimerService
from state.alarm_store import AlarmStore
from state.event_store import EventStore
from state.group_store import GroupStore
from state.models import Flight
from state.models import Group
from state.poll_store import PollStore

# =========================
# ENV
# =========================
DISCORD_TOKEN = os.getenv("DISCORD_TOKEN")

if not DISCORD_TOKEN:
    raise RuntimeError("Missing DISCORD_TOKEN env var")

FORUMS_API_BASE = os.getenv("FORUMS_API_BASE", DEFAULT_FORUMS_API_BASE).strip()
FORUMS_API_KEY = os.getenv("FORUMS_API_KEY", "").strip()
if not FORUMS_API_KEY:
    print("[CFG] FORUMS_API_KEY is not set; forum requests go out unauthenticated")

_forums = ForumsClient(
    api_base=FORUMS_API_BASE,
    api_key=FORUMS_API_KEY,
    timeout=env_float("UO_HTTP_TIMEOUT_SECONDS", 20.0),
)
CALENDAR_URL = os.getenv("UO_CALENDAR_URL", "").strip() or _forums.url(DEFAULT_CALENDAR_PATH)
POLLS_URL = os.getenv("UO_POLLS_URL", "").strip() or _forums.url(DEFAULT_POLLS_PATH)

# =========================
# SCHEDULING
# =========================
HOURS_TO_REFRESH = env_float("UO_HOURS_TO_REFRESH_FROM_FORUMS", DEFAULT_HOURS_TO_REFRESH_FROM_FORUMS)
GROUP_EXPIRY_HOURS = env_float("UO_GROUP_EXPIRY_HOURS", DEFAULT_GROUP_EXPIRY_HOURS)

try:
    LEAD_TIMES = parse_lead_times(os.getenv("UO_ALERT_TIMES", DEFAULT_ALERT_TIMES))
except ConfigError as e:
    raise RuntimeError(f"Invalid UO_ALERT_TIMES: {e}") from e
if not LEAD_TIMES:
    raise RuntimeError("UO_ALERT_TIMES must name at least one lead time")

POLL_RULES_PATH = os.getenv("UO_POLL_RULES_PATH", DEFAULT_POLL_RULES_PATH).strip()
try:
    POLL_RULES = load_poll_rules(POLL_RULES_PATH)
except ConfigError as e:
    raise RuntimeError(f"Invalid poll rules at {POLL_RULES_PATH}: {e}") from e

PLAYER_COUNT_URL = os.getenv("UO_PLAYER_COUNT_URL", "").strip()
PLAYER_COUNT_FIELD = os.getenv("UO_PLAYER_COUNT_FIELD", DEFAULT_PLAYER_COUNT_FIELD).strip()
PLAYER_COUNT_TICK_SECONDS = env_int("UO_PLAYER_COUNT_TICK_SECONDS", DEFAULT_PLAYER_COUNT_TICK_SECONDS)

print(
    f"[CFG] refresh_hours={HOURS_TO_REFRESH} alert_times={[lt.label for lt in LEAD_TIMES]} "
    f"group_expiry_hours={GROUP_EXPIRY_HOURS} poll_rules={sorted(POLL_RULES)} "
    f"player_count={'on' if PLAYER_COUNT_URL else 'off'}"
)

# =========================
# CHANNELS + ROLES
# =========================
MAIN_CHANNEL_ID = parse_channel_id(os.getenv("UO_MAIN_CHANNEL_ID"))
REGULARS_CHANNEL_ID = parse_channel_id(os.getenv("UO_REGULARS_CHANNEL_ID"))
LFG_CHANNEL_ID = parse_channel_id(os.getenv("UO_LFG_CHANNEL_ID"))
FLIGHTS_CHANNEL_ID = parse_channel_id(os.getenv("UO_FLIGHTS_CHANNEL_ID"))
EVENT_GROUP_CHANNELS = parse_channel_map(os.getenv("UO_EVENT_GROUP_CHANNELS"))
ADMIN_ROLES = parse_str_set(os.getenv("UO_ADMIN_ROLES", DEFAULT_ADMIN_ROLES))

if not MAIN_CHANNEL_ID:
    print("[CFG] UO_MAIN_CHANNEL_ID is not set; channel notifications will fail")

print(
    f"[CFG] main_channel={MAIN_CHANNEL_ID} regulars_channel={REGULARS_CHANNEL_ID} "
    f"lfg_channel={LFG_CHANNEL_ID} flights_channel={FLIGHTS_CHANNEL_ID} "
    f"group_channels={sorted(EVENT_GROUP_CHANNELS)} admin_roles={sorted(ADMIN_ROLES)}"
)


def chunk_text(text: str, limit: int = DISCORD_MAX_MESSAGE_LEN) -> list[str]:
    text = text or ""
    if len(text) <= limit:
        return [text]

    chunks = []
    remaining = text

    while len(remaining) > limit:
        # Prefer splitting on newline, then space
        split_at = remaining.rfind("\n", 0, limit)
        if split_at == -1:
            split_at = remaining.rfind(" ", 0, limit)
        if split_at == -1:
            split_at = limit

        chunk = remaining[:split_at].strip()
        if chunk:
            chunks.append(chunk)

        remaining = remaining[split_at:].strip()

    if remaining:
        chunks.append(remaining)

    return chunks


async def send_chunked(channel: discord.abc.Messageable, text: str) -> None:
    for part in chunk_text(text, DISCORD_MAX_MESSAGE_LEN):
        await channel.send(part)


# =========================
# DISCORD BOT
# =========================
intents = discord.Intents.default()
intents.message_content = True
intents.members = True

bot = UOBot(command_prefix="!", intents=intents)

timers = TimerService()
event_store = EventStore()
poll_store = PollStore()
alarm_store = AlarmStore()

notifier = DiscordNotifier(
    bot,
    main_channel_id=MAIN_CHANNEL_ID,
    regulars_channel_id=REGULARS_CHANNEL_ID,
    lfg_channel_id=LFG_CHANNEL_ID,
    flights_channel_id=FLIGHTS_CHANNEL_ID,
    group_channel_ids=EVENT_GROUP_CHANNELS,
)

reminders = ReminderScheduler(
    timers=timers,
    event_store=event_store,
    poll_store=poll_store,
    notifier=notifier,
    lead_times=LEAD_TIMES,
)

calendar_handler = CalendarHandler(
    source=_forums,
    timers=timers,
    store=event_store,
    reminders=reminders,
    url=CALENDAR_URL,
    interval_hours=HOURS_TO_REFRESH,
)

polls_handler = PollsHandler(
    rules=POLL_RULES,
    notifier=notifier,
    source=_forums,
    timers=timers,
    store=poll_store,
    reminders=reminders,
    url=POLLS_URL,
    interval_hours=HOURS_TO_REFRESH,
)

group_matcher = GroupMatcher(
    timers=timers,
    groups=GroupStore[Group](),
    flights=GroupStore[Flight](),
    expiry_hours=GROUP_EXPIRY_HOURS,
)

player_alarm_job = PlayerAlarmJob(
    source=_forums,
    timers=timers,
    alarms=alarm_store,
    notifier=notifier,
    url=PLAYER_COUNT_URL,
    field=PLAYER_COUNT_FIELD,
    interval_seconds=PLAYER_COUNT_TICK_SECONDS,
)

wire_bot_runtime(
    bot,
    timers=timers,
    started_at=datetime.now(timezone.utc),
    send_chunked=send_chunked,
    event_store=event_store,
    poll_store=poll_store,
    alarm_store=alarm_store,
    group_matcher=group_matcher,
    notifier=notifier,
    calendar_handler=calendar_handler,
    polls_handler=polls_handler,
    player_alarm_job=player_alarm_job,
    admin_roles=ADMIN_ROLES,
    flight_games=FLIGHT_GAMES,
)

bot.run(DISCORD_TOKEN)
