from __future__ import annotations

from typing import Any

from state.alarm_store import AlarmStore


def extract_player_count(payload: Any, field: str) -> int:
    value = payload.get(field) if isinstance(payload, dict) else payload
    if isinstance(value, list):
        return len(value)
    return int(value)


class PlayerAlarmJob:
    """Checks the live player count and fires the alarms it satisfies."""

    job_key = "player_count_updates"

    def __init__(
        self,
        *,
        source,
        timers,
        alarms: AlarmStore,
        notifier,
        url: str,
        field: str = "players",
        interval_seconds: int = 60,
    ) -> None:
        self.source = source
        self.timers = timers
        self.alarms = alarms
        self.notifier = notifier
        self.url = url
        self.field = field or "players"
        self.interval_seconds = max(10, int(interval_seconds))

    def start(self) -> bool:
        if not self.url:
            return False
        started = self.timers.schedule_every(self.job_key, self.interval_seconds, self.update)
        if started:
            print(f"[Alarms] player count polling started every_s={self.interval_seconds}")
        return started

    def clear(self) -> None:
        self.timers.cancel(self.job_key)

    async def update(self) -> list[int]:
        if self.alarms.count() == 0:
            return []
        try:
            payload = await self.source.fetch_json(self.url)
            count = extract_player_count(payload, self.field)
        except Exception as e:
            print(f"[Alarms] player count fetch failed: {e}")
            return []
        return await self.dispatch(count)

    async def dispatch(self, count: int) -> list[int]:
        """Fire every alarm at or under ``count``; each is removed before its DM so it fires at most once."""
        fired: list[int] = []
        for user_id in self.alarms.filter(count):
            threshold = self.alarms.threshold_for(user_id)
            self.alarms.remove(user_id)
            fired.append(user_id)
            print(f"[Alarms] fired user={user_id} threshold={threshold} players={count}")
            try:
                await self.notifier.notify(f"user:{user_id}", {"threshold": threshold, "players": count}, "player_count")
            except Exception as e:
                print(f"[Alarms] notify failed user={user_id}: {e}")
        return fired
