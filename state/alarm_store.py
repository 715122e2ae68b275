from __future__ import annotations


class AlarmStore:
    """Player-count alarms, one threshold per user."""

    def __init__(self) -> None:
        self._alarms: dict[int, int] = {}

    def __len__(self) -> int:
        return len(self._alarms)

    def register(self, threshold: int, user_id: int) -> bool:
        """Set the user's threshold; True when an older alarm was overridden."""
        uid = int(user_id)
        existed = uid in self._alarms
        self._alarms[uid] = int(threshold)
        return existed

    def filter(self, current_count: int) -> list[int]:
        return [uid for uid, threshold in self._alarms.items() if threshold <= int(current_count)]

    def remove(self, user_id: int) -> bool:
        return self._alarms.pop(int(user_id), None) is not None

    def threshold_for(self, user_id: int) -> int | None:
        return self._alarms.get(int(user_id))

    def count(self) -> int:
        return len(self._alarms)
