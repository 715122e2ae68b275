from __future__ import annotations

from datetime import datetime

from state.models import PollThread
from state.models import utc_now


class PollStore:
    """Active forum voting threads, keyed by thread id."""

    def __init__(self) -> None:
        self._polls: dict[str, PollThread] = {}

    def __len__(self) -> int:
        return len(self._polls)

    def has(self, poll_id: str) -> bool:
        return str(poll_id) in self._polls

    def get(self, poll_id: str) -> PollThread | None:
        return self._polls.get(str(poll_id))

    def add(self, poll: PollThread) -> bool:
        key = str(poll.id or "").strip()
        if not key or key in self._polls:
            return False
        self._polls[key] = poll
        return True

    def update_votes(self, poll_id: str, votes: dict[str, int]) -> bool:
        poll = self._polls.get(str(poll_id))
        if poll is None:
            return False
        poll.votes = {"Yes": int(votes.get("Yes", 0) or 0), "No": int(votes.get("No", 0) or 0)}
        return True

    def remove_if_old(self, poll_id: str, *, now: datetime | None = None) -> bool:
        """Drop the thread once the current time is past its close date."""
        key = str(poll_id)
        poll = self._polls.get(key)
        if poll is not None and poll.close_date < (now or utc_now()):
            del self._polls[key]
            return True
        return False

    def remove(self, poll_id: str) -> bool:
        return self._polls.pop(str(poll_id), None) is not None

    def list(self) -> list[PollThread]:
        return list(self._polls.values())
