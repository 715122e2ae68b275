from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from datetime import timezone
from enum import Enum


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class CalendarEvent:
    id: str
    title: str
    start: datetime
    url: str
    img: str | None = None
    group: str = ""
    reminders: dict[str, bool] = field(default_factory=dict)
    rsvp_limit: int | None = None
    rsvps: int | None = None

    @property
    def all_reminders_fired(self) -> bool:
        return all(self.reminders.values())


@dataclass(frozen=True, slots=True)
class PollRule:
    type: str
    percent_to_pass: float
    length_in_days: int


@dataclass(slots=True)
class PollThread:
    id: str
    rule: PollRule
    question: str
    close_date: datetime
    url: str
    votes: dict[str, int] = field(default_factory=lambda: {"Yes": 0, "No": 0})
    closed_notified: bool = False

    @property
    def passing(self) -> bool:
        yes = int(self.votes.get("Yes", 0) or 0)
        no = int(self.votes.get("No", 0) or 0)
        total = yes + no
        if total <= 0:
            return False
        return (yes / total) >= self.rule.percent_to_pass


class GroupType(Enum):
    LFG = "lfg"
    FLIGHT = "flight"


@dataclass(slots=True)
class Group:
    id: int
    owner_id: int
    owner_name: str
    name: str
    needed: int
    found: list[int] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)


@dataclass(slots=True)
class Flight:
    id: int
    owner_id: int
    owner_name: str
    game: str
    time: datetime
    details: str
    found: list[int] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
