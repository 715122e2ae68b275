from __future__ import annotations

from datetime import datetime
from datetime import timedelta
from typing import Any

from feeds.poll_rules import rule_for_tag
from feeds.poller import FeedPoller
from feeds.poller import TickResult
from feeds.poller import parse_timestamp
from state.models import PollRule
from state.models import PollThread


def extract_votes(entity: dict[str, Any]) -> dict[str, int]:
    poll = entity.get("poll") if isinstance(entity.get("poll"), dict) else {}
    questions = poll.get("questions") if isinstance(poll.get("questions"), list) else []
    first = questions[0] if questions and isinstance(questions[0], dict) else {}
    options = first.get("options") if isinstance(first.get("options"), dict) else {}
    return {"Yes": int(options.get("Yes", 0) or 0), "No": int(options.get("No", 0) or 0)}


def thread_tag(entity: dict[str, Any]) -> str:
    tags = entity.get("tags") if isinstance(entity.get("tags"), list) else []
    if tags and str(tags[0] or "").strip():
        return str(tags[0]).strip()
    return str(entity.get("prefix") or "").strip()


class PollsHandler(FeedPoller):
    """Polls the voting forum and announces threads opening and closing.

    The voting listing has no ordering guarantee, so every entity is looked
    at; threads that already closed before they were first seen are ignored.
    """

    label = "Polls"
    job_key = "poll_updates"

    def __init__(self, *, rules: dict[str, PollRule], notifier, **kwargs) -> None:
        super().__init__(**kwargs)
        self.rules = rules
        self.notifier = notifier

    async def build_record(self, entity: dict[str, Any], now: datetime) -> PollThread | None:
        rule = rule_for_tag(self.rules, thread_tag(entity))
        first_post = entity.get("firstPost") if isinstance(entity.get("firstPost"), dict) else {}
        opened = parse_timestamp(first_post.get("date") or entity.get("date"))
        close_date = opened + timedelta(days=rule.length_in_days)
        if close_date <= now:
            return None
        poll = entity.get("poll") if isinstance(entity.get("poll"), dict) else {}
        return PollThread(
            id=self.entity_id(entity),
            rule=rule,
            question=str(poll.get("title") or entity.get("title") or "").strip(),
            close_date=close_date,
            url=str(entity.get("url") or ""),
            votes=extract_votes(entity),
        )

    async def parse_refresh(self, entity_id: str, entity: dict[str, Any]) -> dict[str, int]:
        return extract_votes(entity)

    def refresh(self, entity_id: str, payload: dict[str, int]) -> None:
        self.store.update_votes(entity_id, payload)

    def remove_if_old(self, entity_id: str, now: datetime) -> bool:
        return self.store.remove_if_old(entity_id, now=now)

    def on_inserted(self, record: PollThread) -> None:
        self.reminders.schedule_poll_close(record)
        print(
            f"[Polls] new poll id={record.id} type={record.rule.type} "
            f"question={record.question!r} closes={record.close_date.isoformat()}"
        )

    def on_removed(self, record: PollThread) -> None:
        self.reminders.cancel_for_poll(record.id)

    def describe(self, record: PollThread) -> str:
        return f"poll id={record.id} question={record.question!r}"

    async def after_tick(self, result: TickResult) -> None:
        for poll in result.created:
            try:
                await self.notifier.notify("polls", poll, "open")
            except Exception as e:
                print(f"[Polls] notify failed poll={poll.id} status=open: {e}")
        for poll in result.expired:
            await self.reminders.notify_poll_closed(poll)
