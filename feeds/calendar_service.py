from __future__ import annotations

from datetime import datetime
from typing import Any

from bs4 import BeautifulSoup

from feeds.poller import FeedPoller
from feeds.poller import parse_timestamp
from misc.errors import UpstreamFetchError
from state.models import CalendarEvent

# title prefix (lowercase) -> audience group tag
GROUP_PREFIXES = (
    ("event: arma 3", "UOA3"),
    ("event: uoaf", "UOAF"),
    ("arma 3", "UOA3"),
    ("uoa3", "UOA3"),
    ("uoaf", "UOAF"),
    ("uotc", "UOTC"),
)


def find_group(title: str) -> str:
    text = (title or "").strip().lower()
    for prefix, group in GROUP_PREFIXES:
        if text.startswith(prefix):
            return group
    return ""


def find_image(html: str | None) -> str | None:
    if not html:
        return None
    soup = BeautifulSoup(html, "html.parser")
    img = soup.select_one("img.bbc_img")
    if img is None:
        return None
    src = str(img.get("src") or "").strip()
    return src or None


class CalendarHandler(FeedPoller):
    """Polls the community calendar and schedules reminders for new events.

    The calendar listing is ordered by start time, so consumption stops at
    the first event that has already started.
    """

    label = "Calendar"
    job_key = "event_updates"

    async def _fetch_rsvps(self, event_id: str) -> int | None:
        url = self.source.url(f"calendar/events/{event_id}/rsvps")
        try:
            payload = await self.source.fetch_json(url)
        except UpstreamFetchError as e:
            print(f"[Calendar] rsvp lookup failed event={event_id}: {e}")
            return None
        attending = payload.get("attending") if isinstance(payload, dict) else None
        return len(attending) if isinstance(attending, list) else None

    def current_entities(self, raw: list[dict[str, Any]], now: datetime) -> list[dict[str, Any]]:
        future: list[dict[str, Any]] = []
        for entity in raw:
            if parse_timestamp(entity.get("start")) < now:
                break
            future.append(entity)
        return future

    async def build_record(self, entity: dict[str, Any], now: datetime) -> CalendarEvent:
        event_id = self.entity_id(entity)
        event = CalendarEvent(
            id=event_id,
            title=str(entity.get("title") or "").strip(),
            start=parse_timestamp(entity.get("start")),
            url=str(entity.get("url") or ""),
            img=find_image(entity.get("description")),
            group=find_group(str(entity.get("title") or "")),
        )
        if entity.get("rsvp"):
            limit = entity.get("rsvpLimit")
            event.rsvp_limit = int(limit) if limit is not None else None
            event.rsvps = await self._fetch_rsvps(event_id)
        self.reminders.init_reminders(event)
        return event

    async def parse_refresh(self, entity_id: str, entity: dict[str, Any]) -> int | None:
        if not entity.get("rsvp"):
            return None
        return await self._fetch_rsvps(entity_id)

    def refresh(self, entity_id: str, payload: int | None) -> None:
        if payload is not None:
            self.store.update_rsvps(entity_id, payload)

    def on_inserted(self, record: CalendarEvent) -> None:
        scheduled = self.reminders.schedule_event(record)
        print(
            f"[Calendar] new event id={record.id} title={record.title!r} "
            f"start={record.start.isoformat()} group={record.group or '-'} reminders={len(scheduled)}"
        )

    def on_removed(self, record: CalendarEvent) -> None:
        self.reminders.cancel_for_event(record.id)

    def describe(self, record: CalendarEvent) -> str:
        return f"event id={record.id} title={record.title!r}"
