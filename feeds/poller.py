from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from datetime import timezone
from typing import Any

from misc.errors import ConfigError


def parse_timestamp(value: Any) -> datetime:
    """Parse an upstream ISO-8601 timestamp into an aware UTC datetime."""
    text = str(value or "").strip()
    if not text:
        raise ValueError("missing timestamp")
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass(slots=True)
class TickPlan:
    empty: bool
    seen_ids: set[str] = field(default_factory=set)
    refreshes: list[tuple[str, Any]] = field(default_factory=list)
    new_records: list[Any] = field(default_factory=list)


@dataclass(slots=True)
class TickResult:
    created: list[Any] = field(default_factory=list)
    expired: list[Any] = field(default_factory=list)
    dropped: list[Any] = field(default_factory=list)


class FeedPoller:
    """Periodic fetch, diff and ingest loop for one upstream listing.

    A tick is split so that registry mutation never straddles an ``await``:
    everything upstream (listing plus per-entity lookups) is fetched and
    parsed first, the diff is applied synchronously, and notifications about
    the outcome go out last. Any failure in the first phase leaves the
    registry untouched.

    Subclasses supply the entity hooks below.
    """

    label = "Feed"
    job_key = "feed_updates"

    def __init__(
        self,
        *,
        source,
        timers,
        store,
        reminders,
        url: str,
        interval_hours: float,
    ) -> None:
        self.source = source
        self.timers = timers
        self.store = store
        self.reminders = reminders
        self.url = url
        self.interval_seconds = max(60.0, float(interval_hours) * 3600.0)
        # ids that finished while still listed; not re-ingested until they drop off
        self._retired: set[str] = set()

    # -- lifecycle --

    def start(self) -> bool:
        started = self.timers.schedule_every(
            self.job_key,
            self.interval_seconds,
            self.update,
            run_immediately=True,
        )
        if started:
            print(f"[{self.label}] polling started url={self.url} every_s={int(self.interval_seconds)}")
        return started

    def clear(self) -> None:
        if self.timers.cancel(self.job_key):
            print(f"[{self.label}] polling stopped")

    # -- hooks --

    def entity_id(self, entity: dict[str, Any]) -> str:
        return str(entity.get("id") or "").strip()

    def current_entities(self, raw: list[dict[str, Any]], now: datetime) -> list[dict[str, Any]]:
        return list(raw)

    async def build_record(self, entity: dict[str, Any], now: datetime) -> Any | None:
        raise NotImplementedError

    async def parse_refresh(self, entity_id: str, entity: dict[str, Any]) -> Any:
        return None

    def refresh(self, entity_id: str, payload: Any) -> None:
        return None

    def remove_if_old(self, entity_id: str, now: datetime) -> bool:
        return self.store.remove_if_old(entity_id)

    def on_inserted(self, record: Any) -> None:
        return None

    def on_removed(self, record: Any) -> None:
        return None

    def describe(self, record: Any) -> str:
        return str(getattr(record, "id", record))

    async def after_tick(self, result: TickResult) -> None:
        return None

    # -- tick --

    async def update(self) -> TickResult | None:
        now = self.timers.now()
        try:
            raw = await self.source.fetch_listing(self.url)
            plan = await self._plan(raw, now)
        except Exception as e:
            print(f"[{self.label}] update failed: {e}")
            return None

        result = self._apply(plan, now)
        await self.after_tick(result)
        return result

    async def _plan(self, raw: list[dict[str, Any]], now: datetime) -> TickPlan:
        entities = self.current_entities(raw, now)
        plan = TickPlan(empty=not entities)
        for entity in entities:
            entity_id = self.entity_id(entity)
            if not entity_id:
                continue
            plan.seen_ids.add(entity_id)
            if entity_id in self._retired:
                continue
            if self.store.has(entity_id):
                plan.refreshes.append((entity_id, await self.parse_refresh(entity_id, entity)))
                continue
            try:
                record = await self.build_record(entity, now)
            except ConfigError as e:
                print(f"[{self.label}] skipped id={entity_id}: {e}")
                continue
            if record is not None:
                plan.new_records.append(record)
        return plan

    def _apply(self, plan: TickPlan, now: datetime) -> TickResult:
        result = TickResult()

        if plan.empty:
            # The listing may be empty only transiently, so only records that
            # are finished on their own terms go.
            for record in self.store.list():
                if self.remove_if_old(record.id, now):
                    self.on_removed(record)
                    self._retired.add(str(record.id))
                    result.expired.append(record)
                    print(f"[{self.label}] deleted {self.describe(record)}")
            return result

        self._retired.intersection_update(plan.seen_ids)

        for entity_id, payload in plan.refreshes:
            self.refresh(entity_id, payload)
            record = self.store.get(entity_id)
            if record is not None and self.remove_if_old(entity_id, now):
                self.on_removed(record)
                self._retired.add(entity_id)
                result.expired.append(record)
                print(f"[{self.label}] deleted {self.describe(record)}")

        for record in self.store.list():
            if str(record.id) in plan.seen_ids:
                continue
            if self.store.remove(record.id):
                self.on_removed(record)
                result.dropped.append(record)
                print(f"[{self.label}] dropped {self.describe(record)} reason=no_longer_listed")

        for record in plan.new_records:
            if not self.store.add(record):
                continue
            self.on_inserted(record)
            result.created.append(record)

        return result
