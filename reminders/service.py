from __future__ import annotations

from state.event_store import EventStore
from state.models import CalendarEvent
from state.models import PollThread
from state.poll_store import PollStore
from reminders.intervals import LeadTime


def event_reminder_key(event_id: str, label: str) -> str:
    return f"event_reminder:{event_id}:{label}"


def poll_closed_key(poll_id: str) -> str:
    return f"poll_closed:{poll_id}"


class ReminderScheduler:
    """One-shot reminder jobs for calendar events and poll closures.

    Jobs carry only ids; the record is looked up again when the job fires so
    a record removed in the meantime turns the job into a no-op.
    """

    def __init__(
        self,
        *,
        timers,
        event_store: EventStore,
        poll_store: PollStore,
        notifier,
        lead_times: list[LeadTime],
    ) -> None:
        self.timers = timers
        self.event_store = event_store
        self.poll_store = poll_store
        self.notifier = notifier
        self.lead_times = list(lead_times)

    def init_reminders(self, event: CalendarEvent) -> None:
        event.reminders = {lead.label: False for lead in self.lead_times}

    def schedule_event(self, event: CalendarEvent) -> list[str]:
        """Schedule every lead time still in the future; returns the labels scheduled."""
        now = self.timers.now()
        scheduled: list[str] = []
        for lead in self.lead_times:
            event.reminders.setdefault(lead.label, False)
            fire_at = event.start - lead.delta
            if fire_at <= now:
                print(f"[Reminders] skipped event={event.id} interval={lead.label!r} reason=elapsed")
                continue
            key = event_reminder_key(event.id, lead.label)
            if self.timers.schedule_at(key, fire_at, self._event_job(event.id, lead.label)):
                scheduled.append(lead.label)
        return scheduled

    def _event_job(self, event_id: str, label: str):
        async def _job() -> None:
            await self.fire_event_reminder(event_id, label)

        return _job

    async def fire_event_reminder(self, event_id: str, label: str) -> bool:
        event = self.event_store.get(event_id)
        if event is None or event.reminders.get(label, True):
            return False
        event.reminders[label] = True
        print(f"[Reminders] fired event={event.id} interval={label!r} title={event.title!r}")
        try:
            await self.notifier.notify("events", event, label)
        except Exception as e:
            print(f"[Reminders] notify failed event={event.id} interval={label!r}: {e}")
        return True

    def cancel_for_event(self, event_id: str) -> int:
        return self.timers.cancel_prefix(f"event_reminder:{event_id}:")

    def schedule_poll_close(self, poll: PollThread) -> bool:
        return self.timers.schedule_at(poll_closed_key(poll.id), poll.close_date, self._poll_job(poll.id))

    def _poll_job(self, poll_id: str):
        async def _job() -> None:
            await self.fire_poll_closed(poll_id)

        return _job

    async def fire_poll_closed(self, poll_id: str) -> bool:
        poll = self.poll_store.get(poll_id)
        if poll is None:
            return False
        return await self.notify_poll_closed(poll)

    async def notify_poll_closed(self, poll: PollThread) -> bool:
        if poll.closed_notified:
            return False
        poll.closed_notified = True
        print(f"[Polls] closed poll={poll.id} question={poll.question!r} passing={poll.passing}")
        try:
            await self.notifier.notify("polls", poll, "closed")
        except Exception as e:
            print(f"[Polls] notify failed poll={poll.id} status=closed: {e}")
        return True

    def cancel_for_poll(self, poll_id: str) -> bool:
        return self.timers.cancel(poll_closed_key(poll_id))
