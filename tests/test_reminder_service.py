from __future__ import annotations

import inspect
import unittest
from datetime import datetime, timedelta, timezone

from misc.errors import NotifyError
from reminders.intervals import parse_lead_times
from reminders.service import ReminderScheduler
from reminders.service import event_reminder_key
from reminders.service import poll_closed_key
from state.event_store import EventStore
from state.models import CalendarEvent
from state.models import PollRule
from state.models import PollThread
from state.poll_store import PollStore

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeTimers:
    def __init__(self, now: datetime):
        self.current = now
        self.scheduled: dict[str, tuple[datetime, object]] = {}

    def now(self) -> datetime:
        return self.current

    def has(self, key: str) -> bool:
        return key in self.scheduled

    def schedule_at(self, key, when, callback) -> bool:
        if key in self.scheduled or when <= self.current:
            return False
        self.scheduled[key] = (when, callback)
        return True

    def cancel(self, key: str) -> bool:
        return self.scheduled.pop(key, None) is not None

    def cancel_prefix(self, prefix: str) -> int:
        keys = [k for k in self.scheduled if k.startswith(prefix)]
        for key in keys:
            del self.scheduled[key]
        return len(keys)

    async def fire(self, key: str) -> None:
        when, callback = self.scheduled.pop(key)
        self.current = when
        result = callback()
        if inspect.isawaitable(result):
            await result


class RecordingNotifier:
    def __init__(self, *, fail: bool = False):
        self.fail = fail
        self.sent: list[tuple[str, object, str]] = []

    async def notify(self, selector, record, context):
        self.sent.append((selector, record, context))
        if self.fail:
            raise NotifyError("channel unavailable")


def _build(lead_times: str = "30 minutes,2 hours", *, fail: bool = False):
    timers = FakeTimers(NOW)
    notifier = RecordingNotifier(fail=fail)
    events = EventStore()
    polls = PollStore()
    scheduler = ReminderScheduler(
        timers=timers,
        event_store=events,
        poll_store=polls,
        notifier=notifier,
        lead_times=parse_lead_times(lead_times),
    )
    return scheduler, timers, notifier, events, polls


def _event(event_id: str, start: datetime) -> CalendarEvent:
    return CalendarEvent(id=event_id, title="Sunday Op", start=start, url="https://forums.example/e")


class EventReminderTests(unittest.IsolatedAsyncioTestCase):
    async def test_elapsed_lead_time_is_skipped_but_later_one_fires(self):
        scheduler, timers, notifier, events, _ = _build()
        event = _event("7", NOW + timedelta(minutes=45))
        scheduler.init_reminders(event)
        events.add(event)

        scheduled = scheduler.schedule_event(event)

        self.assertEqual(scheduled, ["30 minutes"])
        self.assertEqual(event.reminders, {"30 minutes": False, "2 hours": False})
        self.assertEqual(set(timers.scheduled), {event_reminder_key("7", "30 minutes")})
        when, _ = timers.scheduled[event_reminder_key("7", "30 minutes")]
        self.assertEqual(when, NOW + timedelta(minutes=15))

        await timers.fire(event_reminder_key("7", "30 minutes"))

        self.assertEqual(notifier.sent, [("events", event, "30 minutes")])
        self.assertTrue(event.reminders["30 minutes"])
        self.assertFalse(event.reminders["2 hours"])

    async def test_reminder_fires_at_most_once(self):
        scheduler, timers, notifier, events, _ = _build()
        event = _event("7", NOW + timedelta(hours=3))
        scheduler.init_reminders(event)
        events.add(event)
        scheduler.schedule_event(event)

        self.assertTrue(await scheduler.fire_event_reminder("7", "2 hours"))
        self.assertFalse(await scheduler.fire_event_reminder("7", "2 hours"))
        self.assertEqual(len(notifier.sent), 1)

    async def test_notify_failure_still_marks_reminder_fired(self):
        scheduler, timers, notifier, events, _ = _build(fail=True)
        event = _event("7", NOW + timedelta(hours=3))
        scheduler.init_reminders(event)
        events.add(event)

        self.assertTrue(await scheduler.fire_event_reminder("7", "30 minutes"))
        self.assertTrue(event.reminders["30 minutes"])
        self.assertFalse(await scheduler.fire_event_reminder("7", "30 minutes"))
        self.assertEqual(len(notifier.sent), 1)

    async def test_removed_event_turns_job_into_noop(self):
        scheduler, timers, notifier, events, _ = _build()
        event = _event("7", NOW + timedelta(hours=3))
        scheduler.init_reminders(event)
        events.add(event)
        scheduler.schedule_event(event)
        events.remove("7")

        await timers.fire(event_reminder_key("7", "2 hours"))
        self.assertEqual(notifier.sent, [])

    async def test_cancel_for_event_drops_all_of_its_jobs(self):
        scheduler, timers, _, events, _ = _build()
        for eid in ("7", "70"):
            event = _event(eid, NOW + timedelta(hours=3))
            scheduler.init_reminders(event)
            events.add(event)
            scheduler.schedule_event(event)

        self.assertEqual(scheduler.cancel_for_event("7"), 2)
        self.assertEqual(
            set(timers.scheduled),
            {event_reminder_key("70", "30 minutes"), event_reminder_key("70", "2 hours")},
        )

    async def test_duplicate_schedule_does_not_double_book(self):
        scheduler, timers, _, events, _ = _build()
        event = _event("7", NOW + timedelta(hours=3))
        scheduler.init_reminders(event)
        events.add(event)
        self.assertEqual(len(scheduler.schedule_event(event)), 2)
        self.assertEqual(scheduler.schedule_event(event), [])
        self.assertEqual(len(timers.scheduled), 2)


class PollCloseTests(unittest.IsolatedAsyncioTestCase):
    async def test_close_notification_goes_out_once(self):
        scheduler, timers, notifier, _, polls = _build()
        poll = PollThread(
            id="10",
            rule=PollRule(type="REGULAR", percent_to_pass=2 / 3, length_in_days=7),
            question="Accept?",
            close_date=NOW + timedelta(days=7),
            url="https://forums.example/topic/10",
        )
        polls.add(poll)
        self.assertTrue(scheduler.schedule_poll_close(poll))
        self.assertTrue(timers.has(poll_closed_key("10")))

        await timers.fire(poll_closed_key("10"))
        self.assertFalse(await scheduler.notify_poll_closed(poll))

        self.assertEqual(notifier.sent, [("polls", poll, "closed")])
        self.assertTrue(poll.closed_notified)

    async def test_cancel_for_poll(self):
        scheduler, timers, notifier, _, polls = _build()
        poll = PollThread(
            id="11",
            rule=PollRule(type="OFFICER", percent_to_pass=1 / 2, length_in_days=14),
            question="Officer?",
            close_date=NOW + timedelta(days=1),
            url="",
        )
        polls.add(poll)
        scheduler.schedule_poll_close(poll)
        self.assertTrue(scheduler.cancel_for_poll("11"))
        self.assertFalse(timers.has(poll_closed_key("11")))


if __name__ == "__main__":
    unittest.main()
