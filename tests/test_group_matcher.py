from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone

from lfg.service import GroupMatcher
from lfg.service import expiry_key
from misc.errors import Rejection
from state.group_store import GroupStore
from state.models import GroupType

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeTimers:
    def __init__(self, now: datetime):
        self.current = now
        self.scheduled: dict[str, tuple[datetime, object]] = {}

    def now(self) -> datetime:
        return self.current

    def schedule_at(self, key, when, callback) -> bool:
        if key in self.scheduled or when <= self.current:
            return False
        self.scheduled[key] = (when, callback)
        return True

    def cancel(self, key: str) -> bool:
        return self.scheduled.pop(key, None) is not None

    def fire(self, key: str) -> None:
        when, callback = self.scheduled.pop(key)
        self.current = when
        callback()


def _matcher(expiry_hours: float = 8.0) -> tuple[GroupMatcher, FakeTimers]:
    timers = FakeTimers(NOW)
    matcher = GroupMatcher(
        timers=timers,
        groups=GroupStore(),
        flights=GroupStore(),
        expiry_hours=expiry_hours,
    )
    return matcher, timers


class GroupMatcherTests(unittest.TestCase):
    def test_fill_then_join_after_removal_is_rejected(self):
        matcher, timers = _matcher()
        group = matcher.create_group(owner_id=1, owner_name="owner", needed=2, name="Arma night").record

        first = matcher.join(GroupType.LFG, group.id, 2)
        self.assertFalse(first.filled)
        self.assertIs(first.record, group)

        second = matcher.join(GroupType.LFG, group.id, 3)
        self.assertTrue(second.filled)
        self.assertEqual(group.found, [2, 3])

        matcher.remove(GroupType.LFG, group.id)
        self.assertNotIn(expiry_key(GroupType.LFG, group.id), timers.scheduled)

        third = matcher.join(GroupType.LFG, group.id, 4)
        self.assertFalse(third.filled)
        self.assertIs(third.rejection, Rejection.NOT_FOUND)
        self.assertIsNone(third.record)

    def test_one_active_record_per_owner_per_kind(self):
        matcher, _ = _matcher()
        self.assertTrue(matcher.create_group(owner_id=1, owner_name="a", needed=3, name="x").ok)
        again = matcher.create_group(owner_id=1, owner_name="a", needed=3, name="y")
        self.assertIs(again.rejection, Rejection.ALREADY_ACTIVE)

        flight = matcher.create_flight(owner_id=1, owner_name="a", game="dcs", time=NOW, details="CAP")
        self.assertTrue(flight.ok)
        self.assertEqual(flight.record.game, "DCS")

    def test_expiry_removes_without_notification(self):
        matcher, timers = _matcher(expiry_hours=8)
        group = matcher.create_group(owner_id=1, owner_name="a", needed=4, name="x").record
        key = expiry_key(GroupType.LFG, group.id)
        self.assertEqual(timers.scheduled[key][0], NOW + timedelta(hours=8))

        timers.fire(key)

        self.assertEqual(matcher.list(GroupType.LFG), [])
        self.assertTrue(matcher.create_group(owner_id=1, owner_name="a", needed=4, name="y").ok)

    def test_group_and_flight_expiry_keys_do_not_collide(self):
        matcher, timers = _matcher()
        group = matcher.create_group(owner_id=1, owner_name="a", needed=2, name="x").record
        flight = matcher.create_flight(owner_id=2, owner_name="b", game="BMS", time=NOW, details="").record
        self.assertEqual(group.id, flight.id)
        self.assertEqual(
            set(timers.scheduled),
            {expiry_key(GroupType.LFG, group.id), expiry_key(GroupType.FLIGHT, flight.id)},
        )

    def test_delete_requires_owner(self):
        matcher, timers = _matcher()
        group = matcher.create_group(owner_id=1, owner_name="a", needed=2, name="x").record

        denied = matcher.delete(GroupType.LFG, group.id, 99)
        self.assertFalse(denied.deleted)
        self.assertIs(denied.rejection, Rejection.NOT_OWNER)
        self.assertEqual(len(matcher.list(GroupType.LFG)), 1)

        missing = matcher.delete(GroupType.LFG, 404, 1)
        self.assertIs(missing.rejection, Rejection.NOT_FOUND)

        done = matcher.delete(GroupType.LFG, group.id, 1)
        self.assertTrue(done.deleted)
        self.assertEqual(matcher.list(GroupType.LFG), [])
        self.assertEqual(timers.scheduled, {})

    def test_flights_never_fill(self):
        matcher, _ = _matcher()
        flight = matcher.create_flight(owner_id=1, owner_name="a", game="BMS", time=NOW, details="").record
        for uid in range(2, 10):
            self.assertFalse(matcher.join(GroupType.FLIGHT, flight.id, uid).filled)
        self.assertEqual(len(flight.found), 8)

    def test_duplicate_and_owner_joins_are_kept(self):
        matcher, _ = _matcher()
        group = matcher.create_group(owner_id=1, owner_name="a", needed=3, name="x").record
        matcher.join(GroupType.LFG, group.id, 1)
        matcher.join(GroupType.LFG, group.id, 5)
        result = matcher.join(GroupType.LFG, group.id, 5)
        self.assertTrue(result.filled)
        self.assertEqual(group.found, [1, 5, 5])

    def test_ids_increase_after_removal(self):
        matcher, _ = _matcher()
        first = matcher.create_group(owner_id=1, owner_name="a", needed=2, name="x").record
        matcher.remove(GroupType.LFG, first.id)
        second = matcher.create_group(owner_id=1, owner_name="a", needed=2, name="y").record
        self.assertGreater(second.id, first.id)


if __name__ == "__main__":
    unittest.main()
