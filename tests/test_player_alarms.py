from __future__ import annotations

import unittest
from types import SimpleNamespace

from jobs.player_alarms import PlayerAlarmJob
from jobs.player_alarms import extract_player_count
from misc.errors import NotifyError
from misc.errors import UpstreamFetchError
from state.alarm_store import AlarmStore


class FakeSource:
    def __init__(self, payload):
        self.payload = payload
        self.calls = 0

    async def fetch_json(self, url: str):
        self.calls += 1
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class RecordingNotifier:
    def __init__(self, *, fail_for: set[int] | None = None):
        self.fail_for = fail_for or set()
        self.sent: list[tuple[str, object, str]] = []

    async def notify(self, selector, record, context):
        self.sent.append((selector, record, context))
        if int(selector.split(":", 1)[1]) in self.fail_for:
            raise NotifyError("dm closed")


def _job(payload, *, notifier=None, alarms=None, url="https://status.example/server.json"):
    timers = SimpleNamespace(
        started=[],
        schedule_every=lambda key, interval, cb: timers.started.append((key, interval)) or True,
        cancel=lambda key: True,
    )
    return PlayerAlarmJob(
        source=FakeSource(payload),
        timers=timers,
        alarms=alarms or AlarmStore(),
        notifier=notifier or RecordingNotifier(),
        url=url,
        interval_seconds=30,
    )


class PlayerAlarmJobTests(unittest.IsolatedAsyncioTestCase):
    async def test_reached_alarms_fire_once_and_are_removed(self):
        job = _job({"players": 25})
        job.alarms.register(20, 1)
        job.alarms.register(30, 2)

        fired = await job.update()

        self.assertEqual(fired, [1])
        self.assertIsNone(job.alarms.threshold_for(1))
        self.assertEqual(job.alarms.threshold_for(2), 30)
        self.assertEqual(job.notifier.sent, [("user:1", {"threshold": 20, "players": 25}, "player_count")])

        self.assertEqual(await job.update(), [])
        self.assertEqual(len(job.notifier.sent), 1)

    async def test_no_alarms_skips_fetch(self):
        job = _job({"players": 25})
        self.assertEqual(await job.update(), [])
        self.assertEqual(job.source.calls, 0)

    async def test_fetch_failure_keeps_alarms(self):
        job = _job(UpstreamFetchError("GET status failed"))
        job.alarms.register(1, 5)
        self.assertEqual(await job.update(), [])
        self.assertEqual(job.alarms.count(), 1)

    async def test_notify_failure_does_not_restore_alarm(self):
        job = _job({"players": 40}, notifier=RecordingNotifier(fail_for={1}))
        job.alarms.register(10, 1)
        job.alarms.register(10, 2)

        self.assertEqual(await job.update(), [1, 2])
        self.assertEqual(job.alarms.count(), 0)
        self.assertEqual(len(job.notifier.sent), 2)

    def test_start_requires_url(self):
        self.assertFalse(_job({}, url="").start())
        job = _job({})
        self.assertTrue(job.start())
        self.assertEqual(job.timers.started, [("player_count_updates", 30)])


class ExtractPlayerCountTests(unittest.TestCase):
    def test_field_forms(self):
        self.assertEqual(extract_player_count({"players": "12"}, "players"), 12)
        self.assertEqual(extract_player_count({"players": [{}, {}, {}]}, "players"), 3)
        self.assertEqual(extract_player_count({"numplayers": 7}, "numplayers"), 7)
        self.assertEqual(extract_player_count(9, "players"), 9)

    def test_missing_field_raises(self):
        with self.assertRaises(TypeError):
            extract_player_count({}, "players")


if __name__ == "__main__":
    unittest.main()
