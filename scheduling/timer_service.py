from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from datetime import datetime
from datetime import timedelta
from typing import Any
from typing import Callable

from state.models import utc_now


@dataclass(slots=True)
class ScheduledJob:
    key: str
    next_run: datetime
    interval_seconds: float | None
    task: asyncio.Task | None = None


async def _invoke(callback: Callable[[], Any]) -> None:
    result = callback()
    if inspect.isawaitable(result):
        await result


class TimerService:
    """Keyed one-shot and periodic callbacks on the running asyncio loop.

    One-shot jobs drop their key before the callback runs, so a job fires at
    most once. Periodic jobs keep going when a callback raises.
    """

    def __init__(self, *, now_func: Callable[[], datetime] | None = None) -> None:
        self._now_func = now_func or utc_now
        self._jobs: dict[str, ScheduledJob] = {}

    def now(self) -> datetime:
        return self._now_func()

    def has(self, key: str) -> bool:
        return key in self._jobs

    def jobs(self) -> list[ScheduledJob]:
        return sorted(self._jobs.values(), key=lambda j: j.next_run)

    def schedule_at(self, key: str, when: datetime, callback: Callable[[], Any]) -> bool:
        if key in self._jobs:
            return False
        delay = (when - self.now()).total_seconds()
        if delay <= 0:
            return False
        job = ScheduledJob(key=key, next_run=when, interval_seconds=None)
        self._jobs[key] = job
        job.task = asyncio.create_task(self._run_once(job, delay, callback))
        return True

    def schedule_every(
        self,
        key: str,
        interval_seconds: float,
        callback: Callable[[], Any],
        *,
        run_immediately: bool = False,
    ) -> bool:
        if key in self._jobs:
            return False
        interval = max(0.01, float(interval_seconds))
        first_delay = 0.0 if run_immediately else interval
        job = ScheduledJob(
            key=key,
            next_run=self.now() + timedelta(seconds=first_delay),
            interval_seconds=interval,
        )
        self._jobs[key] = job
        job.task = asyncio.create_task(self._run_every(job, first_delay, callback))
        return True

    def cancel(self, key: str) -> bool:
        job = self._jobs.pop(key, None)
        if job is None:
            return False
        if job.task is not None and not job.task.done() and job.task is not _current_task():
            job.task.cancel()
        return True

    def cancel_prefix(self, prefix: str) -> int:
        keys = [k for k in self._jobs if k.startswith(prefix)]
        for key in keys:
            self.cancel(key)
        return len(keys)

    def cancel_all(self) -> int:
        keys = list(self._jobs)
        for key in keys:
            self.cancel(key)
        if keys:
            print(f"[Timers] cancelled jobs={len(keys)}")
        return len(keys)

    async def _run_once(self, job: ScheduledJob, delay: float, callback: Callable[[], Any]) -> None:
        await asyncio.sleep(delay)
        if self._jobs.get(job.key) is not job:
            return
        del self._jobs[job.key]
        try:
            await _invoke(callback)
        except Exception as e:
            print(f"[Timers] job={job.key} error: {e}")

    async def _run_every(self, job: ScheduledJob, first_delay: float, callback: Callable[[], Any]) -> None:
        await asyncio.sleep(first_delay)
        while self._jobs.get(job.key) is job:
            try:
                await _invoke(callback)
            except Exception as e:
                print(f"[Timers] job={job.key} error: {e}")
            job.next_run = self.now() + timedelta(seconds=job.interval_seconds or 0)
            await asyncio.sleep(job.interval_seconds or 0)


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
