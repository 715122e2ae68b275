from __future__ import annotations

import itertools
from typing import Generic
from typing import TypeVar

from state.models import Flight
from state.models import Group

T = TypeVar("T", Group, Flight)


class GroupStore(Generic[T]):
    """Looking-for-group records of one kind (groups or flights).

    Ids come from a per-store counter and are never reused, even after
    records are removed.
    """

    def __init__(self) -> None:
        self._records: dict[int, T] = {}
        self._ids = itertools.count(1)

    def __len__(self) -> int:
        return len(self._records)

    def next_id(self) -> int:
        return next(self._ids)

    def has(self, record_id: int) -> bool:
        return int(record_id) in self._records

    def get(self, record_id: int) -> T | None:
        return self._records.get(int(record_id))

    def add(self, record: T) -> bool:
        if record.id in self._records:
            return False
        self._records[record.id] = record
        return True

    def remove(self, record_id: int) -> bool:
        return self._records.pop(int(record_id), None) is not None

    def owned_by(self, owner_id: int) -> T | None:
        for record in self._records.values():
            if record.owner_id == int(owner_id):
                return record
        return None

    def list(self) -> list[T]:
        return list(self._records.values())
