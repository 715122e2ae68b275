from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from datetime import timedelta

from misc.errors import Rejection
from state.group_store import GroupStore
from state.models import Flight
from state.models import Group
from state.models import GroupType

DEFAULT_EXPIRY_HOURS = 8.0


@dataclass(slots=True)
class CreateResult:
    record: Group | Flight | None = None
    rejection: Rejection | None = None

    @property
    def ok(self) -> bool:
        return self.rejection is None


@dataclass(slots=True)
class JoinResult:
    filled: bool = False
    record: Group | Flight | None = None
    rejection: Rejection | None = None


@dataclass(slots=True)
class DeleteResult:
    deleted: bool = False
    record: Group | Flight | None = None
    rejection: Rejection | None = None


def expiry_key(group_type: GroupType, record_id: int) -> str:
    prefix = "remove_group" if group_type is GroupType.LFG else "remove_flight"
    return f"{prefix}:{record_id}"


class GroupMatcher:
    """Looking-for-group and pickup-flight records with timed expiry.

    Expected rejections (unknown id, non-owner delete, second active record)
    come back as typed results rather than exceptions.
    """

    def __init__(
        self,
        *,
        timers,
        groups: GroupStore[Group],
        flights: GroupStore[Flight],
        expiry_hours: float = DEFAULT_EXPIRY_HOURS,
    ) -> None:
        self.timers = timers
        self.groups = groups
        self.flights = flights
        self.expiry = timedelta(hours=max(0.01, float(expiry_hours)))

    def store_for(self, group_type: GroupType) -> GroupStore:
        return self.groups if group_type is GroupType.LFG else self.flights

    def list(self, group_type: GroupType) -> list[Group] | list[Flight]:
        return self.store_for(group_type).list()

    def _track(self, group_type: GroupType, record: Group | Flight) -> None:
        store = self.store_for(group_type)
        store.add(record)

        def _expire() -> None:
            if store.remove(record.id):
                print(f"[LFG] expired {group_type.value} id={record.id} owner={record.owner_name!r}")

        self.timers.schedule_at(expiry_key(group_type, record.id), self.timers.now() + self.expiry, _expire)

    def create_group(self, *, owner_id: int, owner_name: str, needed: int, name: str) -> CreateResult:
        if self.groups.owned_by(owner_id) is not None:
            return CreateResult(rejection=Rejection.ALREADY_ACTIVE)
        group = Group(
            id=self.groups.next_id(),
            owner_id=int(owner_id),
            owner_name=str(owner_name),
            name=str(name),
            needed=max(1, int(needed)),
            created_at=self.timers.now(),
        )
        self._track(GroupType.LFG, group)
        print(f"[LFG] created group id={group.id} owner={group.owner_name!r} needed={group.needed} name={group.name!r}")
        return CreateResult(record=group)

    def create_flight(
        self,
        *,
        owner_id: int,
        owner_name: str,
        game: str,
        time: datetime,
        details: str,
    ) -> CreateResult:
        if self.flights.owned_by(owner_id) is not None:
            return CreateResult(rejection=Rejection.ALREADY_ACTIVE)
        flight = Flight(
            id=self.flights.next_id(),
            owner_id=int(owner_id),
            owner_name=str(owner_name),
            game=str(game).upper(),
            time=time,
            details=str(details),
            created_at=self.timers.now(),
        )
        self._track(GroupType.FLIGHT, flight)
        print(f"[LFG] created flight id={flight.id} owner={flight.owner_name!r} game={flight.game}")
        return CreateResult(record=flight)

    def join(self, group_type: GroupType, record_id: int, user_id: int) -> JoinResult:
        """Add ``user_id`` to the record.

        A group reports ``filled`` once its participant count reaches
        ``needed``; the caller calls ``remove`` before notifying anyone.
        Flights never fill.
        """
        record = self.store_for(group_type).get(record_id)
        if record is None:
            return JoinResult(rejection=Rejection.NOT_FOUND)
        record.found.append(int(user_id))
        if group_type is GroupType.LFG and len(record.found) == record.needed:
            print(f"[LFG] group full id={record.id} name={record.name!r}")
            return JoinResult(filled=True, record=record)
        return JoinResult(record=record)

    def delete(self, group_type: GroupType, record_id: int, requester_id: int) -> DeleteResult:
        record = self.store_for(group_type).get(record_id)
        if record is None:
            return DeleteResult(rejection=Rejection.NOT_FOUND)
        if record.owner_id != int(requester_id):
            return DeleteResult(record=record, rejection=Rejection.NOT_OWNER)
        self.remove(group_type, record_id)
        return DeleteResult(deleted=True, record=record)

    def remove(self, group_type: GroupType, record_id: int) -> bool:
        removed = self.store_for(group_type).remove(record_id)
        self.timers.cancel(expiry_key(group_type, int(record_id)))
        return removed
