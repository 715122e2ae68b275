from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from typing import Any
from typing import Callable


def _default_false(*args, **kwargs) -> bool:
    return False


@dataclass(frozen=True)
class CommandDeps:
    # Core/shared
    send_chunked: Callable | None = None
    timers: Any = None
    started_at: datetime | None = None

    # Registries (read-only from commands)
    event_store: Any = None
    poll_store: Any = None
    alarm_store: Any = None

    # Mutating entry points
    group_matcher: Any = None
    notifier: Any = None

    # Lifecycle
    shutdown_func: Callable | None = None

    # Flights
    flight_games: tuple[str, ...] = ("BMS", "DCS")


@dataclass(frozen=True)
class CommandGates:
    user_is_admin: Callable[[Any], bool] = _default_false
    admin_roles: set[str] = field(default_factory=set)
