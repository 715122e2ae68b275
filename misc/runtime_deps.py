from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class RuntimeBootDeps:
    # Anything with start() -> bool and clear()
    pollers: tuple[Any, ...]
    timers: Any
