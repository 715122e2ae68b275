from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import timedelta

from misc.errors import ConfigError

LEAD_TIME_RE = re.compile(r"^\s*(\d+)\s*([A-Za-z]+)\s*$")

UNIT_ALIASES = {
    "m": "minute",
    "min": "minute",
    "mins": "minute",
    "minute": "minute",
    "minutes": "minute",
    "h": "hour",
    "hr": "hour",
    "hrs": "hour",
    "hour": "hour",
    "hours": "hour",
    "d": "day",
    "day": "day",
    "days": "day",
}


@dataclass(frozen=True, slots=True)
class LeadTime:
    label: str
    amount: int
    unit: str

    @property
    def delta(self) -> timedelta:
        if self.unit == "minute":
            return timedelta(minutes=self.amount)
        if self.unit == "hour":
            return timedelta(hours=self.amount)
        return timedelta(days=self.amount)


def parse_lead_time(label: str) -> LeadTime:
    text = str(label or "").strip()
    m = LEAD_TIME_RE.fullmatch(text)
    if not m:
        raise ConfigError(f"Invalid reminder interval: {label!r}")
    unit = UNIT_ALIASES.get(m.group(2).lower())
    if unit is None:
        raise ConfigError(f"Invalid reminder interval unit: {label!r}")
    return LeadTime(label=text, amount=int(m.group(1)), unit=unit)


def parse_lead_times(raw: str | list[str] | None) -> list[LeadTime]:
    """Parse a comma separated list (or list) of labels, dropping duplicates."""
    if raw is None:
        return []
    items = raw.split(",") if isinstance(raw, str) else list(raw)
    out: list[LeadTime] = []
    seen: set[str] = set()
    for item in items:
        if not str(item).strip():
            continue
        lead = parse_lead_time(item)
        if lead.label in seen:
            continue
        seen.add(lead.label)
        out.append(lead)
    return out
