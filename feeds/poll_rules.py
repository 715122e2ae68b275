from __future__ import annotations

from fractions import Fraction
from pathlib import Path
from typing import Any

import yaml

from misc.errors import ConfigError
from state.models import PollRule

DEFAULT_POLL_RULES: dict[str, PollRule] = {
    "OFFICER": PollRule(type="OFFICER", percent_to_pass=1 / 2, length_in_days=14),
    "REGULAR": PollRule(type="REGULAR", percent_to_pass=2 / 3, length_in_days=7),
    "ADDON": PollRule(type="ADDON", percent_to_pass=3 / 4, length_in_days=14),
    "CHARTER": PollRule(type="CHARTER", percent_to_pass=3 / 4, length_in_days=14),
    "REMOVAL": PollRule(type="REMOVAL", percent_to_pass=2 / 3, length_in_days=14),
}


def _parse_fraction(value: Any, *, tag: str) -> float:
    try:
        out = float(Fraction(str(value).strip()))
    except (ValueError, ZeroDivisionError) as exc:
        raise ConfigError(f"Invalid percent_to_pass for poll rule {tag}: {value!r}") from exc
    if out <= 0 or out > 1:
        raise ConfigError(f"percent_to_pass for poll rule {tag} must be in (0, 1]: {value!r}")
    return out


def _parse_days(value: Any, *, tag: str) -> int:
    try:
        out = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid length_in_days for poll rule {tag}: {value!r}") from exc
    if out <= 0:
        raise ConfigError(f"length_in_days for poll rule {tag} must be positive: {value!r}")
    return out


def normalize_poll_rules(raw: dict[str, Any]) -> dict[str, PollRule]:
    rules_raw = raw.get("rules") if isinstance(raw.get("rules"), dict) else raw
    out: dict[str, PollRule] = {}
    for tag, cfg in rules_raw.items():
        key = str(tag or "").strip().upper()
        if not key:
            continue
        if not isinstance(cfg, dict):
            raise ConfigError(f"Poll rule {key} must be a mapping")
        out[key] = PollRule(
            type=key,
            percent_to_pass=_parse_fraction(cfg.get("percent_to_pass"), tag=key),
            length_in_days=_parse_days(cfg.get("length_in_days"), tag=key),
        )
    return out


def load_poll_rules(path: str | None) -> dict[str, PollRule]:
    """Load the poll rule table from YAML, falling back to the built-in table."""
    if not path:
        return dict(DEFAULT_POLL_RULES)
    p = Path(path)
    if not p.exists():
        print(f"[CFG] poll rules file not found path={path}; using built-in rules")
        return dict(DEFAULT_POLL_RULES)
    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ConfigError("Poll rules file must contain a top-level mapping")
    rules = normalize_poll_rules(raw)
    if not rules:
        raise ConfigError(f"Poll rules file defines no rules: {path}")
    return rules


def rule_for_tag(rules: dict[str, PollRule], tag: str | None) -> PollRule:
    key = str(tag or "").strip().upper()
    rule = rules.get(key)
    if rule is None:
        raise ConfigError(f"Unsupported voting thread tag: {tag!r}")
    return rule
