from __future__ import annotations

import os
import re


def parse_str_set(raw: str | None) -> set[str]:
    if not raw:
        return set()
    return {tok.strip().lower() for tok in re.split(r"[,;]+", raw) if tok.strip()}


def parse_channel_id(raw: str | None) -> int:
    tok = (raw or "").strip()
    if re.fullmatch(r"\d{1,22}", tok):
        return int(tok)
    return 0


def parse_channel_map(raw: str | None) -> dict[str, int]:
    """Parse "TAG:channel_id,TAG:channel_id" into an upper-cased tag map."""
    out: dict[str, int] = {}
    if not raw:
        return out
    for tok in re.split(r"[\s,;]+", raw.strip()):
        if ":" not in tok:
            continue
        tag, _, cid = tok.partition(":")
        channel_id = parse_channel_id(cid)
        if tag.strip() and channel_id:
            out[tag.strip().upper()] = channel_id
    return out


def env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return float(default)
    try:
        return float(raw.strip())
    except ValueError:
        print(f"[CFG] invalid {name}={raw!r}; falling back to {default!r}")
        return float(default)


def env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return int(default)
    try:
        return int(raw.strip())
    except ValueError:
        print(f"[CFG] invalid {name}={raw!r}; falling back to {default!r}")
        return int(default)
