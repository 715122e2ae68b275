from __future__ import annotations

from enum import Enum


class UpstreamFetchError(RuntimeError):
    """Network or parse failure while pulling a feed; the tick is skipped."""


class NotifyError(RuntimeError):
    """The notifier could not deliver a message."""


class ConfigError(ValueError):
    """Unparsable lead-time label, rule tag or other configured value."""


class Rejection(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    NOT_OWNER = "NOT_OWNER"
    ALREADY_ACTIVE = "ALREADY_ACTIVE"
