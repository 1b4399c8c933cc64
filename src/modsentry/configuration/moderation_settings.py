"""Typed accessors for the ``moderation:`` section of the application config."""

from typing import Any, Dict, Tuple

DEFAULT_MOD_LOG_CHANNEL_NAMES: Tuple[str, ...] = ("mod-log", "modlog", "mod-logs", "audit-log", "logs")

DEFAULT_NOTICE_LIFETIMES: Dict[str, float] = {
    "captcha": 30.0,
    "warn": 20.0,
    "delete": 15.0,
    "mute": 15.0,
    "kick": 20.0,
}


class ModerationSettings:
    """Helper exposing typed accessors for the ``moderation:`` config section.

    Like the rest of the configuration layer it never raises on bad input:
    missing or malformed values fall back to the defaults the bot ships with.
    """

    def __init__(self, data: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = data or {}

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value for `key` or `default` if missing."""
        return self.data.get(key, default)

    def as_dict(self) -> Dict[str, Any]:
        """Return the underlying mapping."""
        return self.data

    @property
    def history_window(self) -> int:
        return max(0, int(self.data.get("history_window", 5)))

    @property
    def captcha_timeout_seconds(self) -> int:
        return int(self.data.get("captcha_timeout_seconds", 5 * 60))

    @property
    def mute_timeout_seconds(self) -> int:
        return int(self.data.get("mute_timeout_seconds", 10 * 60))

    @property
    def notice_lifetimes(self) -> Dict[str, float]:
        configured = self.data.get("notice_lifetimes", {})
        lifetimes = dict(DEFAULT_NOTICE_LIFETIMES)
        if isinstance(configured, dict):
            for key, value in configured.items():
                try:
                    lifetimes[str(key)] = float(value)
                except (TypeError, ValueError):
                    continue
        return lifetimes

    def notice_lifetime(self, kind: str) -> float:
        """Seconds a public notice of ``kind`` stays up before auto-deletion."""
        return self.notice_lifetimes.get(kind, DEFAULT_NOTICE_LIFETIMES["warn"])

    @property
    def mod_log_channel_names(self) -> Tuple[str, ...]:
        names = self.data.get("mod_log_channel_names")
        if isinstance(names, list) and names:
            return tuple(str(name) for name in names)
        return DEFAULT_MOD_LOG_CHANNEL_NAMES
