"""Outline feature settings and environment overrides."""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Literal, Mapping

__all__ = [
    "OutlineSettings",
    "FollowMode",
    "FOLLOW_MODE_CHOICES",
    "DEFAULT_EXPAND_LEVEL",
]

LOGGER = logging.getLogger(__name__)

FollowMode = Literal["current", "latest", "manual"]
FOLLOW_MODE_CHOICES: tuple[str, ...] = ("current", "latest", "manual")
DEFAULT_EXPAND_LEVEL = 6
_MAX_HEADING_LEVEL = 6

# The browser extension stores these keys in camelCase.
_CAMEL_ALIASES: Mapping[str, str] = {
    "maxLevel": "max_level",
    "autoUpdate": "auto_update",
    "updateInterval": "update_interval",
    "showUserQueries": "show_user_queries",
    "followMode": "follow_mode",
    "expandLevel": "expand_level",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "OUTLINESYNC_ENABLED": "enabled",
    "OUTLINESYNC_AUTO_UPDATE": "auto_update",
    "OUTLINESYNC_SHOW_USER_QUERIES": "show_user_queries",
}
_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "OUTLINESYNC_MAX_LEVEL": "max_level",
    "OUTLINESYNC_EXPAND_LEVEL": "expand_level",
}
_FLOAT_ENV_OVERRIDES: Mapping[str, str] = {
    "OUTLINESYNC_UPDATE_INTERVAL": "update_interval",
}
_ENV_OVERRIDES: Mapping[str, str] = {
    "OUTLINESYNC_FOLLOW_MODE": "follow_mode",
}
_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(slots=True)
class OutlineSettings:
    """User-facing outline options.

    ``update_interval`` is the debounce window in seconds. ``expand_level`` is
    expressed in raw heading levels (0 shows only user queries).
    """

    enabled: bool = True
    max_level: int = _MAX_HEADING_LEVEL
    auto_update: bool = True
    update_interval: float = 2.0
    show_user_queries: bool = True
    follow_mode: FollowMode = "current"
    expand_level: int = DEFAULT_EXPAND_LEVEL

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if not 1 <= self.max_level <= _MAX_HEADING_LEVEL:
            raise ValueError(f"max_level must be between 1 and {_MAX_HEADING_LEVEL}, got {self.max_level}")
        if self.update_interval <= 0:
            raise ValueError(f"update_interval must be positive, got {self.update_interval}")
        if self.follow_mode not in FOLLOW_MODE_CHOICES:
            raise ValueError(f"follow_mode must be one of {', '.join(FOLLOW_MODE_CHOICES)}, got {self.follow_mode!r}")
        if self.expand_level < 0:
            raise ValueError(f"expand_level must not be negative, got {self.expand_level}")

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> "OutlineSettings":
        """Build settings from a stored mapping, ignoring unknown keys."""

        if not payload:
            return cls()
        known = {field.name for field in fields(cls)}
        values: dict[str, Any] = {}
        for raw_key, value in payload.items():
            key = _CAMEL_ALIASES.get(raw_key, raw_key)
            if key not in known:
                LOGGER.debug("Ignoring unknown outline setting %s", raw_key)
                continue
            if value is None:
                continue
            values[key] = value
        return cls(**_coerce(values))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def copy_with(self, **changes: Any) -> "OutlineSettings":
        return replace(self, **changes)

    def apply_env_overrides(self, environ: Mapping[str, str] | None = None) -> "OutlineSettings":
        """Return a copy with ``OUTLINESYNC_*`` environment values applied."""

        env = os.environ if environ is None else environ
        overrides: dict[str, Any] = {}
        for env_key, attr in _ENV_OVERRIDES.items():
            value = env.get(env_key)
            if value:
                overrides[attr] = value.strip()
        for env_key, attr in _BOOL_ENV_OVERRIDES.items():
            value = env.get(env_key)
            if value is not None:
                overrides[attr] = value.strip().lower() in _TRUE_VALUES
        for env_key, attr in _INT_ENV_OVERRIDES.items():
            value = env.get(env_key)
            if value is None:
                continue
            try:
                overrides[attr] = int(value)
            except ValueError:
                LOGGER.warning("Ignoring invalid integer override %s=%r", env_key, value)
        for env_key, attr in _FLOAT_ENV_OVERRIDES.items():
            value = env.get(env_key)
            if value is None:
                continue
            try:
                overrides[attr] = float(value)
            except ValueError:
                LOGGER.warning("Ignoring invalid float override %s=%r", env_key, value)
        if not overrides:
            return self
        return replace(self, **overrides)


def _coerce(values: dict[str, Any]) -> dict[str, Any]:
    coerced = dict(values)
    for key in ("enabled", "auto_update", "show_user_queries"):
        if key in coerced:
            coerced[key] = bool(coerced[key])
    for key in ("max_level", "expand_level"):
        if key in coerced:
            coerced[key] = int(coerced[key])
    if "update_interval" in coerced:
        coerced["update_interval"] = float(coerced["update_interval"])
    if "follow_mode" in coerced:
        coerced["follow_mode"] = str(coerced["follow_mode"])
    return coerced
