"""Client configuration for pyinfoboard."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyinfoboard.exceptions import InfoboardConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class InfoboardConfig:
    """Client configuration.

    Parameters
    ----------
    student_data_url : str
        Bulk keyed student collection (the "official" dataset).
    custom_data_url : str
        Sparse list of overrides and additions (the "custom" dataset).
    events_config_url : str
        Document carrying the per-region list of current events.
    localization_url : str
        Localisation document carrying ``EventName`` strings.
    event_region : str
        Region whose ``CurrentEvents`` are displayed (matched case-insensitively).
    language : str
        ``"en"`` or ``"jp"``; selects the event logo variant.
    cache_ttl : float
        Seconds a fetched payload stays valid. Defaults to one hour.
    cache_enabled : bool
        When ``False`` every fetch goes to the network and nothing is stored.
    coalesce_in_flight : bool
        Share one pending load between concurrent callers of the same key.
    retry_delay : float
        Seconds to wait before re-running a failed refresh pipeline.
    tick_interval : float
        Seconds between countdown recomputations.
    timer_setup_delay : float
        Seconds to defer a countdown's first recomputation so its display
        target exists before the first write.
    days_to_show : int
        Size of the "upcoming birthdays" window (day 0 through this day).
    image_url_template : str
        Fallback student image, formatted with ``id=``.
    event_logo_base : str
        Base URL for event logos.
    synthetic_id_prefix : str
        Reserved namespace for ids allocated to custom additions.
    user_agent : str
        ``User-Agent`` header sent with every request.
    """

    student_data_url: str = "https://schaledb.com/data/en/students.json"
    custom_data_url: str = "https://rentry.org/dvdoombday/raw"
    events_config_url: str = "https://schaledb.com/data/config.json"
    localization_url: str = "https://schaledb.com/data/en/localization.json"
    event_region: str = "Global"
    language: str = "en"
    cache_ttl: float = 3600.0
    cache_enabled: bool = True
    coalesce_in_flight: bool = False
    retry_delay: float = 30.0
    tick_interval: float = 1.0
    timer_setup_delay: float = 0.1
    days_to_show: int = 7
    image_url_template: str = "https://schaledb.com/images/student/collection/{id}.webp"
    event_logo_base: str = "https://schaledb.com/images/eventlogo"
    synthetic_id_prefix: str = "custom:"
    user_agent: str = "pyinfoboard"

    def __post_init__(self) -> None:
        if self.cache_ttl < 0:
            raise InfoboardConfigError("cache_ttl must be >= 0")
        if self.retry_delay < 0:
            raise InfoboardConfigError("retry_delay must be >= 0")
        if self.tick_interval <= 0:
            raise InfoboardConfigError("tick_interval must be > 0")
        if self.days_to_show < 0:
            raise InfoboardConfigError("days_to_show must be >= 0")
        if self.language not in ("en", "jp"):
            raise InfoboardConfigError(f"Unsupported language: {self.language!r}")
        if not self.synthetic_id_prefix:
            raise InfoboardConfigError("synthetic_id_prefix must be non-empty")

    @classmethod
    def from_env(cls, **overrides: Any) -> InfoboardConfig:
        """Create configuration from ``INFOBOARD_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "INFOBOARD_STUDENT_DATA_URL": "student_data_url",
            "INFOBOARD_CUSTOM_DATA_URL": "custom_data_url",
            "INFOBOARD_EVENTS_CONFIG_URL": "events_config_url",
            "INFOBOARD_LOCALIZATION_URL": "localization_url",
            "INFOBOARD_EVENT_REGION": "event_region",
            "INFOBOARD_LANGUAGE": "language",
            "INFOBOARD_USER_AGENT": "user_agent",
        }
        _ENV_FLOAT_MAP = {
            "INFOBOARD_CACHE_TTL": "cache_ttl",
            "INFOBOARD_RETRY_DELAY": "retry_delay",
            "INFOBOARD_TICK_INTERVAL": "tick_interval",
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = float(val)
            except ValueError as exc:
                raise InfoboardConfigError(f"{env_key} must be numeric, got {val!r}") from exc

        if "cache_enabled" not in overrides:
            config_kwargs["cache_enabled"] = _env_bool(env.get("INFOBOARD_CACHE_ENABLED"), True)

        days_env = env.get("INFOBOARD_DAYS_TO_SHOW")
        if days_env is not None and "days_to_show" not in overrides:
            try:
                config_kwargs["days_to_show"] = int(days_env)
            except ValueError as exc:
                raise InfoboardConfigError(f"INFOBOARD_DAYS_TO_SHOW must be an integer, got {days_env!r}") from exc

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
