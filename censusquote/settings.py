from __future__ import annotations

import os
from dataclasses import dataclass, field

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Settings:
    notify_channel: str
    slack_api_base: str = "https://slack.com/api"
    allow_empty_census: bool = False
    store_path: str | None = None
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"])

    @classmethod
    def from_env(cls) -> "Settings":
        channel = (os.getenv("SLACK_NOTIFY_CHANNEL") or "").strip()
        if not channel:
            raise ValueError("SLACK_NOTIFY_CHANNEL must be set")

        origins_env = os.getenv("API_CORS_ORIGINS", "")
        origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]

        extra: dict[str, object] = {}
        if origins:
            extra["cors_origins"] = origins

        return cls(
            notify_channel=channel,
            slack_api_base=os.getenv("SLACK_API_BASE") or "https://slack.com/api",
            allow_empty_census=_env_flag("CENSUS_ALLOW_EMPTY"),
            store_path=os.getenv("CENSUS_STORE_PATH") or None,
            **extra,
        )
