"""Runtime settings read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from .layout import ScheduleLayout

DEFAULT_DATABASE_URL = "sqlite:///loan_schedule.db"


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    secret_key: str = "dev-secret-key"
    log_level: str = "INFO"
    log_format: str = "text"
    layout: ScheduleLayout = field(default_factory=ScheduleLayout)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            database_url=env.get("LOAN_SCHEDULE_DATABASE_URL") or DEFAULT_DATABASE_URL,
            secret_key=env.get("FLASK_SECRET_KEY", "dev-secret-key"),
            log_level=env.get("LOAN_SCHEDULE_LOG_LEVEL", "INFO").upper(),
            log_format=env.get("LOAN_SCHEDULE_LOG_FORMAT", "text").lower(),
        )
