"""Environment-driven settings for the watcher."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .scraper import AVA_URL

DEFAULT_DATABASE_URL = "sqlite:///ava_watcher.db"
DEFAULT_TICK_INTERVAL = 300
DEFAULT_BEDROOMS = 2

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Runtime configuration collected from environment variables."""

    target_url: str = AVA_URL
    database_url: str = DEFAULT_DATABASE_URL
    tick_interval: float = DEFAULT_TICK_INTERVAL
    bedrooms: Optional[int] = DEFAULT_BEDROOMS
    allow_furnished: bool = False
    notify_changes: bool = False
    export_dir: Optional[Path] = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ

        bedrooms_raw = env.get("AVA_BEDROOMS")
        if bedrooms_raw is None:
            bedrooms: Optional[int] = DEFAULT_BEDROOMS
        elif bedrooms_raw.strip():
            bedrooms = int(bedrooms_raw)
        else:
            bedrooms = None

        export_dir = (env.get("EXPORT_DIR") or "").strip()
        return cls(
            target_url=env.get("TARGET_URL") or AVA_URL,
            database_url=env.get("DATABASE_URL") or DEFAULT_DATABASE_URL,
            tick_interval=float(env.get("TICK_INTERVAL") or DEFAULT_TICK_INTERVAL),
            bedrooms=bedrooms,
            allow_furnished=_flag(env.get("AVA_ALLOW_FURNISHED")),
            notify_changes=_flag(env.get("NOTIFY_CHANGES")),
            export_dir=Path(export_dir) if export_dir else None,
        )


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in _TRUTHY
