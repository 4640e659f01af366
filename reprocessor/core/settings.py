"""Runtime configuration for the reprocessor.

Values come from ``config/reprocessor.yaml`` and may be overridden through
``REPROCESSOR_*`` environment variables.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"
DEFAULT_CONFIG_PATH = CONFIG_DIR / "reprocessor.yaml"

DEFAULT_TRIGGER_CONTEXTS: tuple[tuple[str, str], ...] = (
    ("before_insert", "Before Insert"),
    ("before_update", "Before Update"),
    ("after_insert", "After Insert"),
    ("after_update", "After Update"),
    ("before_delete", "Before Delete"),
    ("after_delete", "After Delete"),
    ("after_undelete", "After Undelete"),
)


@dataclass(frozen=True)
class Settings:
    api_base: str | None = None
    api_token: str | None = None
    fixtures_path: str | None = None
    channel_name: str = "/event/Trigger_Log__e"
    replay_position: int = -1
    poll_interval_seconds: float = 1.0
    page_size: int = 10
    batch_size: int = 100
    event_buffer_capacity: int = 50
    suppress_unmatched_events: bool = False
    auto_confirm: bool = False
    default_target_type: str = "Account"
    default_trigger_context: str = "before_insert"
    default_fields: tuple[str, ...] = ("id", "name", "createddate")
    trigger_contexts: tuple[tuple[str, str], ...] = DEFAULT_TRIGGER_CONTEXTS
    cors_origins: tuple[str, ...] = ("http://localhost:3000", "http://127.0.0.1:3000")
    log_level: str = "INFO"

    @property
    def trigger_context_values(self) -> list[str]:
        return [value for value, _ in self.trigger_contexts]


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp)
    return data if isinstance(data, dict) else {}


def _from_mapping(data: dict[str, Any]) -> Settings:
    settings = Settings()
    known = set(Settings.__dataclass_fields__)
    updates: dict[str, Any] = {}
    for key, value in data.items():
        if key not in known:
            continue
        if key == "trigger_contexts":
            contexts: list[tuple[str, str]] = []
            for item in value or []:
                if isinstance(item, dict) and item.get("value"):
                    contexts.append((str(item["value"]), str(item.get("label") or item["value"])))
            if contexts:
                updates[key] = tuple(contexts)
        elif key in {"default_fields", "cors_origins"}:
            updates[key] = tuple(str(item) for item in value or [])
        elif key in {"suppress_unmatched_events", "auto_confirm"}:
            updates[key] = _as_bool(value)
        elif key in {"replay_position", "page_size", "batch_size", "event_buffer_capacity"}:
            updates[key] = int(value)
        elif key == "poll_interval_seconds":
            updates[key] = float(value)
        else:
            updates[key] = value
    return replace(settings, **updates)


def _apply_env(settings: Settings) -> Settings:
    env = os.environ
    updates: dict[str, Any] = {}
    if env.get("REPROCESSOR_API_BASE"):
        updates["api_base"] = env["REPROCESSOR_API_BASE"]
    if env.get("REPROCESSOR_API_TOKEN"):
        updates["api_token"] = env["REPROCESSOR_API_TOKEN"]
    if env.get("REPROCESSOR_FIXTURES"):
        updates["fixtures_path"] = env["REPROCESSOR_FIXTURES"]
    if env.get("REPROCESSOR_CHANNEL"):
        updates["channel_name"] = env["REPROCESSOR_CHANNEL"]
    if env.get("REPROCESSOR_POLL_INTERVAL"):
        updates["poll_interval_seconds"] = float(env["REPROCESSOR_POLL_INTERVAL"])
    if env.get("REPROCESSOR_PAGE_SIZE"):
        updates["page_size"] = int(env["REPROCESSOR_PAGE_SIZE"])
    if env.get("REPROCESSOR_BATCH_SIZE"):
        updates["batch_size"] = int(env["REPROCESSOR_BATCH_SIZE"])
    if env.get("REPROCESSOR_AUTO_CONFIRM"):
        updates["auto_confirm"] = _as_bool(env["REPROCESSOR_AUTO_CONFIRM"])
    if env.get("REPROCESSOR_LOG_LEVEL"):
        updates["log_level"] = env["REPROCESSOR_LOG_LEVEL"].upper()
    origins = [origin.strip() for origin in env.get("API_CORS_ORIGINS", "").split(",") if origin.strip()]
    if origins:
        updates["cors_origins"] = tuple(origins)
    return replace(settings, **updates) if updates else settings


def load_settings(path: Path | None = None) -> Settings:
    """Build settings from the YAML defaults and the process environment."""

    return _apply_env(_from_mapping(_load_yaml(path or DEFAULT_CONFIG_PATH)))
