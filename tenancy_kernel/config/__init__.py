"""
Engine Configuration (``tenancy_kernel.config``).

Responsibility
--------------
Single entry point for runtime configuration: database URL, log level,
notification dispatch mode and the notification message templates.

Sources, in increasing precedence:

1. ``defaults.yaml`` shipped beside this module.
2. An optional YAML file passed to :func:`load_config`.
3. ``TENANCY_*`` environment variables (scalars only).

Architecture position
---------------------
**Kernel config layer** -- depends on domain/ and logging_config only.
Services receive an ``EngineConfig``; they never read files or the
environment themselves.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown log level, non-positive worker count, missing template or unknown
  notification type -> ``ValueError`` from ``__post_init__``.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from tenancy_kernel.domain.records import NotificationType
from tenancy_kernel.logging_config import get_logger

logger = get_logger("config")

DEFAULTS_PATH = Path(__file__).with_name("defaults.yaml")

ENV_PREFIX = "TENANCY_"

REQUIRED_TEMPLATES: frozenset[str] = frozenset({
    "request_approved",
    "request_rejected",
    "request_rejected_with_reason",
    "stay_moved_out",
    "stay_terminated",
    "bill_issued",
    "bill_paid",
    "record_light_bill",
    "record_rent_payment",
    "record_added",
})

_TRUE = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class NotificationTemplate:
    """Title and message copy for one notification, plus its type."""

    notification_type: NotificationType
    title: str
    message: str
    pending_type: NotificationType | None = None

    def render(self, **values: Any) -> tuple[str, str]:
        """Return ``(title, message)`` with placeholders filled from ``values``."""
        return self.title.format(**values), self.message.format(**values)

    def type_for(self, status: str | None = None) -> NotificationType:
        if status == "pending" and self.pending_type is not None:
            return self.pending_type
        return self.notification_type

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> NotificationTemplate:
        pending = data.get("pending_type")
        return cls(
            notification_type=NotificationType(data["type"]),
            title=data["title"],
            message=data["message"],
            pending_type=NotificationType(pending) if pending else None,
        )


@dataclass(frozen=True)
class EngineConfig:
    """
    Immutable engine configuration.

    Invariants:
        - log_level is a standard logging level name.
        - notification_workers >= 1.
        - Every template in REQUIRED_TEMPLATES is present.
    """

    database_url: str = "sqlite://"
    log_level: str = "INFO"
    async_notifications: bool = False
    notification_workers: int = 2
    templates: Mapping[str, NotificationTemplate] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log level: {self.log_level!r}")
        if self.notification_workers < 1:
            raise ValueError(
                f"notification_workers must be >= 1, got {self.notification_workers}"
            )
        missing = REQUIRED_TEMPLATES - set(self.templates)
        if missing:
            raise ValueError(f"Missing notification templates: {sorted(missing)}")

        logger.info(
            "engine_config_initialized",
            extra={
                "dialect": self.database_url.split(":", 1)[0],
                "log_level": self.log_level,
                "async_notifications": self.async_notifications,
                "notification_workers": self.notification_workers,
                "template_count": len(self.templates),
            },
        )

    def template(self, name: str) -> NotificationTemplate:
        return self.templates[name]


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its mapping (empty for an empty file)."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _merge(base: dict[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overlay.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _merge(dict(merged[key]), value)
        else:
            merged[key] = value
    return merged


def _from_environment(environ: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if f"{ENV_PREFIX}DATABASE_URL" in environ:
        overrides["database_url"] = environ[f"{ENV_PREFIX}DATABASE_URL"]
    if f"{ENV_PREFIX}LOG_LEVEL" in environ:
        overrides["log_level"] = environ[f"{ENV_PREFIX}LOG_LEVEL"]
    if f"{ENV_PREFIX}ASYNC_NOTIFICATIONS" in environ:
        overrides["async_notifications"] = (
            environ[f"{ENV_PREFIX}ASYNC_NOTIFICATIONS"].strip().lower() in _TRUE
        )
    if f"{ENV_PREFIX}NOTIFICATION_WORKERS" in environ:
        overrides["notification_workers"] = int(environ[f"{ENV_PREFIX}NOTIFICATION_WORKERS"])
    return overrides


def load_config(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> EngineConfig:
    """
    Build an EngineConfig from defaults, an optional YAML file and the environment.

    Args:
        path: Optional YAML file overlaid on the shipped defaults.
        environ: Environment mapping (defaults to ``os.environ``).
    """
    data = load_yaml_file(DEFAULTS_PATH)
    if path is not None:
        data = _merge(data, load_yaml_file(Path(path)))
    data = _merge(data, _from_environment(os.environ if environ is None else environ))

    templates = {
        name: NotificationTemplate.from_dict(fields)
        for name, fields in (data.get("notifications") or {}).items()
    }
    return EngineConfig(
        database_url=data.get("database_url", "sqlite://"),
        log_level=str(data.get("log_level", "INFO")),
        async_notifications=bool(data.get("async_notifications", False)),
        notification_workers=int(data.get("notification_workers", 2)),
        templates=templates,
    )


__all__ = [
    "EngineConfig",
    "NotificationTemplate",
    "REQUIRED_TEMPLATES",
    "load_config",
    "load_yaml_file",
]
