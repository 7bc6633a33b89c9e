"""
Runtime settings (``ledger_kernel.config``).

Responsibility
--------------
Loads the kernel's runtime settings from an optional YAML file and the
process environment into a frozen ``LedgerSettings`` dataclass.

Resolution order (later wins):

1. Dataclass defaults.
2. YAML file at ``path`` or ``$LEDGER_CONFIG``.
3. ``$DATABASE_URL`` then ``$LEDGER_DATABASE_URL``; ``$LEDGER_LOG_LEVEL``.

Failure modes
-------------
* Explicit path that does not exist -> ``ConfigurationError``.
* Malformed YAML or a non-mapping document -> ``ConfigurationError``.
* Unknown keys or out-of-range values -> ``ConfigurationError``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from ledger_kernel.exceptions import ConfigurationError

CONFIG_ENV_VAR = "LEDGER_CONFIG"

DEFAULT_DATABASE_URL = "sqlite:///ledger.db"


@dataclass(frozen=True)
class LedgerSettings:
    """Immutable runtime settings."""

    database_url: str = DEFAULT_DATABASE_URL
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    log_level: str = "INFO"
    default_page_size: int = 20
    max_page_size: int = 100

    def __post_init__(self) -> None:
        if not self.database_url:
            raise ConfigurationError("database_url", "must not be empty")
        if self.pool_size < 1:
            raise ConfigurationError("pool_size", "must be at least 1")
        if self.max_overflow < 0:
            raise ConfigurationError("max_overflow", "must not be negative")
        if not 1 <= self.default_page_size <= self.max_page_size:
            raise ConfigurationError(
                "default_page_size",
                f"must be between 1 and max_page_size ({self.max_page_size})",
            )
        if logging.getLevelName(self.log_level.upper()) not in range(0, 51):
            raise ConfigurationError("log_level", f"unknown level {self.log_level!r}")

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level.upper())


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        ConfigurationError: if the file is missing, malformed, or not a mapping.
    """
    if not path.exists():
        raise ConfigurationError(str(path), "file does not exist")
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigurationError(str(path), f"malformed YAML: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(str(path), "top-level document must be a mapping")
    return data


def _coerce(values: dict[str, Any]) -> dict[str, Any]:
    known = {f.name: f for f in fields(LedgerSettings)}
    unknown = sorted(set(values) - set(known))
    if unknown:
        raise ConfigurationError(unknown[0], "unknown setting")

    out: dict[str, Any] = {}
    for key, raw in values.items():
        kind = known[key].type
        try:
            if kind == "bool":
                out[key] = raw if isinstance(raw, bool) else str(raw).lower() in ("1", "true", "yes")
            elif kind == "int":
                out[key] = int(raw)
            else:
                out[key] = str(raw)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(key, f"expected {kind}, got {raw!r}") from exc
    return out


def load_settings(
    path: str | Path | None = None,
    environ: dict[str, str] | None = None,
) -> LedgerSettings:
    """
    Build settings from defaults, an optional YAML file, and the environment.

    Args:
        path: YAML file to read.  Defaults to ``$LEDGER_CONFIG`` when unset.
        environ: Environment mapping (defaults to ``os.environ``).

    Returns:
        Frozen LedgerSettings.
    """
    env = os.environ if environ is None else environ
    values: dict[str, Any] = {}

    config_path = path or env.get(CONFIG_ENV_VAR)
    if config_path:
        values.update(load_yaml_file(Path(config_path)))

    settings = LedgerSettings(**_coerce(values))

    overrides: dict[str, Any] = {}
    for var in ("DATABASE_URL", "LEDGER_DATABASE_URL"):
        if env.get(var):
            overrides["database_url"] = env[var]
    if env.get("LEDGER_LOG_LEVEL"):
        overrides["log_level"] = env["LEDGER_LOG_LEVEL"]

    return replace(settings, **overrides) if overrides else settings
