"""
Settings — Resolve runtime configuration from every source.

Sources, highest priority first:
1. CLI flags (passed in as ``overrides``)
2. Environment variables
3. An optional YAML file
4. Field defaults

YAML keys may use either dashes or underscores (``source-namespace`` or
``source_namespace``).

## Usage

    from tls_secret_injector.config.settings import load_settings

    settings = load_settings(
        overrides={"source_namespace": "certs"},
        config_file=Path("injector.yaml"),
    )
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from ..validation import ConfigurationError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    """Runtime configuration. Immutable once loaded."""

    source_namespace: str = ""
    log_level: str = "warning"
    log_format: str = "text"
    cert_dir: str = ""
    webhook_host: str = "0.0.0.0"
    webhook_port: int = 8443
    probe_port: int = 8080
    metrics_port: int = 8081
    leader_election_resource: str = ""
    leader_election_namespace: str = ""
    workers: int = 1
    admission_timeout_seconds: float = 10.0
    reconcile_timeout_seconds: float = 60.0
    kubeconfig: str = ""

    @property
    def leader_election_enabled(self) -> bool:
        return bool(self.leader_election_resource and self.leader_election_namespace)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


# Environment variable for each setting
ENV_VARS: Dict[str, str] = {
    "source_namespace": "SOURCE_NAMESPACE",
    "log_level": "LOG_LEVEL",
    "log_format": "LOG_FORMAT",
    "cert_dir": "CERT_DIR",
    "webhook_host": "WEBHOOK_HOST",
    "webhook_port": "WEBHOOK_PORT",
    "probe_port": "PROBE_PORT",
    "metrics_port": "METRICS_PORT",
    "leader_election_resource": "LEADER_ELECTION_RESOURCE",
    "leader_election_namespace": "LEADER_ELECTION_NAMESPACE",
    "workers": "WORKERS",
    "admission_timeout_seconds": "ADMISSION_TIMEOUT_SECONDS",
    "reconcile_timeout_seconds": "RECONCILE_TIMEOUT_SECONDS",
    "kubeconfig": "KUBECONFIG",
}

_TYPES = {f.name: f.type for f in fields(Settings)}


def _coerce(name: str, value: Any) -> Any:
    """Convert a raw value to the type of setting ``name``."""
    kind = _TYPES[name]
    try:
        if kind in ("int", int):
            if isinstance(value, bool):
                raise ValueError("booleans are not numbers")
            return int(value)
        if kind in ("float", float):
            return float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"expected a number, got {value!r}", field=name) from e
    return "" if value is None else str(value)


def load_yaml_file(path: Path) -> Dict[str, Any]:
    """Read settings from a YAML mapping, normalizing key spelling."""
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")

    values = {}
    for key, value in raw.items():
        name = str(key).replace("-", "_")
        if name not in _TYPES:
            raise ConfigurationError(f"Unknown setting '{key}' in {path}")
        values[name] = value
    return values


def load_env(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    environ = os.environ if environ is None else environ
    return {
        name: environ[var]
        for name, var in ENV_VARS.items()
        if environ.get(var, "") != ""
    }


def load_settings(
    overrides: Optional[Mapping[str, Any]] = None,
    config_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Merge all configuration sources into a Settings.

    Args:
        overrides: Values from CLI flags; ``None`` entries are ignored
        config_file: Optional YAML file
        environ: Environment mapping, ``os.environ`` by default

    Raises:
        ConfigurationError: A source could not be read or a value has the wrong type
    """
    merged: Dict[str, Any] = {}
    if config_file is not None:
        merged.update(load_yaml_file(config_file))
    merged.update(load_env(environ))
    merged.update({k: v for k, v in (overrides or {}).items() if v is not None})

    try:
        values = {name: _coerce(name, value) for name, value in merged.items()}
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e

    settings = replace(Settings(), **values)
    logger.debug(f"Loaded settings: {settings.to_dict()}")
    return settings
