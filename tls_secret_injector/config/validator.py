"""
Configuration Validator — Check settings before starting anything.

Each check produces a ConfigStatus. ``check_settings_on_startup`` logs
every status and raises ConfigurationError if any check failed, so a
misconfigured pod crashes early instead of half-working.

## Usage

    from tls_secret_injector.config.validator import SettingsValidator

    validator = SettingsValidator(settings)
    for status in validator.validate_all():
        if not status.ok:
            print(f"{status.setting}: {status.message}")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

from ..logging_config import FORMATS, LEVELS
from ..models.resources import TLS_CERT_KEY, TLS_PRIVATE_KEY_KEY
from ..validation import ConfigurationError
from .settings import Settings

logger = logging.getLogger(__name__)


@dataclass
class ConfigStatus:
    """Status of one configuration check."""

    setting: str
    ok: bool
    message: str = ""
    guidance: Optional[str] = None
    missing: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "setting": self.setting,
            "ok": self.ok,
            "message": self.message,
            "guidance": self.guidance,
            "missing": self.missing,
        }


class SettingsValidator:
    """Validate a Settings instance."""

    def __init__(self, settings: Settings, require_certs: bool = True):
        self.settings = settings
        self.require_certs = require_certs

    def checks(self) -> List[Callable[[], ConfigStatus]]:
        checks = [
            self.check_source_namespace,
            self.check_log_level,
            self.check_log_format,
            self.check_ports,
            self.check_workers,
            self.check_admission_timeout,
            self.check_reconcile_timeout,
            self.check_leader_election,
        ]
        if self.require_certs:
            checks.append(self.check_cert_dir)
        return checks

    def validate_all(self) -> List[ConfigStatus]:
        return [check() for check in self.checks()]

    def check_source_namespace(self) -> ConfigStatus:
        if self.settings.source_namespace:
            return ConfigStatus("source_namespace", True, self.settings.source_namespace)
        return ConfigStatus(
            "source_namespace",
            False,
            "no source namespace configured",
            guidance="Set --source-namespace or SOURCE_NAMESPACE",
        )

    def check_log_level(self) -> ConfigStatus:
        level = self.settings.log_level.strip().lower()
        if level in LEVELS:
            return ConfigStatus("log_level", True, level)
        return ConfigStatus(
            "log_level",
            False,
            f"not a valid log level: {self.settings.log_level!r}",
            guidance=f"Use one of {', '.join(LEVELS)}",
        )

    def check_log_format(self) -> ConfigStatus:
        fmt = self.settings.log_format.strip().lower()
        if fmt in FORMATS:
            return ConfigStatus("log_format", True, fmt)
        return ConfigStatus(
            "log_format",
            False,
            f"not a valid log format: {self.settings.log_format!r}",
            guidance="Use text or json",
        )

    def check_ports(self) -> ConfigStatus:
        ports = {
            "webhook_port": self.settings.webhook_port,
            "probe_port": self.settings.probe_port,
            "metrics_port": self.settings.metrics_port,
        }
        bad = [name for name, port in ports.items() if not 0 < port < 65536]
        if bad:
            return ConfigStatus("ports", False, f"out of range: {', '.join(bad)}", missing=bad)
        if len(set(ports.values())) != len(ports):
            return ConfigStatus("ports", False, "webhook, probe and metrics ports must differ")
        return ConfigStatus("ports", True, ", ".join(f"{k}={v}" for k, v in ports.items()))

    def check_workers(self) -> ConfigStatus:
        if self.settings.workers >= 1:
            return ConfigStatus("workers", True, str(self.settings.workers))
        return ConfigStatus("workers", False, "workers must be at least 1")

    def check_admission_timeout(self) -> ConfigStatus:
        if self.settings.admission_timeout_seconds > 0:
            return ConfigStatus("admission_timeout_seconds", True, f"{self.settings.admission_timeout_seconds}s")
        return ConfigStatus("admission_timeout_seconds", False, "admission timeout must be positive")

    def check_reconcile_timeout(self) -> ConfigStatus:
        if self.settings.reconcile_timeout_seconds > 0:
            return ConfigStatus("reconcile_timeout_seconds", True, f"{self.settings.reconcile_timeout_seconds}s")
        return ConfigStatus("reconcile_timeout_seconds", False, "reconcile timeout must be positive")

    def check_leader_election(self) -> ConfigStatus:
        resource = self.settings.leader_election_resource
        namespace = self.settings.leader_election_namespace
        if bool(resource) != bool(namespace):
            missing = ["leader_election_resource"] if not resource else ["leader_election_namespace"]
            return ConfigStatus(
                "leader_election",
                False,
                "leader election needs both a resource and a namespace",
                guidance="Set both --leader-election-resource and --leader-election-namespace, or neither",
                missing=missing,
            )
        if resource:
            return ConfigStatus("leader_election", True, f"lock {namespace}/{resource}")
        return ConfigStatus("leader_election", True, "disabled")

    def check_cert_dir(self) -> ConfigStatus:
        if not self.settings.cert_dir:
            return ConfigStatus(
                "cert_dir",
                False,
                "no certificate directory configured",
                guidance="Set --cert-dir to the directory holding tls.crt and tls.key",
            )
        cert_dir = Path(self.settings.cert_dir)
        missing = [f for f in (TLS_CERT_KEY, TLS_PRIVATE_KEY_KEY) if not (cert_dir / f).is_file()]
        if missing:
            return ConfigStatus("cert_dir", False, f"missing files in {cert_dir}", missing=missing)
        return ConfigStatus("cert_dir", True, str(cert_dir))

    def log_status(self) -> List[ConfigStatus]:
        results = self.validate_all()
        for status in results:
            if status.ok:
                logger.info(f"✓ {status.setting}: {status.message}")
            else:
                logger.error(f"✗ {status.setting}: {status.message}")
        return results


def check_settings_on_startup(settings: Settings, require_certs: bool = True) -> None:
    """Log every check and raise ConfigurationError if any failed."""
    results = SettingsValidator(settings, require_certs=require_certs).log_status()
    failed = [s for s in results if not s.ok]
    if failed:
        summary = "; ".join(f"{s.setting}: {s.message}" for s in failed)
        raise ConfigurationError(f"Invalid configuration: {summary}")
