"""
Validation — Errors raised for bad configuration or input.

## Usage

    from tls_secret_injector.validation import ConfigurationError

    try:
        settings = load_settings(config_file=path)
    except ConfigurationError as e:
        print(f"Invalid configuration: {e}")
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class ValidationError(Exception):
    """Raised when a single value fails validation."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.field = field
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.field:
            return f"{self.field}: {self.message}"
        return self.message


class ConfigurationError(Exception):
    """Raised when configuration is missing or invalid."""
    pass
