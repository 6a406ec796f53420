"""
TLS Secret Injector — Replicate TLS Secrets from a source namespace.
"""

__version__ = "0.3.0"
