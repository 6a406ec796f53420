"""
Admission Module — Synchronous replication while Ingresses are written.
"""

from .interceptor import DeclarationInterceptor, decode_ingress
from .server import ServerThread, create_probe_app, create_webhook_app, load_ssl_context

__all__ = [
    "DeclarationInterceptor",
    "decode_ingress",
    "ServerThread",
    "create_probe_app",
    "create_webhook_app",
    "load_ssl_context",
]
