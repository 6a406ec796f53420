"""
Engine Module — Replica creation logic shared by every entry point.
"""

from .context import InvocationContext
from .errors import InvalidDeclarationError, InvocationCancelled
from .replication import ReplicationEngine, build_replica

__all__ = [
    "InvocationContext",
    "InvalidDeclarationError",
    "InvocationCancelled",
    "ReplicationEngine",
    "build_replica",
]
