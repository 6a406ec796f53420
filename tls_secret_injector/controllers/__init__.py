"""
Controllers Module — Watch-driven reconcile loops and process wiring.
"""

from .credential import CredentialReconciler
from .declaration import DeclarationReconciler
from .leader import LeaderElector
from .manager import Manager
from .scheduler import Controller

__all__ = [
    "Controller",
    "CredentialReconciler",
    "DeclarationReconciler",
    "LeaderElector",
    "Manager",
]
