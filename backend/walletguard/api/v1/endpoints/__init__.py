"""API v1 endpoints package."""

from . import audit, policy, wallets

__all__ = [
    "audit",
    "policy",
    "wallets",
]
