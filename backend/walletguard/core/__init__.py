"""Core package."""

from walletguard.core.config import settings, get_settings
from walletguard.core.logging import get_logger

__all__ = [
    "settings",
    "get_settings",
    "get_logger",
]
