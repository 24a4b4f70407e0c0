"""Middleware package."""

from walletguard.middleware.exception import setup_exception_handlers

__all__ = [
    "setup_exception_handlers",
]
