"""
Policy Service Exceptions

Only truly exceptional conditions are raised. Expected business denials
are returned as ``Verdict`` values by the policy evaluator.
"""

from typing import Optional


class WalletGuardError(Exception):
    """Base error for the policy service."""
    pass


class NotFoundError(WalletGuardError, LookupError):
    """A referenced principal or resource does not exist."""
    pass


class PrincipalNotFoundError(NotFoundError):
    """Referenced principal has no user record."""

    def __init__(self, principal_id: str) -> None:
        super().__init__(f"Principal '{principal_id}' not found")
        self.principal_id = principal_id


class ResourceNotFoundError(NotFoundError):
    """Referenced resource does not exist."""

    def __init__(self, resource_type: str, resource_id: Optional[str] = None) -> None:
        message = f"{resource_type} not found"
        if resource_id:
            message = f"{resource_type} with id '{resource_id}' not found"
        super().__init__(message)
        self.resource_type = resource_type
        self.resource_id = resource_id


class MalformedOperationError(WalletGuardError, ValueError):
    """Operation is missing required fields or names an unknown resource type."""
    pass


class ConflictError(WalletGuardError):
    """Optimistic concurrency check failed; the stored state moved on."""
    pass


class IntegrityError(WalletGuardError):
    """Hash verification failed."""
    pass
