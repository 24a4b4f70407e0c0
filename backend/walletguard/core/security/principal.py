"""
Principal Resolution

Maps an authenticated principal id to a ``Principal`` carrying the role
stored on its user record.
"""

from typing import TYPE_CHECKING

from walletguard.core.exceptions import MalformedOperationError
from walletguard.core.logging import get_logger
from walletguard.core.security.types import Principal, Role

if TYPE_CHECKING:
    from walletguard.stores.base import UserDirectory

logger = get_logger(__name__)


class PrincipalResolver:
    """
    Resolves principals against the user directory.

    Never guesses a default role: unknown principals propagate the
    directory's ``PrincipalNotFoundError`` (a ``LookupError``).
    """

    def __init__(self, directory: "UserDirectory") -> None:
        self._directory = directory

    def resolve_role(self, principal_id: str) -> Role:
        """
        Look up the role field of the principal's user record.

        Args:
            principal_id: Authenticated principal id

        Returns:
            Stored role

        Raises:
            PrincipalNotFoundError: No user record exists
            MalformedOperationError: Empty id or unrecognised stored role
        """
        if not principal_id:
            raise MalformedOperationError("Principal id is required")

        role = self._directory.get_user_role(principal_id)
        try:
            return Role(role)
        except ValueError:
            logger.error("Unrecognised role on user record", principal_id=principal_id, role=role)
            raise MalformedOperationError(f"Unrecognised role {role!r}") from None

    def resolve(self, principal_id: str) -> Principal:
        """Build the ``Principal`` for an authenticated id."""
        return Principal(id=principal_id, role=self.resolve_role(principal_id))
