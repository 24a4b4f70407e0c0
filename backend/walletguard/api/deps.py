"""
API Dependencies

Accessors for the services wired onto the application state, and the
principal header set by the authenticating gateway.
"""

from fastapi import Header, Request

from walletguard.core.security.policy import PolicyEvaluator
from walletguard.core.security.principal import PrincipalResolver
from walletguard.services.audit import AuditRecorder
from walletguard.services.transaction_guard import TransactionGuard


def get_evaluator(request: Request) -> PolicyEvaluator:
    return request.app.state.evaluator


def get_resolver(request: Request) -> PrincipalResolver:
    return request.app.state.resolver


def get_audit(request: Request) -> AuditRecorder:
    return request.app.state.audit


def get_transaction_guard(request: Request) -> TransactionGuard:
    return request.app.state.transaction_guard


def get_principal_id(x_principal_id: str = Header(..., min_length=1)) -> str:
    """Authenticated principal id, asserted by the upstream gateway."""
    return x_principal_id
