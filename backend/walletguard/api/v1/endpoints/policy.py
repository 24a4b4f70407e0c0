"""
Policy Decision API Endpoints

Internal RPC surface for backend request handlers that need a verdict
before reading or writing a document.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from walletguard.api.deps import get_evaluator, get_resolver
from walletguard.core import codec
from walletguard.core.security.policy import PolicyEvaluator
from walletguard.core.security.principal import PrincipalResolver
from walletguard.core.security.types import Operation

router = APIRouter(prefix="/policy", tags=["Policy"])


# =============================================================================
# Request/Response Schemas
# =============================================================================

class EvaluateRequest(BaseModel):
    """
    Operation to authorize.

    ``kind`` and ``resource_type`` are free strings so unknown values fail
    closed as malformed operations. Snapshot timestamps and decimals use
    the tagged ``$date`` / ``$decimal`` encoding.
    """
    kind: str = Field(..., description="read, create, update or delete")
    resource_type: str = Field(..., description="wallet, transaction or audit_log")
    principal_id: str = Field(..., min_length=1)
    resource_id: Optional[str] = None
    existing: Optional[Dict[str, Any]] = None
    proposed: Optional[Dict[str, Any]] = None
    requested_at: Optional[datetime] = None


class VerdictResponse(BaseModel):
    """Verdict schema."""
    allowed: bool
    reason: Optional[str] = None
    check: Optional[str] = None


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/evaluate", response_model=VerdictResponse)
def evaluate_operation(
    body: EvaluateRequest,
    evaluator: PolicyEvaluator = Depends(get_evaluator),
    resolver: PrincipalResolver = Depends(get_resolver),
):
    """
    Evaluate one operation.

    Returns 200 for allowed and 403 for denied verdicts; both carry the
    verdict body. Unknown principals yield 404, malformed operations 400.
    """
    principal = resolver.resolve(body.principal_id)

    operation = Operation.from_dict(
        {
            "kind": body.kind,
            "resource_type": body.resource_type,
            "resource_id": body.resource_id,
            "existing": codec.decode(body.existing),
            "proposed": codec.decode(body.proposed),
            "requested_at": body.requested_at,
        },
        principal=principal,
    )
    verdict = evaluator.evaluate(operation)
    return JSONResponse(status_code=200 if verdict.allowed else 403, content=verdict.to_dict())
