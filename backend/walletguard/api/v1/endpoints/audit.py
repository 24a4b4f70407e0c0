"""
Audit Log API Endpoints

Read access to the tamper-evident audit trail, restricted by the policy
to administrators.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from walletguard.api.deps import get_audit, get_evaluator, get_principal_id, get_resolver
from walletguard.core import codec
from walletguard.core.exceptions import IntegrityError
from walletguard.core.security.policy import PolicyEvaluator
from walletguard.core.security.principal import PrincipalResolver
from walletguard.core.security.types import Operation, OperationKind, ResourceType
from walletguard.services.audit import AuditRecorder, verify_chain

router = APIRouter(prefix="/audit-logs", tags=["Audit"])


@router.get("")
def list_audit_logs(
    principal_id: str = Depends(get_principal_id),
    evaluator: PolicyEvaluator = Depends(get_evaluator),
    resolver: PrincipalResolver = Depends(get_resolver),
    audit: AuditRecorder = Depends(get_audit),
):
    """
    Return the audit trail in chain order after verifying it.

    Every entry is authorized individually; an empty trail is still
    authorized against a blank entry so non-admins always get 403.
    """
    principal = resolver.resolve(principal_id)
    entries = audit.entries()

    for entry in entries or [{}]:
        verdict = evaluator.evaluate(Operation(
            kind=OperationKind.READ,
            resource_type=ResourceType.AUDIT_LOG,
            principal=principal,
            resource_id=entry.get("id"),
            existing=entry,
        ))
        if not verdict.allowed:
            return JSONResponse(status_code=403, content=verdict.to_dict())

    if not verify_chain(entries):
        raise IntegrityError("Audit log chain verification failed")

    return {"verified": True, "entries": codec.encode(entries)}
