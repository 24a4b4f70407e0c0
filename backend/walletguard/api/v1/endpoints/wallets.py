"""
Wallet Transaction API Endpoints

Posts deposits, withdrawals and transfers through the transaction guard.
"""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from walletguard.api.deps import get_principal_id, get_transaction_guard
from walletguard.core import codec
from walletguard.services.transaction_guard import TransactionGuard

router = APIRouter(prefix="/wallets", tags=["Wallets"])


class TransactionRequest(BaseModel):
    """Request to post a transaction to a wallet."""
    amount: Decimal = Field(..., description="Amount; must be positive")
    type: str = Field(..., description="deposit, withdrawal or transfer")
    description: Optional[str] = Field(None, max_length=500)


@router.post("/{wallet_id}/transactions", status_code=status.HTTP_201_CREATED)
def post_transaction(
    wallet_id: str,
    body: TransactionRequest,
    principal_id: str = Depends(get_principal_id),
    guard: TransactionGuard = Depends(get_transaction_guard),
):
    """
    Post a transaction.

    Returns 201 with the created transaction and new balance, or 403 with
    the verdict when the guard denies it.
    """
    receipt = guard.process(
        principal_id=principal_id,
        wallet_id=wallet_id,
        amount=body.amount,
        transaction_type=body.type,
        description=body.description,
    )
    if not receipt.allowed:
        return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content=receipt.verdict.to_dict())

    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={
            **receipt.verdict.to_dict(),
            "transaction": codec.encode(receipt.transaction),
            "balance": str(receipt.balance),
        },
    )
