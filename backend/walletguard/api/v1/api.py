"""
API Version 1 Router

Defines the v1 API routes.
"""

from fastapi import APIRouter

from walletguard.api.v1.endpoints import audit, policy, wallets

api_v1_router = APIRouter()

# Prefixes are declared in the endpoint modules
api_v1_router.include_router(policy.router)
api_v1_router.include_router(wallets.router)
api_v1_router.include_router(audit.router)
