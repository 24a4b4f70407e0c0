"""
WalletGuard Policy Service
Main FastAPI Application Entry Point

Wires the stores, policy evaluator and transaction guard onto the
application and mounts the health and v1 routers.
"""

import time
import uuid
from datetime import datetime
from typing import Callable, Optional

from fastapi import FastAPI, Request

from walletguard.api.health import router as health_router
from walletguard.api.v1.api import api_v1_router
from walletguard.core.config import settings
from walletguard.core.logging import LogContext, get_logger
from walletguard.core.security.policy import PolicyEvaluator
from walletguard.core.security.principal import PrincipalResolver
from walletguard.middleware.exception import setup_exception_handlers
from walletguard.services.audit import AuditRecorder
from walletguard.services.transaction_guard import TransactionGuard
from walletguard.stores import build_stores
from walletguard.stores.base import ResourceStore, UserDirectory

logger = get_logger(__name__)


def create_application(
    directory: Optional[UserDirectory] = None,
    store: Optional[ResourceStore] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        directory: User directory override (defaults to the configured backend)
        store: Resource store override (defaults to the configured backend)
        clock: Clock override for the evaluator and guard

    Returns:
        Configured application
    """
    if directory is None or store is None:
        default_directory, default_store = build_stores()
        directory = directory or default_directory
        store = store or default_store

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url=None,
    )

    evaluator = PolicyEvaluator(directory, clock=clock)
    audit = AuditRecorder(store, clock=clock)
    app.state.directory = directory
    app.state.store = store
    app.state.evaluator = evaluator
    app.state.resolver = PrincipalResolver(directory)
    app.state.audit = audit
    app.state.transaction_guard = TransactionGuard(
        directory,
        store,
        evaluator=evaluator,
        audit=audit,
        clock=clock,
    )

    setup_exception_handlers(app)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Structured access logging with a request id."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        start = time.time()
        with LogContext(request_id=request_id):
            response = await call_next(request)
            duration = (time.time() - start) * 1000
            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=f"{duration:.2f}",
            )
        response.headers["X-Request-ID"] = request_id
        return response

    app.include_router(health_router)
    app.include_router(api_v1_router, prefix=settings.API_V1_STR)

    logger.info(
        "Application created",
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT.value,
        store_backend=settings.STORE_BACKEND.value,
    )
    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "walletguard.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        log_level="info",
        access_log=True,
    )
