"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from solrelay.auth.gate import AuthorizationGate
from solrelay.config import Settings, get_settings
from solrelay.errors import RelayError, http_status_for
from solrelay.ledger.rpc import LedgerClient
from solrelay.services import BalanceQueryService, TransferService
from solrelay.signing.executor import SigningExecutor

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info(f"Ledger RPC: {app.state.settings.solana_rpc_url}")
    yield
    # Shutdown
    await app.state.ledger.close()


async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    """Render typed relay failures as structured JSON."""
    return JSONResponse(status_code=http_status_for(exc.kind), content=exc.to_dict())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler for unexpected failures."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"message": "Something went wrong!"})


def create_app(
    settings: Optional[Settings] = None,
    ledger: Optional[LedgerClient] = None,
    gate: Optional[AuthorizationGate] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    The ledger client and authorization gate are built once here and
    shared read-only by all request handlers.
    """
    settings = settings or get_settings()
    ledger = ledger or LedgerClient.from_settings(settings)
    gate = gate or AuthorizationGate.from_settings(settings)

    app = FastAPI(
        title="Solana Relay API",
        description="Custodial Solana balance and transfer relay",
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.state.settings = settings
    app.state.ledger = ledger
    app.state.gate = gate
    app.state.balance_service = BalanceQueryService(gate, ledger)
    app.state.transfer_service = TransferService(
        gate,
        SigningExecutor(ledger, enforce_sender_match=settings.enforce_sender_match),
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS", "PATCH", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )

    app.add_exception_handler(RelayError, relay_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Register routes
    from solrelay.api.routers import wallet
    from solrelay.api.routes import health

    app.include_router(health.router, tags=["Health"])
    app.include_router(wallet.router, tags=["Wallet"])
    app.include_router(wallet.legacy_router, tags=["Wallet"])

    return app
