"""Health check endpoints."""

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from solrelay import __version__

router = APIRouter()


@router.get("/", response_class=PlainTextResponse)
async def root() -> str:
    """Liveness banner."""
    return "Solana relay is live"


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "solrelay"}


@router.get("/health/detailed")
async def detailed_health(request: Request):
    """Detailed health check with configuration and node reachability."""
    settings = request.app.state.settings
    node_ok = await request.app.state.ledger.health()
    return {
        "status": "healthy" if node_ok else "degraded",
        "service": "solrelay",
        "version": __version__,
        "ledger_reachable": node_ok,
        "config": settings.get_safe_dict(),
    }
