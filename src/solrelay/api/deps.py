"""Request dependencies shared by the routers."""

from typing import Optional

from fastapi import Depends, Header, Request

from solrelay.auth.gate import AuthorizationGate, Subject, extract_token
from solrelay.services import BalanceQueryService, TransferService


def get_token(request: Request, authorization: Optional[str] = Header(None)) -> Optional[str]:
    """Bearer token from the Authorization header or the session cookie."""
    cookie_name = request.app.state.settings.token_cookie_name
    return extract_token(authorization, request.cookies.get(cookie_name))


def get_gate(request: Request) -> AuthorizationGate:
    return request.app.state.gate


def get_balance_service(request: Request) -> BalanceQueryService:
    return request.app.state.balance_service


def get_transfer_service(request: Request) -> TransferService:
    return request.app.state.transfer_service


async def require_subject(
    token: Optional[str] = Depends(get_token),
    gate: AuthorizationGate = Depends(get_gate),
) -> Subject:
    """Authorize the caller; RelayError propagates to the error handler."""
    return gate.authorize(token)
