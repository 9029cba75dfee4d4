"""Wallet API endpoints (token-protected).

Every route here authorizes the caller through require_subject, which
runs before the request body is validated or the ledger is touched.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from solrelay.api.deps import (
    get_balance_service,
    get_transfer_service,
    require_subject,
)
from solrelay.auth.gate import Subject
from solrelay.errors import MissingFields
from solrelay.services import BalanceQueryService, TransferService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth")

# Balance path kept from the first version of the API
legacy_router = APIRouter(prefix="/api")


class CheckBalanceRequest(BaseModel):
    """Balance lookup by body."""
    model_config = ConfigDict(extra="ignore")

    address: Optional[str] = None
    publicKey: Optional[str] = None


class BalanceResponse(BaseModel):
    """Balance in SOL."""
    balance: float


class SendTransactionRequest(BaseModel):
    """Transfer request.

    Fields are optional here so that absent ones are reported together
    as a 400 by the transfer service rather than as a schema error.
    """
    model_config = ConfigDict(extra="ignore")

    senderAddress: Optional[Any] = None
    senderPrivateKey: Optional[Any] = None
    recipientAddress: Optional[Any] = None
    amount: Optional[Any] = None


class SendTransactionResponse(BaseModel):
    """Successful transfer."""
    success: bool
    signature: str


class DashboardResponse(BaseModel):
    message: str


async def _balance_of(address: str, subject: Subject, service: BalanceQueryService) -> BalanceResponse:
    result = await service.query_for(subject, address)
    if not result.success:
        raise result.error
    return BalanceResponse(balance=float(result.balance))


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(subject: Subject = Depends(require_subject)) -> DashboardResponse:
    """Greeting for the signed-in user."""
    return DashboardResponse(message=f"Welcome to your dashboard, {subject.username}!")


@router.post("/check-balance", response_model=BalanceResponse)
async def check_balance(
    request: CheckBalanceRequest,
    subject: Subject = Depends(require_subject),
    service: BalanceQueryService = Depends(get_balance_service),
) -> BalanceResponse:
    """Get the balance of the address in the request body."""
    address = request.address or request.publicKey
    if not address:
        raise MissingFields(["address"])
    return await _balance_of(address, subject, service)


@router.get("/balance/{address}", response_model=BalanceResponse)
async def get_balance(
    address: str,
    subject: Subject = Depends(require_subject),
    service: BalanceQueryService = Depends(get_balance_service),
) -> BalanceResponse:
    """Get the balance of an address."""
    return await _balance_of(address, subject, service)


@legacy_router.get("/check-balance/{publicKey}", response_model=BalanceResponse)
async def get_balance_legacy(
    publicKey: str,
    subject: Subject = Depends(require_subject),
    service: BalanceQueryService = Depends(get_balance_service),
) -> BalanceResponse:
    """Get the balance of an address (original path, now authenticated)."""
    return await _balance_of(publicKey, subject, service)


@router.post("/send", response_model=SendTransactionResponse)
async def send_transaction(
    request: SendTransactionRequest,
    subject: Subject = Depends(require_subject),
    service: TransferService = Depends(get_transfer_service),
) -> SendTransactionResponse:
    """Sign and submit a SOL transfer.

    A 504 means the transaction was sent but not confirmed in time. It may
    still land; check the balance before sending again.
    """
    result = await service.submit_for(subject, request.model_dump())
    if not result.success:
        raise result.error
    return SendTransactionResponse(success=True, signature=result.signature)
