"""Balance query service."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from solrelay.auth.gate import AuthorizationGate, Subject
from solrelay.errors import RelayError
from solrelay.ledger.rpc import LedgerClient

logger = logging.getLogger(__name__)


@dataclass
class BalanceResult:
    """Result of a balance query."""
    success: bool
    address: str
    balance: Optional[Decimal] = None
    subject: Optional[Subject] = None
    error: Optional[RelayError] = None


class BalanceQueryService:
    """Authorize the caller, then read one account balance."""

    def __init__(self, gate: AuthorizationGate, ledger: LedgerClient):
        self.gate = gate
        self.ledger = ledger

    async def query(self, address: str, token: Optional[str]) -> BalanceResult:
        """Get the SOL balance of an address for an authorized caller."""
        try:
            subject = self.gate.authorize(token)
        except RelayError as e:
            logger.warning(f"Balance query for {address} refused ({e.kind.value}): {e.message}")
            return BalanceResult(success=False, address=address, error=e)

        return await self.query_for(subject, address)

    async def query_for(self, subject: Subject, address: str) -> BalanceResult:
        """Get the SOL balance of an address for a caller the gate already accepted."""
        try:
            balance = await self.ledger.get_balance(address)
        except RelayError as e:
            logger.warning(f"Balance query for {address} failed ({e.kind.value}): {e.message}")
            return BalanceResult(success=False, address=address, subject=subject, error=e)

        logger.info(f"Balance of {address} for {subject.username}: {balance} SOL")
        return BalanceResult(success=True, address=address, balance=balance, subject=subject)
