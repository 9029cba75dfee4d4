"""Ledger RPC client.

Thin wrapper around one solana-py AsyncClient. The wrapped client is
created once per process and shared by concurrent requests; this class
holds no per-request state.

Reads (balance, recent blockhash) are retried a few times with backoff.
Submissions are never retried: a failed or timed-out send does not prove
the ledger did not apply the transfer.
"""

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Awaitable, Callable, Optional, TypeVar, Union

import httpx
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment
from solana.rpc.core import RPCException
from solana.rpc.types import TxOpts
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction_status import TransactionConfirmationStatus

from solrelay.config import Settings
from solrelay.errors import (
    ConfirmationTimeout,
    SubmissionRejected,
    UpstreamUnavailable,
)
from solrelay.ledger.transfer import (
    LAMPORTS_PER_SOL,
    RecentAnchor,
    UnsignedTransfer,
    parse_address,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Ordered weakest to strongest
COMMITMENT_LEVELS = ("processed", "confirmed", "finalized")
_STATUS_LEVELS = (
    TransactionConfirmationStatus.Processed,
    TransactionConfirmationStatus.Confirmed,
    TransactionConfirmationStatus.Finalized,
)

_TRANSPORT_ERRORS = (SolanaRpcException, httpx.HTTPError)
_READ_ERRORS = (SolanaRpcException, RPCException, httpx.HTTPError)


@dataclass(frozen=True)
class ConfirmationStatus:
    """Observed confirmation of a submitted transaction."""
    signature: str
    commitment: str
    slot: Optional[int] = None


def rpc_error_message(error: Exception) -> str:
    """Extract the node's message from an RPC or transport exception."""
    detail = error.args[0] if error.args else error
    if isinstance(detail, dict):
        return str(detail.get("message", detail))
    # SolanaRpcException keeps its text in error_msg, not args
    return str(
        getattr(detail, "message", None) or getattr(detail, "error_msg", None) or detail
    )


def _status_level(status) -> int:
    """Index into COMMITMENT_LEVELS reached by a signature status."""
    confirmation = status.confirmation_status
    if confirmation is None:
        # Nodes without confirmation_status report confirmations=None once rooted
        return 2 if status.confirmations is None else 0
    for index, level in enumerate(_STATUS_LEVELS):
        if confirmation == level:
            return index
    return 0


class LedgerClient:
    """Balance reads, recent blockhash lookups, submission and confirmation."""

    def __init__(
        self,
        client: AsyncClient,
        commitment: str = "confirmed",
        confirm_timeout: float = 30.0,
        poll_interval: float = 0.5,
        read_retries: int = 2,
        retry_backoff: float = 0.5,
    ):
        if commitment not in COMMITMENT_LEVELS:
            raise ValueError(f"Unknown commitment level: {commitment}")

        self._client = client
        self.commitment = commitment
        self.confirm_timeout = confirm_timeout
        self.poll_interval = poll_interval
        self.read_retries = read_retries
        self.retry_backoff = retry_backoff

    @classmethod
    def from_settings(cls, settings: Settings) -> "LedgerClient":
        """Create a client bound to the configured RPC endpoint."""
        client = AsyncClient(
            settings.solana_rpc_url,
            commitment=Commitment(settings.commitment),
            timeout=settings.rpc_timeout,
        )
        return cls(
            client,
            commitment=settings.commitment,
            confirm_timeout=settings.confirm_timeout,
            poll_interval=settings.confirm_poll_interval,
            read_retries=settings.read_retries,
            retry_backoff=settings.retry_backoff,
        )

    async def _read(self, operation: str, call: Callable[[], Awaitable[T]]) -> T:
        """Run a read-only RPC call with bounded retries."""
        attempts = self.read_retries + 1
        last_error: Optional[Exception] = None

        for attempt in range(attempts):
            try:
                return await call()
            except _READ_ERRORS as e:
                last_error = e
                if attempt < attempts - 1:
                    logger.warning(
                        f"RPC error in {operation} (attempt {attempt + 1}): {rpc_error_message(e)}"
                    )
                    await asyncio.sleep(self.retry_backoff * (attempt + 1))

        message = rpc_error_message(last_error)
        logger.error(f"{operation} failed after {attempts} attempts: {message}")
        raise UpstreamUnavailable(f"{operation} failed: {message}")

    async def get_lamports(self, address: Union[str, Pubkey]) -> int:
        """Get account balance in lamports."""
        pubkey = address if isinstance(address, Pubkey) else parse_address(address)
        resp = await self._read(
            "getBalance",
            lambda: self._client.get_balance(pubkey, commitment=Commitment(self.commitment)),
        )
        return resp.value

    async def get_balance(self, address: Union[str, Pubkey]) -> Decimal:
        """Get account balance in SOL.

        Raises:
            InvalidAddress: Before any network call if the address is malformed
            UpstreamUnavailable: If the node cannot be reached
        """
        lamports = await self.get_lamports(address)
        return Decimal(lamports) / LAMPORTS_PER_SOL

    async def get_recent_anchor(self) -> RecentAnchor:
        """Fetch the latest blockhash for transaction construction."""
        resp = await self._read(
            "getLatestBlockhash",
            lambda: self._client.get_latest_blockhash(commitment=Commitment(self.commitment)),
        )
        return RecentAnchor(
            blockhash=resp.value.blockhash,
            last_valid_block_height=resp.value.last_valid_block_height,
        )

    async def submit(self, transfer: UnsignedTransfer, signer: Keypair) -> str:
        """Sign and send a transfer.

        A transport failure during the send does not raise. The request may
        have reached the node, so the locally computed signature is returned
        and confirm() decides the outcome.

        Returns:
            Transaction signature (base58)

        Raises:
            SubmissionRejected: Node refused the transaction (preflight failure,
                insufficient funds, bad signature, duplicate)
        """
        transaction = transfer.transaction
        transaction.sign([signer], transfer.anchor.blockhash)

        opts = TxOpts(skip_preflight=False, preflight_commitment=Commitment(self.commitment))
        try:
            resp = await self._client.send_raw_transaction(bytes(transaction), opts=opts)
        except RPCException as e:
            message = rpc_error_message(e)
            logger.error(f"Transaction rejected: {message}")
            raise SubmissionRejected(f"Transaction rejected: {message}")
        except _TRANSPORT_ERRORS as e:
            signature = str(transaction.signatures[0])
            logger.warning(
                f"Transport error sending {signature}, outcome unknown: {rpc_error_message(e)}"
            )
            return signature

        signature = str(resp.value)
        logger.info(f"Transaction submitted: {signature}")
        return signature

    async def confirm(self, signature: str) -> ConfirmationStatus:
        """Wait until the transaction reaches the configured commitment.

        Raises:
            SubmissionRejected: Transaction landed but failed on chain
            ConfirmationTimeout: Confirmation not observed within confirm_timeout
        """
        try:
            return await asyncio.wait_for(
                self._poll_status(signature), timeout=self.confirm_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Transaction {signature} not confirmed within {self.confirm_timeout}s"
            )
            raise ConfirmationTimeout(signature, self.confirm_timeout)

    async def _poll_status(self, signature: str) -> ConfirmationStatus:
        target = COMMITMENT_LEVELS.index(self.commitment)
        sig = Signature.from_string(signature)

        while True:
            try:
                resp = await self._client.get_signature_statuses([sig])
            except _READ_ERRORS as e:
                logger.warning(f"Status poll for {signature} failed: {rpc_error_message(e)}")
            else:
                status = resp.value[0] if resp.value else None
                if status is not None:
                    if status.err is not None:
                        raise SubmissionRejected(
                            f"Transaction {signature} failed on chain: {status.err}",
                            signature=signature,
                        )
                    level = _status_level(status)
                    if level >= target:
                        logger.info(f"Transaction {signature} reached {COMMITMENT_LEVELS[level]}")
                        return ConfirmationStatus(
                            signature=signature,
                            commitment=COMMITMENT_LEVELS[level],
                            slot=status.slot,
                        )

            await asyncio.sleep(self.poll_interval)

    async def health(self) -> bool:
        """Check whether the node answers."""
        return await self._client.is_connected()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self._client.close()
