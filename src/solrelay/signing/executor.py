"""Signing executor for SOL transfers.

Transfer flow:
1. Rebuild the signing keypair from the supplied secret key
2. Check the keypair against the sender address
3. Validate recipient and amount
4. Fetch a fresh recent blockhash
5. Build, sign and submit the transfer
6. Wipe the secret key
7. Wait for confirmation

Steps 1-3 run before any network I/O. Any failure aborts the transfer
with a single typed error. Nothing is retried here: a timeout does not
mean the transfer was not applied, so resubmitting is the caller's call.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from solrelay.errors import InvalidKeyMaterial
from solrelay.ledger.rpc import LedgerClient
from solrelay.ledger.transfer import Amount, build_transfer, parse_address, to_lamports
from solrelay.signing.keys import secret_key_scope

logger = logging.getLogger(__name__)


@dataclass
class TransferRequest:
    """Request to move SOL from a sender holding the given secret key.

    Attributes:
        sender_address: Sender (and fee payer) address
        secret_key: 64-byte secret key buffer, wiped after execution
        recipient_address: Recipient address
        amount: Amount in SOL
    """
    sender_address: str
    secret_key: bytearray = field(repr=False)
    recipient_address: str
    amount: Amount


@dataclass
class TransferReceipt:
    """Confirmed transfer."""
    signature: str
    sender: str
    recipient: str
    lamports: int
    commitment: str
    slot: Optional[int] = None


class SigningExecutor:
    """Executes transfer requests against the ledger."""

    def __init__(self, ledger: LedgerClient, enforce_sender_match: bool = True):
        self.ledger = ledger
        self.enforce_sender_match = enforce_sender_match

    def _resolve_sender(self, sender_address: str, keypair: Keypair) -> Pubkey:
        sender = parse_address(sender_address)
        owner = keypair.pubkey()

        if sender == owner:
            return sender

        if self.enforce_sender_match:
            raise InvalidKeyMaterial("Secret key does not belong to the sender address")

        logger.warning(
            f"Secret key owner {owner} differs from sender {sender}; signing as key owner"
        )
        return owner

    async def execute(self, request: TransferRequest) -> TransferReceipt:
        """Sign, submit and confirm a transfer.

        Args:
            request: Transfer request; its secret key buffer is wiped on return

        Returns:
            TransferReceipt with the network signature

        Raises:
            InvalidKeyMaterial: Bad secret key, or key not owned by the sender
            InvalidAddress: Malformed sender or recipient
            InvalidAmount: Non-positive or non-numeric amount
            UpstreamUnavailable: Node unreachable before the transfer was sent
            SubmissionRejected: Node rejected the transaction
            ConfirmationTimeout: Submitted but not confirmed in time
        """
        with secret_key_scope(request.secret_key) as keypair:
            sender = self._resolve_sender(request.sender_address, keypair)
            parse_address(request.recipient_address)
            lamports = to_lamports(request.amount)

            logger.info(
                f"Executing transfer: {lamports} lamports {sender} -> {request.recipient_address}"
            )

            anchor = await self.ledger.get_recent_anchor()
            transfer = build_transfer(sender, request.recipient_address, request.amount, anchor)
            signature = await self.ledger.submit(transfer, keypair)

        confirmation = await self.ledger.confirm(signature)

        return TransferReceipt(
            signature=signature,
            sender=str(transfer.sender),
            recipient=str(transfer.recipient),
            lamports=transfer.lamports,
            commitment=confirmation.commitment,
            slot=confirmation.slot,
        )
