"""Transfer builder.

Builds a single-instruction SOL transfer:
1. Parse sender and recipient addresses
2. Convert the SOL amount to lamports
3. Create a system transfer instruction paid by the sender
4. Anchor the message to a recent blockhash

No fee estimation and no balance pre-check happen here. The network is
authoritative on insufficient funds and reports it at submission.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Union

from solders.hash import Hash
from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction

from solrelay.errors import InvalidAddress, InvalidAmount

logger = logging.getLogger(__name__)

LAMPORTS_PER_SOL = 1_000_000_000
MAX_LAMPORTS = 2**64 - 1

Amount = Union[int, float, Decimal, str]


@dataclass(frozen=True)
class RecentAnchor:
    """Recent blockhash a transaction must reference to be accepted."""
    blockhash: Hash
    last_valid_block_height: int


@dataclass
class UnsignedTransfer:
    """Transfer transaction ready for signing."""
    transaction: Transaction
    sender: Pubkey
    recipient: Pubkey
    lamports: int
    anchor: RecentAnchor


def parse_address(value: object) -> Pubkey:
    """Parse a base58 account address.

    Raises:
        InvalidAddress: If the value is not a 32-byte base58 public key
    """
    if not isinstance(value, str) or not value.strip():
        raise InvalidAddress(f"Invalid address: {value!r}")

    try:
        return Pubkey.from_string(value.strip())
    except (ValueError, TypeError):
        raise InvalidAddress(f"Invalid address: {value}")


def to_lamports(amount: Amount) -> int:
    """Convert a SOL amount to lamports.

    Raises:
        InvalidAmount: On non-numeric, non-positive, sub-lamport or oversized amounts
    """
    if isinstance(amount, bool):
        raise InvalidAmount(f"Amount must be a number, got {amount!r}")

    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount).strip())
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidAmount(f"Amount must be a number, got {amount!r}")

    if not value.is_finite() or value <= 0:
        raise InvalidAmount(f"Amount must be greater than zero, got {amount}")

    lamports = value * LAMPORTS_PER_SOL
    if lamports != lamports.to_integral_value():
        raise InvalidAmount(f"Amount {amount} is finer than one lamport")
    if lamports > MAX_LAMPORTS:
        raise InvalidAmount(f"Amount {amount} exceeds the maximum transferable value")

    return int(lamports)


def build_transfer(
    sender_address: Union[str, Pubkey],
    recipient_address: str,
    amount: Amount,
    anchor: RecentAnchor,
) -> UnsignedTransfer:
    """Build an unsigned SOL transfer paid for by the sender.

    Args:
        sender_address: Sender address (also the fee payer)
        recipient_address: Recipient address
        amount: Amount in SOL
        anchor: Fresh recent blockhash

    Returns:
        UnsignedTransfer wrapping the unsigned transaction
    """
    sender = sender_address if isinstance(sender_address, Pubkey) else parse_address(sender_address)
    recipient = parse_address(recipient_address)
    lamports = to_lamports(amount)

    instruction = transfer(
        TransferParams(from_pubkey=sender, to_pubkey=recipient, lamports=lamports)
    )
    message = Message.new_with_blockhash([instruction], sender, anchor.blockhash)

    logger.debug(f"Built transfer of {lamports} lamports {sender} -> {recipient}")

    return UnsignedTransfer(
        transaction=Transaction.new_unsigned(message),
        sender=sender,
        recipient=recipient,
        lamports=lamports,
        anchor=anchor,
    )
