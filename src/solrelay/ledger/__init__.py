"""Ledger access: RPC client and transfer construction."""

from solrelay.ledger.rpc import ConfirmationStatus, LedgerClient
from solrelay.ledger.transfer import (
    LAMPORTS_PER_SOL,
    RecentAnchor,
    UnsignedTransfer,
    build_transfer,
    parse_address,
    to_lamports,
)

__all__ = [
    "ConfirmationStatus",
    "LedgerClient",
    "LAMPORTS_PER_SOL",
    "RecentAnchor",
    "UnsignedTransfer",
    "build_transfer",
    "parse_address",
    "to_lamports",
]
