"""Relay services.

- BalanceQueryService: authorized balance reads
- TransferService: authorized transfer submission
"""

from solrelay.services.balance import BalanceQueryService, BalanceResult
from solrelay.services.transfer import TransferResult, TransferService, find_missing_fields

__all__ = [
    "BalanceQueryService",
    "BalanceResult",
    "TransferResult",
    "TransferService",
    "find_missing_fields",
]
