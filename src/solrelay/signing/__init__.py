"""Transfer signing.

Provides:
- decode_secret_key / secret_key_scope: per-request key handling
- SigningExecutor: build, sign, submit and confirm transfers
"""

from solrelay.signing.executor import SigningExecutor, TransferReceipt, TransferRequest
from solrelay.signing.keys import decode_secret_key, secret_key_scope, wipe

__all__ = [
    "SigningExecutor",
    "TransferReceipt",
    "TransferRequest",
    "decode_secret_key",
    "secret_key_scope",
    "wipe",
]
