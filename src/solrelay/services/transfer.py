"""Transfer submission service.

Accepts the legacy request body
``{senderAddress, senderPrivateKey, recipientAddress, amount}``, authorizes
the caller, checks that every field is present and hands the transfer to
the signing executor. Authorization and field checks happen before any
RPC call.
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from solrelay.auth.gate import AuthorizationGate, Subject
from solrelay.errors import MissingFields, RelayError
from solrelay.signing.executor import SigningExecutor, TransferReceipt, TransferRequest
from solrelay.signing.keys import decode_secret_key

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("senderAddress", "senderPrivateKey", "recipientAddress", "amount")


@dataclass
class TransferResult:
    """Result of a transfer submission.

    A failed result may still carry a signature: after a confirmation
    timeout the transaction was sent and its outcome is unknown.
    """
    success: bool
    signature: Optional[str] = None
    receipt: Optional[TransferReceipt] = None
    error: Optional[RelayError] = None


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def find_missing_fields(payload: Mapping[str, Any]) -> list[str]:
    """Names of required fields that are absent or empty."""
    return [name for name in REQUIRED_FIELDS if _is_blank(payload.get(name))]


class TransferService:
    """Authorize and execute transfer requests."""

    def __init__(self, gate: AuthorizationGate, executor: SigningExecutor):
        self.gate = gate
        self.executor = executor

    async def submit(self, token: Optional[str], payload: Mapping[str, Any]) -> TransferResult:
        """Submit a transfer on behalf of the caller holding the token."""
        try:
            subject = self.gate.authorize(token)
        except RelayError as e:
            return self._failed(e)

        return await self.submit_for(subject, payload)

    async def submit_for(self, subject: Subject, payload: Mapping[str, Any]) -> TransferResult:
        """Submit a transfer for a caller the gate already accepted."""
        try:
            missing = find_missing_fields(payload)
            if missing:
                raise MissingFields(missing)

            request = TransferRequest(
                sender_address=payload["senderAddress"],
                secret_key=decode_secret_key(payload["senderPrivateKey"]),
                recipient_address=payload["recipientAddress"],
                amount=payload["amount"],
            )
            logger.info(f"Transfer requested by {subject.username} from {request.sender_address}")

            receipt = await self.executor.execute(request)

        except RelayError as e:
            return self._failed(e)

        return TransferResult(success=True, signature=receipt.signature, receipt=receipt)

    @staticmethod
    def _failed(error: RelayError) -> TransferResult:
        logger.warning(f"Transfer failed ({error.kind.value}): {error.message}")
        return TransferResult(
            success=False,
            signature=getattr(error, "signature", None),
            error=error,
        )
