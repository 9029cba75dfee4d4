"""Pytest configuration and fixtures."""

import asyncio
import os
from types import SimpleNamespace
from typing import Optional
from unittest.mock import AsyncMock

import httpx
import pytest
from solana.exceptions import SolanaRpcException
from solders.hash import Hash
from solders.keypair import Keypair
from solders.transaction import Transaction
from solders.transaction_status import TransactionConfirmationStatus

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["SOLANA_RPC_URL"] = "http://127.0.0.1:8899"

from solrelay.auth.gate import AuthorizationGate, Subject
from solrelay.config import reset_settings
from solrelay.ledger.rpc import LedgerClient

TEST_SECRET = "test-secret"
NOW = 1_700_000_000


def rpc_outage(method: str = "GetBalance", cause: Optional[Exception] = None) -> SolanaRpcException:
    """Build the exception solana-py raises when an HTTP round trip fails."""
    cause = cause or httpx.ConnectError("connection refused")
    return SolanaRpcException(cause, rpc_outage, None, method)


class FakeSolanaNode:
    """Stands in for solana-py's AsyncClient.

    Balances are served from a dict, every blockhash is unique, sent
    transactions are decoded and kept, and signature statuses report
    `confirmation_status` with `err`.
    """

    def __init__(self):
        self.balances: dict[str, int] = {}
        self.sent: list[Transaction] = []
        self.blockhashes: list[Hash] = []
        self.confirmation_status: Optional[TransactionConfirmationStatus] = (
            TransactionConfirmationStatus.Confirmed
        )
        self.status_err = None
        self.send_delay = 0.0
        # Raised after the transaction is recorded, as when the reply is lost
        self.send_error: Optional[Exception] = None

        self.get_balance = AsyncMock(side_effect=self._get_balance)
        self.get_latest_blockhash = AsyncMock(side_effect=self._get_latest_blockhash)
        self.send_raw_transaction = AsyncMock(side_effect=self._send_raw_transaction)
        self.get_signature_statuses = AsyncMock(side_effect=self._get_signature_statuses)
        self.is_connected = AsyncMock(return_value=True)
        self.close = AsyncMock()

    @property
    def network_calls(self) -> int:
        return (
            self.get_balance.await_count
            + self.get_latest_blockhash.await_count
            + self.send_raw_transaction.await_count
            + self.get_signature_statuses.await_count
        )

    async def _get_balance(self, pubkey, commitment=None):
        return SimpleNamespace(value=self.balances.get(str(pubkey), 0))

    async def _get_latest_blockhash(self, commitment=None):
        blockhash = Hash.new_unique()
        self.blockhashes.append(blockhash)
        return SimpleNamespace(
            value=SimpleNamespace(blockhash=blockhash, last_valid_block_height=1_000)
        )

    async def _send_raw_transaction(self, raw, opts=None):
        if self.send_delay:
            await asyncio.sleep(self.send_delay)
        transaction = Transaction.from_bytes(raw)
        self.sent.append(transaction)
        if self.send_error is not None:
            raise self.send_error
        return SimpleNamespace(value=transaction.signatures[0])

    async def _get_signature_statuses(self, signatures, search_transaction_history=False):
        if self.confirmation_status is None:
            return SimpleNamespace(value=[None])
        status = SimpleNamespace(
            err=self.status_err,
            confirmation_status=self.confirmation_status,
            confirmations=1,
            slot=42,
        )
        return SimpleNamespace(value=[status])


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Drop cached settings between tests."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def node() -> FakeSolanaNode:
    return FakeSolanaNode()


@pytest.fixture
def ledger(node) -> LedgerClient:
    """Ledger client over the fake node with fast timeouts."""
    return LedgerClient(
        node,
        commitment="confirmed",
        confirm_timeout=1.0,
        poll_interval=0.01,
        read_retries=2,
        retry_backoff=0,
    )


@pytest.fixture
def clock():
    """Mutable clock for the authorization gate."""
    current = {"now": NOW}

    def now() -> float:
        return current["now"]

    now.current = current
    return now


@pytest.fixture
def gate(clock) -> AuthorizationGate:
    return AuthorizationGate(TEST_SECRET, clock=clock)


@pytest.fixture
def subject() -> Subject:
    return Subject(user_id="64f0c0ffee", username="alice")


@pytest.fixture
def token(gate, subject) -> str:
    return gate.issue_token(subject, ttl_seconds=3600)


@pytest.fixture
def sender() -> Keypair:
    return Keypair()


@pytest.fixture
def recipient() -> Keypair:
    return Keypair()
