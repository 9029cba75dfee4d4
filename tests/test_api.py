"""Tests for the FastAPI endpoints."""

from unittest.mock import MagicMock

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from solana.rpc.core import RPCException
from solders.keypair import Keypair

from solrelay.api.app import create_app
from solrelay.config import Settings
from solrelay.ledger.rpc import LedgerClient

from conftest import rpc_outage


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, jwt_secret="test-secret", environment="test")


@pytest.fixture
def test_app(settings, ledger, gate):
    """Application wired to the fake node."""
    return create_app(settings, ledger=ledger, gate=gate)


@pytest_asyncio.fixture
async def client(test_app):
    """Create async test client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth(token) -> dict:
    return {"Authorization": f"Bearer {token}"}


def _send_body(sender: Keypair, recipient: Keypair, amount=1.5) -> dict:
    return {
        "senderAddress": str(sender.pubkey()),
        "senderPrivateKey": list(bytes(sender)),
        "recipientAddress": str(recipient.pubkey()),
        "amount": amount,
    }


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    @pytest.mark.asyncio
    async def test_root(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        assert "live" in response.text

    @pytest.mark.asyncio
    async def test_health_check(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "solrelay"

    @pytest.mark.asyncio
    async def test_detailed_health_redacts_secret(self, client):
        response = await client.get("/health/detailed")

        assert response.status_code == 200
        data = response.json()
        assert data["ledger_reachable"] is True
        assert data["config"]["auth"]["jwt_secret"] == "***"
        assert "test-secret" not in response.text

    @pytest.mark.asyncio
    async def test_detailed_health_degraded(self, client, node):
        node.is_connected.return_value = False

        response = await client.get("/health/detailed")

        assert response.json()["status"] == "degraded"


class TestDashboard:
    @pytest.mark.asyncio
    async def test_greets_subject(self, client, auth):
        response = await client.get("/auth/dashboard", headers=auth)

        assert response.status_code == 200
        assert response.json() == {"message": "Welcome to your dashboard, alice!"}

    @pytest.mark.asyncio
    async def test_cookie_token(self, client, token):
        client.cookies.set("token", token)

        response = await client.get("/auth/dashboard")

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_requires_token(self, client):
        response = await client.get("/auth/dashboard")

        assert response.status_code == 401
        assert response.json()["kind"] == "unauthenticated"


class TestBalanceEndpoints:
    """Tests for the three balance paths."""

    @pytest.mark.asyncio
    async def test_balance_by_path(self, client, node, auth):
        address = str(Keypair().pubkey())
        node.balances[address] = 2_500_000_000

        response = await client.get(f"/auth/balance/{address}", headers=auth)

        assert response.status_code == 200
        assert response.json() == {"balance": 2.5}

    @pytest.mark.asyncio
    async def test_balance_by_body(self, client, node, auth):
        address = str(Keypair().pubkey())
        node.balances[address] = 1

        response = await client.post("/auth/check-balance", json={"address": address}, headers=auth)

        assert response.status_code == 200
        assert response.json() == {"balance": 0.000000001}

    @pytest.mark.asyncio
    async def test_balance_by_body_public_key_alias(self, client, node, auth):
        address = str(Keypair().pubkey())
        node.balances[address] = 4_000_000_000

        response = await client.post("/auth/check-balance", json={"publicKey": address}, headers=auth)

        assert response.json() == {"balance": 4.0}

    @pytest.mark.asyncio
    async def test_balance_by_body_missing_address(self, client, auth):
        response = await client.post("/auth/check-balance", json={}, headers=auth)

        assert response.status_code == 400
        assert response.json()["missing"] == ["address"]

    @pytest.mark.asyncio
    async def test_balance_authorizes_once(self, client, node, gate, auth):
        address = str(Keypair().pubkey())
        gate.authorize = MagicMock(wraps=gate.authorize)

        response = await client.post("/auth/check-balance", json={"address": address}, headers=auth)

        assert response.status_code == 200
        assert gate.authorize.call_count == 1

    @pytest.mark.asyncio
    async def test_legacy_path_requires_token(self, client, node):
        """The original unauthenticated balance path is now protected."""
        response = await client.get(f"/api/check-balance/{Keypair().pubkey()}")

        assert response.status_code == 401
        assert node.network_calls == 0

    @pytest.mark.asyncio
    async def test_legacy_path(self, client, node, auth):
        address = str(Keypair().pubkey())
        node.balances[address] = 10_000_000_000

        response = await client.get(f"/api/check-balance/{address}", headers=auth)

        assert response.json() == {"balance": 10.0}

    @pytest.mark.asyncio
    async def test_invalid_address(self, client, node, auth):
        response = await client.get("/auth/balance/not-a-key", headers=auth)

        assert response.status_code == 400
        assert response.json()["kind"] == "invalid_address"
        assert node.network_calls == 0

    @pytest.mark.asyncio
    async def test_upstream_error(self, client, node, auth):
        node.get_balance.side_effect = RPCException({"message": "node is behind"})

        response = await client.get(f"/auth/balance/{Keypair().pubkey()}", headers=auth)

        assert response.status_code == 500
        assert response.json()["kind"] == "upstream_unavailable"

    @pytest.mark.asyncio
    async def test_tampered_token(self, client, node, token):
        forged = token[:-4] + ("AAAA" if not token.endswith("AAAA") else "BBBB")

        response = await client.get(
            f"/auth/balance/{Keypair().pubkey()}",
            headers={"Authorization": f"Bearer {forged}"},
        )

        assert response.status_code == 401
        assert node.network_calls == 0


class TestSendEndpoint:
    """Tests for transfer submission."""

    @pytest.mark.asyncio
    async def test_successful_transfer(self, client, node, auth, sender, recipient):
        response = await client.post("/auth/send", json=_send_body(sender, recipient), headers=auth)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["signature"] == str(node.sent[0].signatures[0])

    @pytest.mark.asyncio
    async def test_missing_private_key(self, client, node, auth, sender, recipient):
        body = _send_body(sender, recipient)
        del body["senderPrivateKey"]

        response = await client.post("/auth/send", json=body, headers=auth)

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Missing required fields"
        assert data["missing"] == ["senderPrivateKey"]
        assert "senderPrivateKey" in data["details"]
        assert node.network_calls == 0

    @pytest.mark.asyncio
    async def test_requires_token(self, client, node, sender, recipient):
        """There is no unauthenticated transfer path."""
        response = await client.post("/auth/send", json=_send_body(sender, recipient))

        assert response.status_code == 401
        assert node.network_calls == 0

    @pytest.mark.asyncio
    async def test_malformed_body_without_token(self, client, node):
        """The token is checked before the body is validated."""
        response = await client.post("/auth/send", json=[1, 2])

        assert response.status_code == 401
        assert response.json()["kind"] == "unauthenticated"
        assert node.network_calls == 0

    @pytest.mark.asyncio
    async def test_expired_token(self, client, node, auth, clock, sender, recipient):
        clock.current["now"] += 3601

        response = await client.post("/auth/send", json=_send_body(sender, recipient), headers=auth)

        assert response.status_code == 401
        assert response.json()["kind"] == "token_expired"
        assert node.network_calls == 0

    @pytest.mark.asyncio
    async def test_invalid_amount(self, client, node, auth, sender, recipient):
        response = await client.post(
            "/auth/send", json=_send_body(sender, recipient, amount=-1), headers=auth
        )

        assert response.status_code == 400
        assert response.json()["kind"] == "invalid_amount"
        assert node.network_calls == 0

    @pytest.mark.asyncio
    async def test_rejected_transfer(self, client, node, auth, sender, recipient):
        node.send_raw_transaction.side_effect = RPCException(
            {"message": "Attempt to debit an account but found no record of a prior credit."}
        )

        response = await client.post("/auth/send", json=_send_body(sender, recipient), headers=auth)

        assert response.status_code == 500
        data = response.json()
        assert data["error"] == "Transaction failed"
        assert data["kind"] == "submission_rejected"
        assert "prior credit" in data["message"]

    @pytest.mark.asyncio
    async def test_confirmation_timeout(self, settings, gate, node, auth, sender, recipient):
        """Timeouts come back as 504 with the signature, distinct from rejection."""
        node.confirmation_status = None
        ledger = LedgerClient(node, confirm_timeout=0.05, poll_interval=0.01)
        app = create_app(settings, ledger=ledger, gate=gate)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.post("/auth/send", json=_send_body(sender, recipient), headers=auth)

        assert response.status_code == 504
        data = response.json()
        assert data["kind"] == "confirmation_timeout"
        assert data["signature"] == str(node.sent[0].signatures[0])
        assert node.send_raw_transaction.await_count == 1

    @pytest.mark.asyncio
    async def test_lost_send_reply(self, settings, gate, node, auth, sender, recipient):
        """A send whose reply was lost comes back as 504 with the signature, not as an outage."""
        node.send_error = rpc_outage("SendRawTransaction", cause=httpx.ReadTimeout("read timed out"))
        node.confirmation_status = None
        ledger = LedgerClient(node, confirm_timeout=0.05, poll_interval=0.01)
        app = create_app(settings, ledger=ledger, gate=gate)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.post("/auth/send", json=_send_body(sender, recipient), headers=auth)

        assert response.status_code == 504
        data = response.json()
        assert data["kind"] == "confirmation_timeout"
        assert data["signature"] == str(node.sent[0].signatures[0])
        assert node.send_raw_transaction.await_count == 1
