"""Tests for the HTTP API."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from conftest import BUYER, CREATOR, NOW_TS, SIGNER, FakeChainGateway, make_ticket
from eventbase.api.v1.endpoints.refunds import get_claimer
from eventbase.api.v1.endpoints.verification import get_engine
from eventbase.core.config import Settings
from eventbase.core.errors import GatewayError
from eventbase.infrastructure.storage import PinataContentStore, get_content_store
from eventbase.main import status_code_for
from eventbase.services.health import HealthChecker, get_health_checker
from eventbase.services.marketplace import MarketplaceService, get_marketplace_service
from eventbase.services.notifications import Notifier
from eventbase.services.pipeline import (
    PipelineOrchestrator,
    ResaleService,
    get_pipeline_orchestrator,
    get_resale_service,
)
from eventbase.services.refunds import RefundClaimer
from eventbase.services.verification import (
    TicketVerificationEngine,
    get_verification_engine,
    reset_verification_engine,
)

API = "/api/v1"


@pytest.fixture
def chain():
    gateway = FakeChainGateway()
    gateway.on_read("getRecentTickets", lambda: [make_ticket(1), make_ticket(2, canceled=True)])
    gateway.on_read("tickets", lambda event_id: make_ticket(event_id))
    gateway.on_read("ownerOf", lambda token_id: BUYER)
    gateway.on_read("getTicketMetadata", lambda token_id: {"ticketId": 1})
    return gateway


class TestSystemEndpoints:
    """Tests for liveness and API root."""

    def test_health(self, client):
        """Test the liveness endpoint."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_api_root(self, client):
        """Test the API root reports the network."""
        response = client.get(f"{API}/")

        assert response.status_code == 200
        assert response.json()["network"] in ("testnet", "mainnet")


class TestMarketplaceEndpoints:
    """Tests for marketplace routes."""

    def test_list_events(self, app, client, chain):
        """Test the upcoming view excludes canceled events."""
        service = MarketplaceService(chain, Notifier(), Settings(environment="testing"), lambda: NOW_TS)
        app.dependency_overrides[get_marketplace_service] = lambda: service

        response = client.get(f"{API}/marketplace/events", params={"view": "upcoming"})

        assert response.status_code == 200
        assert [e["id"] for e in response.json()] == [1]
        assert response.json()[0]["price"] == "0.01 BASE"

    def test_summary(self, app, client, chain):
        """Test the status summary counts every event."""
        service = MarketplaceService(chain, Notifier(), Settings(environment="testing"), lambda: NOW_TS)
        app.dependency_overrides[get_marketplace_service] = lambda: service

        response = client.get(f"{API}/marketplace/summary")

        assert response.json()["total"] == 2
        assert response.json()["by_status"]["canceled"] == 1

    def test_gateway_failure_maps_to_502(self, app, client):
        """Test a failed registry read is a bad gateway."""
        gateway = FakeChainGateway()

        def broken():
            raise GatewayError("All RPC endpoints failed")

        gateway.on_read("getRecentTickets", broken)
        service = MarketplaceService(gateway, Notifier(), Settings(environment="testing"))
        app.dependency_overrides[get_marketplace_service] = lambda: service

        response = client.get(f"{API}/marketplace/events")

        assert response.status_code == 502
        assert response.json()["error"] == "GATEWAY_ERROR"


class TestResaleEndpoints:
    """Tests for resale routes."""

    def test_list_ticket(self, app, client, chain):
        """Test listing runs approve then list."""
        orchestrator = PipelineOrchestrator(chain, Notifier())
        service = ResaleService(orchestrator, Settings(environment="testing"))
        app.dependency_overrides[get_resale_service] = lambda: service
        app.dependency_overrides[get_pipeline_orchestrator] = lambda: orchestrator

        response = client.post(f"{API}/resale/list", json={"token_id": "4", "price": "0.25"})
        state = client.get(f"{API}/resale/pipeline").json()

        assert response.status_code == 200
        assert response.json()["status"] == "succeeded"
        assert chain.written_methods == ["approve", "listTicket"]
        assert state["status"] == "idle"
        assert state["entity_states"] == {"4": "confirmed"}

    def test_list_ticket_rejects_non_positive_price(self, app, client, chain):
        """Test request validation rejects a zero price."""
        service = ResaleService(PipelineOrchestrator(chain, Notifier()), Settings(environment="testing"))
        app.dependency_overrides[get_resale_service] = lambda: service

        response = client.post(f"{API}/resale/list", json={"token_id": "4", "price": "0"})

        assert response.status_code == 422
        assert chain.writes == []

    def test_buy_unknown_token_symbol(self, app, client, chain):
        """Test an unsupported payment token is a bad request."""
        service = ResaleService(PipelineOrchestrator(chain, Notifier()), Settings(environment="testing"))
        app.dependency_overrides[get_resale_service] = lambda: service

        response = client.post(
            f"{API}/resale/buy",
            json={"token_id": "4", "price": "1", "payment_token": "DOGE"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_INPUT"

    def test_payment_status(self, app, client, chain):
        """Test the payment endpoint reports the signer's stablecoin standing."""
        chain.on_read("balanceOf", lambda owner: 7_000_000)
        chain.on_read("allowance", lambda owner, spender: 0)
        service = ResaleService(PipelineOrchestrator(chain, Notifier()), Settings(environment="testing"))
        app.dependency_overrides[get_resale_service] = lambda: service

        response = client.get(f"{API}/resale/payment/USDT")

        assert response.status_code == 200
        assert response.json()["symbol"] == "USDT"
        assert response.json()["owner"] == SIGNER
        assert response.json()["balance"] == 7_000_000
        assert response.json()["allowance"] == 0

    def test_listings(self, app, client, chain):
        """Test listings are loaded for the requested tokens and sorted."""
        prices = {1: 3 * 10**16, 2: 10**16}
        chain.on_read(
            "listings",
            lambda token_id: {"seller": BUYER, "price": prices[token_id], "active": True},
        )
        service = MarketplaceService(chain, Notifier(), Settings(environment="testing"))
        app.dependency_overrides[get_marketplace_service] = lambda: service

        response = client.get(
            f"{API}/resale/listings", params={"token_ids": "1,2", "sort": "price-low"}
        )

        assert [x["token_id"] for x in response.json()] == ["2", "1"]
        assert response.json()[1]["price_difference_pct"] == 200.0


class TestVerificationEndpoints:
    """Tests for verification routes."""

    def setup_engine(self, app, chain):
        engine = TicketVerificationEngine(chain, notifier=Notifier(), clock=lambda: NOW_TS)
        app.dependency_overrides[get_engine] = lambda: engine
        return engine

    def test_verify_without_event(self, app, client, chain):
        """Test verifying before selecting an event is a bad request."""
        self.setup_engine(app, chain)

        response = client.post(f"{API}/verification/verify", json={"token_id": "5"})

        assert response.status_code == 400
        assert response.json()["error"] == "NO_EVENT_SELECTED"

    def test_verify_and_check_in(self, app, client, chain):
        """Test select, verify and check in, then a second check in conflicts."""
        self.setup_engine(app, chain)

        client.post(f"{API}/verification/select", json={"event_id": "1"})
        verified = client.post(f"{API}/verification/verify", json={"token_id": "5"})
        checked = client.post(f"{API}/verification/check-in", json={"token_id": "5"})
        again = client.post(f"{API}/verification/check-in", json={"token_id": "5"})
        stats = client.get(f"{API}/verification/stats")

        assert verified.json()["outcome"] == "valid"
        assert checked.json()["already_used"] is True
        assert again.status_code == 400
        assert stats.json()["checked_in"] == 1

    def test_wrong_event_conflict(self, app, client, chain):
        """Test a token from another event is a conflict."""
        chain.on_read("getTicketMetadata", lambda token_id: {"ticketId": 2})
        self.setup_engine(app, chain)

        client.post(f"{API}/verification/select", json={"event_id": "1"})
        response = client.post(f"{API}/verification/verify", json={"token_id": "5"})

        assert response.status_code == 409
        assert response.json()["error"] == "WRONG_EVENT"

    def test_unknown_token_not_found(self, app, client, chain):
        """Test a nonexistent token is not found."""
        def no_owner(token_id):
            raise GatewayError("ERC721NonexistentToken")

        chain.on_read("ownerOf", no_owner)
        self.setup_engine(app, chain)

        client.post(f"{API}/verification/select", json={"event_id": "1"})
        response = client.post(f"{API}/verification/verify", json={"token_id": "99"})

        assert response.status_code == 404

    def test_verify_qr(self, app, client, chain):
        """Test verifying a scanned QR payload."""
        self.setup_engine(app, chain)

        client.post(f"{API}/verification/select", json={"event_id": "1"})
        response = client.post(
            f"{API}/verification/verify", json={"qr_payload": "EventBase\nID:5"}
        )

        assert response.json()["token_id"] == "5"

    def test_verify_requires_input(self, app, client, chain):
        """Test an empty verify request fails validation."""
        self.setup_engine(app, chain)

        response = client.post(f"{API}/verification/verify", json={})

        assert response.status_code == 422

    def test_creator_events(self, app, client, chain):
        """Test creator events list and auto-selection."""
        engine = self.setup_engine(app, chain)

        response = client.get(f"{API}/verification/events", params={"creator": CREATOR})

        assert [e["id"] for e in response.json()] == ["1", "2"]
        assert engine.selected_event_id == "1"

    def test_operators_keep_separate_selections(self, client, chain):
        """Test one operator switching events leaves another operator's selection alone."""
        reset_verification_engine()
        with patch(
            "eventbase.infrastructure.blockchain.gateway.get_chain_gateway", return_value=chain
        ):
            client.post(
                f"{API}/verification/select", json={"event_id": "1"}, headers={"X-Operator": "north"}
            )
            client.post(
                f"{API}/verification/select", json={"event_id": "2"}, headers={"X-Operator": "south"}
            )
            north = client.post(
                f"{API}/verification/check-in", json={"token_id": "5"}, headers={"X-Operator": "north"}
            )

        assert north.json()["event_id"] == "1"
        assert get_verification_engine("north").selected_event_id == "1"
        assert get_verification_engine("south").selected_event_id == "2"
        assert get_verification_engine("north").ledger is get_verification_engine("south").ledger
        reset_verification_engine()


class TestRefundEndpoints:
    """Tests for refund routes."""

    def holder_gateway(self, signer):
        gateway = FakeChainGateway(signer=signer)
        gateway.on_read("getRecentTickets", lambda: [make_ticket(1), make_ticket(2, canceled=True)])
        gateway.on_read("isRegistered", lambda ticket_id, user: True)
        gateway.on_read("paidAmount", lambda ticket_id, user: 10**16)
        return gateway

    def test_refund_summary_and_claim_all(self, app, client):
        """Test the summary lists the canceled event and claim-all submits it."""
        chain = self.holder_gateway(BUYER)
        claimer = RefundClaimer(
            chain,
            BUYER,
            notifier=Notifier(),
            settings=Settings(environment="testing"),
            sleep=AsyncMock(),
        )
        app.dependency_overrides[get_claimer] = lambda: claimer

        summary = client.get(f"{API}/refunds/{BUYER}")
        batch = client.post(f"{API}/refunds/{BUYER}/claim-all")

        assert [c["ticket_id"] for c in summary.json()["candidates"]] == [2]
        assert summary.json()["total_refundable_wei"] == 10**16
        assert batch.json()["submitted"] == [2]
        assert chain.written_methods == ["claimRefund"]

    def test_claim_for_other_address_rejected(self, app, client):
        """Test claiming for an address other than the signer is a bad request."""
        chain = self.holder_gateway(SIGNER)
        claimer = RefundClaimer(
            chain,
            BUYER,
            notifier=Notifier(),
            settings=Settings(environment="testing"),
            sleep=AsyncMock(),
        )
        app.dependency_overrides[get_claimer] = lambda: claimer

        response = client.post(f"{API}/refunds/{BUYER}/claim-all")

        assert response.status_code == 400
        assert chain.writes == []

    def test_invalid_address(self, client):
        """Test malformed addresses are rejected."""
        response = client.get(f"{API}/refunds/not-an-address")

        assert response.status_code == 422


class TestUploadEndpoints:
    """Tests for upload routes."""

    def setup_store(self, app):
        def handler(request):
            return httpx.Response(200, json={"IpfsHash": "QmHash"})

        store = PinataContentStore(
            Settings(environment="testing", pinata_jwt="jwt"),
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        app.dependency_overrides[get_content_store] = lambda: store

    def test_upload_image(self, app, client):
        """Test a valid image is pinned."""
        self.setup_store(app)

        response = client.post(
            f"{API}/uploads/image",
            params={"filename": "banner.png"},
            content=b"\x89PNG",
            headers={"Content-Type": "image/png"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "url": "https://gateway.pinata.cloud/ipfs/QmHash",
        }

    def test_upload_rejects_type(self, app, client):
        """Test non-image uploads are rejected before pinning."""
        self.setup_store(app)

        response = client.post(
            f"{API}/uploads/image",
            content=b"%PDF",
            headers={"Content-Type": "application/pdf"},
        )

        assert response.status_code == 400

    def test_upload_metadata(self, app, client):
        """Test metadata documents are pinned."""
        self.setup_store(app)

        response = client.post(f"{API}/uploads/metadata", json={"category": "Music"})

        assert response.json()["url"].endswith("QmHash")


class TestHealthEndpoints:
    """Tests for deployment health routes."""

    def setup_checker(self, app, code):
        chain_client = MagicMock()
        chain_client.get_block_number = AsyncMock(return_value=1)
        chain_client.get_code = AsyncMock(return_value=code)
        checker = HealthChecker(chain_client, Settings(environment="testing"))
        app.dependency_overrides[get_health_checker] = lambda: checker

    def test_deployment_health(self, app, client):
        """Test deployed contracts report healthy."""
        self.setup_checker(app, b"\x60\x80")

        response = client.get(f"{API}/health/deployment")

        assert response.status_code == 200
        assert response.json()["status"] == "HEALTHY"

    def test_not_ready_without_code(self, app, client):
        """Test readiness fails when a contract is missing."""
        self.setup_checker(app, b"")

        response = client.get(f"{API}/health/ready")

        assert response.status_code == 503

    def test_unknown_component(self, app, client):
        """Test an unknown component is not found."""
        self.setup_checker(app, b"\x60\x80")

        response = client.get(f"{API}/health/components/nope")

        assert response.status_code == 404


class TestErrorMapping:
    """Tests for domain error to status code mapping."""

    @pytest.mark.parametrize(
        "error_name,status_code",
        [
            ("InvalidInputError", 400),
            ("NotFoundError", 404),
            ("MismatchError", 409),
            ("GatewayError", 502),
            ("StorageError", 502),
            ("TicketingError", 500),
        ],
    )
    def test_status_codes(self, error_name, status_code):
        """Test each error family maps to its status code."""
        from eventbase.core import errors

        assert status_code_for(getattr(errors, error_name)("x")) == status_code
