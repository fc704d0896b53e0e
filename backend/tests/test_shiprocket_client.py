"""Tests for the shipping provider client, its token cache and the demo client."""

from unittest.mock import MagicMock

import pytest
import requests

from agrimart.core.config import Settings
from agrimart.core.exceptions import ShippingProviderError
from agrimart.services.shiprocket_client import (
    DemoShippingClient,
    ShiprocketClient,
    TokenCache,
    build_shipping_client,
    extract_pickup_locations,
)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def make_response(data, status_code: int = 200) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.json = MagicMock(return_value=data)
    return response


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session() -> MagicMock:
    session = MagicMock()
    session.post = MagicMock(return_value=make_response({"token": "tok-1"}))
    session.request = MagicMock(return_value=make_response({"tracking_data": {}}))
    return session


@pytest.fixture
def client(session, clock) -> ShiprocketClient:
    return ShiprocketClient(
        email="ops@example.com",
        password="secret",
        base_url="https://shiprocket.test/v1/external/",
        token_cache=TokenCache(ttl_seconds=100, clock=clock),
        session=session,
    )


class TestTokenCache:
    def test_empty_cache(self, clock):
        assert TokenCache(100, clock=clock).get() is None

    def test_token_valid_until_expiry(self, clock):
        cache = TokenCache(100, clock=clock)
        cache.set("tok")

        clock.now += 99
        assert cache.get() == "tok"

        clock.now += 2
        assert cache.get() is None

    def test_clear(self, clock):
        cache = TokenCache(100, clock=clock)
        cache.set("tok")
        cache.clear()

        assert cache.get() is None
        assert cache.expires_at == 0.0


class TestAuthentication:
    """Test the bearer token is fetched once and reused until expiry."""

    @pytest.mark.asyncio
    async def test_token_reused(self, client, session):
        await client.track_shipment("222")
        await client.track_shipment("222")

        session.post.assert_called_once()
        assert session.post.call_args.args[0] == "https://shiprocket.test/v1/external/auth/login"
        headers = session.request.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer tok-1"

    @pytest.mark.asyncio
    async def test_token_refreshed_after_expiry(self, client, session, clock):
        await client.track_shipment("222")
        clock.now += 101
        session.post.return_value = make_response({"token": "tok-2"})

        await client.track_shipment("222")

        assert session.post.call_count == 2
        assert session.request.call_args.kwargs["headers"]["Authorization"] == "Bearer tok-2"

    @pytest.mark.asyncio
    async def test_unauthorized_call_drops_token(self, client, session):
        await client.track_shipment("222")
        session.request.return_value = make_response({"message": "Token expired"}, 401)

        with pytest.raises(ShippingProviderError):
            await client.track_shipment("222")

        session.post.return_value = make_response({"token": "tok-2"})
        session.request.return_value = make_response({"tracking_data": {}})
        await client.track_shipment("222")

        assert session.post.call_count == 2
        assert session.request.call_args.kwargs["headers"]["Authorization"] == "Bearer tok-2"

    @pytest.mark.asyncio
    async def test_login_rejected(self, client, session):
        session.post.return_value = make_response({"message": "Invalid credentials"}, 401)

        with pytest.raises(ShippingProviderError) as exc_info:
            await client.track_shipment("222")

        assert "Invalid credentials" in exc_info.value.message
        assert exc_info.value.upstream_status == 401

    @pytest.mark.asyncio
    async def test_login_without_token(self, client, session):
        session.post.return_value = make_response({"message": "ok"})

        with pytest.raises(ShippingProviderError):
            await client.track_shipment("222")

    @pytest.mark.asyncio
    async def test_network_failure(self, client, session):
        session.post.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(ShippingProviderError):
            await client.track_shipment("222")


class TestOperations:
    @pytest.mark.asyncio
    async def test_tracking_uses_shipment_id(self, client, session):
        await client.track_shipment("222")

        method, url = session.request.call_args.args
        assert method == "GET"
        assert url.endswith("/courier/track/shipment/222")

    @pytest.mark.asyncio
    async def test_cancel_uses_provider_order_id(self, client, session):
        session.request.return_value = make_response({"status": 200, "message": "cancelled"})

        await client.cancel_order("111")

        method, url = session.request.call_args.args
        assert method == "POST"
        assert url.endswith("/orders/cancel")
        assert session.request.call_args.kwargs["json"] == {"ids": ["111"]}

    @pytest.mark.asyncio
    async def test_cancel_unknown_order_explains_id_mixup(self, client, session):
        session.request.return_value = make_response({"message": "Order Id does not exist"}, 400)

        with pytest.raises(ShippingProviderError) as exc_info:
            await client.cancel_order("222")

        assert "not shipment_id" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_create_order(self, client, session):
        session.request.return_value = make_response(
            {"order_id": 111, "shipment_id": 222, "status": "NEW"}
        )

        data = await client.create_order({"order_id": "abc"})

        assert data["order_id"] == 111
        assert session.request.call_args.args[1].endswith("/orders/create/adhoc")

    @pytest.mark.asyncio
    async def test_create_order_wrong_pickup_location(self, client, session):
        """Test a 200 response carrying a pickup-location error is a failure."""
        session.request.return_value = make_response(
            {
                "message": "Wrong Pickup location entered.",
                "data": {"data": [{"pickup_location": "Warehouse-1"}]},
            }
        )

        with pytest.raises(ShippingProviderError) as exc_info:
            await client.create_order({"order_id": "abc"})

        assert "Wrong Pickup location" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_create_order_without_order_id(self, client, session):
        session.request.return_value = make_response({"status": "NEW"})

        with pytest.raises(ShippingProviderError):
            await client.create_order({"order_id": "abc"})

    @pytest.mark.asyncio
    async def test_serviceability_params(self, client, session):
        await client.check_serviceability("400001", "411001", 1.5, cod=True)

        assert session.request.call_args.kwargs["params"] == {
            "pickup_postcode": "400001",
            "delivery_postcode": "411001",
            "weight": 1.5,
            "cod": 1,
        }

    @pytest.mark.asyncio
    async def test_provider_error_message_passed_through(self, client, session):
        session.request.return_value = make_response({"message": "Shipment not found"}, 404)

        with pytest.raises(ShippingProviderError) as exc_info:
            await client.track_shipment("999")

        assert "Shipment not found" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_invalid_json_response(self, client, session):
        response = make_response(None, 502)
        response.json.side_effect = ValueError("no json")
        response.text = "<html>Bad gateway</html>"
        session.request.return_value = response

        with pytest.raises(ShippingProviderError):
            await client.track_shipment("222")


class TestPickupLocations:
    def test_nested_shipping_address(self):
        data = {"data": {"shipping_address": [{"pickup_location": "Primary"}]}}

        assert extract_pickup_locations(data) == [{"pickup_location": "Primary"}]

    def test_top_level_list(self):
        assert extract_pickup_locations([{"pickup_location": "A"}]) == [{"pickup_location": "A"}]

    def test_unknown_shape(self):
        assert extract_pickup_locations({"status": 200}) == []


class TestDemoClient:
    """Test the offline client answers in the provider's shape."""

    @pytest.mark.asyncio
    async def test_ids_deterministic_per_order(self):
        demo = DemoShippingClient()

        first = await demo.create_order({"order_id": "order-1"})
        second = await demo.create_order({"order_id": "order-1"})

        assert first["order_id"] == second["order_id"]
        assert first["shipment_id"] == second["shipment_id"]
        assert first["order_id"] != first["shipment_id"]

    @pytest.mark.asyncio
    async def test_tracking_shape(self):
        data = await DemoShippingClient().track_shipment("222")

        track = data["tracking_data"]["shipment_track"][0]
        assert track["shipment_id"] == "222"
        assert track["current_status"] == "IN TRANSIT"

    @pytest.mark.asyncio
    async def test_serviceability_lists_couriers(self):
        data = await DemoShippingClient().check_serviceability("400001", "411001", 1.0, cod=False)

        couriers = data["data"]["available_courier_companies"]
        assert len(couriers) == 2
        assert all(c["cod"] == 0 for c in couriers)

    def test_demo_used_without_credentials(self):
        settings = Settings(SHIPROCKET_EMAIL="", SHIPROCKET_PASSWORD="")

        assert isinstance(build_shipping_client(settings), DemoShippingClient)

    def test_real_client_with_credentials(self):
        settings = Settings(SHIPROCKET_EMAIL="ops@example.com", SHIPROCKET_PASSWORD="pw")

        assert isinstance(build_shipping_client(settings), ShiprocketClient)
