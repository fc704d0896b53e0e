"""Shiprocket shipping provider client.

Follows the provider's external REST API: a login call returns a bearer
token valid for ten days, every other call carries that token. The token is
held in memory only, so each process logs in on its first call.
"""

import asyncio
import logging
import threading
import time
import zlib
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Protocol

import requests
from cachetools import TTLCache

from agrimart.core.config import Settings
from agrimart.core.exceptions import ShippingProviderError
from agrimart.middleware.metrics import record_provider_call

logger = logging.getLogger(__name__)


class TokenCache:
    """Bearer token held in a single-slot TTLCache."""

    KEY = "token"

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._cache: TTLCache = TTLCache(maxsize=1, ttl=ttl_seconds, timer=clock)
        self._expires_at: float = 0.0

    @property
    def expires_at(self) -> float:
        return self._expires_at

    def get(self) -> str | None:
        """Return the cached token, or None when missing or expired."""
        return self._cache.get(self.KEY)

    def set(self, token: str) -> None:
        self._cache[self.KEY] = token
        self._expires_at = self._clock() + self.ttl_seconds

    def clear(self) -> None:
        self._cache.clear()
        self._expires_at = 0.0


class ShippingProvider(Protocol):
    """Operations the shipment service needs from a shipping provider."""

    async def create_order(self, payload: dict[str, Any]) -> dict[str, Any]: ...

    async def track_shipment(self, shipment_id: str) -> dict[str, Any]: ...

    async def cancel_order(self, provider_order_id: str) -> dict[str, Any]: ...

    async def check_serviceability(
        self, pickup_pincode: str, delivery_pincode: str, weight: float, cod: bool
    ) -> dict[str, Any]: ...

    async def get_pickup_locations(self) -> list[dict[str, Any]]: ...

    async def assign_awb(self, shipment_id: str, courier_id: int) -> dict[str, Any]: ...

    async def generate_label(self, shipment_ids: list[str]) -> dict[str, Any]: ...


def extract_pickup_locations(data: Any) -> list[dict[str, Any]]:
    """Find the pickup-location list in the provider's settings response.

    The account settings endpoint has returned the list under several keys
    over time; accept all of them.
    """
    if isinstance(data, list):
        return data
    if not isinstance(data, dict):
        return []
    inner = data.get("data")
    if isinstance(inner, dict):
        for key in ("shipping_address", "data"):
            if isinstance(inner.get(key), list):
                return inner[key]
    if isinstance(inner, list):
        return inner
    if isinstance(data.get("shipping_address"), list):
        return data["shipping_address"]
    return []


class ShiprocketClient:
    """Real Shiprocket client. Raises ShippingProviderError and never retries."""

    def __init__(
        self,
        email: str,
        password: str,
        base_url: str,
        token_cache: TokenCache,
        timeout: float = 15.0,
        session: requests.Session | None = None,
    ):
        self.email = email
        self.password = password
        self.base_url = base_url.rstrip("/")
        self.token_cache = token_cache
        self.timeout = timeout
        self.session = session or requests.Session()
        self._auth_lock = threading.Lock()

    # ==================== Transport ====================

    def _parse(self, response: requests.Response, action: str) -> Any:
        try:
            data = response.json()
        except ValueError:
            raise ShippingProviderError(
                f"{action} failed: invalid response from Shiprocket",
                status=response.status_code,
                payload=response.text,
            )

        if not response.ok:
            message = data.get("message") if isinstance(data, dict) else None
            message = message or f"HTTP {response.status_code}"
            logger.error(f"Shiprocket {action} returned {response.status_code}: {message}")
            raise ShippingProviderError(
                f"{action} failed: {message}", status=response.status_code, payload=data
            )
        return data

    def _login(self) -> str:
        logger.info("Authenticating with Shiprocket")
        try:
            response = self.session.post(
                f"{self.base_url}/auth/login",
                json={"email": self.email, "password": self.password},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise ShippingProviderError(f"Shiprocket authentication failed: {e}")

        data = self._parse(response, "Shiprocket authentication")
        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            raise ShippingProviderError(
                "Shiprocket authentication failed: no token in response", payload=data
            )
        self.token_cache.set(token)
        return token

    def _get_token(self) -> str:
        token = self.token_cache.get()
        if token is not None:
            return token
        with self._auth_lock:
            # Another worker thread may have refreshed while we waited
            token = self.token_cache.get()
            if token is None:
                token = self._login()
            return token

    def _request(
        self,
        method: str,
        path: str,
        action: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._get_token()}",
        }
        start = time.perf_counter()
        try:
            response = self.session.request(
                method,
                f"{self.base_url}{path}",
                json=json,
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Shiprocket {action} request failed: {e}")
            raise ShippingProviderError(f"{action} failed: {e}")
        finally:
            record_provider_call("shiprocket", path.split("/")[1], time.perf_counter() - start)
        if response.status_code == 401:
            # Token revoked upstream; next call logs in again
            self.token_cache.clear()
        return self._parse(response, action)

    async def _call(self, method: str, path: str, action: str, **kwargs: Any) -> Any:
        return await asyncio.to_thread(self._request, method, path, action, **kwargs)

    # ==================== Operations ====================

    async def create_order(self, payload: dict[str, Any]) -> dict[str, Any]:
        data = await self._call(
            "POST", "/orders/create/adhoc", "Shiprocket order creation", json=payload
        )
        if not isinstance(data, dict):
            raise ShippingProviderError("Shiprocket order creation failed: invalid response", payload=data)

        # The provider answers 200 with an error message for a bad pickup location
        message = data.get("message") or ""
        if "Wrong Pickup location" in message:
            names = [
                loc.get("pickup_location") or loc.get("name")
                for loc in extract_pickup_locations(data)
                if isinstance(loc, dict)
            ]
            logger.error(f"Shiprocket rejected pickup location; registered: {names}")
            raise ShippingProviderError(
                f"Shiprocket order creation failed: {message}", payload=data
            )
        if not data.get("order_id"):
            raise ShippingProviderError(
                "Shiprocket order creation failed: no order_id in response", payload=data
            )
        logger.info(
            f"Shiprocket order created: order_id={data['order_id']} "
            f"shipment_id={data.get('shipment_id')}"
        )
        return data

    async def track_shipment(self, shipment_id: str) -> dict[str, Any]:
        return await self._call(
            "GET", f"/courier/track/shipment/{shipment_id}", "Shiprocket tracking"
        )

    async def cancel_order(self, provider_order_id: str) -> dict[str, Any]:
        """Cancel by the provider's order id (not the shipment id)."""
        try:
            return await self._call(
                "POST",
                "/orders/cancel",
                "Shiprocket cancellation",
                json={"ids": [provider_order_id]},
            )
        except ShippingProviderError as e:
            payload = e.payload if isinstance(e.payload, dict) else {}
            if payload.get("message") == "Order Id does not exist":
                raise ShippingProviderError(
                    "Order Id does not exist. Make sure you are using the Shiprocket "
                    "order_id, not shipment_id.",
                    status=e.upstream_status,
                    payload=e.payload,
                )
            raise

    async def check_serviceability(
        self, pickup_pincode: str, delivery_pincode: str, weight: float, cod: bool
    ) -> dict[str, Any]:
        return await self._call(
            "GET",
            "/courier/serviceability/",
            "Shiprocket serviceability check",
            params={
                "pickup_postcode": pickup_pincode,
                "delivery_postcode": delivery_pincode,
                "weight": weight,
                "cod": 1 if cod else 0,
            },
        )

    async def get_pickup_locations(self) -> list[dict[str, Any]]:
        data = await self._call("GET", "/settings/company/pickup", "Shiprocket pickup locations")
        return extract_pickup_locations(data)

    async def assign_awb(self, shipment_id: str, courier_id: int) -> dict[str, Any]:
        return await self._call(
            "POST",
            "/courier/assign/awb",
            "Shiprocket AWB assignment",
            json={"shipment_id": shipment_id, "courier_id": courier_id},
        )

    async def generate_label(self, shipment_ids: list[str]) -> dict[str, Any]:
        return await self._call(
            "POST",
            "/courier/generate/label",
            "Shiprocket label generation",
            json={"shipment_id": shipment_ids},
        )


class DemoShippingClient:
    """Offline stand-in used when no provider credentials are configured.

    Responses have the provider's shape; identifiers are derived from the
    request so repeated calls for the same order agree.
    """

    DEMO_PICKUP_LOCATION = {
        "pickup_location": "Primary",
        "name": "Demo Warehouse",
        "city": "Mumbai",
        "state": "Maharashtra",
        "pin_code": "400001",
    }

    @staticmethod
    def _number(seed: str) -> int:
        return zlib.crc32(seed.encode()) % 900000 + 100000

    async def create_order(self, payload: dict[str, Any]) -> dict[str, Any]:
        seed = str(payload.get("order_id", ""))
        order_number = self._number(f"order:{seed}")
        return {
            "order_id": order_number,
            "shipment_id": self._number(f"shipment:{seed}"),
            "status": "NEW",
            "status_code": 1,
            "onboarding_completed_now": 0,
            "awb_code": None,
            "courier_company_id": None,
            "courier_name": None,
        }

    async def track_shipment(self, shipment_id: str) -> dict[str, Any]:
        now = datetime.now(timezone.utc)
        return {
            "tracking_data": {
                "track_status": 1,
                "shipment_status": 18,
                "shipment_track": [
                    {
                        "shipment_id": shipment_id,
                        "awb_code": f"DEMO{shipment_id}",
                        "current_status": "IN TRANSIT",
                        "origin": "Demo Warehouse",
                        "destination": "Demo City",
                    }
                ],
                "shipment_track_activities": [
                    {
                        "date": (now - timedelta(days=1)).isoformat(),
                        "status": "IN TRANSIT",
                        "activity": "Shipment in transit",
                        "location": "Demo Hub",
                    },
                    {
                        "date": (now - timedelta(days=2)).isoformat(),
                        "status": "PICKED UP",
                        "activity": "Shipment picked up",
                        "location": "Demo Warehouse",
                    },
                ],
            }
        }

    async def cancel_order(self, provider_order_id: str) -> dict[str, Any]:
        return {"status": 200, "message": f"Order {provider_order_id} cancelled (demo mode)"}

    async def check_serviceability(
        self, pickup_pincode: str, delivery_pincode: str, weight: float, cod: bool
    ) -> dict[str, Any]:
        return {
            "status": 200,
            "data": {
                "available_courier_companies": [
                    {
                        "courier_company_id": 1,
                        "courier_name": "Demo Express",
                        "rate": 50,
                        "estimated_delivery_days": "3-5",
                        "cod": 1 if cod else 0,
                    },
                    {
                        "courier_company_id": 2,
                        "courier_name": "Demo Standard",
                        "rate": 35,
                        "estimated_delivery_days": "5-7",
                        "cod": 1 if cod else 0,
                    },
                ]
            },
        }

    async def get_pickup_locations(self) -> list[dict[str, Any]]:
        return [dict(self.DEMO_PICKUP_LOCATION)]

    async def assign_awb(self, shipment_id: str, courier_id: int) -> dict[str, Any]:
        return {
            "awb_assign_status": 1,
            "response": {
                "data": {
                    "awb_code": f"DEMO{self._number(f'awb:{shipment_id}')}",
                    "courier_company_id": courier_id,
                    "courier_name": "Demo Express",
                    "shipment_id": shipment_id,
                }
            },
        }

    async def generate_label(self, shipment_ids: list[str]) -> dict[str, Any]:
        return {
            "label_created": 1,
            "label_url": f"https://demo.shiprocket.local/labels/{'-'.join(shipment_ids)}.pdf",
            "response": "Label has been created and uploaded successfully (demo mode)",
        }


def build_shipping_client(settings: Settings) -> ShippingProvider:
    """Pick the real client when credentials exist, else the demo one."""
    if settings.SHIPROCKET_DEMO_MODE or not settings.shiprocket_configured:
        logger.warning("Shiprocket credentials not configured, using demo shipping client")
        return DemoShippingClient()
    return ShiprocketClient(
        email=settings.SHIPROCKET_EMAIL,
        password=settings.SHIPROCKET_PASSWORD,
        base_url=settings.SHIPROCKET_BASE_URL,
        token_cache=TokenCache(settings.SHIPROCKET_TOKEN_TTL_SECONDS),
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )
