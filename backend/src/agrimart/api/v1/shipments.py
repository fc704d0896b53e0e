"""Shipment API endpoints."""

from fastapi import APIRouter, status

from agrimart.api.deps import CurrentUser, SellerUser, ShipmentServiceDep
from agrimart.schemas.order import OrderResponse
from agrimart.schemas.shipment import (
    AssignAwbRequest,
    CreateShipmentRequest,
    LabelRequest,
    ProviderDataResponse,
    ServiceabilityRequest,
    ShipmentOrderListResponse,
    ShipmentResponse,
    ShippingCheckoutRequest,
)

router = APIRouter()


def _shipment_response(order, message: str) -> ShipmentResponse:
    return ShipmentResponse(
        message=message,
        order_id=order.order_id,
        shipment=OrderResponse.from_order(order).shipment,
    )


@router.post("/checkout", response_model=ShipmentResponse, status_code=status.HTTP_201_CREATED)
async def shipping_checkout(
    data: ShippingCheckoutRequest, service: ShipmentServiceDep, current_user: CurrentUser
):
    """Place an order and create its provider shipment in one call."""
    order, message = await service.checkout(current_user, data)
    return _shipment_response(order, message)


@router.post("", response_model=ShipmentResponse, status_code=status.HTTP_201_CREATED)
async def create_shipment(
    data: CreateShipmentRequest, service: ShipmentServiceDep, seller: SellerUser
):
    order = await service.create_for_order(seller, data.order_id)
    return _shipment_response(order, "Shipment created successfully")


@router.get("/buyer", response_model=ShipmentOrderListResponse)
async def buyer_shipments(service: ShipmentServiceDep, current_user: CurrentUser):
    orders = await service.list_for_buyer(current_user)
    return ShipmentOrderListResponse(
        count=len(orders), orders=[OrderResponse.from_order(o) for o in orders]
    )


@router.get("/seller", response_model=ShipmentOrderListResponse)
async def seller_shipments(service: ShipmentServiceDep, seller: SellerUser):
    orders = await service.list_for_seller(seller)
    return ShipmentOrderListResponse(
        count=len(orders), orders=[OrderResponse.from_order(o) for o in orders]
    )


@router.get("/{shipment_id}/track", response_model=ProviderDataResponse)
async def track_shipment(shipment_id: str, service: ShipmentServiceDep, current_user: CurrentUser):
    """Track by the provider's shipment id."""
    _, data = await service.track(current_user, shipment_id)
    return ProviderDataResponse(message="Shipment tracked successfully", data=data)


@router.post("/{shipment_id}/cancel", response_model=ShipmentResponse)
async def cancel_shipment(
    shipment_id: str, service: ShipmentServiceDep, current_user: CurrentUser
):
    order, _ = await service.cancel(current_user, shipment_id)
    return _shipment_response(order, "Shipment cancelled successfully")


@router.post("/awb", response_model=ShipmentResponse)
async def assign_awb(data: AssignAwbRequest, service: ShipmentServiceDep, seller: SellerUser):
    order = await service.assign_awb(seller, data.order_id, data.courier_id)
    return _shipment_response(order, "AWB generated successfully")


@router.post("/label", response_model=ShipmentResponse)
async def generate_label(data: LabelRequest, service: ShipmentServiceDep, seller: SellerUser):
    order = await service.generate_label(seller, data.order_id)
    return _shipment_response(order, "Label generated successfully")


@router.post("/serviceability", response_model=ProviderDataResponse)
async def check_serviceability(data: ServiceabilityRequest, service: ShipmentServiceDep):
    """Courier options and rates for a delivery pincode (no login needed)."""
    result = await service.check_serviceability(data.delivery_pincode, data.weight, data.cod)
    return ProviderDataResponse(message="Serviceability checked successfully", data=result)
