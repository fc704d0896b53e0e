"""Product catalog API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from agrimart.api.deps import DbSession, SellerUser
from agrimart.schemas.common import MessageResponse
from agrimart.schemas.product import (
    PriceSizeResponse,
    ProductCreate,
    ProductDetailResponse,
    ProductListResponse,
    ProductResponse,
    ProductUpdate,
    SellerOfferCreate,
    SellerOfferResponse,
    SellerProductListResponse,
)
from agrimart.services.product_service import ProductService

router = APIRouter()


@router.get("", response_model=ProductListResponse)
async def list_products(
    db: DbSession,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
    category: str | None = Query(None, max_length=100),
    search: str | None = Query(None, min_length=1, max_length=100),
):
    """Get products with pagination, optionally filtered by category or text."""
    service = ProductService(db)
    products, total = await service.get_all(
        skip=skip, limit=limit, category=category, search=search
    )
    return ProductListResponse(products=products, total=total)


@router.get("/mine", response_model=SellerProductListResponse)
async def list_my_products(db: DbSession, seller: SellerUser):
    """Products the current seller sells, with their own stock and price."""
    service = ProductService(db)
    products = await service.list_for_seller(seller.user_id)
    return SellerProductListResponse(products=products, total=len(products))


@router.get("/{product_id}", response_model=ProductDetailResponse)
async def get_product(product_id: UUID, db: DbSession):
    """Get product by ID with every seller's price/size table."""
    service = ProductService(db)
    product, offers = await service.get_detail(product_id)
    return ProductDetailResponse(
        **ProductResponse.model_validate(product).model_dump(),
        offers=[
            SellerOfferResponse(
                seller_id=offer["seller_id"],
                shop_name=offer["shop_name"],
                price_sizes=[PriceSizeResponse.model_validate(r) for r in offer["price_sizes"]],
            )
            for offer in offers
        ],
    )


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(product_data: ProductCreate, db: DbSession, seller: SellerUser):
    """Create a new product with the seller's price/size table."""
    service = ProductService(db)
    return await service.create(seller, product_data)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: UUID, product_data: ProductUpdate, db: DbSession, seller: SellerUser
):
    """Edit a product the seller sells.

    Raises:
        403: Seller does not sell this product
        404: Product not found
    """
    service = ProductService(db)
    return await service.update(seller, product_id, product_data)


@router.delete("/{product_id}", response_model=MessageResponse)
async def delete_product(product_id: UUID, db: DbSession, seller: SellerUser):
    """Delete a product listed by the seller.

    Raises:
        403: Product was listed by another seller
        409: Product has been ordered
    """
    service = ProductService(db)
    await service.delete(seller, product_id)
    return MessageResponse(message="Product deleted successfully")


@router.post(
    "/{product_id}/sellers",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
)
async def join_product(
    product_id: UUID, offer: SellerOfferCreate, db: DbSession, seller: SellerUser
):
    """Start selling an existing product with the seller's own table."""
    service = ProductService(db)
    return await service.add_seller_offer(seller, product_id, offer)
