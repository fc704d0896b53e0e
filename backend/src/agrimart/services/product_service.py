"""Product service for catalog and seller price/size tables."""

import logging
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from agrimart.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationFailedError
from agrimart.models.order import OrderItem
from agrimart.models.product import PriceSize, Product, ProductSeller
from agrimart.models.user import User
from agrimart.schemas.product import PriceSizeIn, ProductCreate, ProductUpdate, SellerOfferCreate

logger = logging.getLogger(__name__)


class ProductService:
    """Service class for product operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        category: str | None = None,
        search: str | None = None,
    ) -> tuple[list[Product], int]:
        """Get products with pagination.

        Args:
            skip: Number of records to skip
            limit: Maximum number of records to return
            category: Optional category filter
            search: Optional case-insensitive text matched against name and description

        Returns:
            Tuple of (products list, total count)
        """
        conditions = []
        if category:
            conditions.append(Product.category == category)
        if search:
            conditions.append(
                or_(
                    Product.name.icontains(search, autoescape=True),
                    Product.description.icontains(search, autoescape=True),
                )
            )

        count_result = await self.db.execute(
            select(func.count(Product.product_id)).where(*conditions)
        )
        total = count_result.scalar_one()

        result = await self.db.execute(
            select(Product)
            .where(*conditions)
            .order_by(Product.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        products = list(result.scalars().all())

        return products, total

    async def get_by_id(self, product_id: UUID) -> Product | None:
        """Get product by ID with its sellers and price tables loaded."""
        result = await self.db.execute(
            select(Product)
            .where(Product.product_id == product_id)
            .options(selectinload(Product.sellers), selectinload(Product.price_sizes))
        )
        return result.scalar_one_or_none()

    async def get_detail(self, product_id: UUID) -> tuple[Product, list[dict]]:
        """Get a product and its offers grouped per seller table.

        Returns:
            Tuple of (product, offers). The default table, when present,
            comes first with ``seller_id`` None.

        Raises:
            NotFoundError: Product does not exist
        """
        product = await self.get_by_id(product_id)
        if product is None:
            raise NotFoundError("Product not found")

        shop_names = {link.seller_id: link.shop_name for link in product.sellers}
        grouped: dict[UUID | None, list[PriceSize]] = {}
        for row in sorted(product.price_sizes, key=lambda r: r.size):
            grouped.setdefault(row.seller_id, []).append(row)

        offers = []
        if None in grouped:
            offers.append({"seller_id": None, "shop_name": None, "price_sizes": grouped.pop(None)})
        for seller_id, rows in grouped.items():
            offers.append(
                {"seller_id": seller_id, "shop_name": shop_names.get(seller_id), "price_sizes": rows}
            )
        return product, offers

    def _add_price_rows(self, product_id: UUID, seller_id: UUID, rows: list[PriceSizeIn]) -> None:
        for row in rows:
            self.db.add(
                PriceSize(
                    product_id=product_id,
                    seller_id=seller_id,
                    size=row.size,
                    price=row.price,
                    discounted_price=row.discounted_price,
                    quantity=row.quantity,
                )
            )

    async def create(self, seller: User, product_data: ProductCreate) -> Product:
        """Create a product listed by a seller with the seller's own table.

        Args:
            seller: Listing seller
            product_data: Product creation data

        Returns:
            Created product
        """
        product = Product(
            name=product_data.name,
            description=product_data.description,
            category=product_data.category,
            image_url=product_data.image_url,
            seller_id=seller.user_id,
        )
        self.db.add(product)
        await self.db.flush()

        self.db.add(
            ProductSeller(
                product_id=product.product_id,
                seller_id=seller.user_id,
                shop_name=product_data.shop_name,
            )
        )
        self._add_price_rows(product.product_id, seller.user_id, product_data.price_sizes)

        await self.db.commit()
        await self.db.refresh(product)
        return product

    async def add_seller_offer(
        self, seller: User, product_id: UUID, offer: SellerOfferCreate
    ) -> Product:
        """Link a seller to an existing product with their own price/size table.

        Raises:
            NotFoundError: Product does not exist
            ConflictError: Seller already sells this product
        """
        product = await self.get_by_id(product_id)
        if product is None:
            raise NotFoundError("Product not found")
        if any(link.seller_id == seller.user_id for link in product.sellers):
            raise ConflictError(
                "You are already selling this product. Please update your existing offer instead."
            )

        self.db.add(
            ProductSeller(
                product_id=product.product_id,
                seller_id=seller.user_id,
                shop_name=offer.shop_name,
            )
        )
        self._add_price_rows(product.product_id, seller.user_id, offer.price_sizes)
        await self.db.commit()
        await self.db.refresh(product)
        return product

    async def list_for_seller(self, seller_id: UUID) -> list[dict]:
        """Products the seller sells, with the stock and price of their own table.

        ``price`` is the discounted price of the seller's smallest size label,
        None when the seller has no rows left.
        """
        result = await self.db.execute(
            select(Product, ProductSeller.shop_name)
            .join(ProductSeller, ProductSeller.product_id == Product.product_id)
            .where(ProductSeller.seller_id == seller_id)
            .options(selectinload(Product.price_sizes))
            .order_by(Product.created_at.desc())
        )
        listing = []
        for product, shop_name in result.all():
            rows = sorted(
                (r for r in product.price_sizes if r.seller_id == seller_id),
                key=lambda r: r.size,
            )
            listing.append(
                {
                    "product_id": product.product_id,
                    "name": product.name,
                    "category": product.category,
                    "image_url": product.image_url,
                    "shop_name": shop_name,
                    "stock": sum(r.quantity for r in rows),
                    "price": rows[0].discounted_price if rows else None,
                }
            )
        return listing

    async def update(self, seller: User, product_id: UUID, data: ProductUpdate) -> Product:
        """Edit a product's catalog fields and the seller's own offer.

        A new ``price_sizes`` list replaces the seller's table: sizes present
        in both are updated in place, missing ones are removed. The seller's
        rows are locked so a concurrent stock decrement is not overwritten.

        Raises:
            NotFoundError: Product does not exist
            ForbiddenError: Seller does not sell this product
            ValidationFailedError: The same size appears twice
        """
        product = await self.db.get(Product, product_id)
        if product is None:
            raise NotFoundError("Product not found")
        result = await self.db.execute(
            select(ProductSeller)
            .where(ProductSeller.product_id == product_id)
            .where(ProductSeller.seller_id == seller.user_id)
        )
        link = result.scalar_one_or_none()
        if link is None:
            raise ForbiddenError("You are not authorized to edit this product")

        changes = data.model_dump(exclude_unset=True, exclude={"shop_name", "price_sizes"})
        for field, value in changes.items():
            if field == "name" and value is None:
                continue
            setattr(product, field, value)
        if "shop_name" in data.model_fields_set:
            link.shop_name = data.shop_name

        if data.price_sizes is not None:
            sizes = [row.size for row in data.price_sizes]
            if len(set(sizes)) != len(sizes):
                raise ValidationFailedError("Each size may appear only once")
            await self._replace_price_rows(product_id, seller.user_id, data.price_sizes)

        await self.db.commit()
        await self.db.refresh(product)
        logger.info(f"Seller {seller.user_id} updated product {product_id}")
        return product

    async def _replace_price_rows(
        self, product_id: UUID, seller_id: UUID, rows: list[PriceSizeIn]
    ) -> None:
        result = await self.db.execute(
            select(PriceSize)
            .where(PriceSize.product_id == product_id)
            .where(PriceSize.seller_id == seller_id)
            .order_by(PriceSize.size)
            .with_for_update()
        )
        current = {row.size: row for row in result.scalars().all()}

        for row in rows:
            existing = current.pop(row.size, None)
            if existing is None:
                self._add_price_rows(product_id, seller_id, [row])
                continue
            existing.price = row.price
            existing.discounted_price = row.discounted_price
            existing.quantity = row.quantity
        for stale in current.values():
            await self.db.delete(stale)

    async def delete(self, user: User, product_id: UUID) -> None:
        """Delete a product with every seller's table.

        Only the listing seller or an admin may delete. Products that appear
        in an order are kept so order history stays intact.

        Raises:
            NotFoundError: Product does not exist
            ForbiddenError: Caller did not list the product
            ConflictError: Product has been ordered
        """
        product = await self.get_by_id(product_id)
        if product is None:
            raise NotFoundError("Product not found")
        if not (user.is_admin or product.seller_id == user.user_id):
            raise ForbiddenError("You are not authorized to delete this product")

        ordered = await self.db.execute(
            select(OrderItem.order_item_id).where(OrderItem.product_id == product_id).limit(1)
        )
        if ordered.scalar_one_or_none() is not None:
            raise ConflictError("Product has orders and cannot be deleted")

        await self.db.delete(product)
        await self.db.commit()
        logger.info(f"Product {product_id} deleted by {user.user_id}")
