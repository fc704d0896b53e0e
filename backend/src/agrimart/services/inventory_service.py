"""Inventory service: price/size resolution and transactional stock deduction.

Stock is only ever written here. Deduction happens at payment confirmation,
inside the caller's transaction, with two layers of protection:
- Layer 1: PostgreSQL row-level lock (SELECT FOR UPDATE) on each size row
- Layer 2: Guarded decrement (UPDATE ... WHERE quantity >= n RETURNING)
"""

import logging
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from agrimart.core.exceptions import InsufficientStockError, StockResolutionError
from agrimart.models.order import Order, OrderItem
from agrimart.models.product import PriceSize, Product

logger = logging.getLogger(__name__)


class InventoryService:
    """Resolves seller-scoped price tables and deducts stock for paid orders."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def _table_filter(seller_id: UUID | None):
        if seller_id is None:
            return PriceSize.seller_id.is_(None)
        return PriceSize.seller_id == seller_id

    async def get_product(self, product_id: UUID) -> Product | None:
        result = await self.db.execute(select(Product).where(Product.product_id == product_id))
        return result.scalar_one_or_none()

    async def has_price_table(self, product_id: UUID, seller_id: UUID | None) -> bool:
        """Check whether the seller (or the default table when None) has rows."""
        result = await self.db.execute(
            select(PriceSize.price_size_id)
            .where(PriceSize.product_id == product_id)
            .where(self._table_filter(seller_id))
            .limit(1)
        )
        return result.first() is not None

    async def find_size(
        self,
        product_id: UUID,
        seller_id: UUID | None,
        size: str,
        lock: bool = False,
    ) -> PriceSize | None:
        """Find one size row of a seller's table (or the default table).

        Args:
            product_id: Product UUID
            seller_id: Seller UUID, or None for the product's default table
            size: Size label
            lock: Take a row lock (SELECT ... FOR UPDATE)

        Returns:
            PriceSize row or None if the size does not exist
        """
        query = (
            select(PriceSize)
            .where(PriceSize.product_id == product_id)
            .where(self._table_filter(seller_id))
            .where(PriceSize.size == size)
        )
        if lock:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def reconcile_order(self, order: Order) -> None:
        """Deduct stock for every line of a paid order.

        Must run inside the transaction that also writes the order's payment
        state, so either both apply or neither does. The caller is
        responsible for commit/rollback.

        Args:
            order: Order locked by the caller, with items loaded

        Raises:
            StockResolutionError: Product, seller table or size no longer exists
            InsufficientStockError: Available quantity is below the ordered one
        """
        if order.stock_adjusted:
            logger.warning(f"Order {order.order_id} already has stock adjusted, skipping")
            return

        # Lock rows in a stable order so two orders touching the same sizes
        # cannot deadlock each other
        items = sorted(
            order.items,
            key=lambda i: (str(i.product_id), str(i.seller_id if i.seller_scoped else ""), i.size),
        )
        for item in items:
            await self._deduct_item(item)

        order.stock_adjusted = True
        logger.info(f"Stock reconciled for order {order.order_id} ({len(items)} items)")

    async def _deduct_item(self, item: OrderItem) -> None:
        table_seller = item.seller_id if item.seller_scoped else None

        # Layer 1: SELECT FOR UPDATE (row-level lock)
        row = await self.find_size(item.product_id, table_seller, item.size, lock=True)
        if row is None:
            raise StockResolutionError(
                f"Size {item.size} is no longer available for {item.product_name}"
            )
        if row.quantity < item.quantity:
            raise InsufficientStockError(
                f"Insufficient stock for {item.product_name}. "
                f"Available: {row.quantity}, Requested: {item.quantity}"
            )

        # Layer 2: guarded decrement
        result = await self.db.execute(
            update(PriceSize)
            .where(PriceSize.price_size_id == row.price_size_id)
            .where(PriceSize.quantity >= item.quantity)
            .values(quantity=PriceSize.quantity - item.quantity)
            .returning(PriceSize.quantity)
            .execution_options(synchronize_session=False)
        )
        updated = result.first()
        if updated is None:
            raise InsufficientStockError(f"Insufficient stock for {item.product_name}")
