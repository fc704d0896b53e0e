"""Cart service for the buyer's single cart."""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from agrimart.core.exceptions import NotFoundError, ValidationFailedError
from agrimart.models.cart import Cart, CartItem
from agrimart.models.product import ProductSeller
from agrimart.schemas.cart import CartItemAdd, CartItemResponse, CartResponse
from agrimart.services.inventory_service import InventoryService


class CartService:
    """Service class for cart operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.inventory = InventoryService(db)

    async def get_cart(self, user_id: UUID) -> Cart | None:
        result = await self.db.execute(select(Cart).where(Cart.user_id == user_id))
        return result.scalar_one_or_none()

    async def _get_or_create_cart(self, user_id: UUID) -> Cart:
        cart = await self.get_cart(user_id)
        if cart is None:
            cart = Cart(user_id=user_id, items=[])
            self.db.add(cart)
            await self.db.flush()
        return cart

    async def build_response(self, cart: Cart | None) -> CartResponse:
        """Price each cart line against the current seller table."""
        items: list[CartItemResponse] = []
        total = Decimal("0")
        total_discounted = Decimal("0")
        for item in cart.items if cart else []:
            row = await self.inventory.find_size(item.product_id, item.seller_id, item.size)
            unit_price = row.price if row else None
            discounted = row.discounted_price if row else None
            if row is not None:
                total += row.price * item.quantity
                total_discounted += row.discounted_price * item.quantity
            items.append(
                CartItemResponse(
                    cart_item_id=item.cart_item_id,
                    product_id=item.product_id,
                    product_name=item.product.name,
                    seller_id=item.seller_id,
                    size=item.size,
                    quantity=item.quantity,
                    unit_price=unit_price,
                    discounted_price=discounted,
                )
            )
        return CartResponse(items=items, total_price=total, total_discounted_price=total_discounted)

    async def add_item(self, user_id: UUID, data: CartItemAdd) -> Cart:
        """Add a line or increase the quantity of an identical one.

        Raises:
            NotFoundError: Product missing or seller does not sell it
            ValidationFailedError: Size missing or quantity above stock
        """
        product = await self.inventory.get_product(data.product_id)
        if product is None:
            raise NotFoundError("Product not found")

        link = await self.db.execute(
            select(ProductSeller)
            .where(ProductSeller.product_id == data.product_id)
            .where(ProductSeller.seller_id == data.seller_id)
        )
        if link.scalar_one_or_none() is None:
            raise NotFoundError("Seller not found for this product")

        row = await self.inventory.find_size(data.product_id, data.seller_id, data.size)
        if row is None:
            raise ValidationFailedError(f"Size {data.size} not available for {product.name}")

        cart = await self._get_or_create_cart(user_id)
        existing = next(
            (
                i
                for i in cart.items
                if i.product_id == data.product_id
                and i.seller_id == data.seller_id
                and i.size == data.size
            ),
            None,
        )
        quantity = data.quantity + (existing.quantity if existing else 0)
        if quantity > row.quantity:
            raise ValidationFailedError(
                f"Maximum available quantity for this size is {row.quantity}."
            )

        if existing:
            existing.quantity = quantity
        else:
            cart.items.append(
                CartItem(
                    product_id=data.product_id,
                    seller_id=data.seller_id,
                    size=data.size,
                    quantity=data.quantity,
                )
            )
        await self.db.commit()
        await self.db.refresh(cart)
        return cart

    async def remove_item(self, user_id: UUID, cart_item_id: UUID) -> Cart:
        cart = await self.get_cart(user_id)
        if cart is None:
            raise NotFoundError("Cart not found")
        item = next((i for i in cart.items if i.cart_item_id == cart_item_id), None)
        if item is None:
            raise NotFoundError("Item not found in the cart")

        cart.items.remove(item)
        await self.db.commit()
        await self.db.refresh(cart)
        return cart

    async def clear(self, user_id: UUID) -> None:
        """Empty the buyer's cart without committing.

        Runs inside the caller's transaction (order intake or payment
        confirmation).
        """
        cart = await self.get_cart(user_id)
        if cart is None:
            return
        await self.db.execute(delete(CartItem).where(CartItem.cart_id == cart.cart_id))
        self.db.expire(cart, ["items"])

    async def empty(self, user_id: UUID) -> Cart | None:
        """Remove every line from the buyer's cart and commit."""
        await self.clear(user_id)
        await self.db.commit()
        cart = await self.get_cart(user_id)
        if cart is not None:
            await self.db.refresh(cart)
        return cart
