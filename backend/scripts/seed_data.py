"""Seed data script for development.

Creates:
- 1 admin, 2 sellers and a configurable number of buyers
- a small agricultural catalog: each product has a default price/size table
  and seller-scoped tables
- one shipping address per buyer

Environment Variables:
    SEED_BUYERS: Number of buyer accounts (default: 20)
    RESET_DATA: Set to "true" to clear orders, carts and catalog first (default: false)

Usage:
    cd backend && uv run python -m scripts.seed_data
    RESET_DATA=true uv run python -m scripts.seed_data
"""

import asyncio
import os
from decimal import Decimal

SEED_BUYERS = int(os.getenv("SEED_BUYERS", "20"))
RESET_DATA = os.getenv("RESET_DATA", "false").lower() == "true"

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from agrimart.core.database import async_session_maker, engine
from agrimart.core.security import get_password_hash
from agrimart.models import Address, PriceSize, Product, ProductSeller, User
from agrimart.models.enums import UserRole

CATALOG = [
    {
        "name": "Organic Wheat Seeds",
        "category": "seeds",
        "description": "High-yield certified organic wheat seeds",
        "sizes": [("1kg", "120.00", "99.00", 200), ("5kg", "550.00", "480.00", 60)],
    },
    {
        "name": "Neem Oil Bio-Pesticide",
        "category": "pesticides",
        "description": "Cold-pressed neem oil, 1500 ppm azadirachtin",
        "sizes": [("250ml", "180.00", "160.00", 120), ("1L", "600.00", "540.00", 40)],
    },
    {
        "name": "Vermicompost",
        "category": "fertilizers",
        "description": "Sieved vermicompost for kitchen gardens and nurseries",
        "sizes": [("5kg", "250.00", "220.00", 90), ("25kg", "1100.00", "950.00", 25)],
    },
]


async def reset_marketplace_data(session: AsyncSession) -> None:
    """Clear orders, carts and catalog; keep users and addresses."""
    print("Resetting marketplace data...")
    for table in [
        "notifications",
        "shipments",
        "order_items",
        "orders",
        "cart_items",
        "carts",
        "price_sizes",
        "product_sellers",
        "products",
    ]:
        await session.execute(text(f"DELETE FROM {table}"))
    await session.commit()
    print("  Cleared orders, carts and catalog")


async def seed_users(session: AsyncSession) -> list[User]:
    """Create admin, sellers and buyers.

    - Admin: admin@agrimart.test / admin123
    - Sellers: seller1@agrimart.test, seller2@agrimart.test / password123
    - Buyers: buyer0001@agrimart.test ... / password123
    """
    print("Seeding users...")

    result = await session.execute(select(User).limit(1))
    if result.scalar_one_or_none():
        print("  Users already exist, skipping...")
        result = await session.execute(select(User))
        return list(result.scalars().all())

    password_hash = get_password_hash("password123")
    users = [
        User(
            email="admin@agrimart.test",
            password_hash=get_password_hash("admin123"),
            name="Admin",
            role=UserRole.ADMIN.value,
            status="active",
        )
    ]
    for i in (1, 2):
        users.append(
            User(
                email=f"seller{i}@agrimart.test",
                password_hash=password_hash,
                name=f"Kisan Store {i}",
                phone=f"98765432{i:02d}",
                role=UserRole.SELLER.value,
                status="active",
            )
        )
    for i in range(1, SEED_BUYERS + 1):
        users.append(
            User(
                email=f"buyer{i:04d}@agrimart.test",
                password_hash=password_hash,
                name=f"Buyer {i:04d}",
                role=UserRole.BUYER.value,
                status="active",
            )
        )

    session.add_all(users)
    await session.commit()
    for user in users:
        await session.refresh(user)

    print(f"  Created {len(users)} users")
    return users


async def seed_addresses(session: AsyncSession, buyers: list[User]) -> None:
    print("Seeding addresses...")
    result = await session.execute(select(Address).limit(1))
    if result.scalar_one_or_none():
        print("  Addresses already exist, skipping...")
        return

    for i, buyer in enumerate(buyers, start=1):
        session.add(
            Address(
                user_id=buyer.user_id,
                name=buyer.name,
                mobile=f"9{i:09d}",
                street_address=f"{i} Mandi Road",
                city="Pune",
                state="Maharashtra",
                zip_code="411001",
            )
        )
    await session.commit()
    print(f"  Created {len(buyers)} addresses")


async def seed_products(session: AsyncSession, sellers: list[User]) -> list[Product]:
    """Create the catalog with a default table and one table per seller."""
    print("Seeding products...")

    result = await session.execute(select(Product).limit(1))
    if result.scalar_one_or_none():
        print("  Products already exist, skipping...")
        result = await session.execute(select(Product))
        return list(result.scalars().all())

    products = []
    for entry in CATALOG:
        product = Product(
            name=entry["name"],
            description=entry["description"],
            category=entry["category"],
            seller_id=sellers[0].user_id,
        )
        session.add(product)
        await session.flush()

        for size, price, discounted, quantity in entry["sizes"]:
            session.add(
                PriceSize(
                    product_id=product.product_id,
                    seller_id=None,
                    size=size,
                    price=Decimal(price),
                    discounted_price=Decimal(discounted),
                    quantity=quantity,
                )
            )
        for n, seller in enumerate(sellers):
            session.add(
                ProductSeller(
                    product_id=product.product_id,
                    seller_id=seller.user_id,
                    shop_name=seller.name,
                )
            )
            for size, price, discounted, quantity in entry["sizes"]:
                # Second seller undercuts slightly with less stock
                factor = Decimal("0.95") if n else Decimal("1")
                session.add(
                    PriceSize(
                        product_id=product.product_id,
                        seller_id=seller.user_id,
                        size=size,
                        price=Decimal(price),
                        discounted_price=(Decimal(discounted) * factor).quantize(Decimal("0.01")),
                        quantity=quantity // (n + 1),
                    )
                )
        products.append(product)

    await session.commit()
    print(f"  Created {len(products)} products")
    return products


async def main():
    """Main seed function."""
    print("=" * 60)
    print("AgriMart - Seed Data Script")
    print("=" * 60)
    print(f"  RESET_DATA: {RESET_DATA}")
    print(f"  SEED_BUYERS: {SEED_BUYERS}")
    print("=" * 60)

    async with async_session_maker() as session:
        if RESET_DATA:
            await reset_marketplace_data(session)

        users = await seed_users(session)
        sellers = [u for u in users if u.role == UserRole.SELLER.value]
        buyers = [u for u in users if u.role == UserRole.BUYER.value]
        await seed_addresses(session, buyers)
        products = await seed_products(session, sellers)

    print("=" * 60)
    print("Seed data complete!")
    print(f"  Users: {len(users)} ({len(sellers)} sellers, {len(buyers)} buyers)")
    print(f"  Products: {len(products)}")
    print("=" * 60)

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
