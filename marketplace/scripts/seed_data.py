# python -m marketplace.scripts.seed_data
import asyncio
import secrets
from datetime import timedelta
from decimal import Decimal
from tortoise import timezone
from marketplace.core.db import close_db, init_db
from marketplace.domain.actors import AccountStatus, Role
from marketplace.models.catalog import DiscountType, Offer, Product
from marketplace.models.user import User

USERS = [
    ("Demo Customer", "9000000001", "customer@example.com", Role.CUSTOMER),
    ("Demo Restaurant", "9000000002", "restaurant@example.com", Role.RESTAURANT),
    ("Demo Rider", "9000000003", "rider@example.com", Role.DELIVERY),
    ("Demo Admin", "9000000004", "admin@example.com", Role.ADMIN),
]

MENU = [
    ("Paneer Wrap", "149.00"),
    ("Chili Paneer Rice", "199.00"),
    ("Cold Drink", "49.00"),
]

async def seed():
    users = {}
    for name, phone, email, role in USERS:
        user, created = await User.get_or_create(
            email=email,
            defaults={
                "name": name,
                "phone": phone,
                "role": role,
                "status": AccountStatus.ACTIVE,
                "is_approved": True,
                "api_token": secrets.token_hex(24),
            },
        )
        users[role] = user
        print(f"{role.value:<10} {user.id}  token={user.api_token}{'' if created else ' (existing)'}")

    restaurant = users[Role.RESTAURANT]
    for name, price in MENU:
        product, _ = await Product.get_or_create(
            restaurant=restaurant, name=name, defaults={"price": Decimal(price), "is_available": True}
        )
        print("Product:", product.name, str(product.id))

    now = timezone.now()
    offer, _ = await Offer.get_or_create(
        code="WELCOME50",
        defaults={
            "discount_type": DiscountType.PERCENTAGE,
            "discount_value": Decimal("50"),
            "max_discount": Decimal("100.00"),
            "min_order_value": Decimal("199.00"),
            "valid_from": now,
            "valid_to": now + timedelta(days=365),
            "is_active": True,
        },
    )
    print("Offer:", offer.code)

async def main():
    await init_db()
    try:
        await seed()
    finally:
        await close_db()

if __name__ == "__main__":
    asyncio.run(main())
