import secrets
from decimal import Decimal

import pytest
import pytest_asyncio
from tortoise import Tortoise

from marketplace.core.db import MODELS_MODULES
from marketplace.domain.actors import AccountStatus, Actor, Role
from marketplace.models.catalog import Product
from marketplace.models.user import User
from marketplace.testing.testing_mocks import recording_notifier


@pytest_asyncio.fixture
async def db():
    """Fresh in-memory SQLite schema per test."""
    await Tortoise.init(db_url="sqlite://:memory:", modules={"models": MODELS_MODULES})
    await Tortoise.generate_schemas()
    yield
    await Tortoise.close_connections()


async def make_user(role: Role, status: AccountStatus = AccountStatus.ACTIVE, **extra) -> User:
    return await User.create(
        name=f"{role.value} {secrets.token_hex(2)}",
        role=role,
        status=status,
        api_token=secrets.token_hex(16),
        **extra,
    )


def actor_of(user: User) -> Actor:
    return Actor(id=user.id, role=user.role)


@pytest_asyncio.fixture
async def customer(db):
    return await make_user(Role.CUSTOMER)


@pytest_asyncio.fixture
async def restaurant(db):
    return await make_user(Role.RESTAURANT)


@pytest_asyncio.fixture
async def rider(db):
    return await make_user(Role.DELIVERY)


@pytest_asyncio.fixture
async def admin(db):
    return await make_user(Role.ADMIN)


@pytest_asyncio.fixture
async def menu(restaurant):
    wrap = await Product.create(restaurant=restaurant, name="Paneer Wrap", price=Decimal("149.00"))
    drink = await Product.create(restaurant=restaurant, name="Cold Drink", price=Decimal("49.00"))
    return wrap, drink


@pytest.fixture
def notifier_and_publisher():
    return recording_notifier()


ADDRESS = {
    "address": "12 MG Road",
    "landmark": "Near the park",
    "city": "Bengaluru",
    "state": "KA",
    "pincode": "560001",
}
