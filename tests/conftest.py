from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.cache import cache
from freezegun import freeze_time
from rest_framework.test import APIClient

# SimpleRateThrottle.timer binds time.time at import; load it before any clock is frozen.
import rest_framework.throttling  # noqa: E402,F401,I001

from modules.core.identity import Actor, Role
from modules.disputes.services import build_dispute_service
from modules.orders.constants import ItemStatus, PaymentMethod
from modules.orders.dtos import (
    CreateOrderDTO,
    CreateOrderItemDTO,
    RejectOrderDTO,
    UpdateItemStatusDTO,
)
from modules.orders.services import build_order_service
from modules.products.models import Product

User = get_user_model()

START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_throttle_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def frozen():
    """Clock frozen at ``START``; advance it with ``frozen.tick(timedelta)``."""
    with freeze_time(START) as frozen_time:
        yield frozen_time


# ---------------------------------------------------------------------------
# Users and actors
# ---------------------------------------------------------------------------


def _make_user(username: str, role: str):
    if role == Role.ADMIN:
        return User.objects.create_user(
            username=username,
            email=f"{username}@example.com",
            password="testpass123",
            is_staff=True,
        )
    user = User.objects.create_user(
        username=username, email=f"{username}@example.com", password="testpass123"
    )
    user.groups.add(Group.objects.get_or_create(name=role)[0])
    return user


def _actor(user, role: str) -> Actor:
    return Actor(user_id=str(user.pk), role=role)


@pytest.fixture()
def buyer_user():
    return _make_user("buyer", Role.BUYER)


@pytest.fixture()
def other_buyer_user():
    return _make_user("other-buyer", Role.BUYER)


@pytest.fixture()
def farmer_user():
    return _make_user("farmer", Role.FARMER)


@pytest.fixture()
def supplier_user():
    return _make_user("supplier", Role.SUPPLIER)


@pytest.fixture()
def admin_user():
    return _make_user("admin", Role.ADMIN)


@pytest.fixture()
def buyer(buyer_user):
    return _actor(buyer_user, Role.BUYER)


@pytest.fixture()
def other_buyer(other_buyer_user):
    return _actor(other_buyer_user, Role.BUYER)


@pytest.fixture()
def farmer(farmer_user):
    return _actor(farmer_user, Role.FARMER)


@pytest.fixture()
def supplier(supplier_user):
    return _actor(supplier_user, Role.SUPPLIER)


@pytest.fixture()
def admin(admin_user):
    return _actor(admin_user, Role.ADMIN)


@pytest.fixture()
def client_for():
    """Build an APIClient force-authenticated as the given Django user."""

    def build(user) -> APIClient:
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    return build


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_product():
    def build(seller: Actor, name: str, price: str = "100.00", quantity: int = 50) -> Product:
        return Product.objects.create(
            name=name,
            owner_id=seller.user_id,
            owner_role=seller.role,
            price=Decimal(price),
            quantity=quantity,
        )

    return build


@pytest.fixture()
def rice(make_product, farmer):
    return make_product(farmer, "Basmati Rice", price="320.00", quantity=100)


@pytest.fixture()
def fertilizer(make_product, supplier):
    return make_product(supplier, "Urea Fertilizer", price="4800.00", quantity=20)


# ---------------------------------------------------------------------------
# Services and workflow driver
# ---------------------------------------------------------------------------


@pytest.fixture()
def order_service():
    return build_order_service()


@pytest.fixture()
def dispute_service():
    return build_dispute_service()


class OrderFlow:
    """Drives orders through the seller workflow with a frozen clock."""

    def __init__(self, service, frozen_time) -> None:
        self.service = service
        self.frozen = frozen_time

    def place(self, buyer: Actor, *lines, payment_method=PaymentMethod.CASH_ON_DELIVERY):
        dto = CreateOrderDTO(
            items=[
                CreateOrderItemDTO(product_id=product.id, quantity=quantity)
                for product, quantity in lines
            ],
            payment_method=payment_method,
            shipping_address={"city": "Multan"},
        )
        return self.service.create_order(dto, buyer)

    def accept(self, order, *sellers: Actor):
        for seller in sellers:
            order = self.service.accept_order(order.id, seller)
        return order

    def reject(self, order, seller: Actor, reason: str = "out of stock"):
        return self.service.reject_order(order.id, seller, RejectOrderDTO(reason=reason))

    def move(self, order, seller: Actor, status: str):
        for item in order.line_items():
            if item.is_sold_by(seller):
                order = self.service.update_item_status(
                    order.id, item.id, UpdateItemStatusDTO(status=status), seller
                )
        return order

    def ship(self, order, seller: Actor):
        return self.move(order, seller, ItemStatus.SHIPPED)

    def deliver(self, order, seller: Actor, wait_minutes: int = 10):
        self.frozen.tick(timedelta(minutes=wait_minutes))
        return self.move(order, seller, ItemStatus.DELIVERED)

    def delivered_order(self, buyer: Actor, seller: Actor, product, **kwargs):
        order = self.place(buyer, (product, 1), **kwargs)
        order = self.accept(order, seller)
        order = self.ship(order, seller)
        return self.deliver(order, seller)


@pytest.fixture()
def flow(order_service, frozen):
    return OrderFlow(order_service, frozen)
