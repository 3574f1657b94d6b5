from __future__ import annotations

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.management.base import BaseCommand
from django.db import transaction

from modules.core.identity import MARKETPLACE_GROUPS, Actor, Role
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from modules.orders.models import Order
from modules.orders.services import build_order_service
from modules.products.models import Product, SellerRole

SEED_USERS = [
    ("buyer1", Role.BUYER, "buyer1@example.com"),
    ("buyer2", Role.BUYER, "buyer2@example.com"),
    ("farmer1", Role.FARMER, "farmer1@example.com"),
    ("farmer2", Role.FARMER, "farmer2@example.com"),
    ("supplier1", Role.SUPPLIER, "supplier1@example.com"),
]

CATALOG = [
    ("farmer1", SellerRole.FARMER, "Basmati Rice", "kg", Decimal("320.00")),
    ("farmer1", SellerRole.FARMER, "Wheat", "kg", Decimal("110.00")),
    ("farmer1", SellerRole.FARMER, "Tomatoes", "kg", Decimal("150.00")),
    ("farmer2", SellerRole.FARMER, "Potatoes", "kg", Decimal("90.00")),
    ("farmer2", SellerRole.FARMER, "Mangoes", "kg", Decimal("260.00")),
    ("farmer2", SellerRole.FARMER, "Fresh Milk", "litre", Decimal("210.00")),
    ("supplier1", SellerRole.SUPPLIER, "Urea Fertilizer", "bag", Decimal("4800.00")),
    ("supplier1", SellerRole.SUPPLIER, "DAP Fertilizer", "bag", Decimal("12500.00")),
    ("supplier1", SellerRole.SUPPLIER, "Cotton Seeds", "kg", Decimal("750.00")),
    ("supplier1", SellerRole.SUPPLIER, "Drip Irrigation Kit", "unit", Decimal("18500.00")),
]


class Command(BaseCommand):
    help = "Seed database with marketplace users, listings and a few orders."

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users = self._seed_users()
        products = self._seed_products(users)
        orders_created = self._seed_orders(users, products)

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={len(users)}, "
                f"products={len(products)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self) -> dict:
        User = get_user_model()
        groups = {name: Group.objects.get_or_create(name=name)[0] for name in MARKETPLACE_GROUPS}
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", email="admin@example.com", password="admin123")

        users = {}
        for username, role, email in SEED_USERS:
            user, created = User.objects.get_or_create(
                username=username, defaults={"email": email}
            )
            if created:
                user.set_password(f"{username}123")
                user.save()
            user.groups.add(groups[role])
            users[username] = user
        self.stdout.write(self.style.SUCCESS("Creating users... Done!"))
        return users

    def _seed_products(self, users: dict) -> list[Product]:
        self.stdout.write("Creating products...")
        products: list[Product] = []
        for owner, role, name, unit, price in CATALOG:
            product, _ = Product.objects.get_or_create(
                name=name,
                owner_id=str(users[owner].pk),
                owner_role=role,
                defaults={
                    "price": price,
                    "unit": unit,
                    "quantity": random.randint(50, 500),
                },
            )
            products.append(product)
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return products

    def _seed_orders(self, users: dict, products: list[Product]) -> int:
        self.stdout.write("Creating orders...")
        if Order.objects.filter(notes__startswith="Seed order").exists():
            self.stdout.write(self.style.WARNING("Skipping orders (already seeded)."))
            return 0

        service = build_order_service()
        buyers = [users["buyer1"], users["buyer2"]]
        created = 0
        for i in range(10):
            buyer = random.choice(buyers)
            picks = random.sample(products, k=random.randint(1, 3))
            dto = CreateOrderDTO(
                items=[
                    CreateOrderItemDTO(product_id=product.id, quantity=random.randint(1, 5))
                    for product in picks
                ],
                shipping_address={"city": "Lahore", "line1": f"House {i + 1}"},
                notes=f"Seed order {i + 1}",
            )
            with transaction.atomic():
                service.create_order(dto, Actor(user_id=str(buyer.pk), role=Role.BUYER))
            created += 1

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return created
