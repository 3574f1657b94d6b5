"""Order DTOs for the Service Layer.

Framework-agnostic input contracts using Pydantic v2, built by the views
from validated serializer data.  DTOs are immutable (``frozen=True``).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from modules.orders.constants import (
    REJECTION_REASON_MAX_LENGTH,
    SELLER_UPDATABLE_STATUSES,
    PaymentMethod,
)


class CreateOrderItemDTO(BaseModel):
    """One requested product; price and seller come from the catalog."""

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class CreateOrderDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: List[CreateOrderItemDTO]
    payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY
    shipping_address: Dict[str, Any] = Field(default_factory=dict)
    notes: str = ""

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[CreateOrderItemDTO]
    ) -> List[CreateOrderItemDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v

    @model_validator(mode="after")
    def no_duplicate_products(self):
        product_ids = [item.product_id for item in self.items]
        if len(product_ids) != len(set(product_ids)):
            raise ValueError("Duplicate product IDs are not allowed in the same order.")
        return self


class AcceptOrderDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    estimated_delivery_date: Optional[datetime] = None


class RejectOrderDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    reason: str

    @field_validator("reason")
    @classmethod
    def reason_must_be_present(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Rejection reason is required.")
        if len(v) > REJECTION_REASON_MAX_LENGTH:
            raise ValueError(
                f"Rejection reason must be at most {REJECTION_REASON_MAX_LENGTH} characters."
            )
        return v


class UpdateItemStatusDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str
    reason: str = ""

    @field_validator("status")
    @classmethod
    def status_must_be_seller_updatable(cls, v: str) -> str:
        if v not in SELLER_UPDATABLE_STATUSES:
            allowed = ", ".join(SELLER_UPDATABLE_STATUSES)
            raise ValueError(f"Invalid status. Allowed values: {allowed}")
        return v
