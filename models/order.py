from pydantic import BaseModel, ConfigDict, Field
from typing import List
from enum import Enum
import uuid


class OrderStatus(str, Enum):
    APPROVED = "APPROVED"
    REJECTED_RISK = "REJECTED_RISK"
    REJECTED_PAYMENT = "REJECTED_PAYMENT"
    CANCELLED = "CANCELLED"


class LineItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    item_code: str = Field(min_length=1)
    quantity: int = Field(gt=0)


class Order(BaseModel):
    """Immutable customer order. Invalid input raises pydantic's ValidationError."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"ORDER-{uuid.uuid4().hex[:12].upper()}", min_length=1)
    items: List[LineItem] = Field(min_length=1)

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)


class PipelineRequest(BaseModel):
    """Input of one pipeline run: the order plus payment failure-injection settings."""

    model_config = ConfigDict(frozen=True)

    order: Order
    payment_failure_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    seed: int | None = None
