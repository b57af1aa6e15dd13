"""
Pydantic Schemas for Request/Response Validation

JSON on the wire uses camelCase keys (userName, createdAt, ...);
Python code uses the snake_case field names.

Author: Khalil Bannouri
Version: 1.0.0
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List
from datetime import datetime

from app.models import Order, OrderStatus


class CamelModel(BaseModel):
    """Base schema: camelCase aliases, accepts either spelling on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class OrderItemIn(CamelModel):
    """Single item in an order request. Presence is checked by the store."""
    product: Optional[str] = Field(None, max_length=200, examples=["Tea"])
    quantity: Optional[int] = Field(None, examples=[2])


class OrderCreate(CamelModel):
    """Request schema for creating a new order."""
    user_name: Optional[str] = Field(None, max_length=200, examples=["Ali Veli"])
    room: Optional[str] = Field(None, max_length=50, examples=["12"])
    note: Optional[str] = Field(None, max_length=1000, examples=["No sugar"])
    items: List[OrderItemIn] = Field(default_factory=list)
    original_order_id: Optional[int] = Field(None)


class OrderUpdate(CamelModel):
    """Request schema for editing an order. Items replace the existing set."""
    room: Optional[str] = Field(None, max_length=50)
    note: Optional[str] = Field(None, max_length=1000)
    items: List[OrderItemIn] = Field(default_factory=list)


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class OrderItemView(CamelModel):
    product: str
    quantity: int


class OrderView(CamelModel):
    """An order with its nested line items, as listed to users and staff."""
    id: int
    user_name: Optional[str] = None
    room: str
    note: str
    status: OrderStatus
    created_at: datetime
    completed_at: Optional[datetime] = None
    original_order_id: Optional[int] = None
    items: List[OrderItemView]

    @classmethod
    def from_order(cls, order: Order) -> "OrderView":
        return cls(
            id=order.id,
            user_name=order.user_name,
            room=order.room,
            note=order.note or "",
            status=order.status,
            created_at=order.created_at,
            completed_at=order.completed_at,
            original_order_id=order.original_order_id,
            items=[
                OrderItemView(product=item.product_name, quantity=item.quantity)
                for item in order.items
            ],
        )


class OrderIdResponse(BaseModel):
    """Response after creating or duplicating an order."""
    id: int


class OkResponse(BaseModel):
    ok: bool = True


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    ok: bool = True
    database: str
    timestamp: datetime
