"""
SQLAlchemy Database Models

Three tables back the order-intake service:
- users: display-name identities with a role
- orders: one row per order, with optional duplication lineage
- order_items: line items owned by exactly one order

Author: Khalil Bannouri
Version: 1.0.0
"""

from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime, Text, Enum, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from app.database import Base
import enum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRole(str, enum.Enum):
    """Role resolved from the display name."""
    USER = "user"
    ADMIN = "admin"


class OrderStatus(str, enum.Enum):
    """Order status workflow: active -> completed."""
    ACTIVE = "active"
    COMPLETED = "completed"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class User(Base):
    """
    Guest or staff identity, keyed by the exact (trimmed) display name.

    Rows are only written by the upsert in UserRegistry.resolve.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    full_name = Column(String(200), nullable=False, unique=True)
    role = Column(
        Enum(UserRole, name="user_role", values_callable=_enum_values),
        default=UserRole.USER,
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    def __repr__(self):
        return f"<User #{self.id} - {self.full_name} - {self.role.value}>"


class Order(Base):
    """
    Main Order table.

    `completed_at` is set if and only if `status` is completed.
    `user_name` is a snapshot of the name the order was placed under.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # =========================================================================
    # PLACED BY
    # =========================================================================
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    user_name = Column(String(200), nullable=False, index=True)

    # =========================================================================
    # ORDER DETAILS
    # =========================================================================
    room = Column(String(50), nullable=False)
    note = Column(Text, nullable=False, default="")

    # =========================================================================
    # ORDER STATUS
    # =========================================================================
    status = Column(
        Enum(OrderStatus, name="order_status", values_callable=_enum_values),
        default=OrderStatus.ACTIVE,
        nullable=False,
        index=True
    )

    # =========================================================================
    # LINEAGE
    # =========================================================================
    original_order_id = Column(Integer, ForeignKey("orders.id"), nullable=True, index=True)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
        lazy="selectin",
    )

    def replace_items(self, items: list["OrderItem"]) -> None:
        """
        Swap the whole item collection for `items`.

        Previous items become orphans and are deleted on the next flush,
        so this must run inside the caller's transaction.
        """
        self.items = list(items)

    def __repr__(self):
        return f"<Order #{self.id} - room {self.room} - {self.user_name} - {self.status.value}>"


class OrderItem(Base):
    """Single line item of an order."""
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_order_items_quantity_positive"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_name = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)

    order = relationship("Order", back_populates="items")

    def __repr__(self):
        return f"<OrderItem {self.quantity} x {self.product_name}>"
