"""
Order Store

Owns order and line-item persistence and the order state machine.

Every multi-row mutation (create, edit, duplicate) runs in one
transaction opened with `session.begin()`: any exception inside the
block rolls the whole unit back, so readers never see an order without
its items. Completion is a single UPDATE statement.

Errors:
    ValidationError    -- checked before the transaction is opened
    NotFoundError      -- checked on the locked row, before any write
    InvalidStateError  -- checked on the locked row, before any write
    StoreError         -- any SQLAlchemy failure, logged with traceback

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import InvalidStateError, NotFoundError, StoreError, ValidationError
from app.models import Order, OrderItem, OrderStatus, utcnow
from app.services.users import UserRegistry

logger = logging.getLogger(__name__)


@dataclass
class ItemSpec:
    """Validated line item, ready to be persisted."""
    product: str
    quantity: int = 1


def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def normalize_items(items: Optional[Iterable[Any]]) -> list[ItemSpec]:
    """
    Validate submitted items (dicts or objects with `product`/`quantity`).

    Quantity defaults to 1 and is coerced to at least 1.

    Raises:
        ValidationError: list empty, or an item without a product name
    """
    specs = []
    for item in items or []:
        product = (_field(item, "product") or "").strip()
        if not product:
            raise ValidationError("Every item needs a product")

        quantity = _field(item, "quantity")
        try:
            quantity = int(quantity) if quantity is not None else 1
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid quantity for '{product}'")

        specs.append(ItemSpec(product=product, quantity=max(quantity, 1)))

    if not specs:
        raise ValidationError("At least one item is required")
    return specs


def _require(value: Optional[str], field_name: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{field_name} is required")
    return value


def _build_items(specs: Iterable[ItemSpec]) -> list[OrderItem]:
    return [OrderItem(product_name=s.product, quantity=s.quantity) for s in specs]


class OrderStore:
    """
    Transactional order operations bound to one session.

    Args:
        session: Request-scoped session, not inside a transaction yet
        registry: User registry; None disables user tracking
        strict_completion: Reject completion of unknown or non-active orders
    """

    def __init__(
        self,
        session: AsyncSession,
        registry: Optional[UserRegistry] = None,
        strict_completion: bool = True,
    ):
        self.session = session
        self.registry = registry
        self.strict_completion = strict_completion

    # =========================================================================
    # CREATE
    # =========================================================================

    async def create_order(
        self,
        user_name: Optional[str],
        room: Optional[str],
        note: Optional[str],
        items: Optional[Iterable[Any]],
        original_order_id: Optional[int] = None,
    ) -> int:
        """
        Insert an active order and all of its items atomically.

        Returns:
            int: id of the new order
        """
        user_name = _require(user_name, "userName")
        room = _require(room, "room")
        specs = normalize_items(items)

        try:
            async with self.session.begin():
                if original_order_id is not None:
                    if await self.session.get(Order, original_order_id) is None:
                        raise ValidationError(
                            f"originalOrderId {original_order_id} does not reference an existing order"
                        )

                user_id = None
                if self.registry is not None:
                    user = await self.registry.resolve(user_name)
                    user_id = user.user_id

                order = Order(
                    user_id=user_id,
                    user_name=user_name,
                    room=room,
                    note=note or "",
                    status=OrderStatus.ACTIVE,
                    original_order_id=original_order_id,
                    items=_build_items(specs),
                )
                self.session.add(order)
                await self.session.flush()
                order_id = order.id
        except SQLAlchemyError as e:
            logger.exception(f"Error creating order for '{user_name}' (room {room})")
            raise StoreError() from e

        logger.info(f"Order #{order_id} created for '{user_name}' (room {room}, {len(specs)} item(s))")
        return order_id

    # =========================================================================
    # EDIT
    # =========================================================================

    async def edit_order(
        self,
        order_id: int,
        room: Optional[str],
        note: Optional[str],
        items: Optional[Iterable[Any]],
    ) -> None:
        """
        Update room/note and replace the item collection of an active order.

        The item list is a full replacement; callers resend every item.
        """
        room = _require(room, "room")
        specs = normalize_items(items)

        try:
            async with self.session.begin():
                order = await self._get_for_update(order_id)
                if order.status != OrderStatus.ACTIVE:
                    raise InvalidStateError(order_id, order.status.value, "edit")

                order.room = room
                order.note = note or ""
                order.replace_items(_build_items(specs))
        except SQLAlchemyError as e:
            logger.exception(f"Error editing order #{order_id}")
            raise StoreError() from e

        logger.info(f"Order #{order_id} edited ({len(specs)} item(s))")

    # =========================================================================
    # DUPLICATE
    # =========================================================================

    async def duplicate_order(self, order_id: int) -> int:
        """
        Copy an order (any status) into a new active order linked by
        `original_order_id`. The source order is left untouched.

        Returns:
            int: id of the new order
        """
        try:
            async with self.session.begin():
                source = await self._get_for_update(order_id)

                copy = Order(
                    user_id=source.user_id,
                    user_name=source.user_name,
                    room=source.room,
                    note=source.note,
                    status=OrderStatus.ACTIVE,
                    completed_at=None,
                    original_order_id=source.id,
                    items=[
                        OrderItem(product_name=item.product_name, quantity=item.quantity)
                        for item in source.items
                    ],
                )
                self.session.add(copy)
                await self.session.flush()
                new_id = copy.id
        except SQLAlchemyError as e:
            logger.exception(f"Error duplicating order #{order_id}")
            raise StoreError() from e

        logger.info(f"Order #{order_id} duplicated as #{new_id}")
        return new_id

    # =========================================================================
    # COMPLETE
    # =========================================================================

    async def complete_order(self, order_id: int) -> None:
        """
        Mark an order completed with a single UPDATE.

        Strict mode is a compare-and-set on status = active; when no row
        matches, a follow-up read tells unknown ids from closed orders.
        Permissive mode updates unconditionally and re-stamps
        `completed_at` on repeated calls.
        """
        stmt = (
            update(Order)
            .where(Order.id == order_id)
            .values(status=OrderStatus.COMPLETED, completed_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if self.strict_completion:
            stmt = stmt.where(Order.status == OrderStatus.ACTIVE)

        try:
            result = await self.session.execute(stmt)
            await self.session.commit()

            if result.rowcount == 0 and self.strict_completion:
                status = (
                    await self.session.execute(select(Order.status).where(Order.id == order_id))
                ).scalar_one_or_none()
                await self.session.rollback()
                if status is None:
                    raise NotFoundError(order_id)
                raise InvalidStateError(order_id, OrderStatus(status).value, "complete")
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception(f"Error completing order #{order_id}")
            raise StoreError() from e

        logger.info(f"Order #{order_id} completed")

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _get_for_update(self, order_id: int) -> Order:
        order = await self.session.get(Order, order_id, with_for_update=True)
        if order is None:
            raise NotFoundError(order_id)
        return order
