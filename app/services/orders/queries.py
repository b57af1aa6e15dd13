"""
Order Query Service

Read-only projections over orders and their items:
- a user's own orders, newest first, optionally filtered by status
- active orders, oldest first (service queue)
- completed orders, most recently completed first

Only orders with at least one item are listed.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import NotFoundError, StoreError
from app.models import Order, OrderStatus
from app.schemas import OrderView

logger = logging.getLogger(__name__)


def parse_status_filter(value: Optional[str]) -> Optional[OrderStatus]:
    """Map a query-string status to OrderStatus; unknown values mean no filter."""
    if not value:
        return None
    try:
        return OrderStatus(value)
    except ValueError:
        logger.debug(f"Ignoring unknown status filter '{value}'")
        return None


class OrderQueryService:
    """Listing queries bound to one session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_user_orders(
        self,
        user_name: str,
        status: Optional[str] = None,
    ) -> list[OrderView]:
        query = (
            self._listable()
            .where(Order.user_name == user_name.strip())
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        status_filter = parse_status_filter(status)
        if status_filter is not None:
            query = query.where(Order.status == status_filter)
        return await self._fetch(query, f"orders of '{user_name}'")

    async def list_active_orders(self) -> list[OrderView]:
        query = (
            self._listable()
            .where(Order.status == OrderStatus.ACTIVE)
            .order_by(Order.created_at.asc(), Order.id.asc())
        )
        return await self._fetch(query, "active orders")

    async def list_completed_orders(self) -> list[OrderView]:
        query = (
            self._listable()
            .where(Order.status == OrderStatus.COMPLETED)
            .order_by(Order.completed_at.desc().nulls_last(), Order.id.desc())
        )
        return await self._fetch(query, "order history")

    async def get_order(self, order_id: int) -> OrderView:
        """
        Single order with its items.

        Raises:
            NotFoundError: no such order
        """
        try:
            order = await self.session.get(Order, order_id)
        except SQLAlchemyError as e:
            logger.exception(f"Error loading order #{order_id}")
            raise StoreError() from e
        if order is None:
            raise NotFoundError(order_id)
        return OrderView.from_order(order)

    @staticmethod
    def _listable():
        return select(Order).where(Order.items.any())

    async def _fetch(self, query, what: str) -> list[OrderView]:
        try:
            orders = (await self.session.execute(query)).scalars().all()
        except SQLAlchemyError as e:
            logger.exception(f"Error listing {what}")
            raise StoreError() from e
        return [OrderView.from_order(order) for order in orders]
