from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import NotFoundError
from ..core.resilience import run_with_timeout
from ..models.order import Order, Status

DEFAULT_STORE_TIMEOUT = 5.0


class OrderRepository:
    """Order Store access by composite key ``(customer_id, order_id)``.

    Commits are the commit point of the order handler: on any failure the
    session is rolled back and nothing is left behind.
    """

    def __init__(self, session: AsyncSession, timeout: float = DEFAULT_STORE_TIMEOUT):
        self.session = session
        self.timeout = timeout

    async def _commit(self, operation: str) -> None:
        try:
            await run_with_timeout(self.session.commit(), self.timeout, operation)
        except Exception:
            await self.session.rollback()
            raise

    async def create_order(
        self,
        customer_id: str,
        order_id: str,
        items: List[Dict[str, Any]],
        total: Decimal,
    ) -> Order:
        """Persist a new order with already snapshotted item prices"""
        order = Order(
            pk=customer_id,
            sk=order_id,
            status=Status.CREATED.value,
            total=total,
            items=items,
        )
        self.session.add(order)
        await self._commit("create_order")
        await run_with_timeout(self.session.refresh(order), self.timeout, "create_order")
        return order

    async def get_order(self, customer_id: str, order_id: str) -> Order:
        """Get order by composite key"""
        order = await run_with_timeout(
            self.session.get(Order, (customer_id, order_id)), self.timeout, "get_order"
        )
        if order is None:
            raise NotFoundError("Order", f"{customer_id}/{order_id}")
        return order

    async def list_orders(self, customer_id: Optional[str] = None) -> List[Order]:
        """All orders, or all orders of one customer, newest first"""
        query = select(Order)
        if customer_id is not None:
            query = query.where(Order.pk == customer_id)
        query = query.order_by(Order.created_at.desc())

        result = await run_with_timeout(
            self.session.execute(query), self.timeout, "list_orders"
        )
        return list(result.scalars().all())

    async def delete_order(self, customer_id: str, order_id: str) -> Order:
        """Remove an order in one conditional statement and return its last stored state"""
        stmt = (
            delete(Order)
            .where(Order.pk == customer_id, Order.sk == order_id)
            .returning(Order)
        )
        try:
            result = await run_with_timeout(
                self.session.execute(stmt), self.timeout, "delete_order"
            )
        except Exception:
            await self.session.rollback()
            raise

        order = result.scalar_one_or_none()
        if order is None:
            await self.session.rollback()
            raise NotFoundError("Order", f"{customer_id}/{order_id}")

        await self._commit("delete_order")
        return order
