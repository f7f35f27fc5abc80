"""
Order handler: validates against the catalog, commits to the Order Store,
then publishes the lifecycle event.

The store commit is the commit point. A publish failure after it is logged
for reconciliation and reported as ``published=False``; the order stays.
"""

import uuid
from decimal import Decimal
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar, Union

from pydantic import ValidationError

from product_service.app.repository.product_repository import ProductRepository

from ..core.exceptions import ProductNotFoundError, ValidationFailedError
from ..core.resilience import retry_transient
from ..events.base import BaseEvent
from ..events.producers import OrderEventProducer
from ..models.order import Status
from ..repository.order_repository import OrderRepository
from ..schemas.order import (
    CreateOrderRequest,
    OrderOutcome,
    OrderResponse,
    OrderSnapshot,
)
from ..utils.logging import setup_order_logging as setup_logging

logger = setup_logging("order_service", log_level="INFO")

T = TypeVar("T")


class OrderRequestState(str, Enum):
    RECEIVED = "RECEIVED"
    VALIDATED = "VALIDATED"
    PERSISTED = "PERSISTED"
    PUBLISHED = "PUBLISHED"


class OrderService:
    def __init__(
        self,
        order_repository: OrderRepository,
        catalog: ProductRepository,
        event_producer: Optional[OrderEventProducer],
        read_retry_attempts: int = 3,
        read_retry_base_delay: float = 0.1,
    ):
        self.order_repository = order_repository
        self.catalog = catalog
        self.event_producer = event_producer
        self.read_retry_attempts = read_retry_attempts
        self.read_retry_base_delay = read_retry_base_delay

    async def _read(self, operation: str, call: Callable[[], Awaitable[T]]) -> T:
        """Store reads retry transient failures with bounded backoff"""
        return await retry_transient(
            call,
            operation,
            max_retries=self.read_retry_attempts,
            retry_delay=self.read_retry_base_delay,
        )

    def _log_state(self, state: OrderRequestState, **extra: Any) -> None:
        logger.info(
            f"Order request {state.value}",
            extra={"state": state.value, "operation": "order_request", **extra},
        )

    def _parse_request(
        self, request: Union[CreateOrderRequest, Dict[str, Any]]
    ) -> CreateOrderRequest:
        if isinstance(request, CreateOrderRequest):
            return request
        try:
            return CreateOrderRequest.model_validate(request)
        except ValidationError as e:
            raise ValidationFailedError(
                "Invalid order request",
                details={"errors": e.errors(include_url=False, include_context=False)},
            ) from e

    async def _price_items(
        self, request: CreateOrderRequest
    ) -> tuple[List[Dict[str, Any]], Decimal]:
        """Snapshot catalog prices for every requested item"""
        product_ids = {item.product_id for item in request.items}
        products = await self._read(
            "catalog_get_products_by_ids",
            lambda: self.catalog.get_products_by_ids(product_ids),
        )
        prices = {product.id: product.price for product in products}

        missing = product_ids - prices.keys()
        if missing:
            raise ProductNotFoundError(missing)

        items = []
        total = Decimal("0")
        for item in request.items:
            unit_price = prices[item.product_id]
            total += unit_price * item.quantity
            items.append(
                {
                    "product_id": item.product_id,
                    "quantity": item.quantity,
                    "unit_price": str(unit_price),
                }
            )
        return items, total

    async def _publish(
        self,
        publish: Optional[Callable[..., Awaitable[BaseEvent]]],
        snapshot: OrderSnapshot,
        correlation_id: Optional[str],
    ) -> bool:
        """Second phase: never raises, reports whether the event left"""
        if publish is None:
            logger.error(
                "Event producer unavailable, order event not published",
                extra={
                    "order_id": snapshot.order_id,
                    "customer_id": snapshot.customer_id,
                    "operation": "publish_failed",
                    "reconciliation_required": True,
                },
            )
            return False

        try:
            await publish(snapshot, correlation_id=correlation_id)
        except Exception as e:
            logger.error(
                f"Order committed but event publish failed: {e}",
                extra={
                    "order_id": snapshot.order_id,
                    "customer_id": snapshot.customer_id,
                    "status": snapshot.status,
                    "committed": True,
                    "published": False,
                    "operation": "publish_failed",
                    "reconciliation_required": True,
                },
            )
            return False
        return True

    def _log_outcome(self, action: str, outcome: OrderOutcome) -> None:
        logger.info(
            f"Order {action}",
            extra={
                "order_id": outcome.order.order_id,
                "customer_id": outcome.order.customer_id,
                "committed": outcome.committed,
                "published": outcome.published,
                "operation": f"order_{action}",
            },
        )

    async def create_order(
        self,
        request: Union[CreateOrderRequest, Dict[str, Any]],
        correlation_id: Optional[str] = None,
    ) -> OrderOutcome:
        """Validate, persist and announce a new order"""
        self._log_state(OrderRequestState.RECEIVED, correlation_id=correlation_id)
        order_request = self._parse_request(request)

        items, total = await self._price_items(order_request)
        self._log_state(
            OrderRequestState.VALIDATED,
            customer_id=order_request.customer_id,
            total=str(total),
        )

        order = await self.order_repository.create_order(
            customer_id=order_request.customer_id,
            order_id=str(uuid.uuid4()),
            items=items,
            total=total,
        )
        response = OrderResponse.from_order(order)
        self._log_state(
            OrderRequestState.PERSISTED,
            customer_id=response.customer_id,
            order_id=response.order_id,
        )

        published = await self._publish(
            self.event_producer.publish_order_created if self.event_producer else None,
            response.to_snapshot(),
            correlation_id,
        )
        if published:
            self._log_state(OrderRequestState.PUBLISHED, order_id=response.order_id)

        outcome = OrderOutcome(order=response, committed=True, published=published)
        self._log_outcome("created", outcome)
        return outcome

    async def delete_order(
        self, customer_id: str, order_id: str, correlation_id: Optional[str] = None
    ) -> OrderOutcome:
        """Remove an order and announce its last known state"""
        await self._read(
            "get_order", lambda: self.order_repository.get_order(customer_id, order_id)
        )
        order = await self.order_repository.delete_order(customer_id, order_id)
        response = OrderResponse.from_order(order).model_copy(
            update={"status": Status.DELETED.value}
        )

        published = await self._publish(
            self.event_producer.publish_order_deleted if self.event_producer else None,
            response.to_snapshot(),
            correlation_id,
        )

        outcome = OrderOutcome(order=response, committed=True, published=published)
        self._log_outcome("deleted", outcome)
        return outcome

    async def get_order(self, customer_id: str, order_id: str) -> OrderResponse:
        order = await self._read(
            "get_order", lambda: self.order_repository.get_order(customer_id, order_id)
        )
        return OrderResponse.from_order(order)

    async def list_orders(self, customer_id: Optional[str] = None) -> List[OrderResponse]:
        orders = await self._read(
            "list_orders", lambda: self.order_repository.list_orders(customer_id)
        )
        return [OrderResponse.from_order(order) for order in orders]
