from datetime import datetime
from typing import Any, Dict, Optional

from ..models.base import utcnow
from ..utils.logging import setup_order_logging as setup_logging
from .base import BaseEvent, EventPublisher
from .schemas import OrderEventData, OrderEventType, OrderSnapshot

logger = setup_logging("order-producer-events", log_level="INFO")


class OrderEventProducer:
    """Publishes order lifecycle events to the order events topic.

    Events are keyed by order id. Failures are logged and re-raised; the
    order handler turns them into ``published=False``.
    """

    def __init__(
        self,
        event_publisher: EventPublisher,
        topic: str,
        source_service: str = "order-service",
    ):
        self.event_publisher = event_publisher
        self.topic = topic
        self.source_service = source_service

    async def _publish_event(
        self,
        event: BaseEvent,
        key: str,
        event_name: str,
        log_data: Dict[str, Any],
    ) -> BaseEvent:
        """Common event publishing logic with error handling and logging"""
        try:
            await self.event_publisher.publish(event, topic=self.topic, key=key)
        except Exception as e:
            logger.error(
                f"Failed to publish {event_name} event: {e}",
                extra={**log_data, "event_id": event.event_id},
            )
            raise
        logger.info(
            f"Published {event_name} event.",
            extra={**log_data, "event_id": event.event_id},
        )
        return event

    def build_event(
        self,
        event_type: OrderEventType,
        snapshot: OrderSnapshot,
        timestamp: datetime,
        correlation_id: Optional[str] = None,
    ) -> BaseEvent:
        event_data = OrderEventData(
            order_id=snapshot.order_id,
            event_type=event_type,
            snapshot=snapshot,
            timestamp=timestamp,
        )
        return BaseEvent(
            event_type=event_type.value,
            source_service=self.source_service,
            correlation_id=correlation_id,
            data=event_data.to_dict(),
        )

    async def publish_order_created(
        self, snapshot: OrderSnapshot, correlation_id: Optional[str] = None
    ) -> BaseEvent:
        """Publish ORDER_CREATED stamped with the order's creation time"""
        event = self.build_event(
            OrderEventType.ORDER_CREATED,
            snapshot,
            timestamp=snapshot.created_at,
            correlation_id=correlation_id,
        )
        return await self._publish_event(
            event=event,
            key=snapshot.order_id,
            event_name="order created",
            log_data={
                "order_id": snapshot.order_id,
                "customer_id": snapshot.customer_id,
                "total": str(snapshot.total),
            },
        )

    async def publish_order_deleted(
        self, snapshot: OrderSnapshot, correlation_id: Optional[str] = None
    ) -> BaseEvent:
        """Publish ORDER_DELETED carrying the last known snapshot"""
        event = self.build_event(
            OrderEventType.ORDER_DELETED,
            snapshot,
            timestamp=utcnow(),
            correlation_id=correlation_id,
        )
        return await self._publish_event(
            event=event,
            key=snapshot.order_id,
            event_name="order deleted",
            log_data={
                "order_id": snapshot.order_id,
                "customer_id": snapshot.customer_id,
            },
        )
