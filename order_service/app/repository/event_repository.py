"""Append-only event store with partition-scoped write authorization"""

from typing import List

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import UnauthorizedScopeError
from ..core.resilience import run_with_timeout
from ..core.scope import WriteScope, scope_key_for
from ..models.order_event import OrderEvent
from ..schemas.order import OrderEventRecord

DEFAULT_STORE_TIMEOUT = 5.0
SCOPE_CONSTRAINT = "ck_order_events_pk_scope"

_INSERTS = {"postgresql": pg_insert, "sqlite": sqlite_insert}


class EventRepository:
    """Event Repository.

    Writes require a ``WriteScope`` and are checked twice: by the scope
    before the statement is issued, and by the table's CHECK constraint
    when it is executed.
    """

    def __init__(self, session: AsyncSession, timeout: float = DEFAULT_STORE_TIMEOUT):
        self.session = session
        self.timeout = timeout

    def _insert(self):
        dialect = self.session.bind.dialect.name
        try:
            return _INSERTS[dialect]
        except KeyError:
            raise NotImplementedError(f"Event store does not support {dialect}") from None

    async def append(self, record: OrderEventRecord, scope: WriteScope) -> bool:
        """Append ``record`` inside ``scope``.

        Returns False when a row with the same ``(pk, sk)`` already exists,
        which makes redelivered notifications no-ops.
        """
        scope.authorize(record.pk)

        statement = (
            self._insert()(OrderEvent)
            .values(**record.model_dump())
            .on_conflict_do_nothing(index_elements=["pk", "sk"])
        )
        try:
            result = await run_with_timeout(
                self.session.execute(statement), self.timeout, "append_event"
            )
            await run_with_timeout(self.session.commit(), self.timeout, "append_event")
        except IntegrityError as e:
            await self.session.rollback()
            if SCOPE_CONSTRAINT in str(e.orig) or "CHECK constraint" in str(e.orig):
                raise UnauthorizedScopeError(
                    record.pk, "rejected by the event store scope constraint"
                ) from e
            raise
        except Exception:
            await self.session.rollback()
            raise

        return result.rowcount > 0

    async def list_events(self, order_id: str) -> List[OrderEvent]:
        """Events of one order in sort-key order"""
        query = (
            select(OrderEvent)
            .where(OrderEvent.pk == scope_key_for(order_id))
            .order_by(OrderEvent.sk)
        )
        result = await run_with_timeout(
            self.session.execute(query), self.timeout, "list_events"
        )
        return list(result.scalars().all())
