from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Optional, Callable, Dict, Any

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import func

from asaas_gateway.engine.dispatcher import AccessDecision
from asaas_gateway.persistence.models import AccountStatus, ProcessedEvent


# -------------------- Processed events --------------------

def _utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


class EventRepo:
    def __init__(
        self,
        db: AsyncSession,
        *,
        lease: timedelta = timedelta(minutes=5),
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.db = db
        self.lease = lease
        self.clock = clock

    async def claim(self, *, key: str, event_type: Optional[str], payload: Dict[str, Any]) -> bool:
        """
        Insert a `processing` row for this key and commit right away.
        Returns False when the key already exists (unique-insert dedupe), so
        concurrent deliveries of the same key cannot both pass.
        A row left in `processing` for longer than the lease (a worker died
        or could not release it) is taken over instead; the conditional
        update lets only one delivery win it.
        """
        now = self.clock()
        stmt = insert(ProcessedEvent).values(
            idempotency_key=key,
            event_type=event_type,
            status="processing",
            payload=payload,
            claimed_at=now,
        )
        try:
            await self.db.execute(stmt)
            await self.db.commit()
            return True
        except IntegrityError:
            await self.db.rollback()

        res = await self.db.execute(
            update(ProcessedEvent)
            .where(
                ProcessedEvent.idempotency_key == key,
                ProcessedEvent.status == "processing",
                ProcessedEvent.claimed_at <= now - self.lease,
            )
            .values(claimed_at=now, event_type=event_type, payload=payload)
        )
        await self.db.commit()
        return res.rowcount == 1

    async def mark_processed(self, key: str) -> None:
        # commits the account change applied earlier in the same session too
        await self.db.execute(
            update(ProcessedEvent)
            .where(ProcessedEvent.idempotency_key == key)
            .values(status="processed", processed_at=func.now())
        )
        await self.db.commit()

    async def release(self, key: str) -> None:
        await self.db.rollback()
        await self.db.execute(delete(ProcessedEvent).where(ProcessedEvent.idempotency_key == key))
        await self.db.commit()

    async def get(self, key: str) -> Optional[ProcessedEvent]:
        res = await self.db.execute(select(ProcessedEvent).where(ProcessedEvent.idempotency_key == key))
        return res.scalar_one_or_none()


# -------------------- Account status --------------------

class AccountRepo:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, customer_id: str) -> Optional[AccountStatus]:
        res = await self.db.execute(select(AccountStatus).where(AccountStatus.customer_id == customer_id))
        return res.scalar_one_or_none()

    async def apply(self, decision: AccessDecision) -> None:
        """
        Upsert the customer's access row. Flushes only; the caller commits
        together with the processed-event mark.
        A suspension keeps the previous expires_at for reference.
        """
        row = await self.get(decision.customer_id)
        if row is None:
            row = AccountStatus(customer_id=decision.customer_id)
            self.db.add(row)

        row.status = decision.status.value
        if decision.expires_at is not None:
            row.expires_at = decision.expires_at
        row.last_payment_id = decision.payment_id
        row.last_event_type = decision.event_type
        await self.db.flush()
