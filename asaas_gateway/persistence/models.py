from __future__ import annotations

from sqlalchemy import (
    Column,
    Date,
    String,
    TIMESTAMP,
    JSON,
)
from sqlalchemy.sql import func
from .base import Base


# -------------------------
# Processed Events (webhook dedupe/audit)
# -------------------------
class ProcessedEvent(Base):
    __tablename__ = "processed_events"

    # the primary key is the dedupe constraint: a second insert of the same key fails
    idempotency_key = Column(String, primary_key=True)
    event_type = Column(String, nullable=True, index=True)
    status = Column(String, nullable=False)    # 'processing' | 'processed'
    payload = Column(JSON, nullable=True)      # raw provider payload

    received_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)
    claimed_at = Column(TIMESTAMP(timezone=True), nullable=False)   # refreshed when a stale claim is taken over
    processed_at = Column(TIMESTAMP(timezone=True), nullable=True)


# -------------------------
# Account Status (access derived from payment events)
# -------------------------
class AccountStatus(Base):
    __tablename__ = "account_statuses"

    customer_id = Column(String, primary_key=True)     # Asaas customer id (cus_...)
    status = Column(String, nullable=False)            # 'ACTIVE' | 'DELINQUENT'
    expires_at = Column(Date, nullable=True)           # set while ACTIVE
    last_payment_id = Column(String, nullable=True)
    last_event_type = Column(String, nullable=True)

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
