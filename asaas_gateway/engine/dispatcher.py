from __future__ import annotations
from typing import Optional, Callable, Dict, Any, Protocol
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from enum import Enum

import structlog

from asaas_gateway.schemas.api_models import WebhookEvent

logger = structlog.get_logger(__name__)

PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
SUSPENDING_EVENTS = frozenset({"PAYMENT_OVERDUE", "PAYMENT_DELETED", "PAYMENT_REFUND_RECEIVED"})

SUBSCRIPTION_PERIOD = timedelta(days=30)    # monthly plan, recurring charge
ONE_OFF_YEARS = 1                           # annual plan, single PIX charge


class SubscriptionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    DELINQUENT = "DELINQUENT"


class DispatchOutcome(str, Enum):
    MALFORMED = "malformed"
    DUPLICATE = "duplicate"
    ACTIVATED = "activated"
    SUSPENDED = "suspended"
    IGNORED = "ignored"
    FAILED = "failed"


@dataclass(frozen=True)
class AccessDecision:
    customer_id: str
    status: SubscriptionStatus
    event_type: str
    payment_id: Optional[str] = None
    expires_at: Optional[date] = None
    is_subscription: bool = False


class ProcessedEventStore(Protocol):
    # claim() is False for processed keys and for claims still within their lease
    async def claim(self, *, key: str, event_type: Optional[str], payload: Dict[str, Any]) -> bool: ...
    async def mark_processed(self, key: str) -> None: ...
    async def release(self, key: str) -> None: ...


class AccountStateStore(Protocol):
    async def apply(self, decision: AccessDecision) -> None: ...


def _utc_today() -> date:
    return datetime.now(tz=timezone.utc).date()


def idempotency_key(event: WebhookEvent) -> str:
    """
    Asaas does not always send an event id. The fallback `<type>-<paymentId>`
    collides when the same (type, payment) pair is fired for two distinct
    events; such a second delivery is treated as a duplicate.
    """
    if event.id:
        return event.id
    payment_id = event.payment.id if event.payment and event.payment.id else "none"
    return f"{event.event}-{payment_id}"


def add_years(d: date, years: int) -> date:
    """Same month and day `years` later; Feb 29 falls back to Feb 28."""
    try:
        return d.replace(year=d.year + years)
    except ValueError:
        return d.replace(year=d.year + years, day=28)


def compute_expires_at(due_date: date, *, is_subscription: bool) -> date:
    if is_subscription:
        return due_date + SUBSCRIPTION_PERIOD
    return add_years(due_date, ONE_OFF_YEARS)


def decide(event: WebhookEvent, *, today: Callable[[], date] = _utc_today) -> Optional[AccessDecision]:
    """Map a well-formed event to an access decision, or None when the type carries none."""
    payment = event.payment
    is_subscription = bool(payment.subscription)

    if event.event == PAYMENT_RECEIVED:
        due = payment.dueDate or today()
        return AccessDecision(
            customer_id=payment.customer,
            status=SubscriptionStatus.ACTIVE,
            event_type=event.event,
            payment_id=payment.id,
            expires_at=compute_expires_at(due, is_subscription=is_subscription),
            is_subscription=is_subscription,
        )

    if event.event in SUSPENDING_EVENTS:
        return AccessDecision(
            customer_id=payment.customer,
            status=SubscriptionStatus.DELINQUENT,
            event_type=event.event,
            payment_id=payment.id,
            is_subscription=is_subscription,
        )

    return None


class WebhookDispatcher:
    """
    Turns one Asaas payment notification into at most one account-state change.

    Order: malformed check -> claim key (unique insert) -> decide -> apply ->
    mark processed. A failed claim means the event was already processed or is in
    flight. Errors after the claim are logged, the claim is released and the outcome
    is FAILED; errors from the claim itself propagate to the caller. If the
    release fails too, the row stays `processing` and the store lets the
    next delivery of that key claim it again.
    """

    def __init__(
        self,
        events: ProcessedEventStore,
        accounts: AccountStateStore,
        *,
        today: Callable[[], date] = _utc_today,
    ):
        self.events = events
        self.accounts = accounts
        self.today = today

    async def dispatch(self, event: WebhookEvent, payload: Dict[str, Any]) -> DispatchOutcome:
        if not event.payment or not event.payment.customer:
            logger.warning("webhook_missing_customer", body=payload)
            return DispatchOutcome.MALFORMED

        key = idempotency_key(event)
        log = logger.bind(idempotency_key=key, event_type=event.event, customer=event.payment.customer)

        if not await self.events.claim(key=key, event_type=event.event, payload=payload):
            log.info("webhook_duplicate_ignored")
            return DispatchOutcome.DUPLICATE

        try:
            decision = decide(event, today=self.today)
            if decision is not None:
                await self.accounts.apply(decision)
            await self.events.mark_processed(key)
        except Exception:
            log.exception("webhook_decision_failed")
            try:
                await self.events.release(key)
            except Exception:
                log.exception("webhook_release_failed")
            return DispatchOutcome.FAILED

        if decision is None:
            log.info("webhook_event_ignored")
            return DispatchOutcome.IGNORED

        if decision.status == SubscriptionStatus.ACTIVE:
            log.info(
                "access_granted",
                is_subscription=decision.is_subscription,
                expires_at=decision.expires_at.isoformat(),
            )
            return DispatchOutcome.ACTIVATED

        log.info("access_suspended")
        return DispatchOutcome.SUSPENDED
