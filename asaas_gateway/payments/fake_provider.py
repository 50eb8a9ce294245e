# asaas_gateway/payments/fake_provider.py
from __future__ import annotations
from typing import Optional, Dict, Any, List
from datetime import date, datetime, timezone

from asaas_gateway.payments.types import UpstreamResponse


class FakeAsaasProvider:
    """
    In-memory, protocol-compliant fake for tests/local runs.
    Mirrors the signatures in asaas_gateway.payments.types.PaymentProvider.

    - Customers: require `name` and `cpfCnpj` like the sandbox does.
    - Subscriptions: stored in-memory; creating one also issues its first PENDING payment.
    - Payments: one-off charges and subscription charges share one store.
    - Unknown ids answer 404 with an Asaas-shaped `errors` body.
    """

    def __init__(self):
        self.customers: Dict[str, Dict[str, Any]] = {}
        self.subscriptions: Dict[str, Dict[str, Any]] = {}
        self.payments: Dict[str, Dict[str, Any]] = {}
        # simple counters
        self._customer_counter: int = 0
        self._subscription_counter: int = 0
        self._payment_counter: int = 0

    # ----------------------- helpers -----------------------

    @staticmethod
    def _today() -> str:
        return datetime.now(tz=timezone.utc).date().isoformat()

    @staticmethod
    def _error(status_code: int, code: str, description: str) -> UpstreamResponse:
        return UpstreamResponse(
            status_code=status_code,
            body={"errors": [{"code": code, "description": description}]},
        )

    def _missing(self, payload: Dict[str, Any], fields: List[str]) -> Optional[UpstreamResponse]:
        for field in fields:
            if not payload.get(field):
                return self._error(400, "invalid_" + field, f"O campo {field} deve ser informado.")
        return None

    def _issue_payment(
        self,
        *,
        customer: str,
        value: Any,
        billing_type: str,
        due_date: str,
        description: Optional[str],
        subscription: Optional[str] = None,
    ) -> Dict[str, Any]:
        self._payment_counter += 1
        pid = f"pay_fake_{self._payment_counter}"
        payment = {
            "object": "payment",
            "id": pid,
            "dateCreated": self._today(),
            "customer": customer,
            "subscription": subscription,
            "value": value,
            "netValue": value,
            "billingType": billing_type,
            "status": "PENDING",
            "dueDate": due_date,
            "description": description,
            "deleted": False,
        }
        self.payments[pid] = payment
        return payment

    # --------------------- customers -----------------------

    async def create_customer(self, payload: Dict[str, Any]) -> UpstreamResponse:
        error = self._missing(payload, ["name", "cpfCnpj"])
        if error:
            return error
        self._customer_counter += 1
        cid = f"cus_fake_{self._customer_counter}"
        customer = {
            "object": "customer",
            "id": cid,
            "dateCreated": self._today(),
            "deleted": False,
            **payload,
        }
        self.customers[cid] = customer
        return UpstreamResponse(status_code=200, body=dict(customer))

    # ------------------- subscriptions ---------------------

    async def create_subscription(self, payload: Dict[str, Any]) -> UpstreamResponse:
        error = self._missing(payload, ["customer", "billingType", "value", "nextDueDate", "cycle"])
        if error:
            return error
        if payload["customer"] not in self.customers:
            return self._error(400, "invalid_customer", "Cliente inválido ou não informado.")

        self._subscription_counter += 1
        sid = f"sub_fake_{self._subscription_counter}"
        subscription = {
            "object": "subscription",
            "id": sid,
            "dateCreated": self._today(),
            "customer": payload["customer"],
            "billingType": payload["billingType"],
            "cycle": payload["cycle"],
            "value": payload["value"],
            "nextDueDate": payload["nextDueDate"],
            "description": payload.get("description"),
            "status": "ACTIVE",
            "deleted": False,
        }
        self.subscriptions[sid] = subscription
        self._issue_payment(
            customer=payload["customer"],
            value=payload["value"],
            billing_type=payload["billingType"],
            due_date=payload["nextDueDate"],
            description=payload.get("description"),
            subscription=sid,
        )
        return UpstreamResponse(status_code=200, body=dict(subscription))

    async def list_subscription_payments(self, subscription_id: str) -> UpstreamResponse:
        if subscription_id not in self.subscriptions:
            return self._error(404, "not_found", "Assinatura não encontrada.")
        data = [dict(p) for p in self.payments.values() if p.get("subscription") == subscription_id]
        return UpstreamResponse(
            status_code=200,
            body={
                "object": "list",
                "hasMore": False,
                "totalCount": len(data),
                "limit": 10,
                "offset": 0,
                "data": data,
            },
        )

    # --------------------- payments ------------------------

    async def create_payment(self, payload: Dict[str, Any]) -> UpstreamResponse:
        error = self._missing(payload, ["customer", "billingType", "value", "dueDate"])
        if error:
            return error
        if payload["customer"] not in self.customers:
            return self._error(400, "invalid_customer", "Cliente inválido ou não informado.")
        due = payload["dueDate"]
        try:
            date.fromisoformat(due)
        except (TypeError, ValueError):
            return self._error(400, "invalid_dueDate", "Data de vencimento inválida.")
        payment = self._issue_payment(
            customer=payload["customer"],
            value=payload["value"],
            billing_type=payload["billingType"],
            due_date=due,
            description=payload.get("description"),
        )
        return UpstreamResponse(status_code=200, body=dict(payment))

    async def get_payment(self, payment_id: str) -> UpstreamResponse:
        payment = self.payments.get(payment_id)
        if not payment:
            return self._error(404, "not_found", "Cobrança não encontrada.")
        return UpstreamResponse(status_code=200, body=dict(payment))

    async def aclose(self) -> None:
        return None
