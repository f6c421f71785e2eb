"""Payment-status providers: HTTP backend client and an in-memory simulator."""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Optional, Protocol
from urllib.parse import urlencode

import httpx

from ...config import settings
from ...errors import ProviderError

logger = logging.getLogger(__name__)

TERMINAL_PAYMENT_STATUSES = frozenset({"PAID", "FAILED", "EXPIRED"})

PAYMENT_METHODS: dict[str, tuple[str, ...]] = {
    "credit_card": ("CREDIT_CARD",),
    "bank_transfer": ("BCA", "BNI", "BRI", "MANDIRI", "PERMATA"),
    "ewallet": ("OVO", "DANA", "LINKAJA", "SHOPEEPAY"),
    "qris": ("QRIS",),
}


@dataclass(slots=True)
class PaymentStatus:
    external_id: str
    status: str
    amount: int = 0
    payment_method: Optional[str] = None
    checkout_url: Optional[str] = None
    paid_at: Optional[datetime] = None
    failure_reason: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_PAYMENT_STATUSES


class PaymentStatusProvider(Protocol):
    async def get_payment_status(self, external_id: str) -> PaymentStatus: ...


def payment_methods_for(method_type: str) -> tuple[str, ...]:
    return PAYMENT_METHODS.get(method_type, PAYMENT_METHODS["credit_card"])


def generate_external_id(prefix: str = "pizza-order") -> str:
    return f"{prefix}-{int(time.time() * 1000)}-{secrets.token_hex(3)}"


class HttpPaymentStatusProvider:
    """Reads payment status from the payment backend over HTTP."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = (base_url or settings.payment_api_base_url or "").rstrip("/")
        if not self.base_url:
            raise ValueError("Payment API base URL is not configured.")
        self.timeout = timeout or settings.payment_timeout_seconds
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout, connect=5.0))
        return self._client

    async def get_payment_status(self, external_id: str) -> PaymentStatus:
        url = f"{self.base_url}/payments/status/{external_id}"
        try:
            response = await self._get_client().get(url)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise ProviderError("payments", f"Failed to get payment status: {exc.response.status_code}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ProviderError("payments", f"Failed to get payment status: {exc}") from exc

        paid_at = data.get("paid_at")
        return PaymentStatus(
            external_id=str(data.get("external_id", external_id)),
            status=str(data.get("status", "PENDING")).upper(),
            amount=int(data.get("amount") or 0),
            payment_method=data.get("payment_method"),
            checkout_url=data.get("checkout_url"),
            paid_at=datetime.fromisoformat(paid_at.replace("Z", "+00:00")) if paid_at else None,
            failure_reason=data.get("failure_reason"),
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class SimulatedPaymentProvider:
    """In-memory payments for demos and tests; statuses change only via ``set_status``."""

    def __init__(self, checkout_base_url: str = "https://checkout.example.com/web/checkout") -> None:
        self.checkout_base_url = checkout_base_url.rstrip("/")
        self._payments: dict[str, PaymentStatus] = {}

    def create_payment(
        self,
        external_id: str,
        amount: int,
        payment_method: str = "credit_card",
        *,
        return_url: str = "",
    ) -> PaymentStatus:
        params = urlencode(
            {
                "external_id": external_id,
                "amount": str(amount),
                "payment_method": payment_method,
                "return_url": return_url,
            }
        )
        payment = PaymentStatus(
            external_id=external_id,
            status="PENDING",
            amount=amount,
            payment_method=payment_method,
            checkout_url=f"{self.checkout_base_url}/{external_id}?{params}",
        )
        self._payments[external_id] = payment
        return payment

    def set_status(self, external_id: str, status: str, *, failure_reason: Optional[str] = None) -> PaymentStatus:
        payment = self._payments.get(external_id)
        if payment is None:
            raise KeyError(external_id)
        status = status.upper()
        updated = replace(
            payment,
            status=status,
            paid_at=datetime.now(timezone.utc) if status == "PAID" else None,
            failure_reason=(failure_reason or "Insufficient funds") if status == "FAILED" else None,
        )
        self._payments[external_id] = updated
        return updated

    async def get_payment_status(self, external_id: str) -> PaymentStatus:
        payment = self._payments.get(external_id)
        if payment is None:
            raise ProviderError("payments", f"Unknown payment {external_id}")
        return payment
