"""
Payment Confirmation Gateway

The booking engine never talks to a payment provider directly. It uses
this capability:

    create_order(amount, currency, reference) -> {"order_id": ...}
    verify_payment(order_id, payment_id, signature) -> bool
    create_refund(payment_id, amount, metadata) -> {"refund_id": ...}

RazorpayGateway calls the Razorpay REST API. SandboxPaymentGateway emulates
it for development and tests, signing payments with a fixed key so that
clients can produce valid signatures without a provider account.
"""

import hashlib
import hmac
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Optional

import requests
from django.conf import settings

from shared.domain.exceptions import PaymentProviderError
from shared.domain.value_objects import Money

logger = logging.getLogger(__name__)


def compute_signature(secret: str, order_id: str, payment_id: str) -> str:
    """HMAC-SHA256 of "order_id|payment_id", the way Razorpay signs checkouts"""
    message = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


class PaymentGateway(ABC):

    @abstractmethod
    def create_order(self, amount: Money, currency: str, reference: str) -> dict:
        """Open a provider order the renter will pay against"""

    @abstractmethod
    def verify_payment(self, order_id: str, payment_id: str, signature: str) -> bool:
        """True only if the provider vouches for this payment"""

    @abstractmethod
    def create_refund(self, payment_id: str, amount: Money, metadata: Optional[dict] = None) -> dict:
        """Refund part or all of a captured payment"""


class RazorpayGateway(PaymentGateway):
    """
    Razorpay REST adapter

    Amounts go over the wire in paise (minor units). Every network or
    protocol failure surfaces as PaymentProviderError.
    """

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        base_url: str = "https://api.razorpay.com/v1/",
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ):
        if not key_id or not key_secret:
            raise PaymentProviderError("Razorpay key id and secret are not configured")
        self.key_id = key_id
        self.key_secret = key_secret
        self.base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, path: str, payload: dict) -> dict:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.post(
                url,
                json=payload,
                auth=(self.key_id, self.key_secret),
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except requests.exceptions.Timeout as e:
            logger.error(f"Razorpay request to {path} timed out: {e}")
            raise PaymentProviderError(f"Payment provider timed out: {e}", path=path)
        except requests.exceptions.RequestException as e:
            logger.error(f"Razorpay request to {path} failed: {e}")
            raise PaymentProviderError(f"Payment provider request failed: {e}", path=path)
        except ValueError as e:
            logger.error(f"Razorpay returned invalid JSON for {path}: {e}")
            raise PaymentProviderError(f"Payment provider returned an invalid response: {e}", path=path)

    def create_order(self, amount: Money, currency: str, reference: str) -> dict:
        logger.info(f"Creating Razorpay order for {reference}: {amount}")
        result = self._post(
            "orders",
            {
                "amount": amount.minor_units,
                "currency": currency,
                "receipt": reference,
                "notes": {"booking_id": reference},
            },
        )
        order_id = result.get("id")
        if not order_id:
            raise PaymentProviderError("Payment provider did not return an order id", reference=reference)
        logger.info(f"Razorpay order {order_id} created for {reference}")
        return {"order_id": order_id, "amount": result.get("amount"), "currency": result.get("currency", currency)}

    def verify_payment(self, order_id: str, payment_id: str, signature: str) -> bool:
        if not (order_id and payment_id and signature):
            return False
        expected = compute_signature(self.key_secret, order_id, payment_id)
        return hmac.compare_digest(expected, signature)

    def create_refund(self, payment_id: str, amount: Money, metadata: Optional[dict] = None) -> dict:
        logger.info(f"Requesting Razorpay refund of {amount} for payment {payment_id}")
        result = self._post(
            f"payments/{payment_id}/refund",
            {"amount": amount.minor_units, "notes": metadata or {}},
        )
        refund_id = result.get("id")
        if not refund_id:
            raise PaymentProviderError("Payment provider did not return a refund id", payment_id=payment_id)
        logger.info(f"Razorpay refund {refund_id} created for payment {payment_id}")
        return {"refund_id": refund_id, "status": result.get("status", "processed")}


class SandboxPaymentGateway(PaymentGateway):
    """Provider emulation for DEBUG and for deployments without credentials"""

    SECRET = "sandbox-secret"

    def __init__(self, secret: str = SECRET):
        self.secret = secret

    def sign(self, order_id: str, payment_id: str) -> str:
        return compute_signature(self.secret, order_id, payment_id)

    def create_order(self, amount: Money, currency: str, reference: str) -> dict:
        order_id = f"order_{uuid.uuid4().hex[:14]}"
        logger.info(f"Sandbox order {order_id} created for {reference}: {amount}")
        return {"order_id": order_id, "amount": amount.minor_units, "currency": currency}

    def verify_payment(self, order_id: str, payment_id: str, signature: str) -> bool:
        if not (order_id and payment_id and signature):
            return False
        return hmac.compare_digest(self.sign(order_id, payment_id), signature)

    def create_refund(self, payment_id: str, amount: Money, metadata: Optional[dict] = None) -> dict:
        refund_id = f"rfnd_{uuid.uuid4().hex[:14]}"
        logger.info(f"Sandbox refund {refund_id} of {amount} for payment {payment_id}")
        return {"refund_id": refund_id, "status": "processed"}


def get_payment_gateway() -> PaymentGateway:
    """
    Gateway selected by PAYMENT_GATEWAY_BACKEND

    "razorpay" and "sandbox" force an adapter. "auto" uses the sandbox in
    DEBUG or when no Razorpay key is configured.
    """
    backend = getattr(settings, "PAYMENT_GATEWAY_BACKEND", "auto")
    key_id = getattr(settings, "RAZORPAY_KEY_ID", "")
    key_secret = getattr(settings, "RAZORPAY_KEY_SECRET", "")

    if backend == "sandbox" or (backend == "auto" and (settings.DEBUG or not key_id)):
        logger.debug("Using sandbox payment gateway")
        return SandboxPaymentGateway()

    return RazorpayGateway(
        key_id=key_id,
        key_secret=key_secret,
        base_url=getattr(settings, "RAZORPAY_API_BASE_URL", "https://api.razorpay.com/v1/"),
        timeout=getattr(settings, "PAYMENT_GATEWAY_TIMEOUT", 30),
    )
