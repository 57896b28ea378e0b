# storefront/services/payment_gateway.py
"""Payment gateway abstraction and the random simulator used in place of a
real provider.

Order/payment orchestration only talks to ``PaymentGateway``; swapping the
simulator for a real integration means writing another implementation.
"""
import random
import secrets
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from functools import lru_cache
from typing import Callable, Dict, List, Optional

from storefront.utils.logging import get_logger
from storefront.utils.settings import PAYMENT_SIMULATOR_DELAY

logger = get_logger(__name__)


@dataclass
class ChargeResult:
    success: bool
    transaction_id: Optional[str] = None
    payment_intent_id: Optional[str] = None
    card_last4: Optional[str] = None
    card_brand: Optional[str] = None
    error: Optional[str] = None


@dataclass
class RefundResult:
    success: bool
    refund_id: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class PaymentMethodInfo:
    id: str
    name: str
    description: str
    enabled: bool = True
    fees: Decimal = Decimal("0")


PAYMENT_METHODS: List[PaymentMethodInfo] = [
    PaymentMethodInfo("credit_card", "Credit Card", "Visa, Mastercard, American Express"),
    PaymentMethodInfo("debit_card", "Debit Card", "Visa Debit, Mastercard Debit"),
    PaymentMethodInfo("paypal", "PayPal", "Pay with your PayPal account"),
    PaymentMethodInfo("stripe", "Stripe", "Secure payment processing"),
    PaymentMethodInfo("apple_pay", "Apple Pay", "Pay with Touch ID or Face ID"),
    PaymentMethodInfo("google_pay", "Google Pay", "Pay with Google"),
]


class PaymentGateway(ABC):
    @abstractmethod
    def charge(self, order, method: str, token: Optional[str], card_details: Optional[dict] = None) -> ChargeResult:
        ...

    @abstractmethod
    def refund(self, order, amount: Decimal, reason: str) -> RefundResult:
        ...

    def methods(self) -> List[PaymentMethodInfo]:
        return PAYMENT_METHODS


def _token(nbytes: int) -> str:
    return secrets.token_hex(nbytes)


@dataclass
class SimulatedProcessor:
    """One payment method of the simulator: a success rate and an id prefix."""

    method: str
    success_rate: float
    prefix: str
    error: str
    with_card: bool = False
    with_intent: bool = False

    def charge(self, rng: random.Random, card_details: Optional[dict]) -> ChargeResult:
        if rng.random() >= self.success_rate:
            return ChargeResult(success=False, error=self.error)

        result = ChargeResult(success=True, transaction_id=f"{self.prefix}{_token(8)}")
        if self.with_intent:
            result.payment_intent_id = f"pi_{_token(8)}"
        if self.with_card:
            card_details = card_details or {}
            number = card_details.get("number") or ""
            result.card_last4 = number[-4:] if number else "4242"
            result.card_brand = card_details.get("brand") or "visa"
        return result


def default_processors() -> Dict[str, SimulatedProcessor]:
    card = SimulatedProcessor("credit_card", 0.90, "cc_", "Card payment declined", with_card=True)
    return {
        "credit_card": card,
        "debit_card": card,
        "paypal": SimulatedProcessor("paypal", 0.95, "pp_", "PayPal payment failed"),
        "stripe": SimulatedProcessor("stripe", 0.97, "ch_", "Stripe payment failed", with_intent=True),
        "apple_pay": SimulatedProcessor("apple_pay", 0.98, "ap_", "Apple Pay payment failed"),
        "google_pay": SimulatedProcessor("google_pay", 0.98, "gp_", "Google Pay payment failed"),
    }


@dataclass
class SimulatedGateway(PaymentGateway):
    """
    -kazda metoda ma swoj procesor (szansa sukcesu + prefix transakcji)
    -rng i sleep wstrzykiwane, zeby testy byly deterministyczne
    -brak retry
    """

    rng: random.Random = field(default_factory=random.Random)
    delay: float = PAYMENT_SIMULATOR_DELAY
    sleep: Callable[[float], None] = time.sleep
    refund_success_rate: float = 0.95
    processors: Dict[str, SimulatedProcessor] = field(default_factory=default_processors)

    def charge(self, order, method: str, token: Optional[str], card_details: Optional[dict] = None) -> ChargeResult:
        processor = self.processors.get(method)
        if processor is None:
            return ChargeResult(success=False, error="Unsupported payment method")

        logger.info(f"Simulating {method} charge of ${order.total} for order {order.order_number}")
        self._wait()
        result = processor.charge(self.rng, card_details)
        logger.info(
            f"Charge for order {order.order_number} "
            f"{'succeeded: ' + result.transaction_id if result.success else 'declined: ' + result.error}"
        )
        return result

    def refund(self, order, amount: Decimal, reason: str) -> RefundResult:
        logger.info(f"Simulating refund of ${amount} for order {order.order_number}")
        self._wait()
        if self.rng.random() >= self.refund_success_rate:
            return RefundResult(success=False, error="Refund processing failed")
        return RefundResult(success=True, refund_id=f"re_{_token(8)}")

    def _wait(self):
        if self.delay > 0:
            self.sleep(self.delay)


@lru_cache
def get_payment_gateway() -> PaymentGateway:
    return SimulatedGateway()
