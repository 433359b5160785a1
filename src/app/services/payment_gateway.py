"""Payment provider helpers

Credit plans, provider order payloads, webhook signature verification and
webhook event parsing. Pure functions; no I/O.
"""

import hashlib
import hmac
import json
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from src.domain.exceptions import InvalidSignature
from src.domain.purchase_order import PaymentProvider


@dataclass(frozen=True)
class CreditPlan:
    plan_id: str
    amount_paise: int
    credits: int


CREDIT_PLANS: Dict[str, CreditPlan] = {
    "starter_10": CreditPlan(plan_id="starter_10", amount_paise=9900, credits=10),
    "growth_20": CreditPlan(plan_id="growth_20", amount_paise=19900, credits=20),
}

SIGNATURE_HEADERS: Dict[PaymentProvider, str] = {
    PaymentProvider.RAZORPAY: "x-razorpay-signature",
    PaymentProvider.UPI: "x-upi-signature",
}

_SUCCESS_TOKENS = {
    PaymentProvider.RAZORPAY: {"payment.captured"},
    PaymentProvider.UPI: {"captured", "success", "completed", "payment_success", "charge.succeeded"},
}

_FAILURE_TOKENS = {
    PaymentProvider.RAZORPAY: {"payment.failed"},
    PaymentProvider.UPI: {"failed", "payment_failed", "charge.failed"},
}


def get_credit_plan(plan_id: str) -> Optional[CreditPlan]:
    return CREDIT_PLANS.get(plan_id)


def parse_provider(value: str) -> Optional[PaymentProvider]:
    try:
        return PaymentProvider(value)
    except ValueError:
        return None


def build_provider_payload(
    provider: PaymentProvider,
    provider_order_id: str,
    plan: CreditPlan,
    provider_key: str,
) -> Dict[str, Any]:
    """Order descriptor the client hands to the provider's checkout"""
    base = {
        "provider": provider.value,
        "order_id": provider_order_id,
        "amount_paise": plan.amount_paise,
        "currency": "INR",
    }
    if provider == PaymentProvider.RAZORPAY:
        return {
            **base,
            "key_id": provider_key,
            "notes": {"plan_id": plan.plan_id, "credits_to_grant": plan.credits},
        }
    amount = f"{plan.amount_paise / 100:.2f}"
    return {
        **base,
        "deep_link": f"upi://pay?tr={provider_order_id}&am={amount}&cu=INR&tn=Credits",
        "metadata": {"plan_id": plan.plan_id, "credits_to_grant": plan.credits},
    }


def canonical_payload(payload: Any) -> str:
    """JSON with recursively sorted keys and no insignificant whitespace"""
    return json.dumps(
        payload if payload is not None else {},
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def compute_signature(payload_for_signature: str, secret: str) -> str:
    return hmac.new(
        secret.encode("utf-8"), payload_for_signature.encode("utf-8"), hashlib.sha256
    ).hexdigest()


def verify_webhook_signature(
    payload_for_signature: str,
    signature: Optional[str],
    secrets: Iterable[Optional[str]],
) -> None:
    """
    Check an HMAC-SHA256 hex signature against each configured secret

    Secrets are tried in order (provider-specific first, then the global
    fallback); blank ones are ignored.

    Raises:
        InvalidSignature: signature missing, no secret configured, or no
            secret produces a matching digest
    """
    provided = (signature or "").strip()
    if not provided:
        raise InvalidSignature("Missing signature")

    candidates = [s.strip() for s in secrets if s and s.strip()]
    if not candidates:
        raise InvalidSignature("Webhook secret is not configured")

    for secret in candidates:
        expected = compute_signature(payload_for_signature, secret)
        if hmac.compare_digest(expected, provided):
            return

    raise InvalidSignature("Signature verification failed")


@dataclass(frozen=True)
class ParsedWebhookEvent:
    provider_event_id: str
    event_type: str
    provider_order_id: Optional[str]
    provider_payment_id: Optional[str]
    is_capture_success: bool
    is_failure: bool


def _first_string(*values: Any) -> Optional[str]:
    for value in values:
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def parse_webhook_event(
    provider: PaymentProvider, payload: Dict[str, Any], payload_for_hash: str
) -> ParsedWebhookEvent:
    """
    Normalize a provider payload

    Razorpay nests the payment under payload.payment.entity; UPI aggregators
    use flat fields or a `data` object. The event id falls back to a content
    hash so every delivery has a dedupe key.
    """
    payment = _as_dict(_as_dict(_as_dict(payload.get("payload")).get("payment")).get("entity"))
    data = _as_dict(payload.get("data"))

    event_type = _first_string(payload.get("event"), payload.get("status"), data.get("event")) or "unknown_event"
    provider_order_id = _first_string(
        payment.get("order_id"),
        payload.get("order_id"),
        data.get("order_id"),
        data.get("provider_order_id"),
    )
    provider_payment_id = _first_string(
        payment.get("id"),
        payload.get("payment_id"),
        payload.get("transaction_id"),
        data.get("payment_id"),
        data.get("transaction_id"),
    )

    raw_event_id = _first_string(
        payload.get("id"),
        payload.get("event_id"),
        data.get("id"),
        provider_payment_id,
        provider_order_id,
    )
    hash_id = hashlib.sha256(payload_for_hash.encode("utf-8")).hexdigest()[:24]
    provider_event_id = f"{event_type}:{raw_event_id or hash_id}"

    status = (_first_string(payload.get("status"), data.get("status")) or "").lower()
    event_type_lower = event_type.lower()
    success_tokens = _SUCCESS_TOKENS[provider]
    failure_tokens = _FAILURE_TOKENS[provider]

    return ParsedWebhookEvent(
        provider_event_id=provider_event_id,
        event_type=event_type,
        provider_order_id=provider_order_id,
        provider_payment_id=provider_payment_id,
        is_capture_success=event_type_lower in success_tokens or status in success_tokens,
        is_failure=event_type_lower in failure_tokens or status in failure_tokens,
    )
