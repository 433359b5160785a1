from .create_purchase_intent import CreatePurchaseIntent, PURCHASE_INTENT_ROUTE
from .process_payment_webhook import ProcessPaymentWebhook

__all__ = [
    "CreatePurchaseIntent",
    "PURCHASE_INTENT_ROUTE",
    "ProcessPaymentWebhook",
]
