"""Background workers for the credit ledger service"""
from .base import PeriodicWorker
from .refund_sweep import RefundSweepWorker
from .outbound_dispatcher import OutboundDispatcherWorker
from .ledger_reconciler import LedgerReconcilerWorker
from .idempotency_purger import IdempotencyPurgeWorker

__all__ = [
    "PeriodicWorker",
    "RefundSweepWorker",
    "OutboundDispatcherWorker",
    "LedgerReconcilerWorker",
    "IdempotencyPurgeWorker",
]
