from .get_balance import GetBalance
from .list_ledger_entries import ListLedgerEntries
from .adjust_balance import AdjustBalance, ADJUST_ROUTE
from .grant_signup_credits import GrantSignupCredits
from .reconcile_ledger import ReconcileLedger
from .purge_idempotency import PurgeExpiredIdempotency

__all__ = [
    "GetBalance",
    "ListLedgerEntries",
    "AdjustBalance",
    "ADJUST_ROUTE",
    "GrantSignupCredits",
    "ReconcileLedger",
    "PurgeExpiredIdempotency",
]
