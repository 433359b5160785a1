from .unlock_contact import UnlockContact
from .mark_owner_responded import MarkOwnerResponded
from .refund_expired_unlocks import RefundExpiredUnlocks

__all__ = [
    "UnlockContact",
    "MarkOwnerResponded",
    "RefundExpiredUnlocks",
]
