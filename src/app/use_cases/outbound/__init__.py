from .enqueue_outbound_event import EnqueueOutboundEvent
from .dispatch_outbound_events import DispatchOutboundEvents, compute_backoff_seconds

__all__ = [
    "EnqueueOutboundEvent",
    "DispatchOutboundEvents",
    "compute_backoff_seconds",
]
