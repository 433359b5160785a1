from .unit_of_work import UnitOfWork
from .clock import Clock
from .crm_client import CrmClient

__all__ = [
    "UnitOfWork",
    "Clock",
    "CrmClient",
]
