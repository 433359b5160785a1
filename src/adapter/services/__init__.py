from .unit_of_work import SqlAlchemyUnitOfWork, InMemoryUnitOfWork
from .clock import SystemClock
from .crm_client import LoggingCrmClient, HttpCrmClient, create_crm_client

__all__ = [
    "SqlAlchemyUnitOfWork",
    "InMemoryUnitOfWork",
    "SystemClock",
    "LoggingCrmClient",
    "HttpCrmClient",
    "create_crm_client",
]
