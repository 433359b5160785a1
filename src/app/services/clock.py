"""Clock Interface

Time source consumed by use cases, so deadlines and backoff can be tested
without sleeping.
"""

from abc import ABC, abstractmethod
from datetime import datetime


class Clock(ABC):

    @abstractmethod
    def now(self) -> datetime:
        """Current naive UTC time"""
        pass
