"""Unit of Work Interface

One unit of work wraps one transaction shared by every repository built on
the same session.
"""

from abc import ABC, abstractmethod
from typing import AsyncContextManager


class UnitOfWork(ABC):

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.rollback()

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass

    @abstractmethod
    def savepoint(self) -> AsyncContextManager[None]:
        """
        Nested transaction scope

        Leaving the block with an exception undoes only the work done
        inside it and re-raises; the outer transaction stays usable.
        """
        pass
