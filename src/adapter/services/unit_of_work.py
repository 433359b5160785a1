from contextlib import asynccontextmanager
from sqlmodel.ext.asyncio.session import AsyncSession
from src.adapter.repositories.in_memory.store import InMemorySession
from src.app.services.unit_of_work import UnitOfWork


class SqlAlchemyUnitOfWork(UnitOfWork):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.rollback()

    async def commit(self):
        await self.session.commit()

    async def rollback(self):
        await self.session.rollback()

    @asynccontextmanager
    async def savepoint(self):
        async with self.session.begin_nested():
            yield


class InMemoryUnitOfWork(UnitOfWork):
    def __init__(self, session: InMemorySession):
        self.session = session

    async def commit(self):
        await self.session.commit()

    async def rollback(self):
        await self.session.rollback()

    @asynccontextmanager
    async def savepoint(self):
        mark = self.session.mark()
        try:
            yield
        except Exception:
            self.session.rollback_to(mark)
            raise
