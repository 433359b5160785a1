from typing import AsyncContextManager, Union
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession
from config import ApplicationConfig
from src.adapter.repositories.in_memory import InMemorySession, InMemoryStore

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)

# Process-wide state for STORAGE_BACKEND=memory
memory_store = InMemoryStore()


def open_session() -> AsyncContextManager[Union[AsyncSession, InMemorySession]]:
    if ApplicationConfig.STORAGE_BACKEND == "memory":
        return InMemorySession(memory_store)
    return AsyncSessionLocal()


async def get_session():
    async with open_session() as session:
        yield session
