"""Shared scaffolding for periodic background workers

Each worker runs one use case per cycle against a fresh session. A cycle
never overlaps the previous one inside the same process; concurrent
processes are kept apart by SKIP LOCKED claims in the store.
"""

import argparse
import asyncio
from abc import ABC, abstractmethod
import logging
from typing import Any, Callable, Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig

logger = logging.getLogger(__name__)


class PeriodicWorker(ABC):
    """
    Base class for single-flight periodic workers

    Usage:
        # Run once
        worker = RefundSweepWorker()
        result = await worker.run_once()

        # Run continuously
        await worker.run_forever(interval_seconds=300)

    Subclasses implement _run(session).
    """

    name = "worker"

    def __init__(
        self,
        db_uri: Optional[str] = None,
        session_factory: Optional[Callable[[], Any]] = None,
    ):
        """
        Initialize the worker

        Args:
            db_uri: Database URI (defaults to ApplicationConfig.DB_URI)
            session_factory: Callable returning an async session context
                manager; when given, no engine is created
        """
        self.engine = None
        if session_factory is None:
            self.engine = create_async_engine(
                db_uri or ApplicationConfig.DB_URI, echo=False, future=True
            )
            session_factory = sessionmaker(
                self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
            )
        self.session_factory = session_factory
        self._in_flight = asyncio.Lock()

        logger.info(f"{type(self).__name__} initialized")

    @abstractmethod
    async def _run(self, session):
        """Run one cycle's use case against the given session"""
        pass

    async def run_once(self):
        """
        Run one cycle

        Returns:
            The use case result DTO, or None when a cycle is already running
        """
        if self._in_flight.locked():
            logger.warning(f"{self.name} cycle still running, skipping")
            return None

        async with self._in_flight:
            async with self.session_factory() as session:
                return await self._run(session)

    async def run_forever(self, interval_seconds: int):
        """
        Run cycles continuously at the given interval

        A failing cycle is logged and retried on the next tick.
        """
        logger.info(f"Starting continuous {self.name} with {interval_seconds}s interval")

        while True:
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"{self.name} cycle failed: {e}")

            await asyncio.sleep(interval_seconds)

    async def shutdown(self):
        """Cleanup resources"""
        if self.engine is not None:
            await self.engine.dispose()
        logger.info(f"{type(self).__name__} shutdown complete")


async def run_worker_cli(worker: PeriodicWorker, description: str, default_interval: int):
    """
    Standalone entry point shared by the worker modules

    Usage:
        python -m src.worker.<module> --once
        python -m src.worker.<module> --interval 60
    """
    logging.basicConfig(
        level=ApplicationConfig.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description=description)
    parser.add_argument(
        "--once", action="store_true", help="Run once and exit"
    )
    parser.add_argument(
        "--interval", type=int, default=default_interval,
        help=f"Interval between runs in seconds (default: {default_interval})"
    )
    args = parser.parse_args()

    try:
        if args.once:
            result = await worker.run_once()
            logger.info(f"{worker.name} complete: {result}")
        else:
            await worker.run_forever(interval_seconds=args.interval)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()
