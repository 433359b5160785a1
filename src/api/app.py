import asyncio
import logging
import time
from contextlib import asynccontextmanager
import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import SQLModel
from src.api.error import ClientError, client_error_handler, validation_error_handler
from src.api.routes import admin, internal, unlocks, wallet, webhooks

logger = logging.getLogger(__name__)


def background_schedule(config):
    """Workers run inside the API process, with their intervals"""
    from src.adapter.repositories.in_memory import InMemorySession
    from src.depends import AsyncSessionLocal, memory_store
    from src.worker import IdempotencyPurgeWorker, OutboundDispatcherWorker, RefundSweepWorker

    if config.STORAGE_BACKEND == "memory":
        def session_factory():
            return InMemorySession(memory_store)
    else:
        session_factory = AsyncSessionLocal

    return [
        (RefundSweepWorker(session_factory=session_factory), config.REFUND_SWEEP_INTERVAL_SECONDS),
        (OutboundDispatcherWorker(session_factory=session_factory), config.OUTBOUND_DISPATCH_INTERVAL_SECONDS),
        (IdempotencyPurgeWorker(session_factory=session_factory), config.IDEMPOTENCY_PURGE_INTERVAL_SECONDS),
    ]


def _start_background_workers(config):
    return [
        asyncio.create_task(worker.run_forever(interval))
        for worker, interval in background_schedule(config)
    ]


def create_app(config) -> FastAPI:
    if config.ENABLE_SENTRY and config.DSN_SENTRY:
        sentry_sdk.init(dsn=config.DSN_SENTRY, environment=config.SENTRY_ENVIRONMENT)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if config.STORAGE_BACKEND != "memory" and config.AUTO_CREATE_TABLES:
            from src.depends import engine

            async with engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)

        tasks = _start_background_workers(config) if config.RUN_BACKGROUND_WORKERS else []
        yield
        for task in tasks:
            task.cancel()

    app = FastAPI(
        title="Credit Ledger Service",
        description="Credit wallet, contact unlocks, timeout refunds and payment reconciliation",
        lifespan=lifespan,
    )

    if config.CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.CORS_ORIGINS,
            allow_credentials=config.CORS_ALLOW_CREDENTIALS,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    if config.ENABLE_LOGGING_MIDDLEWARE:
        @app.middleware("http")
        async def log_requests(request: Request, call_next):
            start = time.time()
            response = await call_next(request)
            elapsed_ms = int((time.time() - start) * 1000)
            logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms}ms)")
            return response

    app.add_exception_handler(ClientError, client_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    for module in (unlocks, wallet, webhooks, admin, internal):
        app.include_router(module.router, prefix=config.API_PREFIX)

    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok"}

    return app
