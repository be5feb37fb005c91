from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from feeledger.config import settings
from feeledger.db import engine
from feeledger.exceptions import AppException
from feeledger.routes import api_router
from feeledger.logging_config import setup_logging, get_logger
from feeledger.middleware.logging_middleware import LoggingMiddleware
from feeledger.mail.sync import run_scheduled_sync

# Setup logging
setup_logging(settings.LOG_LEVEL)
logger = get_logger(__name__)


def create_scheduler() -> AsyncIOScheduler:
    """Scheduler polling the bank mailbox every SYNC_INTERVAL_MINUTES"""
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        run_scheduled_sync,
        'interval',
        minutes=settings.SYNC_INTERVAL_MINUTES,
        id="bank_transaction_sync",
        max_instances=1,
        coalesce=True,
    )
    return scheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    scheduler = None
    try:
        logger.info("Starting up...")
        from feeledger.db import connect_with_retry
        await connect_with_retry()

        if settings.SYNC_ON_STARTUP:
            await run_scheduled_sync()

        if settings.SYNC_INTERVAL_MINUTES > 0:
            scheduler = create_scheduler()
            scheduler.start()
            logger.info(f"Scheduler started. Syncing bank transactions every {settings.SYNC_INTERVAL_MINUTES} minutes.")

        yield
    finally:
        logger.info("Shutting down...")
        if scheduler is not None and scheduler.running:
            scheduler.shutdown()
            logger.info("Scheduler shut down.")
        await engine.dispose()


app = FastAPI(
    title="FeeLedger API",
    description="School fee payments, bank notification sync and receipting",
    version="1.0.0",
    lifespan=lifespan
)

# Logging middleware
app.add_middleware(LoggingMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["DELETE", "GET", "POST", "PUT"],
    allow_headers=["*"],
)

# Global exception handler
@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail}
    )


# Include routers
app.include_router(api_router)


@app.get("/")
async def root():
    return {"message": "FeeLedger API is running"}


@app.get("/health")
async def health():
    from feeledger.db import check_database_connection
    db_status = await check_database_connection()
    return {
        "status": "ok" if db_status else "degraded",
        "database": "connected" if db_status else "disconnected"
    }
