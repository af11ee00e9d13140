"""
Event Management API - application entry point.

Wires the versioned API router, request logging, CORS and the operational
endpoints (/health, /metrics). Startup optionally seeds roles, the admin
account and demo events; shutdown releases Redis and the DB pool.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from event_management.core.config import get_settings
from event_management.core.logging import setup_logging, get_logger
from event_management.core.metrics import metrics_endpoint
from event_management.api.router import api_router
from event_management.api.middleware import RequestLoggingMiddleware
from event_management.db.session import AsyncSessionLocal, engine
from event_management.services.seed import seed_database
from event_management.services.token_blocklist import get_redis, close_redis, get_blocklist_status

settings = get_settings()
logger = get_logger(__name__)


async def _seed() -> None:
    async with AsyncSessionLocal() as session:
        await seed_database(session)
        await session.commit()


async def _database_status() -> dict:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return {"status": "connected", "dialect": engine.dialect.name}
    except Exception as e:
        logger.error("database_health_check_failed", error=str(e))
        return {"status": "error", "error": str(e)}


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        database=engine.dialect.name,
    )

    if await get_redis() is None:
        logger.warning("redis_unavailable", message="Logout will not revoke tokens")

    if settings.SEED_ON_STARTUP:
        await _seed()

    yield

    await close_redis()
    await engine.dispose()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Event registration API with capacity-limited subscriptions and permission-based administration",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check():
    database = await _database_status()
    return {
        "status": "healthy" if database["status"] == "connected" else "degraded",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "database": database,
        "token_blocklist": await get_blocklist_status(),
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {"name": settings.APP_NAME, "version": settings.APP_VERSION, "docs": "/docs"}
