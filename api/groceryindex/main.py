from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI

from groceryindex.config import settings
from groceryindex.logging_config import configure_logging
from groceryindex.metrics import metrics_endpoint
from groceryindex.middleware.error_handler import setup_error_handlers
from groceryindex.middleware.logging_middleware import RequestLoggingMiddleware
from groceryindex.routers import (
    analytics,
    auth,
    catalog,
    notifications,
    price_reports,
    profile,
    search,
    votes,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()

    app.state.redis = aioredis.from_url(
        settings.redis_url, encoding="utf-8", decode_responses=True
    )
    try:
        yield
    finally:
        await app.state.redis.aclose()


app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)

app.add_middleware(RequestLoggingMiddleware)
setup_error_handlers(app)

app.include_router(auth.router)
app.include_router(price_reports.router)
app.include_router(votes.router)
app.include_router(profile.router)
app.include_router(notifications.router)
app.include_router(catalog.router)
app.include_router(search.router)
app.include_router(analytics.router)

app.get("/metrics", include_in_schema=False)(metrics_endpoint)


@app.get("/health")
async def health_check():
    return {"status": "ok"}
