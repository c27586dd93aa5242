"""FastAPI application with lifespan and router mounting."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from bulkimport.api.routes import admin, health
from bulkimport.core.config import AppSettings
from bulkimport.persistence.dynamodb_backend import DynamoDBImportStore
from bulkimport.persistence.redis_backend import RedisLeaseStore


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialize and tear down application resources."""
    settings = AppSettings()
    app.state.settings = settings
    if not hasattr(app.state, "store"):
        app.state.store = DynamoDBImportStore(
            table_suffix=settings.dynamodb.table_suffix,
            region=settings.dynamodb.region,
            endpoint_url=settings.dynamodb.endpoint_url,
        )
    if not hasattr(app.state, "lease_store"):
        app.state.lease_store = RedisLeaseStore(
            host=settings.redis.host, port=settings.redis.port, db=settings.redis.db,
        )
    yield


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Bulk Import Pipeline Coordinator",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(health.router)
    app.include_router(admin.router, prefix="/admin")
    return app
