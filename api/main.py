#!/usr/bin/env python3
"""
GAR Feed ETL API - download, extract and convert the address-registry feed.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool
import logging

from core.config import settings
from core.logging_config import configure_logging
from api.middleware.logging import LoggingMiddleware
from api.routers import conversion, download, health
from etl.errors import SchemaLoadError
from etl.schema_resolver import SchemaTable, resolve

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


def load_schema_table(schema_path: str) -> SchemaTable:
    """Resolve schemas at startup; a missing directory leaves an empty table."""
    try:
        return resolve(schema_path)
    except SchemaLoadError as e:
        logger.warning(f"Starting without XSD schemas, columns will be sampled: {e}")
        return SchemaTable()


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.schema_table = await run_in_threadpool(load_schema_table, settings.schema_path)
    logger.info(f"Schema table ready with {len(app.state.schema_table)} record types")
    yield


# Create FastAPI app
app = FastAPI(
    title=settings.project_name,
    version=settings.version,
    description="API for downloading the GAR address-registry feed and converting its XML to CSV",
    lifespan=lifespan,
)

app.add_middleware(LoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=settings.allowed_methods,
    allow_headers=settings.allowed_headers,
)

app.include_router(health.router, prefix=settings.api_v1_prefix)
app.include_router(conversion.router, prefix=settings.api_v1_prefix)
app.include_router(download.router, prefix=settings.api_v1_prefix)
logger.info("Health, conversion and download routers included")


@app.get("/healthz")
async def root_health_check():
    """Root-level health endpoint for external monitors."""
    return await health.health_check()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
