"""Delicious Stores API - Main FastAPI application."""

import logging

from fastapi import FastAPI

from delicious.api import stores
from delicious.config import get_settings

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title=settings.app_name,
    description="Stores, their tags and their best reviews",
    version="1.0.0",
)

app.include_router(stores.router, prefix="/api/v1")


@app.get("/health")
async def health():
    return {"status": "ok"}
