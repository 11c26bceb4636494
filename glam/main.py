# glam/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from glam.config import settings
from glam.db import create_db_and_tables
from glam.routers import (
    artists_routes,
    auth_routes,
    bookings_routes,
    payments_routes,
    users_routes,
)

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Glam booking API (%s)", settings.ENVIRONMENT)
    create_db_and_tables()
    yield


app = FastAPI(title="Glam booking API", lifespan=lifespan)

app.include_router(auth_routes.router)
app.include_router(users_routes.router)
app.include_router(artists_routes.router)
app.include_router(bookings_routes.router)
app.include_router(payments_routes.router)


@app.get("/health")
def health_check():
    return {"status": "ok"}
