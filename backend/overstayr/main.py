"""Overstayr - Visa Expiry Tracker API."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from overstayr.config import get_settings

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    from overstayr.database import Base, engine

    # Import all models so they're registered with Base
    from overstayr import models  # noqa: F401

    Base.metadata.create_all(bind=engine)

    yield


app = FastAPI(
    title=settings.app_name,
    description="Track visa validity windows and get reminded before they expire",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "app": settings.app_name}


# Import and include routers
from overstayr.api import reminders, settings as settings_api, visas  # noqa: E402

app.include_router(visas.router, prefix="/api")
app.include_router(settings_api.router, prefix="/api")
app.include_router(reminders.router, prefix="/api")
