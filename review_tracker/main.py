from contextlib import asynccontextmanager

from fastapi import FastAPI

from review_tracker.db.store import close_store
from review_tracker.services.ingest_service import set_ingest_service

# Routers
from review_tracker.api.routers.plugins import router as plugins_router
from review_tracker.api.routers.transfer import router as transfer_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Drop the cached store and service on shutdown."""
    try:
        yield
    finally:
        set_ingest_service(None)
        close_store()


app = FastAPI(title="Plugin Review Tracker", version="0.1", lifespan=lifespan)

app.include_router(plugins_router)
app.include_router(transfer_router)
