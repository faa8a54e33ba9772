from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pos_sync.api.v1.routes_ai import router as ai_router
from pos_sync.api.v1.routes_sync import router as sync_router
from pos_sync.core.config import settings
from pos_sync.core.logging_setup import configure_logging
from pos_sync.db.base import engine

configure_logging(settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await engine.dispose()


app = FastAPI(title="POS Sync", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sync_router)
app.include_router(ai_router)

@app.get("/health")
async def health():
    return {"status": "ok"}


def run():
    """Console entry point: serve the API with uvicorn."""
    uvicorn.run(
        "pos_sync.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )
