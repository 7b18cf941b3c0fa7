#!/usr/bin/env python3

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from gearshare.routes import api
from gearshare.configs import OPTIONS, TESTING, CORS_ORIGINS, WORKERS
from gearshare.core import database, workflow, sweep, dispatcher
from gearshare import __version__ as VERSION

logger = logging.getLogger(__name__)


def start():
    # the interval index and item locks live in this process
    if WORKERS != 1:
        raise RuntimeError(
            f"GEARSHARE_WORKERS={WORKERS}: the reservation engine must run as a single worker.")
    try:
        database.init()
        workflow.rebuild_index()
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise
    if not TESTING:
        sweep.start()
        dispatcher.start()

def stop():
    sweep.stop(timeout=5)
    dispatcher.stop(timeout=5)

@asynccontextmanager
async def lifespan(app: FastAPI):
    start()
    yield
    stop()

app = FastAPI(
    title="GearShare API",
    description="GearShare: reservations for shared equipment",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api.router, prefix="/v1/api")

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("gearshare.app:app", **OPTIONS)
