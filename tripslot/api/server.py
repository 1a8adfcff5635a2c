"""
api/server.py
-------------
FastAPI application entry point.

Run dev server:
    uvicorn tripslot.api.server:app --reload --port 8000

Endpoints:
    GET   /health
    POST  /api/itinerary/generate
    POST  /api/itinerary/suggest
    POST  /api/itinerary/validate-place
    POST  /api/itinerary/save?user_id=
    PATCH /api/itinerary/update/{id}
    GET   /api/itinerary/user/{user_id}
    GET   /api/itinerary/{id}
    POST  /api/itinerary/{id}/stops/checkin
    POST  /api/itinerary/{id}/stops/checkout
    POST  /api/itinerary/{id}/swap
    POST  /api/itinerary/{id}/remove
    POST  /api/hotels/suggest
    POST  /api/hotels/checkin
    POST  /api/hotels/checkout
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tripslot import __version__, config
from tripslot.api.routes import health, hotels, itinerary
from tripslot.db.redis_client import close_redis
from tripslot.modules.observability.logger import event_log

logging.basicConfig(
    level=config.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    yield
    # shutdown: flush event streams, release the redis pool if one was opened
    event_log.close()
    close_redis()


app = FastAPI(
    title="TripSlot Itinerary Engine API",
    version=__version__,
    description=(
        "Slot-based itinerary scheduling: generation, placement validation, "
        "alternate suggestions, hotel phases and live replanning."
    ),
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Any origin during development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router,                               tags=["Health"])
app.include_router(itinerary.router, prefix="/api/itinerary",   tags=["Itinerary"])
app.include_router(hotels.router,    prefix="/api/hotels",      tags=["Hotels"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("tripslot.api.server:app", host="0.0.0.0", port=8000, reload=True)
