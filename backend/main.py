"""
Address Search - grouped free-text address lookup
Address string geocoding, postal address geocoding and regional text search
"""

import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from routers import address_search, websocket
from services.address_search import config

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Address Search starting up...")
    if config.get_google_api_key() is None:
        logger.warning("GOOGLE_MAPS_API_KEY not set - geocoder sources will return no results")
    yield
    # Shutdown
    logger.info("Address Search shutting down...")

app = FastAPI(
    title="Address Search API",
    description="Free-text address search grouped by lookup strategy",
    version="1.0.0",
    lifespan=lifespan
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(address_search.router, prefix="/api/address-search", tags=["Address Search"])
app.include_router(websocket.router, tags=["WebSocket"])

@app.get("/")
async def root():
    return {"status": "ok", "service": "Address Search API", "version": "1.0.0"}

@app.get("/health")
async def health():
    return {"status": "healthy"}
