"""
Main FastAPI application.
Minimal API surface - feeds, subscription info, one webhook.

Endpoints:
- /rss/daily-discovery - Free daily feed (core feature)
- /rss/{token} - Token-gated premium feed
- /subscription/* - Plan catalogue + token status (read-only)
- /webhook - Payment provider events
"""

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config import get_settings
from ..lib import StoreError, TokenError

# Load environment variables
load_dotenv()

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Missing credentials fail here, not on the first request
    settings = get_settings()
    logger.info("Starting Daily Movie Discovery (env=%s)", settings.app_env)
    yield


# Create app
app = FastAPI(
    title="Daily Movie Discovery API",
    description="Curated daily movie picks as RSS, with token-gated premium feeds",
    version="1.0.0",
    docs_url="/docs" if os.environ.get("APP_ENV") == "development" else None,
    redoc_url=None,
    lifespan=lifespan,
)

# Feeds are read by RSS clients, not browsers; only the landing page needs CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",  # Local dev
        "https://thatmovieguy.vercel.app",  # Production
    ],
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.exception_handler(TokenError)
async def token_error_handler(request: Request, exc: TokenError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error("Store error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    return {"status": "healthy", "version": "1.0.0"}


# Import and include routers
from .routes import feeds, subscriptions, webhooks

app.include_router(feeds.router, prefix="/rss", tags=["feeds"])
app.include_router(subscriptions.router, prefix="/subscription", tags=["subscription"])
app.include_router(webhooks.router, tags=["webhooks"])
