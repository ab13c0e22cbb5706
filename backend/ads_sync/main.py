"""
Amazon Ads Sync — FastAPI Backend
Pulls daily Sponsored Products / Brands / Display performance from the
Amazon Ads v3 reporting API for the dashboard. Stateless: no database.
"""

import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from ads_sync.config import get_settings
from ads_sync.routers import ads

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

settings = get_settings()

APP_VERSION = "1.0.0"

app = FastAPI(
    title="Amazon Ads Sync",
    description="Daily advertising metrics from the Amazon Ads reporting API",
    version=APP_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(ads.router, prefix="/api/ads", tags=["Amazon Ads Sync"])


@app.get("/api/health")
async def health_check():
    return {
        "status": "healthy",
        "service": "Amazon Ads Sync",
        "version": APP_VERSION,
    }
