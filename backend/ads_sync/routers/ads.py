"""
Ads Router — Single entry point for the dashboard's Amazon Ads sync.
syncType selects the operation: test, profiles, campaigns or daily.
"""

import logging
from typing import AsyncIterator

import httpx
from fastapi import APIRouter, Depends, HTTPException

from ads_sync.config import get_settings
from ads_sync.models import AdsSyncRequest, SyncType
from ads_sync.services.ads_sync_service import AdsSyncService, InvalidDateRange
from ads_sync.services.token_service import AuthError
from ads_sync.utils import safe_error_detail

logger = logging.getLogger(__name__)

router = APIRouter()


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    """One connection pool per request, shared by the token exchange and every API call."""
    async with httpx.AsyncClient(timeout=get_settings().http_timeout_seconds) as http:
        yield http


@router.post("/sync")
async def ads_sync(body: AdsSyncRequest, http: httpx.AsyncClient = Depends(get_http_client)):
    if not body.has_credentials:
        raise HTTPException(
            status_code=400,
            detail="Missing Amazon Ads credentials. Please configure them in Settings.",
        )

    try:
        sync_type = SyncType(body.sync_type)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown syncType: {body.sync_type}")

    if sync_type in (SyncType.CAMPAIGNS, SyncType.DAILY) and not body.ads_profile_id:
        raise HTTPException(
            status_code=400,
            detail="Missing Ads Profile ID. Use syncType 'profiles' to find yours.",
        )

    service = AdsSyncService(
        client_id=body.ads_client_id,
        client_secret=body.ads_client_secret,
        refresh_token=body.ads_refresh_token,
        profile_id=body.ads_profile_id,
        http=http,
    )

    # Connection checks report failures in-band so the settings page can show them
    if sync_type in (SyncType.TEST, SyncType.PROFILES):
        try:
            if sync_type is SyncType.TEST:
                return await service.test_connection()
            return await service.list_profiles()
        except Exception as e:
            logger.warning(f"[AdsSync] {sync_type.value} failed: {e}")
            return {"success": False, "error": str(e)}

    try:
        if sync_type is SyncType.CAMPAIGNS:
            return await service.campaign_snapshot()

        return await service.sync_daily(
            start_date=body.start_date,
            end_date=body.end_date,
            days_back=body.days_back,
            pending_reports=body.pending_reports,
        )
    except AuthError as e:
        logger.warning(f"[AdsSync] Token exchange failed: {e}")
        raise HTTPException(status_code=401, detail=f"Amazon Ads authentication failed: {e}")
    except InvalidDateRange as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=safe_error_detail(e, "Amazon Ads sync failed."))
