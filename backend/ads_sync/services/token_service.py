"""
Token Service — Exchanges a Login with Amazon refresh token for a short-lived
Amazon Ads access token. No retry here: without a token nothing else in the
sync can proceed, so callers treat AuthError as fatal.
"""

import logging
from typing import Optional

import httpx

from ads_sync.config import get_settings

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """The LwA token exchange failed or returned no access token."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


async def fetch_access_token(
    client_id: str,
    client_secret: str,
    refresh_token: str,
    http: Optional[httpx.AsyncClient] = None,
) -> str:
    """
    POST a refresh_token grant to the LwA token endpoint and return the
    bearer token. Raises AuthError on a non-success status or a response
    without ``access_token``.
    """
    settings = get_settings()
    form = {
        "grant_type": "refresh_token",
        "refresh_token": refresh_token,
        "client_id": client_id,
        "client_secret": client_secret,
    }
    headers = {"Content-Type": "application/x-www-form-urlencoded"}

    try:
        if http is not None:
            response = await http.post(settings.lwa_token_url, data=form, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
                response = await client.post(settings.lwa_token_url, data=form, headers=headers)
    except httpx.HTTPError as e:
        raise AuthError(f"Ads LWA auth request failed: {e}") from e

    if not response.is_success:
        detail = response.text
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            detail = body.get("error_description") or detail
        logger.error(f"LwA token exchange failed: {response.status_code}: {detail[:300]}")
        raise AuthError(f"Ads LWA auth failed ({response.status_code}): {detail}", status=response.status_code)

    try:
        data = response.json()
    except ValueError as e:
        raise AuthError("LWA response was not valid JSON") from e

    token = data.get("access_token") if isinstance(data, dict) else None
    if not token:
        raise AuthError("No access_token in LWA response")

    logger.info(f"LwA token acquired, expires in {data.get('expires_in', '?')}s")
    return token
