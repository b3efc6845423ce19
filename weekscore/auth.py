"""Caller identity for /api endpoints."""

from fastapi import Header, HTTPException

from weekscore.config import settings


def _presented_key(x_api_key: str | None, authorization: str | None) -> str | None:
    if x_api_key is not None:
        return x_api_key
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:].strip()
    return None


async def current_user_id(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    authorization: str | None = Header(default=None),
) -> str:
    """Opaque user id forwarded by the upstream identity provider.

    When API_KEY is set the caller must also present it, via X-API-Key or
    Authorization: Bearer. Either failure is a 401.
    """
    if settings.api_key is not None and _presented_key(x_api_key, authorization) != settings.api_key:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id.strip()
