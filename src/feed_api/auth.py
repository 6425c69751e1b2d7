"""
Feed API authentication utilities.
"""

import os

from fastapi import Header, HTTPException, Query


def verify_api_key(api_key: str | None) -> bool:
    """
    Verify the API key of a feed request.

    Authorization is granted if:
    1. API_KEY is not set (open feed)
    2. The supplied key matches API_KEY

    Args:
        api_key: Key from the ``apiKey`` query parameter or X-API-Key header

    Returns:
        True if authorized, False otherwise
    """
    expected_key = os.getenv("API_KEY")
    if not expected_key:
        return True
    return api_key == expected_key


def require_api_key(
    api_key: str | None = Query(None, alias="apiKey"),
    x_api_key: str | None = Header(None, alias="X-API-Key"),
) -> None:
    """
    FastAPI dependency that requires API key authentication.

    Use with: Depends(require_api_key)

    Raises HTTPException 401 if not authorized.
    """
    if not verify_api_key(api_key or x_api_key):
        raise HTTPException(status_code=401, detail="Unauthorized")
