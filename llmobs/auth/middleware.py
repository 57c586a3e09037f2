"""Admin key guard for destructive endpoints."""

import hashlib
import hmac
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader

from llmobs.config import settings

ADMIN_KEY_HEADER = APIKeyHeader(name="X-Admin-Key", auto_error=False)


def hash_api_key(api_key: str) -> str:
    """Hash API key with salt for comparison."""
    return hashlib.sha256(
        f"{settings.api_key_hash_salt}:{api_key}".encode()
    ).hexdigest()


async def require_admin(admin_key: str | None = Depends(ADMIN_KEY_HEADER)) -> None:
    """Reject the request unless X-Admin-Key matches the configured key."""
    if not settings.admin_api_key:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin endpoints are disabled (ADMIN_API_KEY not set)",
        )
    if not admin_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Admin-Key header",
        )
    if not hmac.compare_digest(hash_api_key(admin_key), hash_api_key(settings.admin_api_key)):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid admin key",
        )


AdminDep = Annotated[None, Depends(require_admin)]
