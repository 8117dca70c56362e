"""API key check for the pipeline routes.

Agents and the UI backend send the shared key in `X-API-Key`. The core
itself trusts whoever gets past this check; there is no per-user identity.
"""

import hashlib
import hmac
from typing import Optional

from fastapi import Header, HTTPException

from ..config import settings


def hash_api_key(key: str) -> bytes:
    return hashlib.sha256(key.encode("utf-8", "surrogateescape")).digest()


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail={"success": False, "error": "unauthorized", "detail": message},
    )


def require_api_key(x_api_key: Optional[str] = Header(None, alias="X-API-Key")) -> bool:
    if not x_api_key:
        raise _unauthorized("Authentication required")
    # Digests are fixed-length bytes, so any header text compares safely
    if not hmac.compare_digest(hash_api_key(x_api_key), hash_api_key(settings.api_key)):
        raise _unauthorized("Invalid API key")
    return True
