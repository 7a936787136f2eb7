"""
Bearer-token gate for write endpoints
"""

import hmac
from typing import Optional

from fastapi import Header, Request
import structlog

logger = structlog.get_logger(__name__)

class Unauthorized(Exception):
    """Missing or wrong ingest credential"""


def bearer_token(authorization: Optional[str]) -> str:
    header = authorization or ""
    return header[len("Bearer "):] if header.startswith("Bearer ") else ""

def is_authorized(authorization: Optional[str], api_key: str) -> bool:
    """Fails closed: with no key configured nothing is authorized"""
    if not api_key:
        return False
    token = bearer_token(authorization)
    return hmac.compare_digest(token.encode("utf-8"), api_key.encode("utf-8"))

def require_api_key(request: Request, authorization: Optional[str] = Header(default=None)) -> None:
    """Dependency for routes that mutate the store"""
    api_key = request.app.state.settings.api_key
    if not api_key:
        logger.warning("API_KEY not configured, rejecting write", path=request.url.path)
        raise Unauthorized()
    if not is_authorized(authorization, api_key):
        logger.warning("Invalid API key attempt", path=request.url.path)
        raise Unauthorized()
