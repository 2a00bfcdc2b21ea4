"""Authentication and rate limiting helpers for the reference API."""

import os
import secrets
import logging

from fastapi import HTTPException, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from slowapi import Limiter
from slowapi.util import get_remote_address

logger = logging.getLogger(__name__)

security = HTTPBearer()

# Rate limiter for merchant-initiated operations; gateway callbacks are not limited
limiter = Limiter(key_func=get_remote_address)

UNSUBSCRIBE_RATE_LIMIT = os.getenv("UNSUBSCRIBE_RATE_LIMIT", "10/minute")


async def verify_api_key(credentials: HTTPAuthorizationCredentials = Security(security)) -> str:
    """Verify the merchant API key from the Authorization header.

    Raises:
        HTTPException: 500 if PAYMENTS_API_KEY is not configured, 401 on mismatch.
    """
    api_key = credentials.credentials
    expected_key = os.getenv("PAYMENTS_API_KEY")
    if not expected_key:
        logger.error("PAYMENTS_API_KEY environment variable is not configured")
        raise HTTPException(status_code=500, detail="Server configuration error")
    if not secrets.compare_digest(api_key, expected_key):
        raise HTTPException(status_code=401, detail="Invalid API key")
    return api_key
