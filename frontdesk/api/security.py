"""
Simple API key dependency for protecting destructive endpoints.
"""
import logging
from typing import Optional

from fastapi import Header, HTTPException

from frontdesk.core.config import settings

logger = logging.getLogger(__name__)


def require_api_key(x_api_key: Optional[str] = Header(None)) -> None:
    """Require a matching X-API-Key header when FRONTDESK_API_KEY is configured."""
    if not settings.API_KEY:
        return
    if x_api_key != settings.API_KEY:
        logger.warning("Rejected request with %s API key", "missing" if x_api_key is None else "wrong")
        raise HTTPException(status_code=401, detail="Invalid API key")
