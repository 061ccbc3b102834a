"""
Shared API dependencies

Write authorization is a gate in front of mutating endpoints: the
X-Admin-Token header must match settings.admin_token. An empty token
setting disables the gate (local development).
"""
from typing import Optional
import hmac
import logging

from fastapi import Header, HTTPException

from database import get_settings

logger = logging.getLogger(__name__)


def require_admin(x_admin_token: Optional[str] = Header(None)) -> None:
    expected = get_settings().admin_token
    if not expected:
        return
    if not x_admin_token or not hmac.compare_digest(x_admin_token, expected):
        logger.warning("Rejected write request with missing or invalid admin token")
        raise HTTPException(status_code=401, detail="Not authorized")
