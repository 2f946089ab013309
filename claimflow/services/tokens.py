"""Signed bearer tokens for the API."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


def issue_token(user_id: str, secret_key: str, expires_sec: int = 8 * 60 * 60) -> str:
    """Generates a JWT carrying the user id, valid for expires_sec seconds."""
    payload = {
        "user_id": user_id,
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_sec),
    }
    return jwt.encode(payload, secret_key, algorithm=ALGORITHM)


def read_token(token: str, secret_key: str) -> Optional[str]:
    """Verifies a token and returns its user id, or None if it is invalid or expired."""
    try:
        payload = jwt.decode(token, secret_key, algorithms=[ALGORITHM])
    except jwt.InvalidTokenError as e:
        logger.warning(f"Rejected bearer token: {e}")
        return None
    return payload.get("user_id")
