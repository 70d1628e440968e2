"""
Bearer-token authentication.

Tokens are HS256 JWTs issued by the dashboard's login service. The
verified identity is returned as a Caller and handed explicitly to the
services that need it; nothing stores it globally.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from attendance.config import JWT_ALGORITHM, JWT_EXPIRE_MINUTES, JWT_SECRET
from attendance.errors import Unauthorized
from attendance.logging_config import get_logger, log_with_context

logger = get_logger("auth")
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Caller:
    """Verified identity of the user making a request."""
    subject: str
    role: Optional[str] = None


def create_access_token(subject: str, role: str = None,
                        expires_minutes: int = JWT_EXPIRE_MINUTES) -> str:
    """Issue a signed token for ``subject`` (used by tooling and tests)."""
    payload = {
        "sub": subject,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=expires_minutes),
    }
    if role:
        payload["role"] = role
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> Caller:
    """Decode and check a token, raising Unauthorized on any failure."""
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Invalid token - token has expired")
    except jwt.PyJWTError as e:
        raise Unauthorized("Invalid token - {}".format(e))

    subject = payload.get("sub")
    if not subject:
        raise Unauthorized("Invalid token - missing subject")
    return Caller(subject=str(subject), role=payload.get("role"))


def get_current_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Caller:
    """FastAPI dependency resolving the Authorization header to a Caller."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        log_with_context(logger, "WARNING", "Request without bearer token")
        raise Unauthorized("Unauthorized - No Bearer token")
    try:
        return verify_token(credentials.credentials)
    except Unauthorized as e:
        log_with_context(logger, "WARNING", "Token rejected: {}".format(e.message))
        raise
