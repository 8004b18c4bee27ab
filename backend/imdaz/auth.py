"""Authentication helpers and the FastAPI authorization dependency.

This module reads the bearer token from the `Authorization` header and
verifies JWT tokens. Unlike a typical security dependency it never
raises: a missing or malformed header is turned into an error marker
(`{"error": message}`) that the services echo back as an
`unauthorized` response, so every endpoint answers with the same
response shapes.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Union

import jwt
from fastapi import Header

from .config import settings

MISSING_HEADER = "Token de autorização não informado."
MALFORMED_HEADER = "Formato do token de autorização inválido."

Authorization = Union[str, Dict[str, str]]


def authorization_from_header(header: Optional[str]) -> Authorization:
    """Return the bearer token or an error marker dict."""
    if header is None or not header.strip():
        return {"error": MISSING_HEADER}
    parts = header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return {"error": MALFORMED_HEADER}
    return parts[1]


def get_authorization(authorization: Optional[str] = Header(default=None)) -> Authorization:
    """FastAPI dependency exposing the request's authorization value."""
    return authorization_from_header(authorization)


def is_error_marker(authorization: Authorization) -> bool:
    return isinstance(authorization, dict) and "error" in authorization


class TokenVerifier:
    """Issue and verify the JWT tokens handed out on login."""

    def __init__(self, secret: str = None, algorithm: str = None, expire_hours: int = None):
        self.secret = secret or settings.JWT_SECRET
        self.algorithm = algorithm or settings.JWT_ALGORITHM
        self.expire_hours = expire_hours or settings.JWT_EXPIRE_HOURS

    def issue(self, user_id: int, email: str) -> str:
        """Return a signed token for the given user."""
        expire = datetime.now(timezone.utc) + timedelta(hours=self.expire_hours)
        payload = {"user_id": user_id, "email": email, "exp": int(expire.timestamp())}
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, authorization: Authorization) -> Optional[dict]:
        """Decode a token and return its payload, or `None` when invalid.

        Expired tokens, tokens without an `exp` claim, bad signatures, garbage
        input and tokens without a `user_id` claim are all rejected the same way.
        """
        if not isinstance(authorization, str) or not authorization:
            return None
        try:
            payload = jwt.decode(
                authorization, self.secret, algorithms=[self.algorithm], options={"require": ["exp"]}
            )
        except jwt.PyJWTError:
            return None
        if not payload.get("user_id"):
            return None
        return payload
