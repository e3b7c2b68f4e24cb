"""Session tokens (HS256 JWT) for logged-in users.

The token carries the user id in ``sub``. Clients send it back either in
the HTTP-only ``jwt`` cookie set at login or as an ``Authorization: Bearer``
header.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from starlette.requests import Request


class TokenService:
    def __init__(self, secret: str, algorithm: str = "HS256", expire_days: int = 30) -> None:
        self.secret = secret
        self.algorithm = algorithm
        self.lifetime = timedelta(days=expire_days)

    def issue(self, user_id: str) -> str:
        now = datetime.now(timezone.utc)
        claims = {"sub": user_id, "iat": now, "exp": now + self.lifetime}
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def decode(self, token: str) -> str | None:
        """User id from a valid token, or None when invalid or expired."""
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError:
            return None
        subject = payload.get("sub")
        return subject if isinstance(subject, str) else None


def token_from_request(request: Request, cookie_name: str = "jwt") -> str | None:
    token = request.cookies.get(cookie_name)
    if token:
        return token
    auth_header = request.headers.get("authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:] or None
    return None
