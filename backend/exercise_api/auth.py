"""Session tokens, authorization guards and FastAPI security dependencies.

`TokenIssuer` signs and verifies JWTs carrying the minimal claims
(`username`, `is_admin`). The guard functions decide from those claims
alone whether a caller may act on a target; the `ensure_*` dependencies
wire them into routes so they run before the handler body.

Failures raise the shared error hierarchy: a missing or bad token is an
`UnauthenticatedError` (401), a valid token without the right privilege a
`ForbiddenError` (403).
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .errors import ForbiddenError, UnauthenticatedError

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Claims:
    """Verified identity facts carried by a session token."""
    username: str
    is_admin: bool = False


class TokenIssuer:
    """Issue and verify signed session tokens with an injected secret."""

    def __init__(self, secret: str, algorithm: str = "HS256", expire_hours: int = 24):
        if not secret:
            raise ValueError("token secret must not be empty")
        self.secret = secret
        self.algorithm = algorithm
        self.expire_hours = expire_hours

    def issue(self, user) -> str:
        """Return a signed token for `user` (anything with `username`/`is_admin`)."""
        payload = {"username": user.username, "is_admin": bool(user.is_admin)}
        if self.expire_hours > 0:
            expire = datetime.now(timezone.utc) + timedelta(hours=self.expire_hours)
            payload["exp"] = int(expire.timestamp())
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Claims:
        """Decode and verify `token`, raising `UnauthenticatedError` on any failure."""
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise UnauthenticatedError("Token expired")
        except jwt.PyJWTError:
            raise UnauthenticatedError("Invalid token")
        username = payload.get("username")
        is_admin = payload.get("is_admin", False)
        if not isinstance(username, str) or not username or not isinstance(is_admin, bool):
            raise UnauthenticatedError("Invalid token payload")
        return Claims(username=username, is_admin=is_admin)


def require_elevated(claims: Claims) -> None:
    if not claims.is_admin:
        raise ForbiddenError("Admin privileges required")


def require_self_or_elevated(claims: Claims, target_username: str) -> None:
    """Allow admins, or a caller acting on their own username.

    Only the claims are consulted, so a refusal never reveals whether
    `target_username` exists.
    """
    if claims.is_admin or claims.username == target_username:
        return
    raise ForbiddenError("Not allowed to act on this user")


def require_user_id_or_elevated(claims: Claims, caller_id: Optional[int], target_user_id: int) -> None:
    """Id-based variant of `require_self_or_elevated`.

    `caller_id` is resolved from the caller's own username, never from
    the target, so refusals do not depend on the target existing.
    """
    if claims.is_admin:
        return
    if caller_id is None:
        raise UnauthenticatedError("Session user no longer exists")
    if caller_id != target_user_id:
        raise ForbiddenError("Not allowed to act on this user")


def get_token_issuer(request: Request) -> TokenIssuer:
    """Return the issuer held by the application (overridable in tests)."""
    return request.app.state.token_issuer


def get_current_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> Claims:
    """FastAPI dependency returning the verified claims of the caller."""
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedError("Authentication required")
    return issuer.verify(credentials.credentials)


def ensure_logged_in(claims: Claims = Depends(get_current_claims)) -> Claims:
    return claims


def ensure_admin(claims: Claims = Depends(get_current_claims)) -> Claims:
    require_elevated(claims)
    return claims


def ensure_correct_user_or_admin(username: str, claims: Claims = Depends(get_current_claims)) -> Claims:
    """Guard for routes with a `{username}` path parameter."""
    require_self_or_elevated(claims, username)
    return claims
