from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

import httpx
from cachetools import TTLCache
from jose import jwt

from ..settings import settings


class CognitoAuthError(Exception):
    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class VerifiedUser:
    sub: str
    username: str
    email: str | None
    claims: dict[str, Any] = field(default_factory=dict)

    @property
    def identity(self) -> str:
        # Steps, intentions and opportunities are owned by the user's email.
        return (self.email or "").strip().lower() or self.sub


_JWKS_CACHE: TTLCache[str, dict[str, Any]] = TTLCache(maxsize=4, ttl=60 * 60)


def _issuer() -> str:
    if not settings.cognito_user_pool_id:
        raise CognitoAuthError("COGNITO_USER_POOL_ID is not set", status_code=500)
    region = settings.cognito_region or settings.aws_region
    return f"https://cognito-idp.{region}.amazonaws.com/{settings.cognito_user_pool_id}"


def _get_jwks() -> dict[str, Any]:
    url = f"{_issuer()}/.well-known/jwks.json"
    cached = _JWKS_CACHE.get(url)
    if cached:
        return cached

    with httpx.Client(timeout=10.0) as client:
        resp = client.get(url)
        resp.raise_for_status()
        jwks = resp.json()

    _JWKS_CACHE[url] = jwks
    return jwks


def verify_bearer_token(token: str) -> VerifiedUser:
    if not token:
        raise CognitoAuthError("missing token")
    if not settings.cognito_client_id:
        raise CognitoAuthError("COGNITO_CLIENT_ID is not set", status_code=500)

    try:
        claims = jwt.decode(
            token,
            _get_jwks(),
            algorithms=["RS256"],
            audience=settings.cognito_client_id,
            issuer=_issuer(),
            options={"verify_aud": True, "verify_iss": True},
        )
    except CognitoAuthError:
        raise
    except Exception as e:
        raise CognitoAuthError("invalid token") from e

    exp = claims.get("exp")
    if exp and int(exp) < int(time.time()):
        raise CognitoAuthError("token expired")

    token_use = claims.get("token_use")
    if token_use and token_use not in ("id", "access"):
        raise CognitoAuthError("invalid token_use")

    sub = str(claims.get("sub") or "")
    if not sub:
        raise CognitoAuthError("missing sub")

    email = claims.get("email")
    if email is not None:
        email = str(email)

    username = (
        str(claims.get("preferred_username") or "").strip()
        or str(claims.get("cognito:username") or "").strip()
        or (email or "")
    )

    return VerifiedUser(sub=sub, username=username, email=email, claims=claims)
