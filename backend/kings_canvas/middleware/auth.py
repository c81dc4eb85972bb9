from __future__ import annotations

from typing import Callable

from fastapi import HTTPException, Request
from starlette.middleware.base import BaseHTTPMiddleware

from ..auth.cognito import CognitoAuthError, VerifiedUser, verify_bearer_token
from ..observability.logging import get_logger
from ..problem_details import problem_response
from ..settings import Settings, get_settings

TokenVerifier = Callable[[str], VerifiedUser]


def is_public_path(path: str) -> bool:
    # Health and anything outside /api stay public.
    return path == "/" or not path.startswith("/api/")


def _dev_user(settings: Settings) -> VerifiedUser | None:
    email = str(settings.dev_user_email or "").strip()
    if not email or settings.is_production:
        return None
    return VerifiedUser(sub=f"dev:{email}", username=email, email=email, claims={})


def authenticate(request: Request, *, settings: Settings, verifier: TokenVerifier) -> VerifiedUser | None:
    if request.method.upper() == "OPTIONS" or is_public_path(request.url.path):
        return None

    auth = request.headers.get("authorization")
    if not auth:
        user = _dev_user(settings)
        if user is None:
            raise HTTPException(status_code=401, detail="Not authenticated")
        return user

    parts = str(auth).split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        return verifier(parts[1].strip())
    except CognitoAuthError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        raise HTTPException(status_code=401, detail="Not authenticated")


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Bearer-token enforcement for /api/*.

    Added before CORSMiddleware so auth failures still carry CORS headers.
    """

    def __init__(self, app, *, settings: Settings | None = None, verifier: TokenVerifier | None = None):
        super().__init__(app)
        self._settings = settings or get_settings()
        self._verifier = verifier or verify_bearer_token
        self._log = get_logger("auth_middleware")

    async def dispatch(self, request: Request, call_next):
        try:
            user = authenticate(request, settings=self._settings, verifier=self._verifier)
        except HTTPException as exc:
            if exc.status_code >= 500:
                self._log.error("auth_middleware_error", status_code=exc.status_code, path=request.url.path)
            else:
                self._log.info("auth_middleware_denied", status_code=exc.status_code, path=request.url.path)
            return problem_response(
                request=request,
                status_code=exc.status_code,
                title="Unauthorized" if exc.status_code == 401 else None,
                detail=str(exc.detail) if isinstance(exc.detail, str) else None,
            )
        if user is not None:
            request.state.user = user
        return await call_next(request)
