"""JWT authentication middleware."""

from __future__ import annotations

from collections.abc import Iterable

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from ..utils.jwt import (
    JWTAlgorithmError,
    JWTClaimError,
    JWTError,
    JWTExpiredError,
    JWTSignatureError,
    decode_jwt,
)
from ..utils.logging import get_logger

logger = get_logger(__name__)


class JWTAuthMiddleware(BaseHTTPMiddleware):
    """Verify an optional Bearer token and attach its claims to request state.

    Requests without an ``Authorization`` header pass through as anonymous;
    routes that need a caller enforce it through ``get_identity``. A header
    that is present but invalid is rejected with 401.
    """

    def __init__(
        self,
        app,
        secret_key: str,
        algorithm: str = "HS256",
        audience: str | None = None,
        issuer: str | None = None,
        exempt_paths: Iterable[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.audience = audience
        self.issuer = issuer
        self.exempt_paths = set(exempt_paths or [])
        self.enabled = bool(secret_key)
        if not self.enabled:
            logger.warning("JWTAuthMiddleware disabled - missing secret key")

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        request.state.user = None
        request.state.authenticated = False

        if self._should_skip(request) or not self.enabled:
            return await call_next(request)

        authorization = request.headers.get("Authorization")
        if not authorization:
            return await call_next(request)
        if not authorization.lower().startswith("bearer "):
            return _unauthorized_response("Token is not valid")

        token = authorization.split(" ", 1)[1].strip()

        try:
            payload = decode_jwt(
                token,
                secret_key=self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
            )
        except (JWTSignatureError, JWTExpiredError) as exc:
            logger.info("JWT validation failed", extra={"reason": str(exc)})
            return _unauthorized_response("Token is not valid")
        except (JWTAlgorithmError, JWTClaimError, JWTError) as exc:
            logger.warning("JWT parsing error", extra={"error": str(exc)})
            return _unauthorized_response("Token is not valid")

        request.state.user = payload
        request.state.authenticated = True
        return await call_next(request)

    def _should_skip(self, request: Request) -> bool:
        return request.method.upper() == "OPTIONS" or request.url.path in self.exempt_paths


def _unauthorized_response(detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=401,
        content={"detail": detail},
        headers={"WWW-Authenticate": "Bearer"},
    )


__all__ = ["JWTAuthMiddleware"]
