from __future__ import annotations

from dataclasses import dataclass

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import Settings, get_settings
from .errors import Unauthenticated


security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    user_id: str
    scopes: tuple[str, ...] = ()


def _decode_token(token: str, settings: Settings) -> dict:
    try:
        payload = jwt.decode(
            token,
            settings.secrets.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options={"verify_aud": settings.jwt_audience is not None},
        )
    except jwt.PyJWTError as exc:
        raise Unauthenticated("invalid_token") from exc
    return payload


def _subject(payload: dict) -> str:
    user_id = payload.get("sub") or payload.get("user_id")
    if not user_id:
        raise Unauthenticated("token_missing_subject")
    return str(user_id)


def verify_token(token: str, settings: Settings) -> str:
    """Validate a bearer token and return the id of the user it was issued to."""
    return _subject(_decode_token(token, settings))


async def get_auth_context(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    settings: Settings = Depends(get_settings),
) -> AuthContext:
    if not credentials:
        raise Unauthenticated("missing_authorization")

    payload = _decode_token(credentials.credentials, settings)
    scopes = tuple(payload.get("scopes") or [])

    context = AuthContext(user_id=_subject(payload), scopes=scopes)
    request.state.auth = context
    return context


__all__ = ["AuthContext", "get_auth_context", "verify_token"]
