"""
Authentication helper functions.

Passwords are stored as bcrypt hashes; sessions are HS256 JWTs whose ``sub``
claim is the user id. Turning a bearer credential into a Principal is the
job of ``collabhub.core.principal.resolve_principal``; this module supplies
the decode step and the FastAPI dependencies around it.
"""

from datetime import datetime, timedelta, timezone

import bcrypt
from fastapi import Depends, Request
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from collabhub.api.v1.helpers.auth_interface import AuthenticationProvider
from collabhub.config import settings
from collabhub.core.errors import AuthError, Reason
from collabhub.core.principal import Principal, resolve_principal
from collabhub.db.session import get_db


ALGORITHM = "HS256"


def hash_password(plain_password: str) -> str:
    return bcrypt.hashpw(plain_password.encode("utf-8"), bcrypt.gensalt()).decode(
        "utf-8"
    )


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(
        plain_password.encode("utf-8"), hashed_password.encode("utf-8")
    )


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(days=settings.access_token_expire_days)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def token_for_user(user_id: int) -> str:
    return create_access_token({"sub": str(user_id)})


def decode_subject(token: str) -> int:
    """Return the user id carried by ``token``."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        raise AuthError("Token expired", Reason.EXPIRED) from None
    except JWTError:
        raise AuthError("Invalid token", Reason.MALFORMED) from None

    subject = payload.get("sub")
    try:
        return int(subject)
    except (TypeError, ValueError):
        raise AuthError("No user id found in token", Reason.MALFORMED) from None


def bearer_credential(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip() or None
    return None


class JWTAuthenticationProvider:
    """Resolves ``Authorization: Bearer <jwt>`` into a Principal."""

    async def authenticate(self, request: Request, db: AsyncSession) -> Principal:
        return await resolve_principal(bearer_credential(request), db, decode_subject)


def _provider(request: Request) -> AuthenticationProvider:
    provider = getattr(request.app.state, "authentication_provider", None)
    return provider if provider is not None else JWTAuthenticationProvider()


async def get_current_principal(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Principal:
    return await _provider(request).authenticate(request, db)


async def get_optional_principal(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Principal | None:
    """Like ``get_current_principal`` but anonymous requests yield None.

    A credential that is present but invalid is still rejected.
    """
    if bearer_credential(request) is None:
        return None
    return await _provider(request).authenticate(request, db)
