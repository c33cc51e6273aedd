"""
Authentication interface protocol.

The provider is registered on ``app.state.authentication_provider`` at
startup. ``JWTAuthenticationProvider`` in ``authentication.py`` is the
default; a deployment may register its own (for example one that accepts an
upstream identity header) as long as it returns a ``Principal`` and raises
``AuthError`` on failure.
"""

from typing import Any, Protocol, runtime_checkable

from sqlalchemy.ext.asyncio import AsyncSession

from collabhub.core.principal import Principal


@runtime_checkable
class AuthenticationProvider(Protocol):
    """Authenticates an incoming request and returns the Principal."""

    async def authenticate(self, request: Any, db: AsyncSession) -> Principal:
        """Return the resolved Principal or raise ``AuthError``."""
        ...
