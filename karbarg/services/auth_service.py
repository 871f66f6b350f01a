"""Access token helpers.

Identity lives with the external provider; this service only verifies the
bearer tokens it issues and, for operators and tests, mints new ones.
"""
from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

import jwt
from jwt import ExpiredSignatureError, InvalidTokenError
from sqlalchemy.ext.asyncio import AsyncSession

from karbarg.config import get_settings
from karbarg.models.user import User

logger = logging.getLogger(__name__)


class AuthError(RuntimeError):
    """Raised when a token cannot be accepted."""


class AuthService:
    """Encode and decode HS-signed access tokens carrying ``sub`` and ``is_admin``."""

    def __init__(self, db: AsyncSession | None = None):
        self.db = db
        self.settings = get_settings()

    # ------------------------------------------------------------------
    # Token helpers
    # ------------------------------------------------------------------
    def _access_token_payload(self, user: User, is_admin: bool) -> dict[str, Any]:
        expire = datetime.now(UTC) + timedelta(minutes=self.settings.access_token_exp_minutes)
        return {
            "sub": str(user.user_id),
            "username": user.username,
            "is_admin": bool(is_admin),
            "exp": int(expire.timestamp()),
        }

    def create_access_token(self, user: User, is_admin: bool | None = None) -> tuple[str, int]:
        if is_admin is None:
            is_admin = bool(user.is_admin)
        payload = self._access_token_payload(user, is_admin)
        token = jwt.encode(payload, self.settings.secret_key, algorithm=self.settings.jwt_algorithm)
        expires_in = self.settings.access_token_exp_minutes * 60
        return token, expires_in

    def decode_access_token(self, token: str) -> dict[str, Any]:
        try:
            return jwt.decode(
                token,
                self.settings.secret_key,
                algorithms=[self.settings.jwt_algorithm],
            )
        except ExpiredSignatureError as exc:
            raise AuthError("token_expired") from exc
        except InvalidTokenError as exc:
            raise AuthError("invalid_token") from exc

    async def resolve_user(self, token: str) -> tuple[User, bool]:
        """Return the token's user and admin flag.

        Raises:
            AuthError: ``token_expired`` or ``invalid_token``
        """
        payload = self.decode_access_token(token)
        try:
            user_id = UUID(str(payload.get("sub")))
        except ValueError as exc:
            raise AuthError("invalid_token") from exc

        user = await self.db.get(User, user_id)
        if user is None:
            raise AuthError("invalid_token")
        return user, bool(payload.get("is_admin", False))
