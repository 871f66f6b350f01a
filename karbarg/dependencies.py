"""FastAPI dependencies."""
import logging
import secrets
from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from karbarg.config import get_settings
from karbarg.database import get_db
from karbarg.models.user import User
from karbarg.services.auth_service import AuthService, AuthError

logger = logging.getLogger(__name__)


@dataclass
class CurrentUser:
    """The authenticated caller and the admin flag taken from their token."""
    user: User
    is_admin: bool = False

    @property
    def user_id(self):
        return self.user.user_id


def _mask_identifier(identifier: str) -> str:
    """Mask a sensitive identifier for logging (e.g., user_id, token)."""
    if not identifier:
        return "<missing>"
    if len(identifier) <= 8:
        return f"{identifier[:2]}...{identifier[-2:]}"
    return f"{identifier[:4]}...{identifier[-4:]}"


async def get_current_user(
        request: Request,
        authorization: str | None = Header(default=None, alias="Authorization"),
        db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """Resolve the current authenticated user via JWT access token.

    Checks for access token in the following order:
    1. HTTP-only cookie
    2. Authorization header
    """
    settings = get_settings()
    token = request.cookies.get(settings.access_token_cookie_name)
    token_source = "cookie"

    if not token and authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token:
            raise HTTPException(status_code=401, detail="invalid_authorization_header")
        token_source = "header"

    if not token:
        raise HTTPException(status_code=401, detail="missing_credentials")

    try:
        user, is_admin = await AuthService(db).resolve_user(token)
    except AuthError as exc:
        detail = "token_expired" if str(exc) == "token_expired" else "invalid_token"
        raise HTTPException(status_code=401, detail=detail) from exc

    logger.debug(f"Authenticated user via JWT {token_source}: {user.user_id} (admin={is_admin})")
    return CurrentUser(user=user, is_admin=is_admin)


async def get_optional_user(
        request: Request,
        authorization: str | None = Header(default=None, alias="Authorization"),
        db: AsyncSession = Depends(get_db),
) -> CurrentUser | None:
    """Return the current user if available, otherwise None for auth failures."""
    try:
        return await get_current_user(request, authorization, db)
    except HTTPException as exc:
        if exc.status_code == 401:
            return None
        raise


async def require_admin(current: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Verify that the caller's token carries the admin flag."""
    if not current.is_admin:
        logger.warning(f"Non-admin user {current.user_id} attempted to access admin endpoint")
        raise HTTPException(status_code=403, detail="admin_required")
    return current


async def verify_cron_token(
        authorization: str | None = Header(default=None, alias="Authorization"),
) -> None:
    """Accept only ``Authorization: Bearer <cron_token>``."""
    settings = get_settings()
    if not authorization:
        raise HTTPException(status_code=401, detail="missing_credentials")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status_code=401, detail="invalid_authorization_header")
    if not secrets.compare_digest(token, settings.cron_token):
        logger.warning(f"Rejected cron call with token {_mask_identifier(token)}")
        raise HTTPException(status_code=401, detail="invalid_token")
