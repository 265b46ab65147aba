"""Admin password check and browser-session scoped login state."""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from typing import Annotated

import redis.asyncio as redis
from fastapi import Depends, HTTPException, Request, status

from storefront.config import settings
from storefront.services.backend.redis_client import RedisDependency

logger = logging.getLogger(__name__)

SESSION_KEY_PREFIX = "admin:session:"
LOGIN_ATTEMPTS_KEY_PREFIX = "admin:login-attempts:"


class AdminGate:
    """Checks candidates against the configured password digest."""

    def __init__(self, password_digest: str | None) -> None:
        self._digest = password_digest

    @property
    def configured(self) -> bool:
        return self._digest is not None

    def verify(self, candidate: str) -> bool:
        if self._digest is None:
            return False
        digest = hashlib.sha256(candidate.encode("utf-8")).hexdigest()
        return hmac.compare_digest(digest, self._digest)


class AdminSessionStore:
    """Login flags keyed by an opaque session token.

    A session exists from a successful login until logout; the token lives
    in a cookie without ``Max-Age`` so the browser drops it at session end.
    The Redis TTL only bounds abandoned sessions.
    """

    def __init__(self, client: redis.Redis, ttl_seconds: int | None = None) -> None:
        self._client = client
        self._ttl = ttl_seconds or settings.ADMIN_SESSION_TTL_SECONDS

    @staticmethod
    def _key(token: str) -> str:
        return f"{SESSION_KEY_PREFIX}{token}"

    async def set_logged_in(self, token: str | None, value: bool) -> str | None:
        """Create a session (returning its token) or destroy ``token``."""
        if value:
            token = secrets.token_urlsafe(32)
            await self._client.set(self._key(token), "1", ex=self._ttl)
            logger.info("Admin session opened")
            return token
        if token:
            await self._client.delete(self._key(token))
            logger.info("Admin session closed")
        return None

    async def is_logged_in(self, token: str | None) -> bool:
        if not token:
            return False
        return await self._client.exists(self._key(token)) == 1


class LoginThrottle:
    """Fixed-window counter of failed logins per client."""

    def __init__(
        self,
        client: redis.Redis,
        max_attempts: int | None = None,
        window_seconds: int | None = None,
    ) -> None:
        self._client = client
        self._max_attempts = max_attempts or settings.ADMIN_LOGIN_MAX_ATTEMPTS
        self._window = window_seconds or settings.ADMIN_LOGIN_WINDOW_SECONDS

    @staticmethod
    def _key(ident: str) -> str:
        return f"{LOGIN_ATTEMPTS_KEY_PREFIX}{ident}"

    async def is_blocked(self, ident: str) -> bool:
        attempts = await self._client.get(self._key(ident))
        return attempts is not None and int(attempts) >= self._max_attempts

    async def record_failure(self, ident: str) -> int:
        key = self._key(ident)
        attempts = await self._client.incr(key)
        if attempts == 1:
            await self._client.expire(key, self._window)
        logger.warning("Failed admin login", extra={"client": ident, "attempts": attempts})
        return attempts

    async def reset(self, ident: str) -> None:
        await self._client.delete(self._key(ident))


def client_ident(request: Request) -> str:
    return f"ip:{request.client.host}" if request.client else "anonymous"


_admin_gate = AdminGate(settings.admin_password_digest)


def get_admin_gate() -> AdminGate:
    """FastAPI dependency returning the configured gate."""

    return _admin_gate


def get_session_store(client: RedisDependency) -> AdminSessionStore:
    return AdminSessionStore(client)


def get_login_throttle(client: RedisDependency) -> LoginThrottle:
    return LoginThrottle(client)


AdminGateDependency = Annotated[AdminGate, Depends(get_admin_gate)]
SessionStoreDependency = Annotated[AdminSessionStore, Depends(get_session_store)]
LoginThrottleDependency = Annotated[LoginThrottle, Depends(get_login_throttle)]


def session_token(request: Request) -> str | None:
    return request.cookies.get(settings.ADMIN_SESSION_COOKIE)


async def require_admin(request: Request, sessions: SessionStoreDependency) -> str:
    """Dependency guarding admin mutations; returns the session token."""
    token = session_token(request)
    if not await sessions.is_logged_in(token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Admin login required"
        )
    return token


AdminSession = Annotated[str, Depends(require_admin)]
