"""Registration and login."""

from __future__ import annotations

import asyncio
import logging

from ..errors import DuplicateEmailError, InvalidCredentialsError, InvalidInputError
from ..models import UserAccount
from ..security import BCRYPT_MAX_PASSWORD_BYTES, PasswordHasher, TokenService
from .users import UserStore, normalize_email

logger = logging.getLogger(__name__)


class AuthService:
    """Create accounts and exchange credentials for bearer tokens."""

    def __init__(self, store: UserStore, hasher: PasswordHasher, tokens: TokenService):
        self._store = store
        self._hasher = hasher
        self._tokens = tokens
        # Unknown-email logins verify against this so both paths cost one check.
        self._placeholder_hash = hasher.hash("flickpick-placeholder")

    async def register(
        self, username: str, email: str, password: str
    ) -> tuple[str, UserAccount]:
        username = (username or "").strip()
        email = normalize_email(email or "")
        if not (username and email and password):
            raise InvalidInputError("Please provide username, email, and password")
        if len(password.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
            raise InvalidInputError(
                f"Password may not exceed {BCRYPT_MAX_PASSWORD_BYTES} bytes"
            )

        logger.info("Register attempt for %s", email)
        if await self._store.find_by_email(email) is not None:
            logger.info("Register rejected, %s already exists", email)
            raise DuplicateEmailError()

        password_hash = await asyncio.to_thread(self._hasher.hash, password)
        account = await self._store.create(email, username, password_hash)
        logger.info("User registered: %s (%s)", account.id, email)
        return self._tokens.issue(account.id), account

    async def login(self, email: str, password: str) -> tuple[str, UserAccount]:
        email = normalize_email(email or "")
        if not (email and password):
            raise InvalidInputError("Please provide email and password")

        account = await self._store.find_by_email(email)
        if account is None:
            await asyncio.to_thread(self._hasher.verify, password, self._placeholder_hash)
            logger.info("Login failed for %s: unknown email", email)
            raise InvalidCredentialsError()

        matches = await asyncio.to_thread(self._hasher.verify, password, account.password_hash)
        if not matches:
            logger.info("Login failed for %s: wrong password", email)
            raise InvalidCredentialsError()

        logger.info("User logged in: %s", account.id)
        return self._tokens.issue(account.id), account

    def authenticate(self, token: str) -> str:
        """Return the user id a bearer token was issued for."""

        return self._tokens.verify(token)

