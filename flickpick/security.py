"""Password hashing and bearer token handling."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from .config import Settings
from .errors import InvalidTokenError

logger = logging.getLogger(__name__)

TOKEN_ALGORITHM = "HS256"
TOKEN_TTL = timedelta(hours=1)
# bcrypt only looks at the first 72 bytes of its input.
BCRYPT_MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """Salted bcrypt hashing with a configurable work factor."""

    def __init__(self, rounds: int = 10):
        if rounds < 10:
            raise ValueError("bcrypt work factor must be at least 10")
        self._rounds = rounds

    @classmethod
    def from_settings(cls, settings: Settings) -> "PasswordHasher":
        return cls(settings.bcrypt_rounds)

    def hash(self, plaintext: str) -> str:
        """Return a bcrypt hash with a fresh random salt."""

        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(plaintext.encode("utf-8"), salt).decode("ascii")

    def verify(self, plaintext: str, hashed: str) -> bool:
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), hashed.encode("ascii"))
        except (ValueError, UnicodeEncodeError):
            # Malformed stored hash or over-long input.
            return False


class TokenService:
    """Issue and verify signed bearer tokens carrying a user id."""

    def __init__(self, settings: Settings):
        if not settings.jwt_secret:
            raise ValueError("JWT_SECRET is required when initialising TokenService")
        self._secret = settings.jwt_secret

    def issue(self, user_id: str, *, now: datetime | None = None) -> str:
        """Return a token for ``user_id`` that expires one hour after ``now``."""

        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "id": user_id,
            "iat": issued_at,
            "exp": issued_at + TOKEN_TTL,
        }
        return jwt.encode(payload, self._secret, algorithm=TOKEN_ALGORITHM)

    def verify(self, token: str) -> str:
        """Return the user id carried by ``token``.

        Every failure surfaces as the same ``InvalidTokenError``; the precise
        reason is only logged and kept on the exception.
        """

        if not token:
            raise InvalidTokenError("missing")
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[TOKEN_ALGORITHM],
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError as exc:
            logger.info("Rejected expired token")
            raise InvalidTokenError("expired") from exc
        except jwt.InvalidSignatureError as exc:
            logger.warning("Rejected token with invalid signature")
            raise InvalidTokenError("signature") from exc
        except jwt.DecodeError as exc:
            logger.info("Rejected malformed token: %s", exc)
            raise InvalidTokenError("malformed") from exc
        except jwt.InvalidTokenError as exc:
            logger.info("Rejected token: %s", exc)
            raise InvalidTokenError("invalid") from exc

        user_id = claims.get("sub")
        if not isinstance(user_id, str) or not user_id:
            logger.info("Rejected token without a subject")
            raise InvalidTokenError("malformed")
        return user_id
