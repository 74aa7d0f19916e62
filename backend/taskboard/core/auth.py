"""Identity tokens, auth cookies and password helpers.

Pipeline:
- TokenService.issue / set_auth_cookie: JWT issuance for successful auth
- TokenService.verify: signature + expiry check, None on any failure
- hash_password / check_password: bcrypt
- validate_password_strength: format rules
- DUMMY_HASH: timing-safe constant for user enumeration defense
"""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import jwt
from fastapi import Response

from taskboard.core.config import Settings
from taskboard.core.errors import ValidationError

DEFAULT_TOKEN_TTL = timedelta(days=7)

_ALGORITHM = "HS256"

# bcrypt cost factor for password hashing
_BCRYPT_ROUNDS = 12

_MIN_PASSWORD_LENGTH = 8
# bcrypt only accepts the first 72 bytes of a password
_MAX_PASSWORD_BYTES = 72

# Pre-computed bcrypt hash for timing-safe comparison on user-not-found.
# Pre-generated to avoid ~300ms bcrypt computation on every app startup.
DUMMY_HASH = b"$2b$12$ZP2PVB8yI35X.mkRqcUPUuSzJA1CNRt4dZ7X3cyrfJu.2S3w.Qen2"


@dataclass(frozen=True)
class TokenIdentity:
    """Identity carried by a token.

    Attributes:
        user_id: Owner identity used to scope every data access.
        email: Email address at the time the token was issued.
    """

    user_id: uuid.UUID
    email: str


class TokenService:
    """Issues and verifies signed, time-limited identity tokens.

    Tokens are not stored anywhere; validity is purely signature + expiry,
    so a token cannot be revoked before it expires.
    """

    def __init__(
        self,
        secret: str,
        *,
        expires_delta: timedelta = DEFAULT_TOKEN_TTL,
        issuer: str = "taskboard",
    ) -> None:
        """Initialize the token service.

        Args:
            secret: HMAC signing secret. Must be non-empty.
            expires_delta: Token lifetime.
            issuer: Value of the iss claim, checked on verify.

        Raises:
            ValueError: If secret is empty.
        """
        if not secret:
            msg = "Token signing secret must not be empty"
            raise ValueError(msg)
        self._secret = secret
        self._expires_delta = expires_delta
        self._issuer = issuer

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        """Build a token service from application settings."""
        return cls(
            settings.auth_secret.get_secret_value(),
            expires_delta=timedelta(days=settings.auth_token_ttl_days),
            issuer=settings.auth_issuer,
        )

    @property
    def expires_delta(self) -> timedelta:
        """Token lifetime."""
        return self._expires_delta

    def issue(self, identity: TokenIdentity) -> str:
        """Create a signed token for an identity.

        Args:
            identity: User id and email to embed.

        Returns:
            Encoded JWT string expiring ``expires_delta`` from now.
        """
        now = datetime.now(UTC)
        payload = {
            "userId": str(identity.user_id),
            "email": identity.email,
            "iss": self._issuer,
            "iat": now,
            "exp": now + self._expires_delta,
        }
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM)

    def verify(self, token: str) -> TokenIdentity | None:
        """Check a token's signature, issuer and expiry.

        Args:
            token: Encoded JWT string.

        Returns:
            The decoded identity, or None if the token is malformed, tampered
            with, expired, or missing required claims.
        """
        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                self._secret,
                algorithms=[_ALGORITHM],
                issuer=self._issuer,
                options={"require": ["exp", "iat", "iss"]},
            )
            user_id = uuid.UUID(payload["userId"])
            email = payload["email"]
        except (jwt.InvalidTokenError, KeyError, ValueError, TypeError, AttributeError):
            return None

        if not isinstance(email, str):
            return None
        return TokenIdentity(user_id=user_id, email=email)


def set_auth_cookie(
    response: Response, token: str, settings: Settings, max_age: timedelta
) -> None:
    """Set httpOnly token cookie on response.

    Secure flag and SameSite are configured via settings for
    environment-appropriate security.

    Args:
        response: FastAPI response object.
        token: JWT token string.
        settings: Application settings (cookie name and flags).
        max_age: Cookie lifetime, matching the token's.
    """
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite=settings.auth_cookie_samesite,
        path="/",
        max_age=int(max_age.total_seconds()),
        domain=settings.auth_cookie_domain or None,
    )


def clear_auth_cookie(response: Response, settings: Settings) -> None:
    """Expire the token cookie on the client."""
    response.delete_cookie(
        key=settings.auth_cookie_name,
        path="/",
        domain=settings.auth_cookie_domain or None,
        secure=settings.auth_cookie_secure,
        httponly=True,
        samesite=settings.auth_cookie_samesite,
    )


def validate_password_strength(password: str) -> None:
    """Validate password meets strength requirements.

    8 characters to 72 bytes, at least one letter and one number.

    Args:
        password: Plain-text password to validate.

    Raises:
        ValidationError: If password doesn't meet requirements.
    """
    if len(password) < _MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {_MIN_PASSWORD_LENGTH} characters"
        )
    if len(password.encode()) > _MAX_PASSWORD_BYTES:
        raise ValidationError(
            f"Password must be at most {_MAX_PASSWORD_BYTES} bytes"
        )
    if not any(ch.isalpha() for ch in password):
        raise ValidationError("Password must contain at least one letter")
    if not any(ch.isdigit() for ch in password):
        raise ValidationError("Password must contain at least one number")


def hash_password(password: str) -> str:
    """Hash a password with bcrypt (cost factor 12)."""
    return bcrypt.hashpw(
        password.encode(), bcrypt.gensalt(rounds=_BCRYPT_ROUNDS)
    ).decode()


def check_password(password: str, password_hash: str | None) -> bool:
    """Compare a password against a stored hash.

    Always performs a bcrypt comparison, against DUMMY_HASH when there is no
    stored hash, so response time does not reveal whether the user exists.

    Args:
        password: Plain-text password from the request.
        password_hash: Stored bcrypt hash, or None for an unknown user.

    Returns:
        True only if a stored hash exists and matches.
    """
    encoded = password.encode()
    if password_hash is None or len(encoded) > _MAX_PASSWORD_BYTES:
        # No stored password is longer than the registration limit
        bcrypt.checkpw(encoded[:_MAX_PASSWORD_BYTES], DUMMY_HASH)
        return False
    return bcrypt.checkpw(encoded, password_hash.encode())
