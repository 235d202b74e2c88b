"""
security helpers:
- Argon2 password hashing via argon2-cffi
- JWT access tokens via PyJWT (TokenCodec)
- Opaque refresh token identifiers and their server-side digests
"""
from __future__ import annotations

import hashlib
import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Tuple

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from utils.errors import CredentialIntegrityError, TokenExpired, TokenInvalid

logger = logging.getLogger(__name__)

ph = PasswordHasher()
# verified on unknown-email logins; always built with the current work factor
_dummy_hash = ph.hash(secrets.token_hex(16))

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_BYTES = 32  # 256 bits of entropy


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; everything we store is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def configure_hasher(time_cost: int, memory_cost: int, parallelism: int) -> None:
    """Replace the module hasher with one using the given work factor.
    Called once from create_app().
    """
    global ph, _dummy_hash
    ph = PasswordHasher(time_cost=time_cost, memory_cost=memory_cost, parallelism=parallelism)
    _dummy_hash = ph.hash(secrets.token_hex(16))


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2 (fresh salt per call)
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """ Verify a plaintext password using argon2.

    Returns False on mismatch. A digest that cannot be parsed means the
    stored record is corrupt and raises CredentialIntegrityError.
    """
    try:
        return ph.verify(password_hash, password)
    except VerifyMismatchError:
        return False
    except (InvalidHashError, VerificationError) as exc:
        logger.error("Stored password digest is unreadable: %s", exc.__class__.__name__)
        raise CredentialIntegrityError() from exc


def password_needs_rehash(password_hash: str) -> bool:
    try:
        return ph.check_needs_rehash(password_hash)
    except InvalidHashError as exc:
        raise CredentialIntegrityError() from exc


def burn_password_check(password: str) -> None:
    """Spend one verification on a throwaway digest.

    Used when the login email is unknown so that path takes about as long
    as a wrong password for a real account.
    """
    verify_password(password or "", _dummy_hash)


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def digest_refresh(identifier: str) -> str:
    """Server-side lookup key for a refresh token; the raw value is never stored."""
    return hashlib.sha256(identifier.encode("utf-8")).hexdigest()


class TokenCodec:
    """Mints and checks access tokens, mints refresh identifiers.

    Built once at startup; the signing secret is never changed afterwards
    and is kept out of repr() and logs.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        issuer: str = "user-auth-api",
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
    ):
        if not secret:
            raise ValueError("JWT secret must not be empty")
        self._secret = secret
        self.algorithm = algorithm
        self.issuer = issuer
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "TokenCodec":
        return cls(
            secret=config["JWT_SECRET"],
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
            issuer=config.get("JWT_ISSUER", "user-auth-api"),
            access_ttl=config["ACCESS_TOKEN_EXPIRES"],
            refresh_ttl=config["REFRESH_TOKEN_EXPIRES"],
        )

    def __repr__(self) -> str:
        return f"<TokenCodec alg={self.algorithm} iss={self.issuer} access_ttl={self.access_ttl}>"

    def issue_access(self, user_id: str, now: datetime) -> str:
        exp = now + self.access_ttl
        payload = {
            "iss": self.issuer,
            "sub": str(user_id),
            "iat": int(now.timestamp()),
            "exp": int(exp.timestamp()),
            "type": ACCESS_TOKEN_TYPE,
            "jti": generate_jti(),
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify_access(self, token: str, now: datetime) -> str:
        """
        Return the user id carried by a valid access token.
        Raises TokenInvalid on bad signature/structure and TokenExpired once
        `now` reaches the embedded expiry.
        """
        decoded = self._decode(token)
        if decoded.get("type") != ACCESS_TOKEN_TYPE:
            raise TokenInvalid("Wrong token type")
        exp = decoded["exp"]
        if not isinstance(exp, (int, float)):
            raise TokenInvalid("Malformed expiry")
        if now.timestamp() >= exp:
            raise TokenExpired("Token expired")
        return str(decoded["sub"])

    def issue_refresh(self, now: datetime) -> Tuple[str, datetime]:
        return secrets.token_urlsafe(REFRESH_TOKEN_BYTES), now + self.refresh_ttl

    @property
    def access_expires_in(self) -> int:
        return int(self.access_ttl.total_seconds())

    def _decode(self, token: str) -> Dict[str, Any]:
        if not isinstance(token, str) or not token:
            raise TokenInvalid("Empty token")
        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={
                    # expiry is checked against the caller's clock in verify_access
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "require": ["exp", "iat", "sub", "jti", "type"],
                },
            )
        except jwt.InvalidTokenError as exc:
            raise TokenInvalid(f"Invalid token: {exc.__class__.__name__}") from exc
