"""
AuthService: register / login / refresh / logout and the profile pass-throughs.

Refresh tokens form a chain per login session:
    issued -> (rotated -> issued')* -> revoked | expired
Every successful refresh revokes its predecessor with a conditional UPDATE
and inserts the successor in the same transaction.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError

from models.db_storage import DBStorage
from models.refresh_token import RefreshToken, TokenState
from models.schemas.user import (
    UserCreateSchema,
    UserLoginSchema,
    UserOutSchema,
    UserUpdateSchema,
)
from models.user import User
from utils.errors import (
    DuplicateEmailError,
    InvalidCredentialsError,
    InvalidInputError,
    InvalidRefreshError,
    UnauthenticatedError,
)
from utils.security import (
    TokenCodec,
    burn_password_check,
    digest_refresh,
    hash_password,
    password_needs_rehash,
    utcnow,
    verify_password,
)

logger = logging.getLogger(__name__)

user_create_schema = UserCreateSchema()
user_login_schema = UserLoginSchema()
user_update_schema = UserUpdateSchema()
user_out_schema = UserOutSchema()


class AuthService:
    def __init__(
        self,
        storage: DBStorage,
        codec: TokenCodec,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.storage = storage
        self.codec = codec
        self.clock = clock

    # -- registration / credentials -------------------------------------

    def register(self, name: Any, email: Any, password: Any) -> Dict[str, Any]:
        """Create a user and return its public projection."""
        try:
            data = user_create_schema.load({"name": name, "email": email, "password": password})
        except ValidationError as err:
            raise InvalidInputError(details=err.messages) from err

        if self.storage.find_user_by_email(data["email"]) is not None:
            raise DuplicateEmailError()

        user = User(
            name=data["name"],
            email=data["email"],
            password_hash=hash_password(data["password"]),
        )
        self.storage.new(user)
        try:
            self.storage.save()
        except IntegrityError as exc:
            # lost a race with a concurrent registration of the same email
            raise DuplicateEmailError() from exc

        logger.info("Registered user %s", user.id)
        return user_out_schema.dump(user)

    def login(self, email: Any, password: Any) -> Dict[str, Any]:
        """
        Check credentials and open a session.
        Unknown email, wrong password and missing fields all raise the same
        InvalidCredentialsError.
        """
        try:
            data = user_login_schema.load({"email": email, "password": password})
        except ValidationError as err:
            raise InvalidCredentialsError() from err

        user: Optional[User] = self.storage.find_user_by_email(data["email"])
        if user is None:
            burn_password_check(data["password"])
            logger.debug("Login failed: unknown email")
            raise InvalidCredentialsError()
        if not verify_password(data["password"], user.password_hash):
            logger.warning("Login failed for user %s", user.id)
            raise InvalidCredentialsError()

        if password_needs_rehash(user.password_hash):
            user.password_hash = hash_password(data["password"])
            self.storage.new(user)

        now = self.clock()
        tokens = self._issue_pair(user.id, now)
        self.storage.save()

        logger.info("User %s logged in", user.id)
        tokens["user"] = user_out_schema.dump(user)
        return tokens

    # -- refresh-token lifecycle ----------------------------------------

    def refresh(self, refresh_token: Any) -> Dict[str, Any]:
        """Rotate a refresh token: revoke the presented one, issue a new pair."""
        if not isinstance(refresh_token, str) or not refresh_token:
            raise InvalidRefreshError()

        now = self.clock()
        token_hash = digest_refresh(refresh_token)
        record = self.storage.find_refresh_token(token_hash)
        if record is None or record.state(now) is not TokenState.ACTIVE:
            raise InvalidRefreshError()

        user_id = record.user_id
        if not self.storage.revoke_refresh_token(token_hash, now):
            # someone else rotated or logged out this token first
            self.storage.rollback()
            logger.warning("Refresh token reuse rejected for user %s", user_id)
            raise InvalidRefreshError()

        tokens = self._issue_pair(user_id, now)
        self.storage.save()
        logger.info("Rotated refresh token for user %s", user_id)
        return tokens

    def logout(self, refresh_token: Any) -> None:
        """Revoke a refresh token. Unknown or already revoked tokens are fine."""
        if not isinstance(refresh_token, str) or not refresh_token:
            return
        if self.storage.revoke_refresh_token(digest_refresh(refresh_token), self.clock()):
            logger.info("Refresh token revoked on logout")
        self.storage.save()

    # -- profile ---------------------------------------------------------

    def get_profile(self, user_id: str) -> Dict[str, Any]:
        return user_out_schema.dump(self._load_user(user_id))

    def update_profile(self, user_id: str, changes: Any) -> Dict[str, Any]:
        try:
            data = user_update_schema.load(changes if changes is not None else {})
        except ValidationError as err:
            raise InvalidInputError(details=err.messages) from err

        user = self._load_user(user_id)
        if "name" in data:
            user.name = data["name"]
        self.storage.new(user)
        self.storage.save()
        return user_out_schema.dump(user)

    # -- helpers ---------------------------------------------------------

    def _load_user(self, user_id: str) -> User:
        user = self.storage.get(User, user_id)
        if user is None:
            raise UnauthenticatedError("User not found")
        return user

    def _issue_pair(self, user_id: str, now: datetime) -> Dict[str, Any]:
        """Mint an access token and stage a new refresh record (not committed)."""
        identifier, expires_at = self.codec.issue_refresh(now)
        self.storage.new(
            RefreshToken(
                token_hash=digest_refresh(identifier),
                user_id=user_id,
                revoked=False,
                expires_at=expires_at,
            )
        )
        return {
            "access_token": self.codec.issue_access(user_id, now),
            "refresh_token": identifier,
            "token_type": "bearer",
            "expires_in": self.codec.access_expires_in,
        }
