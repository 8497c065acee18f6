"""
Account and session operations.

Every public method returns a Result: Ok(value) on success, Err(AppError)
on a rejected request. A rejected request leaves the store unchanged, with
one exception: a refresh token that fails the compare against the stored
one can clear that stored token (REVOKE_ON_REFRESH_REUSE).

Session lifecycle for one user:

    NoSession --login--> Active --refresh--> Active (rotated)
                           |                      |
                           +------logout----------+--> LoggedOut
"""
from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass

from argon2.exceptions import HashingError
from jwt import PyJWTError
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from werkzeug.datastructures import FileStorage

from api.errors import (
    ConflictError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from models.db_storage import DBStorage
from models.schemas.user import (
    ChangePasswordInput,
    LoginInput,
    RegisterInput,
    UpdateFullNameInput,
)
from models.session_store import SessionStore
from models.user import User
from utils.media import MediaHost, MediaUploadError
from utils.result import Err, Ok, Result
from utils.security import (
    TokenError,
    TokenIssuer,
    TokenPair,
    hash_password,
    verify_password,
)
from utils.validators import (
    is_strong_password,
    is_valid_email,
    is_valid_full_name,
    normalize_email,
    normalize_username,
)

logger = logging.getLogger(__name__)

WEAK_PASSWORD_MESSAGE = (
    "Weak password! Must be at least 8 characters long, include uppercase, "
    "lowercase, a number, and a special character (@$!%*?&)"
)
STALE_REFRESH_MESSAGE = "Refresh token is expired or already used"
INVALID_REFRESH_MESSAGE = "Invalid or expired refresh token"

AVATAR_FOLDER = "avatars"
COVER_IMAGE_FOLDER = "cover-images"


@dataclass(frozen=True)
class SessionGrant:
    user: User
    tokens: TokenPair


@dataclass(frozen=True)
class ProfileView:
    user: User
    is_owner: bool


def _has_file(file: FileStorage | None) -> bool:
    return file is not None and bool(file.filename)


class AccountService:
    def __init__(
        self,
        storage: DBStorage,
        issuer: TokenIssuer,
        media: MediaHost,
        revoke_on_refresh_reuse: bool = True,
        revoke_sessions_on_password_change: bool = False,
    ):
        self.storage = storage
        self.sessions = SessionStore(storage)
        self.issuer = issuer
        self.media = media
        self.revoke_on_refresh_reuse = revoke_on_refresh_reuse
        self.revoke_sessions_on_password_change = revoke_sessions_on_password_change

    # -- helpers -----------------------------------------------------------

    def _find_by_login(self, username: str | None, email: str | None) -> User | None:
        criteria = []
        if username:
            criteria.append(User.username == normalize_username(username))
        if email:
            criteria.append(User.email == normalize_email(email))
        return self.storage.get_session().query(User).filter(or_(*criteria)).first()

    def _issue_tokens(self, user_id: str) -> Result:
        try:
            return Ok(self.issuer.issue_pair(user_id))
        except (PyJWTError, NotImplementedError, TypeError, ValueError):
            logger.exception("token signing failed for user %s", user_id)
            return Err(InternalError("Something went wrong while generating access and refresh token"))

    def _hash(self, password: str) -> Result:
        try:
            return Ok(hash_password(password))
        except HashingError:
            logger.exception("password hashing failed")
            return Err(InternalError("Could not process password"))

    def _upload(self, file: FileStorage, folder: str, label: str) -> Result:
        try:
            return Ok(self.media.upload(file, folder))
        except MediaUploadError as exc:
            logger.error("%s upload failed: %s", label, exc)
            return Err(InternalError(f"Failed to upload {label}"))

    def _reject_stale_refresh(self, user_id: str) -> Err:
        # A correctly signed token that is not the stored one was either
        # replayed after rotation or lost a concurrent rotation.
        logger.warning("refresh token reuse detected for user %s", user_id)
        if self.revoke_on_refresh_reuse:
            self.sessions.clear(user_id)
        return Err(UnauthorizedError(STALE_REFRESH_MESSAGE))

    # -- registration and profile --------------------------------------------

    def register(
        self,
        data: RegisterInput,
        avatar: FileStorage | None,
        cover_image: FileStorage | None = None,
    ) -> Result:
        if not (data.username and data.email and data.full_name and data.password):
            return Err(ValidationError("All fields are required"))
        if not is_valid_email(data.email):
            return Err(ValidationError("Invalid email address"))
        if not is_strong_password(data.password):
            return Err(ValidationError(WEAK_PASSWORD_MESSAGE))
        if not _has_file(avatar):
            return Err(ValidationError("Avatar image is required"))

        username = normalize_username(data.username)
        email = normalize_email(data.email)
        if self._find_by_login(username, email) is not None:
            return Err(ConflictError("User with this email or username already exists"))

        hashed = self._hash(data.password)
        if not hashed.ok:
            return hashed

        avatar_url = self._upload(avatar, AVATAR_FOLDER, "avatar")
        if not avatar_url.ok:
            return avatar_url

        cover_url = ""
        if _has_file(cover_image):
            uploaded = self._upload(cover_image, COVER_IMAGE_FOLDER, "cover image")
            if uploaded.ok:
                cover_url = uploaded.value

        user = User(
            username=username,
            email=email,
            full_name=data.full_name,
            password_hash=hashed.value,
            avatar=avatar_url.value,
            cover_image=cover_url,
        )
        self.storage.new(user)
        try:
            self.storage.save()
        except IntegrityError:
            # lost a race against a concurrent registration
            logger.warning(
                "registration of %s lost to a concurrent one, orphaned media: %s",
                username,
                ", ".join(url for url in (avatar_url.value, cover_url) if url),
            )
            return Err(ConflictError("User with this email or username already exists"))

        logger.info("registered user %s", user.id)
        return Ok(user)

    def update_full_name(self, user_id: str, data: UpdateFullNameInput) -> Result:
        if not data.full_name or not data.full_name.strip():
            return Err(ValidationError("Full name is required"))
        if not is_valid_full_name(data.full_name):
            return Err(ValidationError("Full name must be at least 3 characters"))

        user = self.storage.get(User, user_id)
        if user is None:
            return Err(NotFoundError("User not found"))
        user.full_name = data.full_name.strip()
        self.storage.save()
        return Ok(user)

    def _update_image(self, user_id: str, file: FileStorage | None, attr: str, folder: str, label: str) -> Result:
        if not _has_file(file):
            return Err(ValidationError(f"{label.capitalize()} file is missing"))
        user = self.storage.get(User, user_id)
        if user is None:
            return Err(NotFoundError("User not found"))

        url = self._upload(file, folder, label)
        if not url.ok:
            return url
        setattr(user, attr, url.value)
        self.storage.save()
        return Ok(user)

    def update_avatar(self, user_id: str, file: FileStorage | None) -> Result:
        return self._update_image(user_id, file, "avatar", AVATAR_FOLDER, "avatar")

    def update_cover_image(self, user_id: str, file: FileStorage | None) -> Result:
        return self._update_image(user_id, file, "cover_image", COVER_IMAGE_FOLDER, "cover image")

    def public_profile(self, username: str | None, viewer: User | None) -> Result:
        if not username or not username.strip():
            return Err(ValidationError("Username is missing"))
        user = (
            self.storage.get_session()
            .query(User)
            .filter(User.username == normalize_username(username))
            .first()
        )
        if user is None:
            return Err(NotFoundError("Channel does not exist"))
        return Ok(ProfileView(user=user, is_owner=viewer is not None and viewer.id == user.id))

    # -- session lifecycle -----------------------------------------------------

    def login(self, data: LoginInput) -> Result:
        if not (data.username or data.email):
            return Err(ValidationError("Username or email required"))
        if not data.password:
            return Err(ValidationError("Password is required"))

        user = self._find_by_login(data.username, data.email)
        if user is None:
            return Err(NotFoundError("User does not exist"))
        if not verify_password(data.password, user.password_hash):
            logger.info("failed login for user %s", user.id)
            return Err(UnauthorizedError("Invalid user credentials"))

        tokens = self._issue_tokens(user.id)
        if not tokens.ok:
            return tokens
        self.sessions.set_current_refresh_token(user.id, tokens.value.refresh_token)
        logger.info("user %s logged in", user.id)
        return Ok(SessionGrant(user=user, tokens=tokens.value))

    def refresh(self, refresh_token: str | None) -> Result:
        if not refresh_token:
            return Err(UnauthorizedError("Unauthorized request"))
        try:
            claims = self.issuer.decode_refresh_token(refresh_token)
        except TokenError as exc:
            logger.info("rejected refresh token: %s", exc)
            return Err(UnauthorizedError(INVALID_REFRESH_MESSAGE))

        user = self.storage.get(User, claims["sub"])
        if user is None:
            logger.info("refresh token for unknown user %s", claims["sub"])
            return Err(UnauthorizedError(INVALID_REFRESH_MESSAGE))

        stored = self.sessions.get_current_refresh_token(user.id)
        if stored is None or not hmac.compare_digest(stored.encode(), refresh_token.encode()):
            return self._reject_stale_refresh(user.id)

        tokens = self._issue_tokens(user.id)
        if not tokens.ok:
            return tokens
        if not self.sessions.compare_and_set(user.id, refresh_token, tokens.value.refresh_token):
            return self._reject_stale_refresh(user.id)

        logger.info("rotated refresh token for user %s", user.id)
        return Ok(SessionGrant(user=user, tokens=tokens.value))

    def logout(self, user_id: str) -> Result:
        self.sessions.set_current_refresh_token(user_id, None)
        logger.info("user %s logged out", user_id)
        return Ok(None)

    def change_password(self, user_id: str, data: ChangePasswordInput) -> Result:
        if not (data.current_password and data.new_password and data.retype_new_password):
            return Err(ValidationError("All fields are required"))
        if data.new_password != data.retype_new_password:
            return Err(ValidationError("Passwords do not match"))
        if not is_strong_password(data.new_password):
            return Err(ValidationError(WEAK_PASSWORD_MESSAGE))
        if data.current_password == data.new_password:
            return Err(ValidationError("New password cannot be the same as the current one"))

        user = self.storage.get(User, user_id)
        if user is None:
            return Err(NotFoundError("User not found"))
        if not verify_password(data.current_password, user.password_hash):
            return Err(ForbiddenError("Incorrect password"))

        hashed = self._hash(data.new_password)
        if not hashed.ok:
            return hashed
        user.password_hash = hashed.value
        self.storage.save()
        if self.revoke_sessions_on_password_change:
            self.sessions.clear(user_id)
        logger.info("password changed for user %s", user_id)
        return Ok(None)
