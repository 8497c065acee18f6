"""
Request and response shapes for the users endpoints.

Input schemas load into one dataclass per endpoint; every field is Optional
there and presence is checked by the service layer, so a missing field
produces the same ValidationError envelope as a malformed one.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from marshmallow import Schema, fields, pre_load, post_load, EXCLUDE


def _strip(v):
    return v.strip() if isinstance(v, str) else v


@dataclass
class RegisterInput:
    username: Optional[str] = None
    email: Optional[str] = None
    full_name: Optional[str] = None
    password: Optional[str] = None


@dataclass
class LoginInput:
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


@dataclass
class ChangePasswordInput:
    current_password: Optional[str] = None
    new_password: Optional[str] = None
    retype_new_password: Optional[str] = None


@dataclass
class UpdateFullNameInput:
    full_name: Optional[str] = None


class _InputSchema(Schema):
    class Meta:
        unknown = EXCLUDE


class RegisterSchema(_InputSchema):
    username = fields.String(allow_none=True)
    email = fields.String(allow_none=True)
    full_name = fields.String(data_key="fullName", allow_none=True)
    password = fields.String(allow_none=True, load_only=True)

    @pre_load
    def normalize(self, data, **kwargs):
        data = dict(data)
        for key in ("username", "email", "fullName"):
            if key in data:
                data[key] = _strip(data[key])
        return data

    @post_load
    def make_input(self, data, **kwargs):
        return RegisterInput(**data)


class LoginSchema(_InputSchema):
    username = fields.String(allow_none=True)
    email = fields.String(allow_none=True)
    password = fields.String(allow_none=True, load_only=True)

    @post_load
    def make_input(self, data, **kwargs):
        return LoginInput(**data)


class RefreshSchema(_InputSchema):
    refresh_token = fields.String(data_key="refreshToken", allow_none=True)


class ChangePasswordSchema(_InputSchema):
    current_password = fields.String(data_key="currentPassword", allow_none=True)
    new_password = fields.String(data_key="newPassword", allow_none=True)
    retype_new_password = fields.String(data_key="retypeNewPassword", allow_none=True)

    @post_load
    def make_input(self, data, **kwargs):
        return ChangePasswordInput(**data)


class UpdateFullNameSchema(_InputSchema):
    full_name = fields.String(data_key="fullName", allow_none=True)

    @post_load
    def make_input(self, data, **kwargs):
        return UpdateFullNameInput(**data)


class UserOutSchema(Schema):
    """Sanitized view of a user: never exposes the password hash or refresh token."""
    id = fields.String()
    username = fields.String()
    email = fields.String()
    full_name = fields.String(data_key="fullName")
    avatar = fields.String()
    cover_image = fields.String(data_key="coverImage")
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")


class PublicProfileSchema(Schema):
    username = fields.String()
    full_name = fields.String(data_key="fullName")
    avatar = fields.String()
    cover_image = fields.String(data_key="coverImage")
