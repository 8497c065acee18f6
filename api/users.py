"""
Users blueprint (mounted at /api/v1/users):
- POST  /register
- POST  /login
- POST  /logout               (authenticated)
- POST  /refresh-token
- GET   /current-user         (authenticated)
- POST  /change-password      (authenticated)
- PATCH /update-fullname      (authenticated)
- PATCH /update-avatar        (authenticated)
- PATCH /update-cover-image   (authenticated)
- GET   /channel/<username>   (authentication optional)

Session tokens are delivered twice: as httpOnly cookies for browsers and in
the JSON body for other clients.
"""
from __future__ import annotations

from flask import Blueprint, request, g, current_app
from marshmallow import ValidationError as SchemaValidationError

from api.errors import error_response, success_response
from models.schemas.user import (
    ChangePasswordSchema,
    LoginSchema,
    PublicProfileSchema,
    RefreshSchema,
    RegisterSchema,
    UpdateFullNameSchema,
    UserOutSchema,
)
from services import get_account_service
from utils.decorators import jwt_optional, jwt_required
from utils.security import ACCESS, ACCESS_COOKIE, REFRESH, REFRESH_COOKIE, get_token_issuer

bp = Blueprint("users", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_schema = RefreshSchema()
change_password_schema = ChangePasswordSchema()
update_full_name_schema = UpdateFullNameSchema()
user_out_schema = UserOutSchema()
public_profile_schema = PublicProfileSchema()


def _payload() -> dict:
    """JSON body, or form fields for multipart / urlencoded requests."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def _cookie_options() -> dict:
    return {"httponly": True, "secure": current_app.config["AUTH_COOKIE_SECURE"], "path": "/"}


def _session_response(grant, message: str):
    issuer = get_token_issuer()
    response, status = success_response(
        {
            "user": user_out_schema.dump(grant.user),
            "accessToken": grant.tokens.access_token,
            "refreshToken": grant.tokens.refresh_token,
        },
        message,
    )
    options = _cookie_options()
    response.set_cookie(ACCESS_COOKIE, grant.tokens.access_token, max_age=issuer.expires_in(ACCESS), **options)
    response.set_cookie(REFRESH_COOKIE, grant.tokens.refresh_token, max_age=issuer.expires_in(REFRESH), **options)
    return response, status


@bp.post("/register")
def register():
    """
    Register a new user.
    ---
    tags:
      - Users
    consumes:
      - multipart/form-data
    parameters:
      - { in: formData, name: username, type: string, required: true }
      - { in: formData, name: email, type: string, required: true }
      - { in: formData, name: fullName, type: string, required: true }
      - { in: formData, name: password, type: string, required: true }
      - { in: formData, name: avatar, type: file, required: true }
      - { in: formData, name: coverImage, type: file, required: false }
    responses:
      201:
        description: Created
      400:
        description: Validation error
      409:
        description: Username or email already registered
    """
    data = register_schema.load(_payload())
    result = get_account_service().register(
        data,
        avatar=request.files.get("avatar"),
        cover_image=request.files.get("coverImage"),
    )
    if not result.ok:
        return error_response(result.error)
    return success_response(user_out_schema.dump(result.value), "User registered successfully", 201)


@bp.post("/login")
def login():
    """
    Login with username or email: sets accessToken / refreshToken cookies and returns both tokens
    ---
    tags:
      - Users
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             username: { type: string }
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      401:
        description: Wrong password
      404:
        description: Unknown user
    """
    data = login_schema.load(_payload())
    result = get_account_service().login(data)
    if not result.ok:
        return error_response(result.error)
    return _session_response(result.value, "User logged in successfully")


@bp.post("/logout")
@jwt_required()
def logout():
    """
    Logout: forget the stored refresh token and clear both cookies
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    get_account_service().logout(g.current_user.id)
    response, status = success_response({}, "User logged out successfully")
    options = _cookie_options()
    response.delete_cookie(ACCESS_COOKIE, **options)
    response.delete_cookie(REFRESH_COOKIE, **options)
    return response, status


@bp.post("/refresh-token")
def refresh_token():
    """
    Exchange the current refresh token for a new token pair (rotation)
    ---
    tags:
      - Users
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refreshToken: { type: string }
    responses:
      200:
        description: OK (returns new tokens)
      401:
        description: Missing, invalid, expired or already used refresh token
    """
    token = request.cookies.get(REFRESH_COOKIE)
    if not token:
        try:
            token = refresh_schema.load(_payload()).get("refresh_token")
        except SchemaValidationError:
            # a refreshToken that is not a string counts as no token
            token = None
    result = get_account_service().refresh(token)
    if not result.ok:
        return error_response(result.error)
    return _session_response(result.value, "Access token refreshed")


@bp.get("/current-user")
@jwt_required()
def current_user():
    """
    Get the authenticated user
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return success_response(user_out_schema.dump(g.current_user), "Current user fetched successfully")


@bp.post("/change-password")
@jwt_required()
def change_password():
    """
    Change the password of the authenticated user
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             currentPassword: { type: string }
             newPassword: { type: string }
             retypeNewPassword: { type: string }
    responses:
      200:
        description: OK
      400:
        description: Validation error
      403:
        description: Current password is wrong
    """
    data = change_password_schema.load(_payload())
    result = get_account_service().change_password(g.current_user.id, data)
    if not result.ok:
        return error_response(result.error)
    return success_response({}, "Password updated")


@bp.patch("/update-fullname")
@jwt_required()
def update_full_name():
    """
    Update the full name of the authenticated user
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             fullName: { type: string }
    responses:
      200:
        description: OK
      400:
        description: Validation error
    """
    data = update_full_name_schema.load(_payload())
    result = get_account_service().update_full_name(g.current_user.id, data)
    if not result.ok:
        return error_response(result.error)
    return success_response(user_out_schema.dump(result.value), "Full name updated successfully")


@bp.patch("/update-avatar")
@jwt_required()
def update_avatar():
    """
    Replace the avatar of the authenticated user
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - multipart/form-data
    parameters:
      - { in: formData, name: avatar, type: file, required: true }
    responses:
      200:
        description: OK
      400:
        description: File missing
      500:
        description: Upload failed
    """
    result = get_account_service().update_avatar(g.current_user.id, request.files.get("avatar"))
    if not result.ok:
        return error_response(result.error)
    return success_response(user_out_schema.dump(result.value), "Avatar updated successfully")


@bp.patch("/update-cover-image")
@jwt_required()
def update_cover_image():
    """
    Replace the cover image of the authenticated user
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - multipart/form-data
    parameters:
      - { in: formData, name: coverImage, type: file, required: true }
    responses:
      200:
        description: OK
      400:
        description: File missing
      500:
        description: Upload failed
    """
    result = get_account_service().update_cover_image(g.current_user.id, request.files.get("coverImage"))
    if not result.ok:
        return error_response(result.error)
    return success_response(user_out_schema.dump(result.value), "Cover image updated successfully")


@bp.get("/channel/<username>")
@jwt_optional()
def channel_profile(username: str):
    """
    Public profile of a user; isOwner tells whether the caller is that user
    ---
    tags:
      - Users
    parameters:
      -  in: path
         name: username
         type: string
         required: true
    responses:
      200:
        description: OK
      404:
        description: Unknown user
    """
    result = get_account_service().public_profile(username, g.current_user)
    if not result.ok:
        return error_response(result.error)
    view = result.value
    data = public_profile_schema.dump(view.user)
    data["isOwner"] = view.is_owner
    return success_response(data, "User channel fetched successfully")
