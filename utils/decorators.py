"""
Request authentication.

Authentication runs as an ordered list of stages over a RequestContext.
Each stage returns Ok(context) to hand over to the next one, or Err(error)
to stop the chain:

    extract_token -> verify_token -> resolve_identity

jwt_required() turns an Err into a 401 envelope; jwt_optional() ignores it
and lets the view run with g.current_user = None.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import wraps
from typing import Any, Callable, Sequence

from flask import request, g
from sqlalchemy.orm import defer

from api.errors import UnauthorizedError, error_response
from models import get_storage
from models.user import User
from utils.result import Ok, Err, Result
from utils.security import ACCESS_COOKIE, TokenError, get_token_issuer

logger = logging.getLogger(__name__)

INVALID_TOKEN_MESSAGE = "Invalid or expired access token"


@dataclass
class RequestContext:
    token: str | None = None
    claims: dict[str, Any] = field(default_factory=dict)
    user: User | None = None


Stage = Callable[[RequestContext], Result]


def extract_token(ctx: RequestContext) -> Result:
    """Cookie first, then the Authorization header."""
    token = request.cookies.get(ACCESS_COOKIE)
    if not token:
        auth = request.headers.get("Authorization", "")
        if auth.startswith("Bearer "):
            token = auth.split(" ", 1)[1].strip()
    if not token:
        return Err(UnauthorizedError("Unauthorized request"))
    ctx.token = token
    return Ok(ctx)


def verify_token(ctx: RequestContext) -> Result:
    try:
        ctx.claims = get_token_issuer().decode_access_token(ctx.token)
    except TokenError as exc:
        # reason stays in the log; clients get one generic message
        logger.info("rejected access token: %s", exc)
        return Err(UnauthorizedError(INVALID_TOKEN_MESSAGE))
    return Ok(ctx)


def resolve_identity(ctx: RequestContext) -> Result:
    session = get_storage().get_session()
    user = (
        session.query(User)
        .options(defer(User.password_hash), defer(User.refresh_token))
        .filter(User.id == ctx.claims.get("sub"))
        .first()
    )
    if user is None:
        logger.info("access token for unknown user %s", ctx.claims.get("sub"))
        return Err(UnauthorizedError(INVALID_TOKEN_MESSAGE))
    ctx.user = user
    return Ok(ctx)


AUTH_STAGES: Sequence[Stage] = (extract_token, verify_token, resolve_identity)


def authenticate(stages: Sequence[Stage] = AUTH_STAGES) -> Result:
    result: Result = Ok(RequestContext())
    for stage in stages:
        result = stage(result.value)
        if not result.ok:
            return result
    return result


def _attach(ctx: RequestContext | None) -> None:
    g.current_user = ctx.user if ctx else None


def jwt_required():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            result = authenticate()
            if not result.ok:
                return error_response(result.error)
            _attach(result.value)
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def jwt_optional():
    """Same checks as jwt_required, but an anonymous caller is let through."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            result = authenticate()
            _attach(result.value if result.ok else None)
            return fn(*args, **kwargs)

        return wrapper

    return decorator
