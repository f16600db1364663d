"""Middleware that resolves the logged-in user through an ``AuthManager``.

Both read the login token from the session key ``auth_token`` and, when
it maps to a user, store ``user`` and ``user_id`` in the context.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from smallapi.auth import AUTH_TOKEN_KEY, AuthManager

if TYPE_CHECKING:
    from smallapi._internal.types import MiddlewareFunc
    from smallapi.context import Context


def auth(manager: AuthManager) -> MiddlewareFunc:
    """Attach the user when logged in; always continue."""

    def attach_user(ctx: Context) -> bool:
        token = ctx.session.get(AUTH_TOKEN_KEY)
        if token is None:
            return True
        user = manager.get_user(token)
        if user is not None:
            ctx.set("user", user)
            ctx.set("user_id", user.id)
        return True

    return attach_user


def require_user(manager: AuthManager) -> MiddlewareFunc:
    """Stop with 401 unless the session carries a valid login token."""

    def check_user(ctx: Context) -> bool:
        token = ctx.session.get(AUTH_TOKEN_KEY)
        if token is None:
            ctx.status(401).json({"error": "Authentication required"})
            return False
        user = manager.get_user(token)
        if user is None:
            ctx.status(401).json({"error": "Invalid session"})
            return False
        ctx.set("user", user)
        ctx.set("user_id", user.id)
        return True

    return check_user
