"""
Current-identity resolution.

Routes never decide where the user id comes from; they ask the resolver
registered on the app. The default resolver reads ``userId`` from the query
string or JSON body and falls back to ``DEFAULT_USER_ID``.
"""
from flask import current_app, request

from .errors import ValidationError


class StaticIdentityResolver:
    """Always resolves to the same user (tests, single-user installs)."""

    def __init__(self, user_id: str):
        self.user_id = user_id

    def resolve(self, payload: dict | None = None, use_fallback: bool = True) -> str | None:
        return self.user_id


class RequestIdentityResolver:
    def __init__(self, fallback: str | None = None):
        self.fallback = fallback

    def resolve(self, payload: dict | None = None, use_fallback: bool = True) -> str | None:
        user_id = (payload or {}).get("userId") or request.args.get("userId")
        if user_id or not use_fallback:
            return user_id
        return self.fallback


def current_user_id(payload: dict | None = None, required: bool = False) -> str:
    """Resolve the caller's user id; ``required`` refuses the fallback identity."""
    resolver = current_app.extensions["identity_resolver"]
    user_id = resolver.resolve(payload, use_fallback=not required)
    if not user_id:
        raise ValidationError("userId is required" if required else "User ID is required")
    return user_id
