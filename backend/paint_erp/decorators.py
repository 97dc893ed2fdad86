# Overview: Request decorators for API routes.

from functools import wraps

from flask import g, request

from .responses import fail
from .services import session_service


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid bearer session token.

    Sets g.current_user to the authenticated User and g.auth_token to the
    raw token (logout revokes it).

    Returns 401 if the header is missing, or the token is invalid, expired,
    idle too long or belongs to a deactivated user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return fail("Authentication required", 401)

        user = session_service.validate_session(token)
        if not user:
            return fail("Invalid or expired token", 401)

        g.current_user = user
        g.auth_token = token
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """
    Restrict a route to users holding one of roles.

    Must be applied after @require_auth. Returns 403 otherwise.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = getattr(g, "current_user", None)
            if user is None or user.role not in roles:
                return fail("You do not have permission to perform this action", 403)
            return f(*args, **kwargs)

        return decorated_function

    return decorator
