# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/paint_erp/routes/auth.py
"""
Authentication API routes

- POST /register creates a staff account and signs it in
- POST /login exchanges email + password for a bearer token
- POST /logout revokes the caller's token
- GET  /me returns the authenticated user
"""

from flask import Blueprint, current_app, g, request

from ..decorators import require_auth
from ..responses import fail, internal_error, ok
from ..services import auth_service, session_service
from ..validation import ConflictError, ValidationError
from paint_erp.time_utils import to_utc_z

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(user, token: str, session) -> dict:
    return {
        "user": user.to_dict(),
        "token": token,
        "expiresAt": to_utc_z(session.expires_at),
    }


@auth_bp.post("/register")
def register_route():
    """
    Self-registration for shop staff.

    New accounts always get the staff role; super_admin accounts are created
    from the CLI (flask users create --role super_admin).
    """
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.create_user(
            name=data.get("name"),
            email=data.get("email"),
            password=data.get("password"),
            role="staff",
        )
        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
    except (ValidationError, ConflictError) as e:
        return fail(str(e), 400)
    except Exception as e:
        return internal_error(e, "register user")

    current_app.logger.info("Registered user %s", user.id)
    return ok(_session_payload(user, token, session), message="User registered successfully", status=201)


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in the Authorization header for protected routes.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not email or not password:
        return fail("Email and password are required", 400)

    try:
        user = auth_service.authenticate(email, password)
        if not user:
            current_app.logger.warning("Failed login for %s", str(email).strip().lower())
            return fail("Invalid credentials", 401)

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
    except Exception as e:
        return internal_error(e, "log in")

    return ok(_session_payload(user, token, session), message="Login successful")


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.auth_token)
    return ok(message="Logged out successfully")


@auth_bp.get("/me")
@require_auth
def me_route():
    return ok(g.current_user.to_dict())
