# Overview: JSON envelope helpers shared by every route.

"""
Every response body is {success, data?, message?, error?}; list endpoints
may add pagination. Non-2xx bodies always carry success=false and a message.
"""

import traceback

from flask import current_app, jsonify


def ok(data=None, message: str | None = None, status: int = 200, **extra):
    body = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    body.update(extra)
    return jsonify(body), status


def fail(message: str, status: int = 400, error: str | None = None, **extra):
    body = {"success": False, "message": message}
    if error:
        body["error"] = error
    body.update(extra)
    return jsonify(body), status


def internal_error(exc: Exception, action: str):
    """Log an unexpected failure and render a 500 envelope."""
    current_app.logger.exception("Failed to %s", action)
    extra = {}
    if current_app.config.get("ENV") != "production":
        extra["stack"] = traceback.format_exc()
    return fail("Internal server error", 500, error=str(exc), **extra)
