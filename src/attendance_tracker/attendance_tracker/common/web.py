from __future__ import annotations

import logging
from datetime import date, datetime
from functools import wraps

from flask import Flask, g, jsonify, request
from flask.json.provider import DefaultJSONProvider

from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    StoreError,
    UnsavedChangesError,
    ValidationError,
)
from ..users.identity import SessionIdentityProvider

logger = logging.getLogger(__name__)

identity = SessionIdentityProvider()


class IsoJSONProvider(DefaultJSONProvider):
    """Serialize dates as ISO-8601 instead of Flask's HTTP-date format."""

    @staticmethod
    def default(o):
        if isinstance(o, (datetime, date)):
            return o.isoformat()
        return DefaultJSONProvider.default(o)


def json_error(message: str, status: int, **extra):
    payload = {"error": message}
    payload.update(extra)
    return jsonify(payload), status


def domain_error_response(exc: DomainError):
    if isinstance(exc, UnsavedChangesError):
        return json_error(str(exc), 409, confirm_required=True, pending_count=exc.pending_count)
    if isinstance(exc, ConflictError):
        return json_error(str(exc), 409)
    if isinstance(exc, StoreError):
        # transient backing-store failure; the client may retry
        return json_error(str(exc), 502, retry=True)
    if isinstance(exc, NotFoundError):
        return json_error(str(exc), 404)
    if isinstance(exc, AuthenticationError):
        return json_error(str(exc), 401)
    if isinstance(exc, AuthorizationError):
        return json_error(str(exc), 403)
    if isinstance(exc, ValidationError):
        return json_error(str(exc), 400)
    return json_error(str(exc), 400)


def query_error_response(query, what: str):
    if isinstance(query.error, DomainError) and not isinstance(query.error, StoreError):
        return domain_error_response(query.error)
    logger.warning("could not load %s: %s", what, query.error)
    return json_error(f"Could not load {what}", 502, retry=True)


def unexpected_error(app: Flask, exc: Exception, what: str):
    logger.exception("unexpected error while %s", what)
    if bool(app.config.get("DEBUG", False)):
        return json_error(f"Internal error while {what}: {exc}", 500)
    return json_error(f"Internal error while {what}", 500)


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        user_id = identity.current_user_id()
        if not user_id:
            return json_error("Please sign in to continue", 401)
        g.user_id = user_id
        return view(*args, **kwargs)

    return wrapper


def request_json() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def flag(value) -> bool:
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}
