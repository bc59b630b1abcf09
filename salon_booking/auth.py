"""Bearer-token identity and role checks for HTTP handlers.

Tokens are issued by the account service; this module only reads them.
``issue_token`` is kept for scripts and tests that need a signed token.
"""
from __future__ import annotations

from functools import wraps

from flask import current_app, g, jsonify, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from .extensions import db
from .models import User

TOKEN_SALT = "auth-token"


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)


def issue_token(user: User) -> str:
    return _serializer().dumps({"user_id": user.user_id, "role": user.role})


def get_token_identity() -> int | None:
    """Extract the user_id from the Authorization header token.

    Returns None if the header is missing, or the token invalid or expired.
    """
    auth_header = request.headers.get("Authorization", "")

    if not auth_header.startswith("Bearer "):
        return None

    token = auth_header[7:]  # Remove "Bearer " prefix

    try:
        payload = _serializer().loads(token, max_age=current_app.config["AUTH_TOKEN_MAX_AGE"])
    except SignatureExpired:
        current_app.logger.info("Rejected expired auth token")
        return None
    except BadSignature:
        return None

    return payload.get("user_id") if isinstance(payload, dict) else None


def current_user() -> User | None:
    if "current_user" in g:
        return g.current_user

    user_id = get_token_identity()
    user = db.session.get(User, user_id) if user_id else None
    if user is not None and not user.is_active:
        user = None
    g.current_user = user
    return user


def roles_required(*roles: str):
    """Reject the request unless the caller is signed in (and holds a role).

    With no roles, any signed-in user passes.
    """

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            user = current_user()
            if user is None:
                return jsonify({"error": "unauthorized", "message": "Invalid or missing token"}), 401
            if roles and user.role not in roles:
                return (
                    jsonify({"error": "forbidden", "message": "You are not allowed to do this"}),
                    403,
                )
            return view(*args, **kwargs)

        return wrapper

    return decorator


login_required = roles_required()
staff_required = roles_required("PRO", "ADMIN")
admin_required = roles_required("ADMIN")


def is_staff(user: User | None) -> bool:
    return user is not None and user.role in ("PRO", "ADMIN")
