# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .validation import ValidationError


def require_actor(f):
    """
    Require an acting-user id and expose it to the service layer.

    Sets g.actor_id from the header named by ACTOR_HEADER (default
    X-Actor-Id). The id is recorded in audit columns as given; verifying who
    the caller is happens upstream.

    Returns 401 if the header is missing or blank.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        header = current_app.config.get("ACTOR_HEADER", "X-Actor-Id")
        actor_id = (request.headers.get(header) or "").strip()

        if not actor_id:
            return jsonify({"error": f"{header} header required"}), 401

        g.actor_id = actor_id[:64]
        return f(*args, **kwargs)

    return decorated_function


def parse_include_deleted() -> bool:
    """?include_deleted=true|1|yes"""
    raw = (request.args.get("include_deleted") or "").strip().lower()
    return raw in ("1", "true", "yes")


def parse_expected_version(payload: dict | None = None) -> int | None:
    """
    Caller's previously read row_version.

    Taken from the If-Match header or a "row_version" key in the JSON body.
    """
    raw = request.headers.get("If-Match")
    if raw is None and payload is not None:
        raw = payload.get("row_version")
    if raw is None or raw == "":
        return None
    try:
        return int(str(raw).strip('"'))
    except ValueError:
        raise ValidationError("row_version must be an integer")
