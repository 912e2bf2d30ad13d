# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

ACTOR_HEADER = "X-Actor"


def require_actor(f):
    """
    Require an actor identity and expose it as g.actor.

    The identity string is supplied by the authentication layer in front of
    this service via the X-Actor header; it is recorded on every audit field.

    Returns 401 if the header is missing or blank.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        actor = (request.headers.get(ACTOR_HEADER) or "").strip()
        if not actor:
            return jsonify({"error": "Actor required", "code": "unauthenticated", "details": {}}), 401

        g.actor = actor[:128]
        return f(*args, **kwargs)

    return decorated_function
