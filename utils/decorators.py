from __future__ import annotations
from functools import wraps
from flask import request, g, abort, current_app

from utils.datetime_utils import now_utc, from_timestamp
from utils.security import TokenValidationError


def jwt_required():
    """
    Require a valid, unexpired access token in the Authorization header.
    The principal is attached to g.current_user.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            auth = request.headers.get("Authorization", "")
            if not auth.startswith("Bearer "):
                abort(401, description="Missing or invalid Authorization header")
            token = auth.split(" ", 1)[1].strip()

            signer = current_app.extensions["signer"]
            try:
                decoded = signer.validate(token)
            except TokenValidationError:
                abort(401, description="Invalid token")
            # the signer ignores expiry, so check it here
            try:
                expires_at = from_timestamp(decoded["exp"])
            except (TypeError, ValueError, OverflowError):
                abort(401, description="Invalid token")
            if expires_at <= now_utc():
                abort(401, description="Token expired")

            identity = current_app.extensions["identity_store"]
            user = identity.find_by_id(decoded.get("Id", ""))
            if not user:
                abort(401, description="User not found")
            g.current_user = user
            return fn(*args, **kwargs)

        return wrapper

    return decorator
