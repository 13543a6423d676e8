from __future__ import annotations
import logging
from functools import wraps
from flask import request, g
from devdocs.api.errors import Unauthenticated
from devdocs.utils.security import verify_access, TokenError

logger = logging.getLogger(__name__)


def jwt_required():
    """
    Stateless Bearer check for protected routes: signature and expiry only,
    no database access. On success the caller's id is available as g.user_id.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            auth = request.headers.get("Authorization", "")
            token = auth[7:].strip() if auth.startswith("Bearer ") else ""
            if not token:
                raise Unauthenticated("No token")
            try:
                decoded = verify_access(token)
            except TokenError as e:
                logger.info("rejected access token on %s: %s", request.path, e)
                raise Unauthenticated("Invalid token")

            g.user_id = decoded["id"]
            return fn(*args, **kwargs)

        return wrapper

    return decorator
