from functools import wraps

from flask import abort, g
from flask_login import current_user

from permissions.check import principal_for


def current_principal():
    """Principal for the logged-in user, cached on flask.g for the request."""
    principal = getattr(g, "principal", None)
    if principal is None:
        if not getattr(current_user, "is_authenticated", False):
            abort(401)
        try:
            principal = principal_for(current_user)
        except ValueError:
            abort(403)
        g.principal = principal
    return principal


def principal_required(capability=None):
    """Gate a view on authentication and, optionally, a zero-arg capability.

    @principal_required("can_send_reminders")
    """

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            principal = current_principal()
            if capability and not getattr(principal, capability)():
                abort(403)
            return fn(*args, **kwargs)
        return wrapper
    return decorator
