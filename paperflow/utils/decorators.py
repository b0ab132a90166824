from functools import wraps
from flask import g, session, abort

def login_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        if "user_id" not in session or g.get("user") is None:
            abort(401)
        return view(*args, **kwargs)
    return wrapped


def role_required(*roles):
    """
    Checks the role of the user loaded from the database for this request,
    not the copy kept in the session cookie.
    """
    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            user = g.get("user")
            if user is None:
                abort(401)

            if user.role not in roles:
                abort(403)

            return view(*args, **kwargs)
        return wrapped
    return decorator
