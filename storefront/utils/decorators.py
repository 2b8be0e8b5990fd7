# ------- storefront/utils/decorators.py -------
from functools import wraps
from flask import g
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from ..errors import AuthError
from ..extensions import db
from ..model.user import User

def current_user(optional: bool = False) -> User | None:
    verify_jwt_in_request(optional=optional)
    uid = get_jwt_identity()
    try:
        uid = int(uid)
    except (TypeError, ValueError):
        uid = None
    return db.session.get(User, uid) if uid else None

def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        u = current_user()
        if not u:
            raise AuthError("Unauthorized")
        g.user = u
        return fn(*args, **kwargs)
    return wrapper

def role_required(*roles, message: str | None = None):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            u = current_user()
            if not u:
                raise AuthError("Unauthorized")
            if u.role not in roles:
                raise AuthError(message or "Forbidden", forbidden=True)
            g.user = u
            return fn(*args, **kwargs)
        return wrapper
    return decorator

admin_required = role_required("admin")
