from flask import g, request
from werkzeug.security import generate_password_hash, check_password_hash
from flask_jwt_extended import create_access_token

from . import bp
from ..errors import AuthError, ConflictError, ValidationError
from ..model import User
from ..extensions import db
from ..utils.api import ok
from ..utils.decorators import login_required

MIN_PASSWORD_LENGTH = 8


def _issue_token(user: User) -> str:
    return create_access_token(identity=str(user.id), additional_claims={"role": user.role})


@bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    name = (data.get("fullName") or data.get("name") or "").strip()

    if not email or "@" not in email:
        raise ValidationError("Invalid email address")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(name) < 2:
        raise ValidationError("Name must be at least 2 characters")
    if User.query.filter_by(email=email).first():
        raise ConflictError("Email already registered")

    # Bootstrap: very first account becomes admin
    is_first_user = db.session.query(User.id).count() == 0
    user = User(
        email=email,
        password_hash=generate_password_hash(password),
        name=name,
        role="admin" if is_first_user else "customer",
    )
    db.session.add(user)
    db.session.commit()

    return ok({"user": user.as_dict(), "token": _issue_token(user)}, status=201)


@bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    if not email or not password:
        raise ValidationError("Email and password are required")

    user = User.query.filter_by(email=email).first()
    if not user or not check_password_hash(user.password_hash, password):
        raise AuthError("Invalid email or password")

    return ok({"user": user.as_dict(), "token": _issue_token(user)})


@bp.get("/me")
@login_required
def me():
    return ok({"user": g.user.as_dict()})
