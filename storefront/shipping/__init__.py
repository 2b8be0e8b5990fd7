from flask import Blueprint

bp = Blueprint("shipping", __name__, url_prefix="/api/shipping")

from . import routes  # noqa: E402,F401
