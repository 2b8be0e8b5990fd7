from flask import Blueprint

bp = Blueprint("admin", __name__, url_prefix="/api/admin")

from . import catalog, coupons, shipping, orders, customers, reports  # noqa: E402,F401
