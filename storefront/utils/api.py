# --- storefront/utils/api.py ---
from datetime import datetime, timezone
from flask import jsonify, request

from ..errors import ValidationError

def ok(data=None, status=200):
    r = jsonify(data if data is not None else {})
    r.status_code = status
    return r

def err(message, status=400, data=None):
    r = jsonify({"error": message, **(data or {})})
    r.status_code = status
    return r

def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("JSON object body required")
    return data

# ---- parsing helpers -------------------------------------------------------

def utcnow() -> datetime:
    """Naive UTC, matching how timestamps are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)

def parse_iso8601(s):
    if not s:
        return None
    s = str(s).strip()
    # support trailing 'Z' (UTC)
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    if dt.tzinfo:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)  # store naive UTC
    return dt

def parse_int(v, default=0):
    try:
        return int(v)
    except (TypeError, ValueError):
        return default

def parse_opt_int(v):
    if v is None:
        return None
    if isinstance(v, str) and v.strip().lower() in {"", "null"}:
        return None
    try:
        return int(v)
    except (TypeError, ValueError):
        return None

def parse_bool(v, default=False):
    if v is None:
        return default
    if isinstance(v, bool):
        return v
    return str(v).strip().lower() in {"1", "true", "yes", "y", "on"}

def require_cents(value, field: str, *, allow_none=False) -> int | None:
    """Coerce a non-negative integer amount of cents or raise ValidationError."""
    if value is None or value == "":
        if allow_none:
            return None
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer number of cents")
    try:
        cents = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer number of cents")
    if cents != value and not isinstance(value, str):
        raise ValidationError(f"{field} must be an integer number of cents")
    if cents < 0:
        raise ValidationError(f"{field} must be >= 0")
    return cents

def paginate(query, page, per_page):
    page = max(parse_int(page, 1), 1)
    per_page = min(max(parse_int(per_page, 20), 1), 100)
    items = query.paginate(page=page, per_page=per_page, error_out=False)
    return {
        "meta": {
            "page": items.page,
            "pages": items.pages or 1,
            "per_page": per_page,
            "total": items.total,
        },
        "items": items.items,
    }
