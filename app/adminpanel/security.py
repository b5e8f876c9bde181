import hmac
import secrets

from flask import Request, session

SAFE_METHODS = ("GET", "HEAD", "OPTIONS")


def ensure_csrf_token() -> str:
    """Ensure an anti-forgery token exists in the session and return it."""
    token = session.get("csrf_token")
    if not token:
        token = secrets.token_urlsafe(32)
        session["csrf_token"] = token
    return token


def submitted_csrf_token(req: Request) -> str | None:
    """Token from the X-CSRF-Token header, a form field, or a JSON body."""
    token = req.headers.get("X-CSRF-Token") or req.form.get("csrf_token")
    if not token and req.is_json:
        body = req.get_json(silent=True)
        if isinstance(body, dict):
            token = body.get("csrf_token")
    return token or None


def validate_csrf(req: Request) -> bool:
    expected = session.get("csrf_token")
    token = submitted_csrf_token(req)
    if not token or not expected:
        return False
    return hmac.compare_digest(str(token), str(expected))
