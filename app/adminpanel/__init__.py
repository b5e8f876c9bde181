import logging
import os
from datetime import timedelta

from flask import Flask, g, jsonify, request, session
from dotenv import load_dotenv

from app.adminpanel.config import load_config
from app.adminpanel.db import init_db, teardown_db_session
from app.adminpanel.errors import AdminPanelError, PermissionDenied
from app.adminpanel.routes import bp as routes_bp
from app.adminpanel.auth import bp as auth_bp, load_current_user
from app.adminpanel.admin import bp as admin_bp
from app.adminpanel.modules.categories.admin import bp as categories_bp
from app.adminpanel.modules.settings.admin import bp as settings_bp

_UNGUARDED_PREFIXES = ("/static/", "/health", "/healthz")


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=8)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True
    app.json.sort_keys = False

    from app.adminpanel.security import SAFE_METHODS, ensure_csrf_token, validate_csrf

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(_UNGUARDED_PREFIXES):
            return None
        ensure_csrf_token()
        session.permanent = True
        if request.method not in SAFE_METHODS:
            # Login/logout establish the session the token lives in.
            if (request.endpoint or "").startswith("auth."):
                return None
            if not validate_csrf(request):
                return jsonify({"error": "CSRF token missing or invalid."}), 400
        return None

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)

    if hasattr(os, "register_at_fork"):
        def _after_fork_child():
            engine = app.extensions.get("sqlalchemy_engine")
            if engine:
                engine.dispose()
                app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

        os.register_at_fork(after_in_child=_after_fork_child)

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(admin_bp, url_prefix="/admin")
    app.register_blueprint(categories_bp, url_prefix="/admin/categories")
    app.register_blueprint(settings_bp, url_prefix="/admin/config")

    def _load_user_wrapper():
        if request.path.startswith(_UNGUARDED_PREFIXES):
            g.current_user = None
            return None
        return load_current_user()

    app.before_request(_load_user_wrapper)
    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(AdminPanelError)
    def _admin_error(e: AdminPanelError):  # type: ignore[no-redef]
        if isinstance(e, PermissionDenied):
            app.logger.warning(
                "Forbidden: path=%s missing_permission=%s request_id=%s",
                request.path,
                getattr(g, "missing_permission", None),
                getattr(g, "request_id", None),
            )
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return jsonify({"error": "Internal server error."}), 500

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        return jsonify({"error": "Not found."}), 404

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
