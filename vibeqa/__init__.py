import os
from flask import Flask, request, jsonify

# Load .env only for local/dev. In prod, env vars come from the platform.
if os.getenv("APP_ENV", "development") != "production":
    from dotenv import load_dotenv
    load_dotenv(".env", override=False)


from .config import get_config
from .extensions import db, migrate, limiter, mail, media_store, background
from .security import init_security
from .observability import init_logging, init_sentry


def create_app(config_overrides: dict | None = None):
    app = Flask(__name__, template_folder="templates")

    # ---- Rate limiting storage configuration ----
    app_env = (os.getenv("APP_ENV", "development") or "development").lower()
    use_redis = app_env in ("staging", "production")
    storage_uri = os.environ.get("REDIS_URL") if use_redis else "memory://"
    if use_redis and not storage_uri:
        # Hard fail in stage/prod so we never silently run without RL storage
        raise RuntimeError("REDIS_URL is required in staging/production for rate limiting")
    app.config["RATELIMIT_STORAGE_URI"] = storage_uri
    app.config.setdefault("RATELIMIT_HEADERS_ENABLED", True)

    # Config: clean, explicit, class-based
    app.config.from_object(get_config())
    if config_overrides:
        app.config.update(config_overrides)

    # --- Required env validation for prod-like envs (staging/production) ---
    def _require(name: str):
        val = os.getenv(name) or app.config.get(name)
        if not val:
            raise RuntimeError(f"Missing required environment variable: {name}")
        return val

    if app_env in ("staging", "production"):
        # Enforce hard requirements at startup (not at import time)
        _require("SECRET_KEY")
        _require("DATABASE_URL")
        _require("MINIO_ENDPOINT")

    # --- Observability & Security ---
    init_logging(app)
    init_sentry(app)
    if app_env in ("staging", "production"):
        init_security(app)

    # Init extensions
    db.init_app(app)
    migrate.init_app(app, db, directory="migrations")
    limiter.init_app(app)
    mail.init_app(app)
    media_store.init_app(app)
    background.init_app(app)

    # Make sure every model is registered on the metadata (migrations, create_all)
    from . import models  # noqa: F401

    from .blueprints.widget import bp as widget_bp
    app.register_blueprint(widget_bp, url_prefix="/api/widget")

    @limiter.exempt
    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}, 200

    # Error handlers: the only clients are widgets and scripts, so always JSON
    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(413)
    def payload_too_large(e):
        limit = app.config.get("MAX_CONTENT_LENGTH")
        return jsonify({"error": "Request body too large", "limit_bytes": limit}), 413

    # 429 Too Many Requests, with Retry-After when the limiter knows it
    @app.errorhandler(429)
    def too_many_requests(e):
        retry_after = getattr(e, "retry_after", None)
        headers = {}
        payload = {"error": "Too many requests", "code": "RATE_LIMITED"}
        if retry_after is not None:
            headers["Retry-After"] = str(int(retry_after))
            payload["retry_after"] = int(retry_after)
        return payload, 429, headers

    @app.errorhandler(500)
    def server_error(e):
        app.logger.error("unhandled_error path=%s", request.path)
        return jsonify({"error": "Internal server error"}), 500

    # CLI commands (tenant seeding / key ops)
    from .cli import register_cli
    register_cli(app)

    return app
