import os

from dotenv import dotenv_values


def _env_bool(name: str, default: str) -> bool:
    return (os.getenv(name, default) or default).lower() == "true"


class BaseConfig:
    # Secrets (env in prod; dev/test may use defaults)
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-not-secure")
    APP_ENV = os.environ.get("APP_ENV", "development")

    # Database (env in prod; dev/test may use default)
    _ENV_FALLBACK = dotenv_values(".env")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL") or _ENV_FALLBACK.get("DATABASE_URL") or "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Logging / misc
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Flask-Limiter default: off globally; the widget endpoint sets its own limit
    RATELIMIT_DEFAULT = None
    # Per client address, whatever key it presents
    WIDGET_RATE_LIMIT = os.getenv("WIDGET_RATE_LIMIT", "60 per minute")
    # Per project key (hashed), shared by every client of that project
    WIDGET_PROJECT_RATE_LIMIT = os.getenv("WIDGET_PROJECT_RATE_LIMIT", "600 per minute")

    # --- Widget ingestion ---
    MEDIA_MAX_FILE_BYTES = int(os.getenv("MEDIA_MAX_FILE_BYTES", str(10 * 1024 * 1024)))
    MEDIA_MAX_ATTACHMENTS = int(os.getenv("MEDIA_MAX_ATTACHMENTS", "5"))
    MEDIA_ALLOWED_TYPES = {
        "screenshot": ["image/png", "image/jpeg", "image/jpg", "image/gif", "image/webp"],
        "voice": ["audio/webm", "audio/mp4", "audio/ogg", "audio/wav", "audio/mpeg"],
        "video": ["video/mp4", "video/webm", "video/ogg"],
    }
    MEDIA_URL_TTL_SECONDS = int(os.getenv("MEDIA_URL_TTL_SECONDS", "3600"))
    # Whole request must fit every attachment at the ceiling plus the JSON part
    MAX_CONTENT_LENGTH = MEDIA_MAX_ATTACHMENTS * MEDIA_MAX_FILE_BYTES + 1024 * 1024

    FEEDBACK_DEFAULT_TYPE = os.getenv("FEEDBACK_DEFAULT_TYPE", "other")
    FEEDBACK_MAX_DESCRIPTION = int(os.getenv("FEEDBACK_MAX_DESCRIPTION", "10000"))

    # 500 responses include exception text only outside production
    EXPOSE_ERROR_DETAILS = _env_bool("EXPOSE_ERROR_DETAILS", "true")

    # --- Object storage (MinIO / S3-compatible) ---
    MINIO_ENDPOINT = os.getenv("MINIO_ENDPOINT", "localhost:9000")
    MINIO_ACCESS_KEY = os.getenv("MINIO_ACCESS_KEY", "minioadmin")
    MINIO_SECRET_KEY = os.getenv("MINIO_SECRET_KEY", "minioadmin")
    MINIO_SECURE = _env_bool("MINIO_SECURE", "false")
    MINIO_BUCKET_NAME = os.getenv("MINIO_BUCKET_NAME", "feedback-media")
    # Optional CDN/base in front of the bucket; defaults to the MinIO endpoint
    MEDIA_PUBLIC_BASE_URL = os.getenv("MEDIA_PUBLIC_BASE_URL", "")

    # --- Notifications ---
    NOTIFY_WEBHOOK_URL = os.getenv("NOTIFY_WEBHOOK_URL", "")
    NOTIFY_WEBHOOK_TOKEN = os.getenv("NOTIFY_WEBHOOK_TOKEN", "")
    NOTIFY_TIMEOUT_SECONDS = float(os.getenv("NOTIFY_TIMEOUT_SECONDS", "5"))
    NOTIFY_ASYNC = _env_bool("NOTIFY_ASYNC", "true")
    NOTIFY_MAX_WORKERS = int(os.getenv("NOTIFY_MAX_WORKERS", "4"))

    # --- Mail ---
    MAIL_SERVER = os.getenv("MAIL_SERVER", "localhost")
    MAIL_PORT = int(os.getenv("MAIL_PORT", "587"))
    MAIL_USE_TLS = _env_bool("MAIL_USE_TLS", "true")
    MAIL_USE_SSL = _env_bool("MAIL_USE_SSL", "false")
    MAIL_USERNAME = os.getenv("MAIL_USERNAME")
    MAIL_PASSWORD = os.getenv("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = os.getenv("MAIL_DEFAULT_SENDER", "VibeQA <notifications@local.test>")
    MAIL_SUPPRESS_SEND = _env_bool("MAIL_SUPPRESS_SEND", "false")

    # Used for dashboard links in notification emails
    APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:5173")


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG")
    MAIL_SUPPRESS_SEND = True


class ProductionConfig(BaseConfig):
    DEBUG = False
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "WARNING")
    # Presence is enforced in create_app(), not at import time
    SECRET_KEY = os.environ.get("SECRET_KEY")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL")
    EXPOSE_ERROR_DETAILS = _env_bool("EXPOSE_ERROR_DETAILS", "false")
    MINIO_SECURE = _env_bool("MINIO_SECURE", "true")
    MAIL_SUPPRESS_SEND = False


class TestingConfig(BaseConfig):
    TESTING = True
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get("TEST_DATABASE_URL", "sqlite:///:memory:")
    NOTIFY_ASYNC = False
    MAIL_SUPPRESS_SEND = True


_ENV_MAP = {
    "development": DevelopmentConfig,
    "staging": ProductionConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}


def get_config():
    env = os.environ.get("APP_ENV", "development").lower()
    return _ENV_MAP.get(env, DevelopmentConfig)
