import hashlib

from flask import request
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_mail import Mail

from vibeqa.services.storage import MediaStore
from vibeqa.services.background import BackgroundDispatcher

db = SQLAlchemy()
migrate = Migrate()


# Per-project bucket: a digest of the presented key, never the key itself.
# Unverified keys still count against the client-address bucket first.
def project_rate_limit_key():
    project_key = (request.headers.get("X-Project-Key") or "").strip()
    if not project_key:
        return f"client:{get_remote_address()}"
    digest = hashlib.sha256(project_key.encode("utf-8")).hexdigest()[:32]
    return f"project:{digest}"


# Storage is configured in create_app() via limiter.init_app(...).
limiter = Limiter(key_func=get_remote_address)

mail = Mail()

# Object store for feedback media (MinIO / S3-compatible)
media_store = MediaStore()

# Fire-and-forget notification fan-out (thread pool, app-context aware)
background = BackgroundDispatcher()
