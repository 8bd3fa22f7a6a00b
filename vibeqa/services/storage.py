"""Object storage for feedback media (MinIO / any S3-compatible endpoint)."""

import logging
from datetime import timedelta
from io import BytesIO

from minio import Minio
from minio.error import S3Error

logger = logging.getLogger(__name__)


class MediaStore:

    def __init__(self, app=None):
        self._client = None
        self.bucket = None
        self.endpoint = None
        self.secure = False
        self.public_base_url = ""
        self._settings = {}
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        cfg = app.config
        self.bucket = cfg["MINIO_BUCKET_NAME"]
        self.endpoint = cfg["MINIO_ENDPOINT"]
        self.secure = bool(cfg.get("MINIO_SECURE"))
        self.public_base_url = (cfg.get("MEDIA_PUBLIC_BASE_URL") or "").rstrip("/")
        self._settings = {
            "endpoint": self.endpoint,
            "access_key": cfg.get("MINIO_ACCESS_KEY"),
            "secret_key": cfg.get("MINIO_SECRET_KEY"),
            "secure": self.secure,
        }
        # Client is built lazily so app start never depends on the store being up
        self._client = None
        app.extensions["media_store"] = self

    @property
    def client(self) -> Minio:
        if self._client is None:
            self._client = Minio(**self._settings)
            self._ensure_bucket_exists()
        return self._client

    def _ensure_bucket_exists(self):
        try:
            if not self._client.bucket_exists(self.bucket):
                self._client.make_bucket(self.bucket)
        except S3Error as exc:
            # Another worker may have created it first
            logger.info("bucket_check_skipped", extra={"event": "bucket_check_skipped", "bucket": self.bucket, "code": exc.code})

    def upload(self, key: str, data: bytes, content_type: str) -> None:
        """Put ``data`` under ``key`` in the media bucket."""
        self.client.put_object(
            bucket_name=self.bucket,
            object_name=key,
            data=BytesIO(data),
            length=len(data),
            content_type=content_type,
        )

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        protocol = "https" if self.secure else "http"
        return f"{protocol}://{self.endpoint}/{self.bucket}/{key}"

    def url_for(self, key: str, ttl_seconds: int = 0) -> str:
        """Signed GET URL when ``ttl_seconds`` > 0, falling back to the public URL."""
        if ttl_seconds <= 0:
            return self.public_url(key)
        try:
            return self.client.presigned_get_object(
                bucket_name=self.bucket,
                object_name=key,
                expires=timedelta(seconds=ttl_seconds),
            )
        except Exception as exc:
            logger.warning("signed_url_failed", extra={"event": "signed_url_failed", "key": key, "error": str(exc)})
            return self.public_url(key)
