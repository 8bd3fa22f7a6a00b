"""
Terminal failures of the widget ingestion pipeline.

Each error carries the HTTP status it maps to and a stable, client-facing
``error`` string. Anything that is not an ``IngestError`` is treated as an
unexpected 500 by the widget blueprint.
"""


class IngestError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None, *, code: str | None = None, extra: dict | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.code = code
        self.extra = extra or {}

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.code:
            body["code"] = self.code
        body.update(self.extra)
        return body


# ---- 401 ----
class Unauthenticated(IngestError):
    status_code = 401
    message = "Project key is required"


class InvalidCredential(IngestError):
    status_code = 401
    message = "Invalid project key"


# ---- 403 ----
class TenantInactive(IngestError):
    status_code = 403
    message = "Project is not active"


class OriginNotAllowed(IngestError):
    status_code = 403
    message = "Domain not allowed"


# ---- 400 ----
class MalformedBody(IngestError):
    status_code = 400
    message = "Malformed request body"


class TooManyAttachments(IngestError):
    status_code = 400
    message = "Too many attachments"


class FileTooLarge(IngestError):
    status_code = 400
    message = "File too large"


class InvalidFileType(IngestError):
    status_code = 400
    message = "Invalid file type"


class ValidationError(IngestError):
    status_code = 400
    message = "Invalid submission"

    def __init__(self, field: str, message: str | None = None):
        super().__init__(message or f"{field} is invalid", extra={"field": field})
        self.field = field


# ---- 429 ----
class QuotaExceeded(IngestError):
    status_code = 429
    message = "Usage limit exceeded"


# ---- 500 ----
class StorageUnavailable(IngestError):
    status_code = 500
    message = "Failed to create feedback"
