from datetime import datetime, timezone

from sqlalchemy import func

from vibeqa.extensions import db
from vibeqa.models import Org, Project, Feedback, MediaAttachment
from vibeqa.errors import QuotaExceeded

_MB = 1024 * 1024
_GB = 1024 * _MB


def _month_start(now: datetime | None = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def monthly_feedback_count(org_id: int, now: datetime | None = None) -> int:
    return (
        db.session.query(func.count(Feedback.id))
        .join(Project, Project.id == Feedback.project_id)
        .filter(Project.org_id == org_id)
        .filter(Feedback.created_at >= _month_start(now))
        .scalar()
    ) or 0


def storage_used_bytes(org_id: int) -> int:
    return (
        db.session.query(func.coalesce(func.sum(MediaAttachment.file_size), 0))
        .join(Feedback, Feedback.id == MediaAttachment.feedback_id)
        .join(Project, Project.id == Feedback.project_id)
        .filter(Project.org_id == org_id)
        .scalar()
    ) or 0


def check_quotas(org: Org | None, incoming_bytes: int = 0) -> None:
    """Plan limits on the owning org; NULL limits mean unlimited."""
    if org is None:
        return

    limit = org.feedback_limit_monthly
    if limit is not None and monthly_feedback_count(org.id) >= limit:
        raise QuotaExceeded(
            "Feedback limit exceeded",
            code="FEEDBACK_LIMIT_EXCEEDED",
            extra={"message": f"Your plan allows {limit} feedback submissions per month."},
        )

    storage_limit = org.storage_limit_bytes
    if storage_limit is not None and incoming_bytes > 0:
        used = storage_used_bytes(org.id)
        if used + incoming_bytes > storage_limit:
            raise QuotaExceeded(
                "Storage limit exceeded",
                code="STORAGE_LIMIT_EXCEEDED",
                extra={
                    "details": {
                        "currentUsageGB": round(used / _GB, 2),
                        "limitGB": round(storage_limit / _GB, 2),
                        "requestedSizeMB": round(incoming_bytes / _MB, 1),
                    }
                },
            )
