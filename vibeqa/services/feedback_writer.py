import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError

from vibeqa.extensions import db
from vibeqa.models import Feedback, Project, FeedbackType, FeedbackStatus, FeedbackPriority
from vibeqa.errors import ValidationError, StorageUnavailable
from vibeqa.utils.validators import clean_str, clean_text, is_valid_email

logger = logging.getLogger(__name__)


@dataclass
class Submission:
    """Validated, request-scoped view of what the widget sent."""

    type: FeedbackType
    description: str
    title: str | None = None
    reporter_email: str | None = None
    reporter_name: str | None = None
    page_url: str | None = None
    user_agent: str | None = None
    browser_info: object = None
    device_info: object = None
    custom_data: object = None
    attachments: list = field(default_factory=list)


def _coerce_type(raw, default_type: str) -> FeedbackType:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return FeedbackType(default_type)
    if not isinstance(raw, str):
        raise ValidationError("type", "type must be a string")
    try:
        return FeedbackType(raw.strip().lower())
    except ValueError:
        allowed = ", ".join(t.value for t in FeedbackType)
        raise ValidationError("type", f"type must be one of: {allowed}")


def validate_submission(
    payload: dict,
    attachments=None,
    *,
    header_user_agent: str | None = None,
    default_type: str = FeedbackType.OTHER.value,
    max_description: int = 10000,
) -> Submission:
    """
    Normalise the widget payload. Unknown keys are ignored; optional keys
    default to None. ``description`` must be non-empty and ``type`` must be
    a known value (absent type falls back to ``default_type``).
    """
    description = clean_text(payload.get("description"))
    if not description:
        raise ValidationError("description", "description is required")
    if len(description) > max_description:
        raise ValidationError("description", f"description exceeds {max_description} characters")

    feedback_type = _coerce_type(payload.get("type"), default_type)

    reporter_email = clean_str(payload.get("reporterEmail"), max_len=320)
    if reporter_email and not is_valid_email(reporter_email):
        raise ValidationError("reporterEmail", "reporterEmail is not a valid email address")

    return Submission(
        type=feedback_type,
        description=description,
        title=clean_str(payload.get("title"), max_len=255),
        reporter_email=reporter_email.lower() if reporter_email else None,
        reporter_name=clean_str(payload.get("reporterName"), max_len=255),
        page_url=clean_str(payload.get("pageUrl"), max_len=2048),
        user_agent=clean_str(payload.get("userAgent"), max_len=512) or clean_str(header_user_agent, max_len=512),
        browser_info=payload.get("browserInfo"),
        device_info=payload.get("deviceInfo"),
        custom_data=payload.get("customData"),
        attachments=list(attachments or []),
    )


def write_feedback(project: Project, submission: Submission) -> Feedback:
    """
    Persist the parent Feedback row and commit it, so media rows written
    afterwards always reference a committed id.
    """
    fb = Feedback(
        project_id=project.id,
        type=submission.type.value,
        status=FeedbackStatus.NEW.value,
        priority=FeedbackPriority.MEDIUM.value,
        title=submission.title,
        description=submission.description,
        reporter_email=submission.reporter_email,
        reporter_name=submission.reporter_name,
        page_url=submission.page_url,
        user_agent=submission.user_agent,
        browser_info=submission.browser_info,
        device_info=submission.device_info,
        custom_data=submission.custom_data,
    )
    try:
        db.session.add(fb)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("feedback_write_failed", extra={"event": "feedback_write_failed", "project_id": project.id})
        raise StorageUnavailable() from exc

    logger.info(
        "feedback_created",
        extra={
            "event": "feedback_created",
            "feedback_id": fb.id,
            "project_id": project.id,
            "type": fb.type,
            "attachments": len(submission.attachments),
        },
    )
    return fb
