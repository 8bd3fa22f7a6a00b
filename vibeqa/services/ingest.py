"""
Widget feedback ingestion pipeline.

    authenticate -> parse -> admit origin -> validate submission
    -> validate media -> check quotas -> write feedback
    -> store media -> record media -> notify

Everything up to and including the Feedback write is fatal on failure and
leaves no rows behind. Everything after it is best-effort and only degrades
``media_uploaded``.
"""

import logging
from dataclasses import dataclass, field

from vibeqa.models import Feedback, Project
from vibeqa.services.project_auth import authenticate_project, PROJECT_KEY_HEADER
from vibeqa.services.origins import check_origin
from vibeqa.services.submission import parse_submission, ParsedSubmission
from vibeqa.services.feedback_writer import validate_submission, write_feedback
from vibeqa.services.media import validate_attachments, store_attachments, record_attachments
from vibeqa.services.quotas import check_quotas
from vibeqa.services.notifications import dispatch_feedback_notification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestConfig:
    max_file_bytes: int = 10 * 1024 * 1024
    max_attachments: int = 5
    allowed_types: dict = field(default_factory=dict)
    url_ttl_seconds: int = 3600
    default_type: str = "other"
    max_description: int = 10000

    @classmethod
    def from_mapping(cls, cfg) -> "IngestConfig":
        return cls(
            max_file_bytes=int(cfg.get("MEDIA_MAX_FILE_BYTES", cls.max_file_bytes)),
            max_attachments=int(cfg.get("MEDIA_MAX_ATTACHMENTS", cls.max_attachments)),
            allowed_types={k: tuple(v) for k, v in (cfg.get("MEDIA_ALLOWED_TYPES") or {}).items()},
            url_ttl_seconds=int(cfg.get("MEDIA_URL_TTL_SECONDS", cls.url_ttl_seconds)),
            default_type=cfg.get("FEEDBACK_DEFAULT_TYPE", cls.default_type),
            max_description=int(cfg.get("FEEDBACK_MAX_DESCRIPTION", cls.max_description)),
        )


@dataclass
class IngestResult:
    feedback: Feedback
    project: Project
    media_uploaded: int = 0


class FeedbackIngestor:
    """One instance per request; holds configuration and collaborators only."""

    def __init__(self, config: IngestConfig, store, notify=dispatch_feedback_notification):
        self.config = config
        self.store = store
        self.notify = notify

    def ingest(self, request) -> IngestResult:
        project = authenticate_project(request.headers.get(PROJECT_KEY_HEADER))

        parsed: ParsedSubmission = parse_submission(request, max_attachments=self.config.max_attachments)
        check_origin(project.allowed_domains, request.headers.get("Origin"), parsed.payload.get("pageUrl"))

        submission = validate_submission(
            parsed.payload,
            parsed.attachments,
            header_user_agent=request.headers.get("User-Agent"),
            default_type=self.config.default_type,
            max_description=self.config.max_description,
        )
        validate_attachments(submission.attachments, self.config.allowed_types, self.config.max_file_bytes)
        check_quotas(project.org, incoming_bytes=sum(a.size for a in submission.attachments))

        feedback = write_feedback(project, submission)

        uploaded = 0
        if submission.attachments:
            stored = store_attachments(
                self.store,
                project.org_id,
                feedback.id,
                submission.attachments,
                url_ttl_seconds=self.config.url_ttl_seconds,
            )
            uploaded = len(stored)
            record_attachments(feedback.id, stored)
            logger.info(
                "media_stored",
                extra={
                    "event": "media_stored",
                    "feedback_id": feedback.id,
                    "submitted": len(submission.attachments),
                    "uploaded": uploaded,
                },
            )

        self.notify(project, feedback)
        return IngestResult(feedback=feedback, project=project, media_uploaded=uploaded)
