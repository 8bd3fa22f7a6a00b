from .enums import FeedbackType, FeedbackStatus, FeedbackPriority, MediaKind
from .org import Org
from .project import Project, generate_api_key
from .feedback import Feedback
from .media_attachment import MediaAttachment
from .email_log import EmailLog

__all__ = [
    "FeedbackType",
    "FeedbackStatus",
    "FeedbackPriority",
    "MediaKind",
    "Org",
    "Project",
    "generate_api_key",
    "Feedback",
    "MediaAttachment",
    "EmailLog",
]
