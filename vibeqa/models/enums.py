from enum import Enum


# --- What the reporter says the feedback is ---
class FeedbackType(str, Enum):
    BUG = "bug"
    SUGGESTION = "suggestion"
    PRAISE = "praise"
    OTHER = "other"


# --- Triage state (changed by the dashboard, never by ingestion) ---
class FeedbackStatus(str, Enum):
    NEW = "new"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    ARCHIVED = "archived"


class FeedbackPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# --- Stored attachment kinds ---
class MediaKind(str, Enum):
    SCREENSHOT = "screenshot"
    VOICE = "voice"
    VIDEO = "video"


def values(enum_cls) -> tuple[str, ...]:
    return tuple(m.value for m in enum_cls)


def check_in(column: str, enum_cls) -> str:
    """SQL CHECK body restricting ``column`` to the enum's values."""
    quoted = ",".join(f"'{v}'" for v in values(enum_cls))
    return f"{column} IN ({quoted})"


__all__ = [
    "FeedbackType",
    "FeedbackStatus",
    "FeedbackPriority",
    "MediaKind",
    "values",
    "check_in",
]
