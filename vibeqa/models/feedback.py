import uuid

from sqlalchemy import func, CheckConstraint
from sqlalchemy.dialects.postgresql import JSONB
from vibeqa.extensions import db
from vibeqa.models.enums import FeedbackType, FeedbackStatus, FeedbackPriority, check_in

_JSON = db.JSON().with_variant(JSONB, "postgresql")


def _new_id() -> str:
    return str(uuid.uuid4())


class Feedback(db.Model):
    __tablename__ = "feedback"

    # UUIDs: ids are handed back to untrusted widgets and appear in storage keys
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    type = db.Column(db.String(20), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=FeedbackStatus.NEW.value, server_default=FeedbackStatus.NEW.value)
    priority = db.Column(db.String(20), nullable=False, default=FeedbackPriority.MEDIUM.value, server_default=FeedbackPriority.MEDIUM.value)

    title = db.Column(db.String(255), nullable=True)
    description = db.Column(db.Text, nullable=False)

    reporter_email = db.Column(db.String(320), nullable=True)
    reporter_name = db.Column(db.String(255), nullable=True)

    # Context captured by the widget
    page_url = db.Column(db.String(2048), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)
    browser_info = db.Column(_JSON, nullable=True)
    device_info = db.Column(_JSON, nullable=True)
    custom_data = db.Column(_JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    project = db.relationship("Project", back_populates="feedback")
    media = db.relationship(
        "MediaAttachment",
        back_populates="feedback",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="MediaAttachment.created_at",
    )

    __table_args__ = (
        CheckConstraint(check_in("type", FeedbackType), name="ck_feedback_type_valid"),
        CheckConstraint(check_in("status", FeedbackStatus), name="ck_feedback_status_valid"),
        CheckConstraint(check_in("priority", FeedbackPriority), name="ck_feedback_priority_valid"),
        db.Index("ix_feedback_project_created_at", "project_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Feedback id={self.id} project_id={self.project_id} type={self.type!r} status={self.status!r}>"
