import uuid

from sqlalchemy import func, CheckConstraint
from sqlalchemy.dialects.postgresql import JSONB
from vibeqa.extensions import db
from vibeqa.models.enums import MediaKind, check_in


class MediaAttachment(db.Model):
    __tablename__ = "feedback_media"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    feedback_id = db.Column(
        db.String(36),
        db.ForeignKey("feedback.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    kind = db.Column(db.String(20), nullable=False)
    url = db.Column(db.Text, nullable=False)
    thumbnail_url = db.Column(db.Text, nullable=True)
    file_size = db.Column(db.BigInteger, nullable=False)
    # {"originalName": ..., "storageKey": ..., "contentType": ...}
    meta = db.Column("metadata", db.JSON().with_variant(JSONB, "postgresql"), nullable=False, default=dict)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())

    feedback = db.relationship("Feedback", back_populates="media")

    __table_args__ = (
        CheckConstraint(check_in("kind", MediaKind), name="ck_feedback_media_kind_valid"),
    )

    def __repr__(self) -> str:
        return f"<MediaAttachment id={self.id} feedback_id={self.feedback_id} kind={self.kind!r} size={self.file_size}>"
