import secrets

from sqlalchemy import func
from sqlalchemy.dialects.postgresql import JSONB
from vibeqa.extensions import db

API_KEY_PREFIX = "vqa_"


def generate_api_key() -> str:
    return API_KEY_PREFIX + secrets.token_urlsafe(32)


class Project(db.Model):
    """One embeddable widget configuration: a tenant with its own key and origin allow-list."""

    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.Integer, db.ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)

    # Bearer credential sent by the widget as X-Project-Key
    api_key = db.Column(db.String(128), nullable=False, unique=True, index=True, default=generate_api_key)

    # Exact hosts ("app.example.com", "localhost:3000") or "*.suffix" wildcards; empty = open
    allowed_domains = db.Column(db.JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list)
    is_active = db.Column(db.Boolean, nullable=False, default=True, server_default=db.true())

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    org = db.relationship("Org", back_populates="projects")
    feedback = db.relationship(
        "Feedback",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="dynamic",
    )

    def __repr__(self) -> str:
        return f"<Project id={self.id} org_id={self.org_id} name={self.name!r} active={self.is_active}>"
