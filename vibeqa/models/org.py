from sqlalchemy import func
from vibeqa.extensions import db


class Org(db.Model):
    __tablename__ = "orgs"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True, server_default=db.true())

    # Where new-feedback notifications go; NULL = no email channel
    notify_email = db.Column(db.String(320), nullable=True)

    # Plan limits snapshot (NULL = unlimited); written by billing, read by ingestion
    feedback_limit_monthly = db.Column(db.Integer, nullable=True)
    storage_limit_bytes = db.Column(db.BigInteger, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    projects = db.relationship("Project", back_populates="org", lazy="select")

    def __repr__(self) -> str:
        return f"<Org id={self.id} name={self.name!r}>"
