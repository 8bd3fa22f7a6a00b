import logging

from sqlalchemy.exc import SQLAlchemyError

from vibeqa.extensions import db
from vibeqa.models import Project
from vibeqa.errors import Unauthenticated, InvalidCredential, TenantInactive, StorageUnavailable

logger = logging.getLogger(__name__)

PROJECT_KEY_HEADER = "X-Project-Key"


def authenticate_project(api_key: str | None) -> Project:
    """
    Resolve the widget's X-Project-Key to its Project.

    Runs before any body parsing: a request without a usable key must not
    cost more than this single indexed lookup.
    """
    key = (api_key or "").strip()
    if not key:
        raise Unauthenticated()

    try:
        project = db.session.query(Project).filter(Project.api_key == key).one_or_none()
        org_active = project is None or project.org is None or project.org.is_active
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("project_lookup_failed", extra={"event": "project_lookup_failed"})
        raise StorageUnavailable() from exc
    if project is None:
        raise InvalidCredential()

    # An inactive owner org disables every project under it
    if not project.is_active or not org_active:
        raise TenantInactive()
    return project
