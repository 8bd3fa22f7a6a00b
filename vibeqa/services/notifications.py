"""
New-feedback notifications.

Contract: best-effort, fire-and-forget, no retry. ``dispatch_feedback_notification``
hands a plain payload to the background dispatcher and returns immediately;
whatever happens to the webhook or the email afterwards is logged and never
reaches the submitting client.
"""

import logging

import httpx
from flask import current_app

from vibeqa.extensions import background
from vibeqa.services.email import send_feedback_notification_email

logger = logging.getLogger(__name__)


def build_payload(project, feedback) -> dict:
    return {
        "feedbackId": feedback.id,
        "projectId": project.id,
        "projectName": project.name,
        "feedbackType": feedback.type,
        "reporterName": feedback.reporter_name,
        "reporterEmail": feedback.reporter_email,
        "pageUrl": feedback.page_url,
        "description": feedback.description,
    }


def post_webhook(url: str, payload: dict, token: str | None = None, timeout: float = 5.0) -> bool:
    headers = {"Content-Type": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    try:
        resp = httpx.post(url, json=payload, headers=headers, timeout=timeout)
    except httpx.HTTPError as exc:
        logger.warning(
            "notify_webhook_error",
            extra={"event": "notify_webhook_error", "feedback_id": payload.get("feedbackId"), "error": str(exc)},
        )
        return False
    if resp.is_success:
        return True
    logger.warning(
        "notify_webhook_rejected",
        extra={
            "event": "notify_webhook_rejected",
            "feedback_id": payload.get("feedbackId"),
            "status": resp.status_code,
            "body": resp.text[:500],
        },
    )
    return False


def notify_new_feedback(payload: dict, notify_email: str | None = None, org_id: int | None = None) -> None:
    """Runs off the request path, inside its own app context. Each channel fails alone."""
    cfg = current_app.config

    url = cfg.get("NOTIFY_WEBHOOK_URL")
    if url:
        try:
            post_webhook(url, payload, token=cfg.get("NOTIFY_WEBHOOK_TOKEN"), timeout=cfg.get("NOTIFY_TIMEOUT_SECONDS", 5.0))
        except Exception:
            logger.exception("notify_webhook_failed", extra={"event": "notify_webhook_failed", "feedback_id": payload.get("feedbackId")})

    if notify_email:
        try:
            send_feedback_notification_email(notify_email, payload, org_id=org_id)
        except Exception:
            logger.exception("notify_email_failed", extra={"event": "notify_email_failed", "feedback_id": payload.get("feedbackId")})


def dispatch_feedback_notification(project, feedback) -> None:
    """Schedule the notification; never raises."""
    try:
        org = project.org
        payload = build_payload(project, feedback)
        background.submit(
            notify_new_feedback,
            payload,
            notify_email=getattr(org, "notify_email", None),
            org_id=getattr(org, "id", None),
        )
    except Exception:
        logger.exception("notify_dispatch_failed", extra={"event": "notify_dispatch_failed", "feedback_id": getattr(feedback, "id", None)})
