from typing import Optional, Dict, Any
from urllib.parse import urljoin
from flask import current_app, render_template
from flask_mail import Message
from vibeqa.extensions import db, mail
from vibeqa.models import EmailLog
import json
import time

DESCRIPTION_PREVIEW_CHARS = 200


def absolute_url(path: str) -> str:
    base = current_app.config["APP_BASE_URL"].rstrip("/") + "/"
    path = path.lstrip("/")
    return urljoin(base, path)


def send_email(
    to_email: str,
    subject: str,
    template: str,
    context: Optional[Dict[str, Any]] = None,
    org_id: Optional[int] = None,
    feedback_id: Optional[str] = None,
) -> bool:
    """
    template: basename under templates/email/ without extension (e.g. 'feedback_notification')
    Renders both HTML and plaintext, records the attempt in EmailLog. Returns True when sent.
    """
    context = context or {}
    msg = Message(recipients=[to_email], subject=subject)
    msg.body = render_template(f"email/{template}.txt", **context)
    msg.html = render_template(f"email/{template}.html", **context)

    # Persist an initial log
    elog = EmailLog(
        org_id=org_id,
        feedback_id=feedback_id,
        to_email=to_email.lower(),
        template=template,
        subject=subject,
        status="queued",
        meta={},
    )
    db.session.add(elog)
    db.session.commit()

    start = time.perf_counter()
    try:
        mail.send(msg)
    except Exception as ex:
        latency_ms = int((time.perf_counter() - start) * 1000)
        elog.status = "failed"
        elog.meta = {"error": str(ex)}
        db.session.commit()
        current_app.logger.warning(json.dumps({
            "event": "mail_send",
            "template": template,
            "to": to_email.lower(),
            "outcome": "smtp_error",
            "latency_ms": latency_ms,
            "smtp_error": str(ex),
        }))
        return False

    latency_ms = int((time.perf_counter() - start) * 1000)
    elog.status = "sent"
    db.session.commit()
    current_app.logger.info(json.dumps({
        "event": "mail_send",
        "template": template,
        "to": to_email.lower(),
        "outcome": "sent",
        "latency_ms": latency_ms,
    }))
    return True


def send_feedback_notification_email(to_email: str, payload: dict, org_id: Optional[int] = None) -> bool:
    """New-feedback email for the owning org. ``payload`` is the notification payload."""
    description = payload.get("description") or ""
    if len(description) > DESCRIPTION_PREVIEW_CHARS:
        description = description[:DESCRIPTION_PREVIEW_CHARS] + "..."
    feedback_type = (payload.get("feedbackType") or "other").capitalize()

    ctx = {
        "product_name": "VibeQA",
        "project_name": payload.get("projectName") or "",
        "feedback_type": feedback_type,
        "reporter_name": payload.get("reporterName") or "Anonymous",
        "reporter_email": payload.get("reporterEmail") or "Not provided",
        "page_url": payload.get("pageUrl") or "Not specified",
        "description": description,
        "action_url": absolute_url(f"dashboard/feedback/{payload['feedbackId']}"),
    }
    return send_email(
        to_email=to_email,
        subject=f"New {feedback_type.lower()} feedback for {ctx['project_name']}",
        template="feedback_notification",
        context=ctx,
        org_id=org_id,
        feedback_id=payload["feedbackId"],
    )
