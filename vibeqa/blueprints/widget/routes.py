from flask import request, current_app
from werkzeug.exceptions import HTTPException

from vibeqa.extensions import limiter, media_store, project_rate_limit_key
from vibeqa.errors import IngestError
from vibeqa.services.ingest import FeedbackIngestor, IngestConfig
from . import bp
from .responses import success_response, error_response, internal_error_response, apply_cors


def _widget_rate_limit():
    return current_app.config.get("WIDGET_RATE_LIMIT") or "60 per minute"


def _project_rate_limit():
    return current_app.config.get("WIDGET_PROJECT_RATE_LIMIT") or "600 per minute"


@bp.after_app_request
def add_cors_headers(resp):
    # Every widget response (405/413/429 included) must be readable cross-origin
    if request.blueprint == bp.name or request.path.startswith("/api/widget/"):
        apply_cors(resp)
    return resp


@bp.route("/feedback", methods=["POST", "OPTIONS"])
@limiter.limit(_widget_rate_limit, methods=["POST"])
@limiter.limit(_project_rate_limit, key_func=project_rate_limit_key, methods=["POST"])
def submit_feedback():
    """Accept a bug report / suggestion from an embedded widget (JSON or multipart)."""
    if request.method == "OPTIONS":
        return current_app.response_class(status=200)

    ingestor = FeedbackIngestor(IngestConfig.from_mapping(current_app.config), store=media_store)
    try:
        result = ingestor.ingest(request)
    except IngestError as e:
        current_app.logger.info(
            "feedback_rejected",
            extra={
                "event": "feedback_rejected",
                "status": e.status_code,
                "reason": type(e).__name__,
                "origin": request.headers.get("Origin"),
            },
        )
        return error_response(e)
    except HTTPException:
        # 413 raised by werkzeug while reading the body; JSON-shaped by the app handlers
        raise
    except Exception as e:
        current_app.logger.exception("POST /api/widget/feedback failed")
        return internal_error_response(e, expose_details=current_app.config.get("EXPOSE_ERROR_DETAILS", False))

    return success_response(result.feedback.id, result.media_uploaded)
