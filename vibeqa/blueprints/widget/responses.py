from flask import jsonify

from vibeqa.errors import IngestError

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, X-Project-Key",
    "Access-Control-Max-Age": "86400",
}

SUCCESS_MESSAGE = "Feedback submitted successfully"


def success_response(feedback_id: str, media_uploaded: int):
    return jsonify({
        "success": True,
        "id": feedback_id,
        "message": SUCCESS_MESSAGE,
        "mediaUploaded": media_uploaded,
    }), 200


def error_response(exc: IngestError):
    return jsonify(exc.to_dict()), exc.status_code


def internal_error_response(exc: Exception | None = None, expose_details: bool = False):
    body = {"error": "Internal server error"}
    if expose_details and exc is not None:
        body["details"] = str(exc)
    return jsonify(body), 500


def apply_cors(resp):
    for name, value in CORS_HEADERS.items():
        resp.headers[name] = value
    return resp
