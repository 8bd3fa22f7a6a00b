"""
Widget request body -> structured submission.

The widget posts either plain JSON or ``multipart/form-data`` with a ``data``
part (the same JSON) plus file parts named ``screenshot-N`` / ``recording-N``.
Both shapes are decided once, here, into ``JsonSubmission`` or
``MultipartSubmission``; later stages never look at the raw request again.
Nothing in this module does I/O beyond reading the already-buffered body.
"""

import json
from dataclasses import dataclass, field
from typing import Union

from vibeqa.errors import MalformedBody, TooManyAttachments
from vibeqa.models.enums import MediaKind

DATA_PART = "data"
DEFAULT_MAX_ATTACHMENTS = 5


@dataclass(frozen=True)
class RawAttachment:
    field_name: str
    filename: str
    content_type: str
    data: bytes
    kind: MediaKind

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class JsonSubmission:
    payload: dict
    attachments: list = field(default_factory=list)


@dataclass
class MultipartSubmission:
    payload: dict
    attachments: list[RawAttachment] = field(default_factory=list)


ParsedSubmission = Union[JsonSubmission, MultipartSubmission]


def classify_attachment(field_name: str) -> MediaKind:
    """Field-name prefix decides the kind; anything unrecognised is a screenshot."""
    name = (field_name or "").lower()
    if name.startswith("recording"):
        return MediaKind.VOICE
    return MediaKind.SCREENSHOT


def _load_object(raw) -> dict:
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            raise MalformedBody("Request body is not valid UTF-8")
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError):
        raise MalformedBody("Request body is not valid JSON")
    if not isinstance(payload, dict):
        raise MalformedBody("Request body must be a JSON object")
    return payload


def parse_json_body(body: bytes) -> JsonSubmission:
    if not body:
        raise MalformedBody("Request body is empty")
    return JsonSubmission(payload=_load_object(body))


def parse_multipart(form, files, max_attachments: int = DEFAULT_MAX_ATTACHMENTS) -> MultipartSubmission:
    """
    ``form`` / ``files`` are werkzeug MultiDicts (``request.form`` / ``request.files``).

    The ``data`` part may arrive as a text field or as a file part. Every other
    file part becomes an attachment candidate; the count cap is checked before
    any candidate is validated or uploaded (werkzeug has already buffered the parts).
    """
    if DATA_PART in files:
        raw_data = files[DATA_PART].read()
    else:
        raw_data = form.get(DATA_PART)
    if raw_data is None or raw_data in ("", b""):
        raise MalformedBody("Missing 'data' part")
    payload = _load_object(raw_data)

    parts = [(name, storage) for name, storage in files.items(multi=True) if name != DATA_PART]
    if len(parts) > max_attachments:
        raise TooManyAttachments(f"Maximum {max_attachments} attachments allowed")

    attachments = []
    for name, storage in parts:
        attachments.append(
            RawAttachment(
                field_name=name,
                filename=storage.filename or name,
                content_type=(storage.mimetype or "application/octet-stream").lower(),
                data=storage.read(),
                kind=classify_attachment(name),
            )
        )
    return MultipartSubmission(payload=payload, attachments=attachments)


def parse_submission(request, max_attachments: int = DEFAULT_MAX_ATTACHMENTS) -> ParsedSubmission:
    """Dispatch on the declared content type of a Flask request."""
    if request.mimetype == "multipart/form-data":
        return parse_multipart(request.form, request.files, max_attachments=max_attachments)
    return parse_json_body(request.get_data(cache=True))
