"""
Media attachments: validation before the Feedback row exists, storage after.

Validation (size, declared type, extension, leading-byte signature) is fatal
to the whole request. Storage is best-effort: a file that fails to upload is
logged and skipped, and a failed metadata insert is logged and dropped,
because by then the Feedback row is already committed.
"""

import logging
import time
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from vibeqa.extensions import db
from vibeqa.models import MediaAttachment, MediaKind
from vibeqa.errors import FileTooLarge, InvalidFileType
from vibeqa.utils.validators import sanitize_filename, file_extension, is_safe_key_segment

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {
    MediaKind.SCREENSHOT: (".png", ".jpg", ".jpeg", ".gif", ".webp"),
    MediaKind.VOICE: (".webm", ".mp4", ".ogg", ".wav", ".mp3"),
    MediaKind.VIDEO: (".mp4", ".webm", ".ogg"),
}

# Used when the client sent a bare blob without a filename extension
DEFAULT_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "audio/webm": ".webm",
    "audio/mp4": ".mp4",
    "audio/ogg": ".ogg",
    "audio/wav": ".wav",
    "audio/mpeg": ".mp3",
    "video/mp4": ".mp4",
    "video/webm": ".webm",
    "video/ogg": ".ogg",
}


# ---- container signatures ----
def _is_png(b: bytes) -> bool:
    return b.startswith(b"\x89PNG\r\n\x1a\n")


def _is_jpeg(b: bytes) -> bool:
    return b.startswith(b"\xff\xd8\xff")


def _is_gif(b: bytes) -> bool:
    return b[:6] in (b"GIF87a", b"GIF89a")


def _is_webp(b: bytes) -> bool:
    return b[:4] == b"RIFF" and b[8:12] == b"WEBP"


def _is_ebml(b: bytes) -> bool:
    return b.startswith(b"\x1a\x45\xdf\xa3")


def _is_ogg(b: bytes) -> bool:
    return b.startswith(b"OggS")


def _is_wav(b: bytes) -> bool:
    return b[:4] == b"RIFF" and b[8:12] == b"WAVE"


def _is_mp3(b: bytes) -> bool:
    return b.startswith(b"ID3") or (len(b) > 1 and b[0] == 0xFF and (b[1] & 0xE0) == 0xE0)


def _is_mp4(b: bytes) -> bool:
    return b[4:8] == b"ftyp"


SIGNATURES = {
    "image/png": _is_png,
    "image/jpeg": _is_jpeg,
    "image/jpg": _is_jpeg,
    "image/gif": _is_gif,
    "image/webp": _is_webp,
    "audio/webm": _is_ebml,
    "video/webm": _is_ebml,
    "audio/ogg": _is_ogg,
    "video/ogg": _is_ogg,
    "audio/wav": _is_wav,
    "audio/mpeg": _is_mp3,
    "audio/mp4": _is_mp4,
    "video/mp4": _is_mp4,
}


def matches_signature(content_type: str, data: bytes) -> bool:
    check = SIGNATURES.get(content_type)
    return bool(check and check(data[:16]))


def validate_attachment(att, allowed_types: dict, max_file_bytes: int) -> None:
    if att.size > max_file_bytes:
        limit_mb = max_file_bytes // (1024 * 1024)
        raise FileTooLarge(f"File {att.filename} exceeds {limit_mb}MB limit")
    if att.size == 0:
        raise InvalidFileType(f"File {att.filename} is empty")

    kind = att.kind.value
    if att.content_type not in allowed_types.get(kind, ()):
        raise InvalidFileType(f"Invalid file type for {att.filename}")

    ext = file_extension(sanitize_filename(att.filename))
    if ext and ext not in ALLOWED_EXTENSIONS.get(att.kind, ()):
        raise InvalidFileType(f"Invalid file type for {att.filename}")

    if not matches_signature(att.content_type, att.data):
        raise InvalidFileType(f"File {att.filename} content does not match {att.content_type}")


def validate_attachments(attachments, allowed_types: dict, max_file_bytes: int) -> None:
    """All-or-nothing: the first bad file rejects the request."""
    for att in attachments:
        validate_attachment(att, allowed_types, max_file_bytes)


@dataclass(frozen=True)
class StoredMedia:
    kind: MediaKind
    key: str
    url: str
    thumbnail_url: str | None
    size: int
    filename: str
    content_type: str


def storage_key(org_id, feedback_id: str, kind: MediaKind, timestamp_ms: int, filename: str, content_type: str) -> str:
    """``{org}/{feedback}/{kind}-{timestamp}{ext}``; raises ValueError on unsafe segments."""
    if not (is_safe_key_segment(org_id) and is_safe_key_segment(feedback_id)):
        raise ValueError("Invalid organization or feedback id for storage key")
    ext = file_extension(sanitize_filename(filename)) or DEFAULT_EXTENSIONS.get(content_type, "")
    return f"{org_id}/{feedback_id}/{kind.value}-{timestamp_ms}{ext}"


def store_attachments(store, org_id, feedback_id: str, attachments, url_ttl_seconds: int = 0) -> list[StoredMedia]:
    """Upload each validated attachment; failures skip that file only."""
    if not attachments:
        return []

    base_ms = int(time.time() * 1000)
    stored = []
    for index, att in enumerate(attachments):
        # Index offset keeps keys unique when several files land in the same millisecond
        try:
            key = storage_key(org_id, feedback_id, att.kind, base_ms + index, att.filename, att.content_type)
            store.upload(key, att.data, att.content_type)
            url = store.url_for(key, url_ttl_seconds)
        except Exception as exc:
            logger.warning(
                "media_upload_failed",
                extra={
                    "event": "media_upload_failed",
                    "feedback_id": feedback_id,
                    "field": att.field_name,
                    "kind": att.kind.value,
                    "size": att.size,
                    "error": str(exc),
                },
            )
            continue

        stored.append(
            StoredMedia(
                kind=att.kind,
                key=key,
                url=url,
                thumbnail_url=url if att.kind is MediaKind.SCREENSHOT else None,
                size=att.size,
                filename=att.filename,
                content_type=att.content_type,
            )
        )
        logger.info(
            "media_uploaded",
            extra={"event": "media_uploaded", "feedback_id": feedback_id, "kind": att.kind.value, "size": att.size},
        )
    return stored


def record_attachments(feedback_id: str, stored: list[StoredMedia]) -> int:
    """Batch-insert MediaAttachment rows; returns rows written (0 on failure)."""
    if not stored:
        return 0
    rows = [
        MediaAttachment(
            feedback_id=feedback_id,
            kind=m.kind.value,
            url=m.url,
            thumbnail_url=m.thumbnail_url,
            file_size=m.size,
            meta={"originalName": m.filename, "storageKey": m.key, "contentType": m.content_type},
        )
        for m in stored
    ]
    try:
        db.session.add_all(rows)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error(
            "media_records_failed",
            extra={"event": "media_records_failed", "feedback_id": feedback_id, "count": len(rows), "error": str(exc)},
        )
        return 0
    return len(rows)
