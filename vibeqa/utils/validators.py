import re

# Simple, pragmatic patterns
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_KEY_SEGMENT_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9\-]{0,63}$")
_MAX_FILENAME = 100


def clean_str(val, max_len: int = 255) -> str | None:
    """
    Collapse whitespace, trim, enforce max length. Returns None if empty after cleaning
    or if the value is not a string at all.
    """
    if val is None or not isinstance(val, str):
        return None
    s = re.sub(r"\s+", " ", val).strip()
    if not s:
        return None
    return s[:max_len]


def clean_text(val, max_len: int | None = None) -> str | None:
    """Trim a multi-line body without touching its inner whitespace."""
    if val is None or not isinstance(val, str):
        return None
    s = val.strip()
    if not s:
        return None
    return s if max_len is None else s[:max_len]


def is_valid_email(val: str | None) -> bool:
    if not val:
        return True
    return bool(_EMAIL_RE.match(val))


def sanitize_filename(name: str | None) -> str:
    """
    Make a client-supplied filename safe to reuse inside an object key:
    no separators, no traversal, only [word . -] characters, bounded length.
    """
    if not name:
        return ""
    s = re.sub(r"[/\\]", "_", name)
    s = re.sub(r"\.\.+", ".", s)
    s = re.sub(r"[^\w\-.]", "_", s, flags=re.ASCII)
    s = re.sub(r"_{2,}", "_", s)
    s = re.sub(r"^[_.\-]+", "", s)
    s = re.sub(r"[_.\-]+$", "", s)
    return s[:_MAX_FILENAME]


def file_extension(name: str | None) -> str:
    """Lowercased extension including the dot ('.png'), or '' when there is none."""
    if not name or "." not in name:
        return ""
    return name[name.rindex("."):].lower()


def is_safe_key_segment(val) -> bool:
    """Ids used as storage path segments: alphanumerics and dashes only."""
    return bool(_KEY_SEGMENT_RE.match(str(val)))
