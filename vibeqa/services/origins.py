"""
Per-project origin allow-list.

Entries are either an exact host (``app.example.com``), an exact
``host:port`` (``localhost:3000``), or a wildcard ``*.example.com``. Wildcards
match on a dot boundary only: ``*.example.com`` admits ``app.example.com`` and
``a.b.example.com`` but neither ``notexample.com`` nor the apex
``example.com`` (list the apex separately if it should be admitted).
"""

from urllib.parse import urlsplit

from vibeqa.errors import OriginNotAllowed


def _normalize_entry(entry) -> str:
    if not isinstance(entry, str):
        return ""
    s = entry.strip().lower()
    # Tolerate entries pasted as full origins ("https://app.example.com/")
    if "://" in s:
        s = urlsplit(s).netloc
    return s.rstrip("/").rstrip(".")


def parse_origin(candidate) -> tuple[str, str] | None:
    """
    Return ``(hostname, host_with_port)`` for an Origin header or page URL.

    ``None`` when nothing usable can be extracted (empty, ``"null"`` origin
    from sandboxed frames, garbage, anything that is not a string).
    """
    if not isinstance(candidate, str):
        return None
    raw = candidate.strip()
    if not raw or raw.lower() == "null":
        return None
    if "://" not in raw:
        raw = "//" + raw
    try:
        parts = urlsplit(raw)
        hostname = (parts.hostname or "").rstrip(".")
        port = parts.port
    except ValueError:
        return None
    if not hostname:
        return None
    host = f"{hostname}:{port}" if port else hostname
    return hostname, host


def _entry_matches(entry: str, hostname: str, host: str) -> bool:
    if not entry:
        return False
    if entry.startswith("*."):
        base = entry[2:]
        return bool(base) and hostname.endswith("." + base)
    return entry == hostname or entry == host


def is_origin_allowed(allowed_domains, candidate: str | None) -> bool:
    entries = [_normalize_entry(e) for e in (allowed_domains or [])]
    entries = [e for e in entries if e]
    if not entries:
        return True  # open project

    parsed = parse_origin(candidate)
    if parsed is None:
        return False
    hostname, host = parsed
    return any(_entry_matches(e, hostname, host) for e in entries)


def check_origin(allowed_domains, origin_header: str | None, page_url) -> None:
    """
    Admission check: Origin header first, the submission's pageUrl as fallback.

    ``page_url`` comes straight from the client's JSON; a non-string counts as absent.
    """
    if isinstance(origin_header, str) and origin_header.strip():
        candidate = origin_header
    else:
        candidate = page_url if isinstance(page_url, str) else None
    if not is_origin_allowed(allowed_domains, candidate):
        raise OriginNotAllowed()
