import io
import json

from vibeqa.extensions import db
from vibeqa.models import Feedback, MediaAttachment

from conftest import PNG_BYTES, WEBM_BYTES

URL = "/api/widget/feedback"


def _headers(key, origin="https://app.example.com"):
    h = {"X-Project-Key": key}
    if origin:
        h["Origin"] = origin
    return h


def _payload(**overrides):
    body = {
        "type": "bug",
        "title": "Checkout button does nothing",
        "description": "Clicking Pay on the last step has no effect.",
        "reporterEmail": "Jane@Example.com",
        "reporterName": "Jane",
        "pageUrl": "https://app.example.com/checkout",
    }
    body.update(overrides)
    return body


def _multipart(payload, files):
    data = {"data": json.dumps(payload)}
    for name, (content, filename, content_type) in files.items():
        data[name] = (io.BytesIO(content), filename, content_type)
    return data


def _counts(app):
    with app.app_context():
        return db.session.query(Feedback).count(), db.session.query(MediaAttachment).count()


# ---- authentication ----
def test_missing_project_key_is_401(app, client):
    resp = client.post(URL, json=_payload(), headers={"Origin": "https://app.example.com"})
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "Project key is required"
    assert _counts(app) == (0, 0)


def test_unknown_project_key_is_401(app, client, make_project):
    make_project()
    resp = client.post(URL, json=_payload(), headers=_headers("vqa_not-a-real-key"))
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "Invalid project key"


def test_inactive_project_is_403(app, client, make_project):
    p = make_project(active=False)
    resp = client.post(URL, json=_payload(), headers=_headers(p.api_key))
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "Project is not active"
    assert _counts(app) == (0, 0)


def test_inactive_org_disables_its_projects(app, client, make_project):
    p = make_project(org_active=False)
    resp = client.post(URL, json=_payload(), headers=_headers(p.api_key))
    assert resp.status_code == 403


# ---- origin admission ----
def test_origin_not_in_allow_list_is_403(app, client, make_project):
    p = make_project(domains=["app.example.com"])
    resp = client.post(URL, json=_payload(), headers=_headers(p.api_key, origin="https://evil.test"))
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "Domain not allowed"
    assert _counts(app) == (0, 0)


def test_wildcard_entry_admits_subdomain(app, client, make_project):
    p = make_project(domains=["*.example.com"])
    resp = client.post(URL, json=_payload(), headers=_headers(p.api_key, origin="https://app.example.com"))
    assert resp.status_code == 200


def test_wildcard_entry_rejects_lookalike_suffix(app, client, make_project):
    p = make_project(domains=["*.example.com"])
    resp = client.post(URL, json=_payload(), headers=_headers(p.api_key, origin="https://notexample.com"))
    assert resp.status_code == 403


def test_page_url_used_when_origin_header_absent(app, client, make_project):
    p = make_project(domains=["app.example.com"])
    resp = client.post(URL, json=_payload(), headers=_headers(p.api_key, origin=None))
    assert resp.status_code == 200

    resp = client.post(URL, json=_payload(pageUrl="https://other.test/x"), headers=_headers(p.api_key, origin=None))
    assert resp.status_code == 403


def test_non_string_page_url_counts_as_missing(app, client, make_project):
    p = make_project(domains=["app.example.com"])
    for bad in (123, ["https://app.example.com"], {"href": "https://app.example.com"}):
        resp = client.post(URL, json={"description": "x", "pageUrl": bad}, headers=_headers(p.api_key, origin=None))
        assert resp.status_code == 403
        assert resp.get_json()["error"] == "Domain not allowed"
    assert _counts(app) == (0, 0)


def test_open_project_accepts_any_origin(app, client, make_project):
    p = make_project(domains=[])
    resp = client.post(URL, json=_payload(), headers=_headers(p.api_key, origin="https://anywhere.test"))
    assert resp.status_code == 200


# ---- submission validation ----
def test_empty_description_is_400(app, client, make_project):
    p = make_project()
    resp = client.post(URL, json=_payload(description="   "), headers=_headers(p.api_key))
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["field"] == "description"
    assert _counts(app) == (0, 0)


def test_unknown_type_is_400(app, client, make_project):
    p = make_project()
    resp = client.post(URL, json=_payload(type="rant"), headers=_headers(p.api_key))
    assert resp.status_code == 400
    assert resp.get_json()["field"] == "type"


def test_missing_type_defaults_to_other(app, client, make_project):
    p = make_project()
    body = _payload()
    body.pop("type")
    resp = client.post(URL, json=body, headers=_headers(p.api_key))
    assert resp.status_code == 200
    with app.app_context():
        fb = db.session.get(Feedback, resp.get_json()["id"])
        assert fb.type == "other"


def test_malformed_json_is_400(app, client, make_project):
    p = make_project()
    resp = client.post(
        URL,
        data=b"{not json",
        headers={**_headers(p.api_key), "Content-Type": "application/json"},
    )
    assert resp.status_code == 400
    assert "JSON" in resp.get_json()["error"]


# ---- happy paths ----
def test_json_submission_creates_one_feedback_row(app, client, make_project):
    p = make_project(domains=["app.example.com"])
    resp = client.post(
        URL,
        json=_payload(),
        headers={**_headers(p.api_key), "User-Agent": "Mozilla/5.0 (X11)"},
    )
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["success"] is True
    assert body["mediaUploaded"] == 0
    assert body["message"] == "Feedback submitted successfully"

    with app.app_context():
        rows = db.session.query(Feedback).all()
        assert len(rows) == 1
        fb = rows[0]
        assert fb.id == body["id"]
        assert fb.project_id == p.id
        assert fb.status == "new"
        assert fb.priority == "medium"
        assert fb.reporter_email == "jane@example.com"
        assert fb.user_agent == "Mozilla/5.0 (X11)"


def test_custom_data_round_trips(app, client, make_project):
    p = make_project()
    custom = {"plan": "pro", "cart": {"items": 3, "skus": ["A-1", "B-2"]}, "beta": True}
    resp = client.post(
        URL,
        json=_payload(customData=custom, browserInfo={"name": "Firefox", "version": "131"}),
        headers=_headers(p.api_key),
    )
    assert resp.status_code == 200
    with app.app_context():
        fb = db.session.get(Feedback, resp.get_json()["id"])
        assert fb.custom_data == custom
        assert fb.browser_info == {"name": "Firefox", "version": "131"}


def test_multipart_with_screenshot_records_media(app, client, make_project, fake_store):
    p = make_project(domains=["app.example.com"])
    resp = client.post(
        URL,
        data=_multipart(_payload(), {"screenshot-0": (PNG_BYTES, "shot.png", "image/png")}),
        headers=_headers(p.api_key),
        content_type="multipart/form-data",
    )
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["mediaUploaded"] == 1

    with app.app_context():
        assert db.session.query(Feedback).count() == 1
        media = db.session.query(MediaAttachment).all()
        assert len(media) == 1
        m = media[0]
        assert m.feedback_id == body["id"]
        assert m.kind == "screenshot"
        assert m.file_size == len(PNG_BYTES)
        assert m.thumbnail_url == m.url
        key = m.meta["storageKey"]
        assert key.startswith(f"{p.org_id}/{body['id']}/screenshot-")
        assert key.endswith(".png")
        assert m.url == f"https://media.example.test/{key}"
        assert m.meta["originalName"] == "shot.png"

    assert list(fake_store.objects) == [key]


def test_recording_part_is_stored_as_voice(app, client, make_project):
    p = make_project()
    resp = client.post(
        URL,
        data=_multipart(_payload(), {"recording-0": (WEBM_BYTES, "note.webm", "audio/webm")}),
        headers=_headers(p.api_key),
        content_type="multipart/form-data",
    )
    assert resp.status_code == 200
    with app.app_context():
        m = db.session.query(MediaAttachment).one()
        assert m.kind == "voice"
        assert m.thumbnail_url is None


# ---- media limits ----
def test_six_attachments_is_400(app, client, make_project):
    p = make_project()
    files = {f"screenshot-{i}": (PNG_BYTES, f"s{i}.png", "image/png") for i in range(6)}
    resp = client.post(
        URL,
        data=_multipart(_payload(), files),
        headers=_headers(p.api_key),
        content_type="multipart/form-data",
    )
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Maximum 5 attachments allowed"
    assert _counts(app) == (0, 0)


def test_oversized_file_is_400_and_writes_nothing(app, client, make_project, fake_store):
    p = make_project()
    big = PNG_BYTES + b"\x00" * (10 * 1024 * 1024)
    resp = client.post(
        URL,
        data=_multipart(_payload(), {"screenshot-0": (big, "huge.png", "image/png")}),
        headers=_headers(p.api_key),
        content_type="multipart/form-data",
    )
    assert resp.status_code == 400
    assert "exceeds 10MB limit" in resp.get_json()["error"]
    assert _counts(app) == (0, 0)
    assert fake_store.objects == {}


def test_content_not_matching_declared_type_is_400(app, client, make_project):
    p = make_project()
    resp = client.post(
        URL,
        data=_multipart(_payload(), {"screenshot-0": (b"<script>alert(1)</script>", "x.png", "image/png")}),
        headers=_headers(p.api_key),
        content_type="multipart/form-data",
    )
    assert resp.status_code == 400
    assert _counts(app) == (0, 0)


def test_disallowed_mime_type_is_400(app, client, make_project):
    p = make_project()
    resp = client.post(
        URL,
        data=_multipart(_payload(), {"screenshot-0": (b"%PDF-1.7", "doc.pdf", "application/pdf")}),
        headers=_headers(p.api_key),
        content_type="multipart/form-data",
    )
    assert resp.status_code == 400
    assert _counts(app) == (0, 0)


def test_upload_failure_degrades_count_only(app, client, make_project, fake_store):
    p = make_project()
    fake_store.fail_uploads = True
    resp = client.post(
        URL,
        data=_multipart(_payload(), {"screenshot-0": (PNG_BYTES, "shot.png", "image/png")}),
        headers=_headers(p.api_key),
        content_type="multipart/form-data",
    )
    assert resp.status_code == 200
    assert resp.get_json()["mediaUploaded"] == 0
    assert _counts(app) == (1, 0)


# ---- notifications never leak ----
def test_notification_failure_still_returns_200(app, client, make_project, monkeypatch):
    import vibeqa.services.notifications as notifications

    def _boom(*a, **kw):
        raise RuntimeError("notifier down")

    monkeypatch.setattr(notifications, "build_payload", _boom)
    p = make_project(notify_email="owner@example.com")
    resp = client.post(URL, json=_payload(), headers=_headers(p.api_key))
    assert resp.status_code == 200
    assert resp.get_json()["success"] is True
    assert _counts(app) == (1, 0)


def test_email_channel_failure_still_returns_200(app, client, make_project, monkeypatch):
    import vibeqa.services.notifications as notifications

    def _boom(*a, **kw):
        raise RuntimeError("smtp exploded")

    monkeypatch.setattr(notifications, "send_feedback_notification_email", _boom)
    p = make_project(notify_email="owner@example.com")
    resp = client.post(URL, json=_payload(), headers=_headers(p.api_key))
    assert resp.status_code == 200


# ---- quotas ----
def test_monthly_feedback_limit_is_429(app, client, make_project):
    p = make_project(feedback_limit=1)
    assert client.post(URL, json=_payload(), headers=_headers(p.api_key)).status_code == 200

    resp = client.post(URL, json=_payload(), headers=_headers(p.api_key))
    assert resp.status_code == 429
    assert resp.get_json()["code"] == "FEEDBACK_LIMIT_EXCEEDED"
    assert _counts(app) == (1, 0)


def test_storage_limit_is_429(app, client, make_project):
    p = make_project(storage_limit_bytes=16)
    resp = client.post(
        URL,
        data=_multipart(_payload(), {"screenshot-0": (PNG_BYTES, "shot.png", "image/png")}),
        headers=_headers(p.api_key),
        content_type="multipart/form-data",
    )
    assert resp.status_code == 429
    body = resp.get_json()
    assert body["code"] == "STORAGE_LIMIT_EXCEEDED"
    assert "requestedSizeMB" in body["details"]
    assert _counts(app) == (0, 0)


# ---- HTTP surface ----
def test_preflight_returns_cors_headers(client):
    resp = client.options(URL, headers={"Origin": "https://app.example.com"})
    assert resp.status_code == 200
    assert resp.headers["Access-Control-Allow-Origin"] == "*"
    assert "X-Project-Key" in resp.headers["Access-Control-Allow-Headers"]
    assert "POST" in resp.headers["Access-Control-Allow-Methods"]


def test_error_responses_carry_cors_headers(client):
    resp = client.post(URL, json=_payload())
    assert resp.status_code == 401
    assert resp.headers["Access-Control-Allow-Origin"] == "*"


def test_get_is_json_405(client):
    resp = client.get(URL)
    assert resp.status_code == 405
    assert resp.get_json()["error"] == "Method not allowed"
    assert resp.headers["Access-Control-Allow-Origin"] == "*"


def test_body_over_content_limit_is_413(app, client, make_project, monkeypatch):
    monkeypatch.setitem(app.config, "MAX_CONTENT_LENGTH", 1024)
    p = make_project()
    resp = client.post(URL, json=_payload(description="x" * 4096), headers=_headers(p.api_key))
    assert resp.status_code == 413
    assert resp.get_json()["limit_bytes"] == 1024
    assert _counts(app) == (0, 0)


def test_rate_limit_per_client_ignores_presented_key(app, client, monkeypatch):
    import uuid

    monkeypatch.setitem(app.config, "WIDGET_RATE_LIMIT", "2 per minute")
    statuses = [
        client.post(URL, json=_payload(), headers=_headers(str(uuid.uuid4()))).status_code
        for _ in range(4)
    ]
    assert statuses == [401, 401, 429, 429]

    resp = client.post(URL, json=_payload(), headers=_headers(str(uuid.uuid4())))
    assert resp.get_json()["code"] == "RATE_LIMITED"
    assert resp.headers["Access-Control-Allow-Origin"] == "*"


def test_rate_limit_per_project_key_is_429(app, client, make_project, monkeypatch):
    monkeypatch.setitem(app.config, "WIDGET_PROJECT_RATE_LIMIT", "2 per minute")
    p = make_project()
    for _ in range(2):
        assert client.post(URL, json=_payload(description=""), headers=_headers(p.api_key)).status_code == 400

    resp = client.post(URL, json=_payload(), headers=_headers(p.api_key))
    assert resp.status_code == 429
    assert resp.get_json()["code"] == "RATE_LIMITED"

    # A different project has its own bucket
    other = make_project(name="Other Widget")
    assert client.post(URL, json=_payload(), headers=_headers(other.api_key)).status_code == 200


def test_project_bucket_key_does_not_store_the_credential(app):
    from vibeqa.extensions import project_rate_limit_key

    with app.test_request_context(URL, method="POST", headers={"X-Project-Key": "vqa_secret"}):
        key = project_rate_limit_key()
    assert key.startswith("project:")
    assert "vqa_secret" not in key

    with app.test_request_context(URL, method="POST"):
        assert project_rate_limit_key().startswith("client:")


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}


# ---- 500s ----
def test_unexpected_error_is_500_with_gated_details(app, client, make_project, monkeypatch):
    import vibeqa.services.ingest as ingest

    def _boom(*a, **kw):
        raise KeyError("plan snapshot missing")

    monkeypatch.setattr(ingest, "check_quotas", _boom)
    p = make_project()

    resp = client.post(URL, json=_payload(), headers=_headers(p.api_key))
    assert resp.status_code == 500
    body = resp.get_json()
    assert body["error"] == "Internal server error"
    assert "plan snapshot missing" in body["details"]

    monkeypatch.setitem(app.config, "EXPOSE_ERROR_DETAILS", False)
    resp = client.post(URL, json=_payload(), headers=_headers(p.api_key))
    assert resp.status_code == 500
    assert "details" not in resp.get_json()
    assert _counts(app) == (0, 0)


def test_feedback_write_failure_is_500(app, client, make_project, monkeypatch):
    from sqlalchemy.exc import OperationalError

    p = make_project()

    def _fail():
        raise OperationalError("INSERT INTO feedback", {}, Exception("database is gone"))

    monkeypatch.setattr(db.session, "commit", _fail)
    resp = client.post(URL, json=_payload(), headers=_headers(p.api_key))
    assert resp.status_code == 500
    assert resp.get_json()["error"] == "Failed to create feedback"
