"""
QloudSound API - HTTP Route Tests

End-to-end tests through the FastAPI app (TestClient). Validates:
- Service info, health and public-site info endpoints
- Trailing-slash tolerance and the catch-all 404
- Request intake: success path, honeypot, missing fields, bad JSON
- Storage failures surfaced as storage_error / internal_error
- Telegram notification scheduled after a successful submission only
- Published catalog listing
- JSON rendering (content type, indentation)
"""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request

from qloudsound.database import get_submission, list_catalog_entries, list_submissions
from qloudsound.main import app
from qloudsound.seed import PUBLISHED_TRACKS
from tests.conftest import fetch_rows

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _post_request(client, payload):
    return client.post("/public-site/requests", json=payload)


# ===========================================================================
# Info / health
# ===========================================================================


class TestServiceEndpoints:
    @patch("qloudsound.routes.api.APP_VERSION", "1.2.3")
    def test_root_reports_service_and_version(self, client):
        response = client.get("/")
        assert response.status_code == 200
        body = response.json()
        assert body["service"] == "qloudsound-api"
        assert body["version"] == "1.2.3"
        assert body["hostname"] == "testserver"
        assert "docs" in body
        assert "region" in body

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "ok"
        assert body["timestamp"].endswith("Z")

    def test_public_site_info(self, client):
        body = client.get("/public-site").json()
        assert body["service"] == "qloudsound-api:public-site"
        assert body["submit"] == "http://testserver/public-site/requests"

    def test_public_site_health(self, client):
        body = client.get("/public-site/health").json()
        assert body["status"] == "ok"
        assert body["scope"] == "public-site"

    @pytest.mark.parametrize(
        "path", ["/health/", "/public-site/", "/public-site/health/", "/public-site/catalog/"]
    )
    def test_trailing_slash_tolerated(self, client, path):
        response = client.get(path, follow_redirects=False)
        assert response.status_code == 200

    def test_json_rendering(self, client):
        response = client.get("/health")
        assert response.headers["content-type"] == "application/json; charset=utf-8"
        assert response.text.startswith('{\n  "status": "ok"')


# ===========================================================================
# Not found
# ===========================================================================


class TestNotFound:
    def test_unknown_path(self, client):
        response = client.get("/nope")
        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "not_found"
        assert body["message"] == "Route GET /nope is not implemented"

    def test_wrong_method_on_known_path(self, client):
        response = client.post("/health")
        assert response.status_code == 404
        assert response.json()["message"] == "Route POST /health is not implemented"

    def test_get_on_submission_endpoint(self, client):
        response = client.get("/public-site/requests")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_other_http_errors_become_internal_error(self):
        handler = app.exception_handlers[StarletteHTTPException]
        request = Request({"type": "http", "method": "GET", "path": "/x", "headers": []})
        response = asyncio.run(handler(request, StarletteHTTPException(400, "bad header")))
        assert response.status_code == 500
        assert json.loads(response.body) == {
            "error": "internal_error",
            "message": "bad header",
        }


# ===========================================================================
# Request intake
# ===========================================================================


class TestSubmitRequest:
    def test_valid_submission(self, client, db_path, valid_payload):
        response = _post_request(client, valid_payload)
        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True

        stored = asyncio.run(get_submission(body["id"]))
        assert stored is not None
        assert stored.status == "pending"
        assert stored.name == "Laia"
        assert stored.filename == "letra.txt"

        catalog = fetch_rows(db_path, "SELECT * FROM catalog WHERE id = ?", (body["id"],))
        assert len(catalog) == 1
        assert catalog[0]["status"] == "requested"
        assert catalog[0]["title"] == "Laia - Rumba"
        assert catalog[0]["submitted_at"] == stored.created_at

    def test_fields_are_trimmed(self, client, valid_payload):
        valid_payload.update(name="  Laia ", style=" Rumba\n", description="   ")
        body = _post_request(client, valid_payload).json()
        stored = asyncio.run(get_submission(body["id"]))
        assert stored.name == "Laia"
        assert stored.style == "Rumba"
        assert stored.description is None

    def test_ids_are_unique(self, client, valid_payload):
        ids = {_post_request(client, valid_payload).json()["id"] for _ in range(3)}
        assert len(ids) == 3
        assert len(asyncio.run(list_submissions())) == 3

    def test_honeypot_rejected(self, client, valid_payload):
        valid_payload["website"] = "spammy"
        response = _post_request(client, valid_payload)
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_submission"
        assert asyncio.run(list_submissions()) == []
        assert asyncio.run(list_catalog_entries("requested")) == []

    def test_non_text_honeypot_ignored(self, client, valid_payload):
        valid_payload["website"] = False
        assert _post_request(client, valid_payload).status_code == 200

    @pytest.mark.parametrize("value", [True, 42, ["Laia"], {"first": "Laia"}])
    def test_non_text_required_field_is_missing(self, client, valid_payload, value):
        valid_payload["name"] = value
        response = _post_request(client, valid_payload)
        assert response.status_code == 400
        assert response.json()["error"] == "missing_required_fields"
        assert asyncio.run(list_submissions()) == []

    def test_non_text_optional_field_dropped(self, client, valid_payload):
        valid_payload["filename"] = 7
        body = _post_request(client, valid_payload).json()
        assert asyncio.run(get_submission(body["id"])).filename is None

    def test_honeypot_checked_before_required_fields(self, client):
        response = _post_request(client, {"website": "http://spam.example"})
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_submission"

    def test_blank_honeypot_accepted(self, client, valid_payload):
        valid_payload["website"] = "   "
        assert _post_request(client, valid_payload).status_code == 200

    @pytest.mark.parametrize("field", ["name", "email", "style"])
    def test_missing_required_field(self, client, valid_payload, field):
        valid_payload[field] = "   "
        response = _post_request(client, valid_payload)
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "missing_required_fields"
        assert body["message"] == "name, email and style are mandatory"
        assert asyncio.run(list_submissions()) == []

    def test_empty_body(self, client):
        response = client.post("/public-site/requests", content=b"")
        assert response.status_code == 400
        assert response.json()["error"] == "missing_required_fields"

    def test_malformed_json(self, client):
        response = client.post(
            "/public-site/requests",
            content=b"{name: nope",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_submission"

    def test_json_array_rejected(self, client):
        response = client.post("/public-site/requests", content=b'["a", "b"]')
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_submission"

    def test_no_store_gives_storage_error(self, client, no_store, valid_payload):
        notify = AsyncMock(return_value=True)
        with patch("qloudsound.routes.public_site.notify_submission", notify):
            response = _post_request(client, valid_payload)
        assert response.status_code == 500
        assert response.json()["error"] == "storage_error"
        notify.assert_not_called()

    def test_database_failure_gives_storage_error(self, client, valid_payload):
        failing = AsyncMock(side_effect=OSError("disk full"))
        with patch("qloudsound.routes.public_site.record_submission", failing):
            response = _post_request(client, valid_payload)
        assert response.status_code == 500
        assert response.json()["error"] == "storage_error"


# ===========================================================================
# Notification
# ===========================================================================


class TestSubmissionNotification:
    def test_notifies_after_storing(self, client, valid_payload):
        notify = AsyncMock(return_value=True)
        with patch("qloudsound.routes.public_site.notify_submission", notify):
            body = _post_request(client, valid_payload).json()

        notify.assert_awaited_once()
        submission, note = notify.await_args.args
        assert submission.id == body["id"]
        assert submission.email == "laia@example.com"
        assert note == "Guardado en la base de datos"

    def test_notification_failure_does_not_change_response(self, client, valid_payload):
        notify = AsyncMock(side_effect=httpx.ConnectError("unreachable"))
        with patch("qloudsound.routes.public_site.notify_submission", notify):
            response = _post_request(client, valid_payload)

        assert response.status_code == 200
        assert response.json()["ok"] is True
        notify.assert_awaited_once()

    def test_rejected_submission_not_notified(self, client, valid_payload):
        valid_payload["website"] = "spammy"
        notify = AsyncMock(return_value=True)
        with patch("qloudsound.routes.public_site.notify_submission", notify):
            _post_request(client, valid_payload)
        notify.assert_not_called()


# ===========================================================================
# Catalog
# ===========================================================================


class TestCatalog:
    def test_lists_published_tracks(self, client):
        response = client.get("/public-site/catalog")
        assert response.status_code == 200
        tracks = response.json()["tracks"]
        assert {t["id"] for t in tracks} == {t.id for t in PUBLISHED_TRACKS}
        assert all(t["status"] == "published" for t in tracks)

    def test_track_json_shape(self, client):
        track = client.get("/public-site/catalog").json()["tracks"][0]
        assert set(track) == {"id", "title", "status", "isrc", "upc", "submittedAt"}

    def test_newest_first(self, client):
        tracks = client.get("/public-site/catalog").json()["tracks"]
        stamps = [t["submittedAt"] for t in tracks]
        assert stamps == sorted(stamps, reverse=True)

    def test_requested_entries_excluded(self, client, valid_payload):
        request_id = _post_request(client, valid_payload).json()["id"]
        tracks = client.get("/public-site/catalog").json()["tracks"]
        assert request_id not in {t["id"] for t in tracks}

        everything = asyncio.run(list_catalog_entries())
        assert request_id in {e.id for e in everything}

    def test_repeated_calls_keep_six_tracks(self, client, db_path):
        for _ in range(4):
            tracks = client.get("/public-site/catalog").json()["tracks"]
            assert len(tracks) == len(PUBLISHED_TRACKS)
        assert len(fetch_rows(db_path, "SELECT id FROM catalog")) == len(PUBLISHED_TRACKS)

    def test_non_ascii_titles_kept(self, client):
        response = client.get("/public-site/catalog")
        assert "Ya está bien" in response.text
        titles = {t["title"] for t in json.loads(response.text)["tracks"]}
        assert "Más pija que yo" in titles

    def test_no_store_gives_internal_error(self, client, no_store):
        response = client.get("/public-site/catalog")
        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "internal_error"
        assert "REQUESTS_DB_PATH" in body["message"]
