"""
File storage tests: one-time upload URLs, storage ids and downloads.
"""

from datetime import timedelta

import pytest

from studiodesk.extensions import db
from studiodesk.models import StoredFile, UploadTicket
from studiodesk.services import file_service
from studiodesk.time_utils import utcnow
from studiodesk.validation import NotFoundError, ValidationError


PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def _token(upload_url: str) -> str:
    return upload_url.rsplit("/", 1)[1]


class TestUploadTickets:
    def test_upload_returns_storage_id(self, db_session):
        url = file_service.generate_upload_url()
        assert url.startswith("/api/files/upload/")

        stored = file_service.store_upload(_token(url), PNG_BYTES, content_type="image/png")

        assert stored.size_bytes == len(PNG_BYTES)
        assert file_service.get_file(stored.storage_id).data == PNG_BYTES
        assert file_service.get_file_url(stored.storage_id) == f"/api/files/{stored.storage_id}"

    def test_base_url_prefix(self, db_session):
        url = file_service.generate_upload_url(base_url="http://studio.test/")
        assert url.startswith("http://studio.test/api/files/upload/")

    def test_ticket_is_single_use(self, db_session):
        token = _token(file_service.generate_upload_url())
        file_service.store_upload(token, PNG_BYTES)

        with pytest.raises(ValidationError, match="already used"):
            file_service.store_upload(token, PNG_BYTES)
        assert db.session.query(StoredFile).count() == 1

    def test_expired_ticket(self, db_session):
        token = _token(file_service.generate_upload_url())
        ticket = db.session.query(UploadTicket).one()
        ticket.expires_at = utcnow() - timedelta(seconds=1)
        db.session.commit()

        with pytest.raises(ValidationError, match="expired"):
            file_service.store_upload(token, PNG_BYTES)

    def test_unknown_token(self, db_session):
        with pytest.raises(NotFoundError):
            file_service.store_upload("not-a-token", PNG_BYTES)

    def test_empty_body(self, db_session):
        token = _token(file_service.generate_upload_url())
        with pytest.raises(ValidationError, match="empty"):
            file_service.store_upload(token, b"")

    def test_oversized_body(self, app, db_session):
        token = _token(file_service.generate_upload_url())
        limit = app.config["MAX_UPLOAD_BYTES"]
        with pytest.raises(ValidationError, match="exceeds"):
            file_service.store_upload(token, b"x" * (limit + 1))


class TestLookups:
    def test_unknown_storage_id(self, db_session):
        assert file_service.get_file_url("missing") is None
        assert file_service.store_file_id("missing") == {"storageId": "missing", "url": None}
        with pytest.raises(NotFoundError):
            file_service.get_file("missing")


class TestFileRoutes:
    def test_upload_and_download_over_http(self, client, staff_headers):
        response = client.post("/api/files/upload-url", headers=staff_headers)
        assert response.status_code == 200
        upload_url = response.json["uploadUrl"]
        assert upload_url.startswith("http://localhost/api/files/upload/")

        response = client.post(
            f"/api/files/upload/{_token(upload_url)}",
            data=PNG_BYTES,
            content_type="image/png",
        )
        assert response.status_code == 201
        storage_id = response.json["storageId"]

        response = client.get(f"/api/files/{storage_id}/url", headers=staff_headers)
        assert response.json["url"] == f"http://localhost/api/files/{storage_id}"

        response = client.get(f"/api/files/{storage_id}")
        assert response.status_code == 200
        assert response.mimetype == "image/png"
        assert response.data == PNG_BYTES

    def test_upload_url_requires_auth(self, client, db_session):
        assert client.post("/api/files/upload-url").status_code == 401

    def test_reused_upload_url_is_400(self, client, staff_headers):
        upload_url = client.post("/api/files/upload-url", headers=staff_headers).json["uploadUrl"]
        path = f"/api/files/upload/{_token(upload_url)}"

        assert client.post(path, data=b"first", content_type="text/plain").status_code == 201
        response = client.post(path, data=b"second", content_type="text/plain")
        assert response.status_code == 400

    def test_download_unknown_is_404(self, client, db_session):
        assert client.get("/api/files/missing").status_code == 404

    def test_store_requires_storage_id(self, client, staff_headers):
        response = client.post("/api/files/store", json={}, headers=staff_headers)
        assert response.status_code == 400

    def test_body_limit_follows_upload_limit(self, app):
        assert app.config["MAX_CONTENT_LENGTH"] == app.config["MAX_UPLOAD_BYTES"]

    def test_oversized_body_refused_before_storing(self, app, client, staff_headers, monkeypatch):
        monkeypatch.setitem(app.config, "MAX_CONTENT_LENGTH", 16)
        upload_url = client.post("/api/files/upload-url", headers=staff_headers).json["uploadUrl"]

        response = client.post(
            f"/api/files/upload/{_token(upload_url)}",
            data=b"x" * 17,
            content_type="application/octet-stream",
        )

        assert response.status_code == 413
        assert db.session.query(StoredFile).count() == 0
