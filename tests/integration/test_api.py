"""HTTP-level tests for the FastAPI application."""

import json

import pytest

from photo_pipeline.testing.fakes import create_test_image, make_token


def _files(*payloads):
    return [("images", (f"img{i}.jpg", data, "image/jpeg")) for i, data in enumerate(payloads)]


def _form(**overrides):
    form = {"entity_type": "property", "entity_id": "7"}
    form.update(overrides)
    return form


def _queued(fake_redis, queue="queue:photo_worker"):
    return [json.loads(p) for p in reversed(fake_redis.lrange(queue, 0, -1))]


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


class TestUploadEndpoint:
    """Tests for POST /upload."""

    def test_upload_success(self, client, auth_header, fake_redis):
        response = client.post(
            "/upload",
            headers=auth_header,
            data=_form(is_main="true"),
            files=_files(create_test_image(), create_test_image()),
        )

        assert response.status_code == 200
        results = response.json()["results"]
        assert [r["status"] for r in results] == ["ok", "ok"]
        assert all(r["url"].endswith(".webp") for r in results)
        assert [d["is_main"] for d in _queued(fake_redis)] == [True, False]

    def test_upload_partial_failure(self, client, auth_header):
        response = client.post(
            "/upload",
            headers=auth_header,
            data=_form(),
            files=_files(create_test_image(), b"broken"),
        )

        assert response.status_code == 200
        ok, failed = response.json()["results"]
        assert ok["status"] == "ok"
        assert failed == {"status": "error", "error": failed["error"], "file": "img1.jpg"}

    def test_upload_private(self, client, auth_header, fake_s3):
        response = client.post(
            "/upload",
            headers=auth_header,
            data=_form(access="private"),
            files=_files(create_test_image()),
        )

        key = response.json()["results"][0]["url"]
        assert key.startswith("agency_42/property_7/private/")
        assert fake_s3.get_bucket("photos").objects[key].acl == "private"

    def test_upload_without_token(self, client, fake_s3):
        response = client.post("/upload", data=_form(), files=_files(create_test_image()))

        assert response.status_code == 401
        assert "error" in response.json()
        assert fake_s3.operations == []

    def test_upload_with_invalid_token(self, client):
        response = client.post(
            "/upload",
            headers={"Authorization": "Bearer not-a-token"},
            data=_form(),
            files=_files(create_test_image()),
        )

        assert response.status_code == 401

    def test_upload_wrong_role(self, client):
        response = client.post(
            "/upload",
            headers={"Authorization": f"Bearer {make_token(role='admin')}"},
            data=_form(),
            files=_files(create_test_image()),
        )

        assert response.status_code == 403

    def test_upload_no_files(self, client, auth_header):
        response = client.post("/upload", headers=auth_header, data=_form())

        assert response.status_code == 400
        assert response.json() == {"error": "No files provided"}

    def test_upload_missing_entity(self, client, auth_header):
        response = client.post(
            "/upload", headers=auth_header, data={"entity_id": "7"}, files=_files(create_test_image())
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Missing entity_type"}

    def test_upload_images_field_not_a_file(self, client, auth_header, fake_s3):
        """Test that a text value in the images field is a 400 in the error shape."""
        response = client.post("/upload", headers=auth_header, data=_form(images="not-a-file"))

        assert response.status_code == 400
        body = response.json()
        assert body["error"].startswith("Invalid images")
        assert "detail" not in body
        assert fake_s3.operations == []

    def test_upload_malformed_form_without_token(self, client, fake_s3):
        response = client.post("/upload", data=_form(images="not-a-file"))

        assert response.status_code == 401
        assert response.json() == {"error": "Missing Authorization header"}
        assert fake_s3.operations == []

    def test_upload_too_many_files(self, client, auth_header, fake_s3, fake_redis):
        response = client.post(
            "/upload",
            headers=auth_header,
            data=_form(),
            files=_files(*([b"x"] * 31)),
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Too many files (max 30)"}
        assert fake_s3.operations == []
        assert fake_redis.calls == []

    def test_upload_dispatch_failure(self, client, auth_header, fake_redis):
        """Test that a queue outage is a 502 that still reports the stored items."""
        fake_redis.set_failure_mode(True)

        response = client.post(
            "/upload", headers=auth_header, data=_form(), files=_files(create_test_image())
        )

        assert response.status_code == 502
        body = response.json()
        assert body["error"].startswith("dispatchFailed")
        assert body["results"][0]["status"] == "ok"


class TestDeleteEndpoint:
    """Tests for DELETE /delete-photos."""

    def _delete(self, client, headers, body):
        return client.request("DELETE", "/delete-photos", headers=headers, json=body)

    def test_delete_own_and_foreign(self, client, auth_header, fake_s3, fake_redis):
        own = "agency_42/property_7/public/a.webp"
        foreign = "agency_99/property_7/public/b.webp"
        for key in (own, foreign):
            fake_s3.put_object(Bucket="photos", Key=key, Body=b"x")

        response = self._delete(
            client,
            auth_header,
            {"entity_type": "property", "entity_id": "7", "file_urls": [own, foreign]},
        )

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "deleted": [own], "failed": [foreign]}
        assert foreign in fake_s3.get_bucket("photos").objects
        notices = _queued(fake_redis, "queue:photo_delete_worker")
        assert notices == [{"entity_type": "property", "entity_id": "7", "file_urls": [own]}]

    def test_delete_not_found(self, client, auth_header):
        key = "agency_42/property_7/public/gone.webp"

        response = self._delete(
            client, auth_header, {"entity_type": "property", "entity_id": "7", "file_urls": [key]}
        )

        assert response.json() == {"status": "ok", "deleted": [], "failed": [key]}

    def test_delete_invalid_json(self, client, auth_header):
        response = client.request(
            "DELETE",
            "/delete-photos",
            headers={**auth_header, "Content-Type": "application/json"},
            content=b"{not json",
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid JSON in request body"}

    def test_delete_missing_parameters(self, client, auth_header):
        response = self._delete(client, auth_header, {"entity_type": "property"})

        assert response.status_code == 400
        assert response.json() == {"error": "Missing or invalid parameters"}

    def test_delete_without_token(self, client):
        response = self._delete(
            client, {}, {"entity_type": "property", "entity_id": "7", "file_urls": ["a"]}
        )

        assert response.status_code == 401

    def test_delete_wrong_role(self, client):
        headers = {"Authorization": f"Bearer {make_token(role='viewer')}"}

        response = self._delete(
            client, headers, {"entity_type": "property", "entity_id": "7", "file_urls": ["a"]}
        )

        assert response.status_code == 403


class TestPresignEndpoints:
    """Tests for GET /presigned-url and POST /presigned-urls."""

    def test_single(self, client, auth_header, fake_s3):
        fake_s3.put_object(Bucket="photos", Key="agency_42/private/a.webp", Body=b"secret")

        response = client.get(
            "/presigned-url", headers=auth_header, params={"key": "agency_42/private/a.webp"}
        )

        assert response.status_code == 200
        assert fake_s3.open_presigned_url(response.json()["url"]) == b"secret"

    def test_single_default_ttl(self, client, auth_header):
        response = client.get("/presigned-url", headers=auth_header, params={"key": "a.webp"})

        assert "X-Amz-Expires=3600" in response.json()["url"]

    def test_single_missing_key(self, client, auth_header):
        response = client.get("/presigned-url", headers=auth_header)

        assert response.status_code == 400
        assert response.json() == {"error": "Missing key parameter"}

    def test_single_store_failure(self, client, auth_header, fake_s3):
        fake_s3.set_failure_mode(True, "no signer")

        response = client.get("/presigned-url", headers=auth_header, params={"key": "a.webp"})

        assert response.status_code == 500

    def test_single_without_token(self, client):
        response = client.get("/presigned-url", params={"key": "a.webp"})

        assert response.status_code == 401

    def test_many(self, client, auth_header):
        response = client.post(
            "/presigned-urls", headers=auth_header, json={"keys": ["a.webp", "b.webp", 5]}
        )

        assert response.status_code == 200
        results = response.json()["results"]
        assert [r["status"] for r in results] == ["ok", "ok", "error"]
        assert results[0]["key"] == "a.webp"
        assert results[2]["key"] == 5

    @pytest.mark.parametrize("body", [{"keys": "a.webp"}, {}])
    def test_many_requires_list(self, client, auth_header, body):
        response = client.post("/presigned-urls", headers=auth_header, json=body)

        assert response.status_code == 400
        assert response.json() == {"error": "keys must be a list"}
