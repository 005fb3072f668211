"""
Tests for image upload, storage backends and stored-file deletion.
"""

from unittest.mock import MagicMock, patch

import pytest

from app.core.config import settings
from app.services.storage import (
    CloudinaryStorage,
    LocalStorage,
    S3Storage,
    backend_name_for_path,
    cloudinary_public_id,
    generate_filename,
    resolve_backend_name,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))
    monkeypatch.setattr(settings, "STORAGE_BACKEND", "local")
    return tmp_path


class TestUploadEndpoint:
    """Tests for POST /api/upload/image."""

    def test_requires_authentication(self, client, upload_dir):
        response = client.post("/api/upload/image", files={"file": ("a.png", PNG_BYTES, "image/png")})
        assert response.status_code == 401

    def test_no_file(self, client, subscriber_headers, upload_dir):
        response = client.post("/api/upload/image", headers=subscriber_headers)
        assert response.status_code == 400

    def test_invalid_type(self, client, subscriber_headers, upload_dir):
        response = client.post(
            "/api/upload/image",
            headers=subscriber_headers,
            files={"file": ("notes.pdf", b"%PDF-1.4", "application/pdf")},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_FILE_TYPE"
        assert list(upload_dir.iterdir()) == []

    def test_too_large(self, client, subscriber_headers, upload_dir, monkeypatch):
        monkeypatch.setattr(settings, "UPLOAD_MAX_BYTES", 16)

        response = client.post(
            "/api/upload/image",
            headers=subscriber_headers,
            files={"file": ("big.png", PNG_BYTES, "image/png")},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "FILE_TOO_LARGE"
        assert list(upload_dir.iterdir()) == []

    def test_local_save_and_delete(self, client, subscriber_headers, upload_dir):
        response = client.post(
            "/api/upload/image",
            headers=subscriber_headers,
            files={"file": ("photo.png", PNG_BYTES, "image/png")},
        )

        assert response.status_code == 200
        image = response.json()["image"]
        assert image["name"] == "photo.png"
        assert image["size"] == len(PNG_BYTES)
        assert image["type"] == "image/png"
        assert image["url"].startswith("/uploads/")
        assert image["url"].endswith(".png")
        stored = upload_dir / image["url"].rsplit("/", 1)[1]
        assert stored.read_bytes() == PNG_BYTES

        response = client.delete("/api/upload/image", headers=subscriber_headers, params={"path": image["path"]})

        assert response.status_code == 200
        assert response.json()["backend"] == "local"
        assert not stored.exists()

    def test_delete_requires_path(self, client, subscriber_headers):
        response = client.delete("/api/upload/image", headers=subscriber_headers)
        assert response.status_code == 400

    def test_backend_failure(self, client, subscriber_headers):
        from app.api import deps
        from app.main import app

        failing = MagicMock()
        failing.name = "s3"
        failing.save.side_effect = RuntimeError("bucket unreachable")
        app.dependency_overrides[deps.get_storage] = lambda: failing

        response = client.post(
            "/api/upload/image",
            headers=subscriber_headers,
            files={"file": ("photo.jpg", PNG_BYTES, "image/jpeg")},
        )

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "UPLOAD_FAILED"
        assert "bucket unreachable" in error["details"]


class TestLocalStorage:
    """Tests for the local disk backend."""

    def test_delete_cannot_escape_directory(self, tmp_path):
        upload_dir = tmp_path / "uploads"
        upload_dir.mkdir()
        outside = tmp_path / "secret.txt"
        outside.write_text("keep me")

        LocalStorage(str(upload_dir)).delete("/uploads/../secret.txt")

        assert outside.exists()

    def test_delete_missing_file_is_quiet(self, tmp_path):
        LocalStorage(str(tmp_path)).delete("/uploads/never-existed.png")

    def test_generated_names_keep_extension(self):
        assert generate_filename("Photo.JPEG", "image/jpeg").endswith(".jpeg")
        assert generate_filename("noext", "image/webp").endswith(".webp")
        assert generate_filename("a.png", "image/png") != generate_filename("a.png", "image/png")


class TestS3Storage:
    """Tests for the S3 backend with a mocked client."""

    def test_save_uses_regional_url(self, monkeypatch):
        monkeypatch.setattr(settings, "AWS_S3_BUCKET_NAME", "blog-bucket")
        monkeypatch.setattr(settings, "AWS_REGION", "sa-east-1")
        monkeypatch.setattr(settings, "AWS_CLOUDFRONT_DOMAIN", "")
        client = MagicMock()

        stored = S3Storage(client=client).save(PNG_BYTES, "photo.png", "image/png")

        client.put_object.assert_called_once()
        kwargs = client.put_object.call_args.kwargs
        assert kwargs["Bucket"] == "blog-bucket"
        assert kwargs["ContentType"] == "image/png"
        assert stored.url == f"https://blog-bucket.s3.sa-east-1.amazonaws.com/{stored.path}"

    def test_save_prefers_cloudfront(self, monkeypatch):
        monkeypatch.setattr(settings, "AWS_CLOUDFRONT_DOMAIN", "cdn.example.com")

        stored = S3Storage(client=MagicMock()).save(PNG_BYTES, "photo.png", "image/png")

        assert stored.url == f"https://cdn.example.com/{stored.path}"

    def test_delete(self, monkeypatch):
        monkeypatch.setattr(settings, "AWS_S3_BUCKET_NAME", "blog-bucket")
        client = MagicMock()

        S3Storage(client=client).delete("123-abc.png")

        client.delete_object.assert_called_once_with(Bucket="blog-bucket", Key="123-abc.png")


class TestCloudinaryStorage:
    """Tests for the Cloudinary backend with the SDK mocked."""

    @patch("cloudinary.uploader.upload")
    def test_save(self, mock_upload):
        mock_upload.return_value = {
            "secure_url": "https://res.cloudinary.com/demo/image/upload/v1/blog-images/x.png",
            "public_id": "blog-images/x",
        }

        stored = CloudinaryStorage().save(PNG_BYTES, "x.png", "image/png")

        assert stored.url.startswith("https://res.cloudinary.com/")
        assert stored.path == "blog-images/x"
        assert mock_upload.call_args.kwargs["folder"] == "blog-images"

    @patch("cloudinary.uploader.upload")
    def test_missing_url_is_an_error(self, mock_upload):
        mock_upload.return_value = {}

        with pytest.raises(RuntimeError):
            CloudinaryStorage().save(PNG_BYTES, "x.png", "image/png")

    @patch("cloudinary.uploader.destroy")
    def test_delete_by_url(self, mock_destroy):
        mock_destroy.return_value = {"result": "ok"}

        CloudinaryStorage().delete("https://res.cloudinary.com/demo/image/upload/v1712/blog-images/x.png")

        assert mock_destroy.call_args.args[0] == "blog-images/x"

    @patch("cloudinary.uploader.destroy")
    def test_delete_failure_raises(self, mock_destroy):
        mock_destroy.return_value = {"result": "error"}

        with pytest.raises(RuntimeError):
            CloudinaryStorage().delete("blog-images/x")

    @patch("cloudinary.uploader.destroy")
    def test_delete_endpoint_routes_by_url(self, mock_destroy, client, subscriber_headers):
        mock_destroy.return_value = {"result": "ok"}

        response = client.delete(
            "/api/upload/image",
            headers=subscriber_headers,
            params={"path": "https://res.cloudinary.com/demo/image/upload/v1/blog-images/y.jpg"},
        )

        assert response.status_code == 200
        assert response.json()["backend"] == "cloudinary"


class TestBackendSelection:
    """Tests for picking and inferring backends."""

    def test_public_id_from_bare_id(self):
        assert cloudinary_public_id("blog-images/x") == "blog-images/x"

    def test_public_id_without_version(self):
        assert cloudinary_public_id("https://res.cloudinary.com/demo/image/upload/blog-images/x.webp") == "blog-images/x"

    def test_path_inference(self, monkeypatch):
        monkeypatch.setattr(settings, "STORAGE_BACKEND", "local")

        assert backend_name_for_path("/uploads/1-a.png") == "local"
        assert backend_name_for_path("https://res.cloudinary.com/demo/image/upload/x.png") == "cloudinary"
        assert backend_name_for_path("1700000000000-abc.png") == "s3"

    def test_bare_id_goes_to_active_cloudinary(self, monkeypatch):
        monkeypatch.setattr(settings, "STORAGE_BACKEND", "cloudinary")
        assert backend_name_for_path("blog-images/x") == "cloudinary"

    def test_auto_prefers_cloudinary_then_s3(self, monkeypatch):
        monkeypatch.setattr(settings, "STORAGE_BACKEND", "auto")
        for key in ("CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET",
                    "AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY", "AWS_REGION", "AWS_S3_BUCKET_NAME"):
            monkeypatch.setattr(settings, key, "")
        assert resolve_backend_name() == "local"

        for key in ("AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY", "AWS_REGION", "AWS_S3_BUCKET_NAME"):
            monkeypatch.setattr(settings, key, "set")
        assert resolve_backend_name() == "s3"

        for key in ("CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET"):
            monkeypatch.setattr(settings, key, "set")
        assert resolve_backend_name() == "cloudinary"

    def test_explicit_choice_wins(self, monkeypatch):
        monkeypatch.setattr(settings, "STORAGE_BACKEND", "S3")
        assert resolve_backend_name() == "s3"
