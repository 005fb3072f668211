"""
Image storage backends.

One backend is selected from configuration at startup:

- LocalStorage: files under settings.UPLOAD_DIR, served from /uploads/
- S3Storage: AWS S3 bucket, optionally fronted by CloudFront
- CloudinaryStorage: Cloudinary image CDN, folder "blog-images"

STORAGE_BACKEND="auto" prefers Cloudinary, then S3, then local disk, based on
which credentials are present.

Deletes are routed by the shape of the stored path rather than the active
backend, so an image uploaded before a backend switch can still be removed.
"""

import io
import os
import secrets
import time
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import boto3
import cloudinary
import cloudinary.uploader

from app.core.config import settings
from app.core.logging_config import get_logger

logger = get_logger(__name__)

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}

LOCAL_URL_PREFIX = "/uploads/"
CLOUDINARY_HOST = "res.cloudinary.com"
CLOUDINARY_FOLDER = "blog-images"


@dataclass
class StoredFile:
    name: str
    size: int
    type: str
    url: str
    path: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def generate_filename(original_name: str, content_type: str) -> str:
    """<millis>-<random>.<ext>, keeping the client's extension when it has one."""
    suffix = Path(original_name or "").suffix.lstrip(".").lower()
    ext = suffix or ALLOWED_IMAGE_TYPES.get(content_type, "bin")
    return f"{int(time.time() * 1000)}-{secrets.token_hex(6)}.{ext}"


class StorageBackend:
    name = "base"

    def save(self, data: bytes, filename: str, content_type: str) -> StoredFile:
        raise NotImplementedError

    def delete(self, path: str) -> None:
        raise NotImplementedError


class LocalStorage(StorageBackend):
    name = "local"

    def __init__(self, upload_dir: Optional[str] = None):
        self.upload_dir = Path(upload_dir or settings.UPLOAD_DIR)

    def save(self, data: bytes, filename: str, content_type: str) -> StoredFile:
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        stored_name = generate_filename(filename, content_type)
        (self.upload_dir / stored_name).write_bytes(data)
        url = f"{LOCAL_URL_PREFIX}{stored_name}"
        return StoredFile(name=filename, size=len(data), type=content_type, url=url, path=url)

    def delete(self, path: str) -> None:
        # Only the basename is honoured; "/uploads/../x" cannot escape the directory
        target = self.upload_dir / os.path.basename(path)
        target.unlink(missing_ok=True)


class S3Storage(StorageBackend):
    name = "s3"

    def __init__(self, client=None):
        self.bucket = settings.AWS_S3_BUCKET_NAME
        self.region = settings.AWS_REGION
        self.client = client or boto3.client(
            "s3",
            region_name=settings.AWS_REGION,
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
        )

    def public_url(self, key: str) -> str:
        if settings.AWS_CLOUDFRONT_DOMAIN:
            return f"https://{settings.AWS_CLOUDFRONT_DOMAIN}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def save(self, data: bytes, filename: str, content_type: str) -> StoredFile:
        key = generate_filename(filename, content_type)
        self.client.put_object(Bucket=self.bucket, Key=key, Body=data, ContentType=content_type)
        return StoredFile(name=filename, size=len(data), type=content_type, url=self.public_url(key), path=key)

    def delete(self, path: str) -> None:
        self.client.delete_object(Bucket=self.bucket, Key=path)


class CloudinaryStorage(StorageBackend):
    name = "cloudinary"

    def __init__(self):
        cloudinary.config(
            cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            api_key=settings.CLOUDINARY_API_KEY,
            api_secret=settings.CLOUDINARY_API_SECRET,
            secure=True,
        )

    def save(self, data: bytes, filename: str, content_type: str) -> StoredFile:
        result = cloudinary.uploader.upload(
            io.BytesIO(data),
            folder=CLOUDINARY_FOLDER,
            public_id=f"blog-{int(time.time() * 1000)}-{secrets.token_hex(4)}",
            resource_type="image",
        )
        url = result.get("secure_url")
        if not url:
            raise RuntimeError("Cloudinary response did not include a URL")
        return StoredFile(
            name=filename,
            size=len(data),
            type=content_type,
            url=url,
            path=result.get("public_id", ""),
        )

    def delete(self, path: str) -> None:
        result = cloudinary.uploader.destroy(cloudinary_public_id(path), resource_type="image")
        if result.get("result") not in ("ok", "not found"):
            raise RuntimeError(f"Cloudinary delete failed: {result.get('result')}")


def cloudinary_public_id(path: str) -> str:
    """
    Public id from either a bare id or a delivery URL:
    https://res.cloudinary.com/demo/image/upload/v1712/blog-images/x.png -> blog-images/x
    """
    if not path.startswith(("http://", "https://")):
        return path
    url_path = urlparse(path).path
    _, _, tail = url_path.partition("/upload/")
    parts = tail.split("/")
    if parts and parts[0].startswith("v") and parts[0][1:].isdigit():
        parts = parts[1:]
    return os.path.splitext("/".join(parts))[0]


def s3_configured() -> bool:
    return all([
        settings.AWS_ACCESS_KEY_ID,
        settings.AWS_SECRET_ACCESS_KEY,
        settings.AWS_REGION,
        settings.AWS_S3_BUCKET_NAME,
    ])


def cloudinary_configured() -> bool:
    return all([
        settings.CLOUDINARY_CLOUD_NAME,
        settings.CLOUDINARY_API_KEY,
        settings.CLOUDINARY_API_SECRET,
    ])


def resolve_backend_name() -> str:
    choice = (settings.STORAGE_BACKEND or "auto").lower()
    if choice in ("local", "s3", "cloudinary"):
        return choice
    if cloudinary_configured():
        return "cloudinary"
    if s3_configured():
        return "s3"
    return "local"


_BACKENDS = {
    "local": LocalStorage,
    "s3": S3Storage,
    "cloudinary": CloudinaryStorage,
}


def get_storage_backend(name: Optional[str] = None) -> StorageBackend:
    backend_name = name or resolve_backend_name()
    logger.debug("Storage backend selected", backend=backend_name)
    return _BACKENDS[backend_name]()


def backend_name_for_path(path: str) -> str:
    """Which backend owns a stored path."""
    if path.startswith(LOCAL_URL_PREFIX):
        return "local"
    if path.startswith(("http://", "https://")) and CLOUDINARY_HOST in (urlparse(path).netloc or ""):
        return "cloudinary"
    if resolve_backend_name() == "cloudinary":
        return "cloudinary"
    return "s3"


def delete_stored_file(path: str) -> str:
    """Remove a previously stored file. Returns the backend name used."""
    backend_name = backend_name_for_path(path)
    get_storage_backend(backend_name).delete(path)
    logger.info("Stored file deleted", backend=backend_name, path=path)
    return backend_name
