"""Storage backends for finished media.

Supports the local filesystem and S3/MinIO compatible object storage. Both
backends guarantee that a key is either absent or holds a complete object:
local writes go through a temporary sibling that is atomically renamed, and
S3 ``put_object`` never exposes a partially written object.
"""

import os
import shutil
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError


@dataclass
class StorageResult:
    """Result of a storage operation."""
    success: bool
    key: str
    url: str
    file_size: int = 0
    etag: Optional[str] = None
    error_message: Optional[str] = None


@dataclass
class StorageConfig:
    """Storage configuration."""
    backend: str  # local, s3, minio
    bucket: str = ""
    region: str = "us-east-1"
    access_key: str = ""
    secret_key: str = ""
    endpoint_url: Optional[str] = None
    local_path: str = "./storage"
    base_url: str = ""
    cdn_domain: Optional[str] = None


class StorageBackend(ABC):
    """Abstract base class for storage backends."""

    @abstractmethod
    def upload(
        self,
        file_path: str,
        key: str,
        content_type: str = "application/octet-stream",
    ) -> StorageResult:
        """Upload a file to storage."""

    @abstractmethod
    def upload_fileobj(
        self,
        fileobj: BinaryIO,
        key: str,
        content_type: str = "application/octet-stream",
    ) -> StorageResult:
        """Upload a file object to storage."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete a file from storage."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Check if a file exists in storage."""

    @abstractmethod
    def public_url(self, key: str) -> str:
        """Get the public retrieval URL for a key."""


class LocalStorage(StorageBackend):
    """Local filesystem storage backend."""

    def __init__(self, config: StorageConfig):
        self.base_path = Path(config.local_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.base_url = config.base_url.rstrip("/")
        self.cdn_domain = config.cdn_domain

    def _get_full_path(self, key: str) -> Path:
        path = (self.base_path / key).resolve()
        if not path.is_relative_to(self.base_path.resolve()):
            raise ValueError(f"Storage key escapes storage root: {key}")
        return path

    def _write_atomic(self, dest_path: Path, fileobj: BinaryIO) -> int:
        """Copy ``fileobj`` to ``dest_path`` via a temporary sibling."""
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=dest_path.parent, prefix=".partial-")
        try:
            with os.fdopen(fd, "wb") as tmp:
                shutil.copyfileobj(fileobj, tmp)
            os.replace(tmp_name, dest_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return dest_path.stat().st_size

    def upload(
        self,
        file_path: str,
        key: str,
        content_type: str = "application/octet-stream",
    ) -> StorageResult:
        """Upload a file to local storage."""
        try:
            with open(file_path, "rb") as f:
                return self.upload_fileobj(f, key, content_type)
        except OSError as e:
            return StorageResult(success=False, key=key, url="", error_message=str(e))

    def upload_fileobj(
        self,
        fileobj: BinaryIO,
        key: str,
        content_type: str = "application/octet-stream",
    ) -> StorageResult:
        """Upload a file object to local storage."""
        try:
            file_size = self._write_atomic(self._get_full_path(key), fileobj)
            return StorageResult(
                success=True,
                key=key,
                url=self.public_url(key),
                file_size=file_size,
            )
        except (OSError, ValueError) as e:
            return StorageResult(
                success=False,
                key=key,
                url="",
                error_message=str(e),
            )

    def delete(self, key: str) -> bool:
        """Delete a file from local storage."""
        file_path = self._get_full_path(key)
        if file_path.exists():
            file_path.unlink()
            return True
        return False

    def exists(self, key: str) -> bool:
        """Check if a file exists in local storage."""
        return self._get_full_path(key).is_file()

    def public_url(self, key: str) -> str:
        if self.cdn_domain:
            return f"https://{self.cdn_domain}/{key}"
        if self.base_url:
            return f"{self.base_url}/{key}"
        return self._get_full_path(key).as_uri()


class S3Storage(StorageBackend):
    """S3/MinIO compatible storage backend."""

    def __init__(self, config: StorageConfig, client=None):
        self.config = config
        self._client = client

    def _get_client(self):
        """Get or create S3 client."""
        if self._client is None:
            client_kwargs = {
                "service_name": "s3",
                "region_name": self.config.region or "us-east-1",
            }
            # Fall back to the default credential chain when no keys are configured
            if self.config.access_key:
                client_kwargs["aws_access_key_id"] = self.config.access_key
                client_kwargs["aws_secret_access_key"] = self.config.secret_key

            # For MinIO or other S3-compatible storage
            if self.config.endpoint_url:
                client_kwargs["endpoint_url"] = self.config.endpoint_url
                client_kwargs["config"] = BotoConfig(
                    signature_version="s3v4",
                    s3={"addressing_style": "path"},
                )

            self._client = boto3.client(**client_kwargs)

        return self._client

    def upload(
        self,
        file_path: str,
        key: str,
        content_type: str = "application/octet-stream",
    ) -> StorageResult:
        """Upload a file to S3/MinIO."""
        try:
            with open(file_path, "rb") as f:
                return self.upload_fileobj(f, key, content_type)
        except OSError as e:
            return StorageResult(success=False, key=key, url="", error_message=str(e))

    def upload_fileobj(
        self,
        fileobj: BinaryIO,
        key: str,
        content_type: str = "application/octet-stream",
    ) -> StorageResult:
        """Upload a file object to S3/MinIO."""
        try:
            client = self._get_client()

            fileobj.seek(0, 2)
            file_size = fileobj.tell()
            fileobj.seek(0)

            response = client.put_object(
                Bucket=self.config.bucket,
                Key=key,
                Body=fileobj,
                ContentType=content_type,
            )

            etag = response.get("ETag", "").strip('"')

            return StorageResult(
                success=True,
                key=key,
                url=self.public_url(key),
                file_size=file_size,
                etag=etag,
            )
        except (BotoCoreError, ClientError, OSError) as e:
            return StorageResult(
                success=False,
                key=key,
                url="",
                error_message=str(e),
            )

    def delete(self, key: str) -> bool:
        """Delete a file from S3/MinIO."""
        try:
            self._get_client().delete_object(Bucket=self.config.bucket, Key=key)
            return True
        except (BotoCoreError, ClientError):
            return False

    def exists(self, key: str) -> bool:
        """Check if a file exists in S3/MinIO."""
        try:
            self._get_client().head_object(Bucket=self.config.bucket, Key=key)
            return True
        except ClientError:
            return False

    def public_url(self, key: str) -> str:
        if self.config.cdn_domain:
            return f"https://{self.config.cdn_domain}/{key}"
        if self.config.endpoint_url:
            return f"{self.config.endpoint_url.rstrip('/')}/{self.config.bucket}/{key}"
        return f"https://{self.config.bucket}.s3.{self.config.region}.amazonaws.com/{key}"


def create_backend(config: StorageConfig) -> StorageBackend:
    """Create the storage backend named by ``config.backend``."""
    backend_type = config.backend.lower()

    if backend_type == "local":
        return LocalStorage(config)
    elif backend_type in ("s3", "minio", "aws"):
        return S3Storage(config)
    else:
        raise ValueError(f"Unsupported storage backend: {backend_type}")
