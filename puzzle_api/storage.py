"""
Blob storage abstraction for S3-compatible buckets and in-memory testing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError


class BlobNotFoundError(KeyError):
    """Raised when a blob key does not exist in the bucket."""


@dataclass
class StoredBlob:
    data: bytes
    content_type: str


class StorageClient(Protocol):
    """Defines the operations the API needs from object storage."""

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> None:
        ...

    def get_blob(self, path: str) -> StoredBlob:
        ...

    def delete(self, path: str) -> None:
        ...


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    stored_objects: dict[str, StoredBlob] = field(default_factory=dict)

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> None:
        self.stored_objects[path] = StoredBlob(data=bytes(data), content_type=content_type)

    def get_blob(self, path: str) -> StoredBlob:
        stored = self.stored_objects.get(path)
        if stored is None:
            raise BlobNotFoundError(path)
        return stored

    def delete(self, path: str) -> None:
        # Mirrors S3 semantics: deleting a missing key is not an error.
        self.stored_objects.pop(path, None)

    def reset(self) -> None:
        self.stored_objects.clear()


@dataclass
class S3StorageClient:
    """
    S3-compatible storage client (Cloudflare R2, Tencent COS, MinIO, AWS).
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str

    def __post_init__(self):
        config = Config(signature_version="s3v4")
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
            config=config,
        )

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> None:
        self._client.put_object(
            Bucket=self.bucket,
            Key=path,
            Body=data,
            ContentType=content_type,
        )

    def get_blob(self, path: str) -> StoredBlob:
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=path)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                raise BlobNotFoundError(path) from exc
            raise
        return StoredBlob(
            data=response["Body"].read(),
            content_type=response.get("ContentType") or "application/octet-stream",
        )

    def delete(self, path: str) -> None:
        self._client.delete_object(Bucket=self.bucket, Key=path)
