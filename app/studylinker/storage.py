"""
Object storage for uploaded photos, resumes and certificates.

Keys look like ``<bucket>/<owner path>``; the logical upload bucket is a key
prefix in both backends. ``local`` keeps files under ./storage and serves
them from ``/api/files/raw``; ``s3`` targets any S3-compatible service
(DigitalOcean Spaces by default region).
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

LOCAL_RAW_URL = "/api/files/raw"


class StorageError(RuntimeError):
    pass


def object_key(bucket: str, path: str) -> str:
    return f"{bucket.strip('/')}/{path.lstrip('/')}"


class Storage:
    public_base_url: str = ""

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        raise NotImplementedError

    def open(self, key: str) -> BinaryIO:
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def default_url(self, key: str) -> str:
        raise NotImplementedError

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key.lstrip('/')}"
        return self.default_url(key)


@dataclass(frozen=True)
class LocalStorage(Storage):
    root: Path
    public_base_url: str = ""

    def _resolve(self, key: str) -> Path:
        root = self.root.resolve()
        target = (root / key.replace("\\", "/").lstrip("/")).resolve()
        if not target.is_relative_to(root):
            raise StorageError(f"Invalid storage key: {key}")
        return target

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        target = self._resolve(key)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    def open(self, key: str) -> BinaryIO:
        return self._resolve(key).open("rb")

    def exists(self, key: str) -> bool:
        return self._resolve(key).is_file()

    def delete(self, key: str) -> None:
        self._resolve(key).unlink(missing_ok=True)

    def default_url(self, key: str) -> str:
        return f"{LOCAL_RAW_URL}/{key.lstrip('/')}"


@dataclass(frozen=True)
class S3Storage(Storage):
    endpoint: str
    region: str
    bucket: str
    access_key_id: str
    secret_access_key: str
    public_base_url: str = ""

    def client(self):
        import boto3

        return boto3.client(
            "s3",
            endpoint_url=f"https://{self.endpoint}" if self.endpoint else None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
        )

    def check_bucket(self) -> None:
        """Raises botocore errors when the bucket is unreachable."""
        self.client().head_bucket(Bucket=self.bucket)

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        params: dict[str, object] = {"Bucket": self.bucket, "Key": key, "Body": data, "ACL": "public-read"}
        if content_type:
            params["ContentType"] = content_type
        self.client().put_object(**params)

    def open(self, key: str) -> BinaryIO:
        return self.client().get_object(Bucket=self.bucket, Key=key)["Body"]  # type: ignore[return-value]

    def exists(self, key: str) -> bool:
        from botocore.exceptions import ClientError

        try:
            self.client().head_object(Bucket=self.bucket, Key=key)
        except ClientError:
            return False
        return True

    def delete(self, key: str) -> None:
        self.client().delete_object(Bucket=self.bucket, Key=key)

    def default_url(self, key: str) -> str:
        return f"https://{self.bucket}.{self.endpoint}/{key.lstrip('/')}"


def storage_from_config(config: dict) -> Storage:
    backend = (config.get("STORAGE_BACKEND") or "local").strip().lower()
    public_base_url = (config.get("STORAGE_PUBLIC_BASE_URL") or "").strip()
    if backend == "s3":
        return S3Storage(
            endpoint=(config.get("S3_ENDPOINT") or "").strip(),
            region=(config.get("S3_REGION") or "nyc3").strip(),
            bucket=(config.get("S3_BUCKET") or "").strip(),
            access_key_id=(config.get("S3_ACCESS_KEY_ID") or "").strip(),
            secret_access_key=(config.get("S3_SECRET_ACCESS_KEY") or "").strip(),
            public_base_url=public_base_url,
        )
    if backend != "local":
        raise StorageError(f"Unknown STORAGE_BACKEND: {backend}")
    return LocalStorage(root=Path(os.getcwd()) / "storage", public_base_url=public_base_url)
