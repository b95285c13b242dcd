from __future__ import annotations

import shutil
from abc import ABC, abstractmethod
from pathlib import Path

import boto3
from boto3.exceptions import S3UploadFailedError
from boto3.s3.transfer import TransferConfig
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import Settings
from .errors import StorageError
from .logging import get_logger


class ObjectStore(ABC):
    @abstractmethod
    def put_file(self, key: str, path: Path, *, content_type: str | None = None) -> None: ...

    @abstractmethod
    def delete(self, key: str) -> None: ...

    @abstractmethod
    def public_url(self, key: str) -> str: ...


class LocalObjectStore(ObjectStore):
    """Filesystem-backed object store suitable for development."""

    def __init__(self, base_path: Path):
        self.base_path = base_path
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _resolve(self, key: str) -> Path:
        target = (self.base_path / key).resolve()
        if self.base_path.resolve() not in target.parents:
            raise ValueError(f"Object key escapes storage root: {key}")
        return target

    def put_file(self, key: str, path: Path, *, content_type: str | None = None) -> None:
        target = self._resolve(key)
        target.parent.mkdir(parents=True, exist_ok=True)
        try:
            shutil.copyfile(path, target)
        except OSError as exc:
            raise StorageError(f"local_put_failed:{key}") from exc

    def delete(self, key: str) -> None:
        self._resolve(key).unlink(missing_ok=True)

    def public_url(self, key: str) -> str:
        return self._resolve(key).as_uri()


class S3ObjectStore(ObjectStore):
    """S3 store. Multipart chunking and retries are delegated to boto3's transfer manager."""

    def __init__(self, settings: Settings, client=None):
        if not settings.s3_bucket:
            raise ValueError("s3_bucket_not_configured")
        self.bucket = settings.s3_bucket
        self.region = settings.s3_region
        self.cdn_distribution_url = settings.cdn_distribution_url
        self.logger = get_logger(component="s3_object_store", bucket=self.bucket)
        self.transfer_config = TransferConfig(
            multipart_threshold=settings.s3_multipart_chunksize,
            multipart_chunksize=settings.s3_multipart_chunksize,
            max_concurrency=settings.s3_max_concurrency,
            use_threads=True,
        )
        self.client = client or boto3.client(
            "s3",
            region_name=settings.s3_region,
            endpoint_url=settings.s3_endpoint_url,
            aws_access_key_id=settings.secrets.aws_access_key_id,
            aws_secret_access_key=settings.secrets.aws_secret_access_key,
            config=Config(
                signature_version="s3v4",
                retries={"total_max_attempts": settings.s3_max_attempts, "mode": "standard"},
            ),
        )

    def put_file(self, key: str, path: Path, *, content_type: str | None = None) -> None:
        extra_args = {"ContentType": content_type} if content_type else None
        try:
            self.client.upload_file(
                str(path),
                self.bucket,
                key,
                ExtraArgs=extra_args,
                Config=self.transfer_config,
            )
        except (S3UploadFailedError, ClientError, BotoCoreError) as exc:
            self.logger.error("s3_upload_failed", key=key, error=str(exc))
            raise StorageError(f"s3_put_failed:{key}") from exc
        self.logger.info("s3_upload_complete", key=key)

    def delete(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"s3_delete_failed:{key}") from exc

    def public_url(self, key: str) -> str:
        if self.cdn_distribution_url:
            host = self.cdn_distribution_url.removeprefix("https://").removeprefix("http://").rstrip("/")
            return f"https://{host}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"


def get_object_store(settings: Settings) -> ObjectStore:
    if settings.storage_backend == "local":
        return LocalObjectStore(base_path=settings.object_storage_path)
    if settings.storage_backend == "s3":
        return S3ObjectStore(settings)
    raise ValueError(f"Unsupported storage backend: {settings.storage_backend}")


__all__ = [
    "ObjectStore",
    "LocalObjectStore",
    "S3ObjectStore",
    "get_object_store",
]
