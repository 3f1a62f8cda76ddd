"""
Blob stores for uploaded files.

    LocalBlobStore — files under a root directory; signed URLs are file://
                     links (development only).
    S3BlobStore    — an S3 bucket via boto3; signed URLs are presigned GETs.

Object paths look like "{user_id}/{uuid}.{ext}". Paths are always
relative; LocalBlobStore refuses anything that resolves outside its root.

Usage:
    blobs = S3BlobStore(bucket="docchat-uploads", region="ap-northeast-2")
    blobs.upload("u1/abc.pdf", data, "application/pdf")
    url = blobs.signed_url("u1/abc.pdf", expires_in=300)
"""

import logging
import os
from pathlib import Path
from typing import Optional

from docchat.base.storage import BaseBlobStore
from docchat.errors import BlobStoreError

logger = logging.getLogger(__name__)


class LocalBlobStore(BaseBlobStore):

    def __init__(self, root: str):
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if target != self.root and self.root not in target.parents:
            raise BlobStoreError(f"Path escapes blob root: {path}")
        return target

    def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> None:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise BlobStoreError(f"Could not write {path}: {exc}") from exc

    def download(self, path: str) -> bytes:
        try:
            return self._resolve(path).read_bytes()
        except OSError as exc:
            raise BlobStoreError(f"Could not read {path}: {exc}") from exc

    def delete(self, paths: list[str]) -> None:
        for path in paths:
            try:
                self._resolve(path).unlink(missing_ok=True)
            except OSError as exc:
                raise BlobStoreError(f"Could not delete {path}: {exc}") from exc

    def signed_url(self, path: str, expires_in: int) -> str:
        target = self._resolve(path)
        if not target.exists():
            raise BlobStoreError(f"No such object: {path}")
        return target.as_uri()


class S3BlobStore(BaseBlobStore):
    """
    Uploaded files in one S3 bucket.

    Credentials come from the usual boto3 chain (env vars,
    ~/.aws/credentials, IAM role).
    """

    def __init__(self, bucket: str, region: Optional[str] = None, client=None):
        """
        Args:
            bucket: S3 bucket name.
            region: AWS region. Defaults to AWS_DEFAULT_REGION env var.
            client: Pre-built boto3 S3 client (tests pass a stub).
        """
        self._bucket = bucket
        self._region = region or os.getenv("AWS_DEFAULT_REGION", "us-east-1")
        if client is None:
            import boto3

            client = boto3.client("s3", region_name=self._region)
        self._s3 = client

    def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> None:
        extra = {"ContentType": content_type} if content_type else {}
        try:
            self._s3.put_object(Bucket=self._bucket, Key=path, Body=data, **extra)
        except Exception as exc:
            raise BlobStoreError(f"S3 upload failed for {path}: {exc}") from exc

    def download(self, path: str) -> bytes:
        try:
            response = self._s3.get_object(Bucket=self._bucket, Key=path)
            return response["Body"].read()
        except Exception as exc:
            raise BlobStoreError(f"S3 download failed for {path}: {exc}") from exc

    def delete(self, paths: list[str]) -> None:
        if not paths:
            return
        try:
            self._s3.delete_objects(
                Bucket=self._bucket,
                Delete={"Objects": [{"Key": p} for p in paths], "Quiet": True},
            )
        except Exception as exc:
            raise BlobStoreError(f"파일 삭제 실패: {exc}") from exc

    def signed_url(self, path: str, expires_in: int) -> str:
        try:
            return self._s3.generate_presigned_url(
                "get_object",
                Params={"Bucket": self._bucket, "Key": path},
                ExpiresIn=expires_in,
            )
        except Exception as exc:
            raise BlobStoreError(f"다운로드 URL을 생성할 수 없습니다: {exc}") from exc
