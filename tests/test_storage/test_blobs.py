"""Tests for blob stores (local directory and S3 with a stubbed boto3 client)."""

import io
from unittest.mock import MagicMock

import pytest

from docchat.errors import BlobStoreError
from docchat.storage.blobs import LocalBlobStore, S3BlobStore


class TestLocalBlobStore:

    def test_upload_download_delete(self, blobs):
        blobs.upload("u1/a.txt", b"data", "text/plain")
        assert blobs.download("u1/a.txt") == b"data"

        blobs.delete(["u1/a.txt"])
        with pytest.raises(BlobStoreError):
            blobs.download("u1/a.txt")

    def test_delete_missing_is_quiet(self, blobs):
        blobs.delete(["u1/never.txt"])

    def test_path_escape_rejected(self, blobs):
        with pytest.raises(BlobStoreError, match="escapes"):
            blobs.upload("../outside.txt", b"x")

    def test_signed_url(self, blobs):
        blobs.upload("u1/a.pdf", b"%PDF")
        assert blobs.signed_url("u1/a.pdf", 300).startswith("file://")

    def test_signed_url_missing(self, blobs):
        with pytest.raises(BlobStoreError):
            blobs.signed_url("u1/missing.pdf", 300)

    def test_root_created(self, tmp_path):
        store = LocalBlobStore(str(tmp_path / "nested" / "root"))
        assert store.root.is_dir()


class TestS3BlobStore:

    @pytest.fixture
    def s3(self):
        client = MagicMock()
        client.get_object.return_value = {"Body": io.BytesIO(b"bytes")}
        client.generate_presigned_url.return_value = "https://bucket.s3/u1/a.pdf?sig"
        return client

    def test_upload(self, s3):
        S3BlobStore("uploads", client=s3).upload("u1/a.pdf", b"%PDF", "application/pdf")
        s3.put_object.assert_called_once_with(
            Bucket="uploads", Key="u1/a.pdf", Body=b"%PDF", ContentType="application/pdf",
        )

    def test_download(self, s3):
        assert S3BlobStore("uploads", client=s3).download("u1/a.pdf") == b"bytes"

    def test_delete_batches_keys(self, s3):
        S3BlobStore("uploads", client=s3).delete(["u1/a.pdf", "u1/b.pdf"])
        s3.delete_objects.assert_called_once_with(
            Bucket="uploads",
            Delete={"Objects": [{"Key": "u1/a.pdf"}, {"Key": "u1/b.pdf"}], "Quiet": True},
        )

    def test_delete_nothing(self, s3):
        S3BlobStore("uploads", client=s3).delete([])
        s3.delete_objects.assert_not_called()

    def test_signed_url(self, s3):
        url = S3BlobStore("uploads", client=s3).signed_url("u1/a.pdf", 300)

        assert url == "https://bucket.s3/u1/a.pdf?sig"
        s3.generate_presigned_url.assert_called_once_with(
            "get_object", Params={"Bucket": "uploads", "Key": "u1/a.pdf"}, ExpiresIn=300,
        )

    def test_client_errors_wrapped(self, s3):
        s3.get_object.side_effect = RuntimeError("AccessDenied")
        with pytest.raises(BlobStoreError):
            S3BlobStore("uploads", client=s3).download("u1/a.pdf")
