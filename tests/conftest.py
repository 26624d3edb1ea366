"""
Shared fixtures.

The bucket records mirror a realistic deployment: one R2 bucket reached via
a binding, one S3-compatible bucket with credentials and restricted paths,
and one bucket without a whitelist that nobody may use.
"""

import json
from typing import Any

import pytest
from botocore.exceptions import ClientError

from upload_gateway.core.uploads import BucketRegistry

R2_BINDING = "R2_MAIN_BUCKET"


@pytest.fixture
def bucket_records() -> list[dict[str, Any]]:
    return [
        {
            "id": "main_r2",
            "name": "Main R2 Storage",
            "provider": "CLOUDFLARE_R2",
            "bindingName": R2_BINDING,
            "customDomain": "https://files.example.com/",
            "allowedPaths": ["*"],
            "idWhitelist": ["u1", "admin"],
        },
        {
            "id": "docs_s3",
            "provider": "AWS_S3",
            "bucketName": "company-docs",
            "accessKeyId": "AKIAEXAMPLE",
            "secretAccessKey": "super-secret",
            "region": "us-east-1",
            "endpoint": "https://s3.example.com",
            "allowedPaths": ["images", "documents"],
            "idWhitelist": ["u1"],
        },
        {
            "id": "private_r2",
            "provider": "CLOUDFLARE_R2",
            "bindingName": "R2_PRIVATE",
        },
    ]


@pytest.fixture
def bucket_configs_json(bucket_records) -> str:
    return json.dumps(bucket_records)


@pytest.fixture
def registry(bucket_records) -> BucketRegistry:
    return BucketRegistry(bucket_records)


def make_client_error(code: str, status: int, operation: str = "HeadObject") -> ClientError:
    """Build a botocore ClientError the way the S3 API reports it."""
    return ClientError(
        {
            "Error": {"Code": code, "Message": code},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        operation,
    )


class FakeS3Client:
    """
    Stand-in for a boto3 S3 client.

    Records put_object calls and answers head_object from what was put.
    Errors can be injected per operation.
    """

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], dict[str, Any]] = {}
        self.head_error: Exception | None = None
        self.put_error: Exception | None = None
        self.calls: list[str] = []

    def head_object(self, Bucket: str, Key: str) -> dict[str, Any]:
        self.calls.append("head_object")
        if self.head_error is not None:
            raise self.head_error
        stored = self.objects.get((Bucket, Key))
        if stored is None:
            raise make_client_error("404", 404)
        return {
            "ContentLength": len(stored["Body"]),
            "ContentType": stored["ContentType"],
            "ETag": '"etag"',
        }

    def put_object(self, Bucket: str, Key: str, Body: bytes, ContentType: str) -> dict[str, Any]:
        self.calls.append("put_object")
        if self.put_error is not None:
            raise self.put_error
        self.objects[(Bucket, Key)] = {"Body": Body, "ContentType": ContentType}
        return {"ETag": '"etag"'}


@pytest.fixture
def fake_s3_client() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def client_error():
    """Factory for botocore ClientErrors: client_error(code, status)."""
    return make_client_error
