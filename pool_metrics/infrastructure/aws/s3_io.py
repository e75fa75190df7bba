"""S3 I/O operations."""

import json

import boto3
from botocore.exceptions import ClientError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from pool_metrics.domain.types import JsonValue
from pool_metrics.infrastructure.config.settings import Settings

_MISSING_KEY_CODES = {"NoSuchKey", "404", "NotFound"}


class S3IO:
    """S3 I/O operations."""

    def __init__(self, settings: Settings) -> None:
        """Initialize S3 client."""
        if not settings.aws_s3_bucket:
            raise ValueError("aws_s3_bucket is required for the s3 snapshot backend")
        self.settings = settings
        self.s3_client = boto3.client("s3", region_name=settings.aws_region)
        self.bucket = settings.aws_s3_bucket

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(RuntimeError),
        reraise=True,
    )
    async def get_json(self, key: str) -> JsonValue:
        """Get JSON object from S3, or None if the key does not exist."""
        try:
            response = self.s3_client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _MISSING_KEY_CODES:
                return None
            raise RuntimeError(f"Failed to read S3 object {key}: {e}") from e
        content = response["Body"].read().decode("utf-8")
        return json.loads(content)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(RuntimeError),
        reraise=True,
    )
    async def put_json(self, key: str, data: JsonValue) -> None:
        """Put JSON object to S3."""
        try:
            content = json.dumps(data, default=str, indent=2)
            self.s3_client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=content.encode("utf-8"),
                ContentType="application/json",
            )
        except ClientError as e:
            raise RuntimeError(f"Failed to write S3 object {key}: {e}") from e
