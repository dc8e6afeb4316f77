"""DigitalOcean Spaces / MinIO storage for nomination documents."""

from typing import Any
from uuid import uuid4

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import get_settings
from app.core.logging_config import get_logger

logger = get_logger(__name__)

# Content type -> file extension of documents a nomination may carry
ALLOWED_CONTENT_TYPES = {
    "application/pdf": ".pdf",
    "image/jpeg": ".jpg",
    "image/png": ".png",
}


def get_s3_client(endpoint_url: str | None = None) -> Any:
    """Create and return an S3 client configured for Spaces/MinIO."""
    current_settings = get_settings()
    return boto3.client(
        "s3",
        endpoint_url=endpoint_url or current_settings.SPACES_ENDPOINT,
        aws_access_key_id=current_settings.SPACES_KEY,
        aws_secret_access_key=current_settings.SPACES_SECRET,
        region_name=current_settings.SPACES_REGION,
        config=Config(signature_version="s3v4"),
    )


def _url_client() -> Any:
    """
    Client used only for signing URLs.

    For local development the API reaches MinIO through Docker networking,
    but browsers need localhost in the signed URL.
    """
    endpoint = get_settings().SPACES_ENDPOINT
    if "host.docker.internal" in endpoint:
        endpoint = endpoint.replace("host.docker.internal", "localhost")
    return get_s3_client(endpoint)


def build_document_key(nomination_id: str, document_type: str, content_type: str) -> str:
    """Object key for a nomination document. Raises ValueError for disallowed types."""
    extension = ALLOWED_CONTENT_TYPES.get(content_type)
    if extension is None:
        raise ValueError("Only PDF, JPEG and PNG documents are accepted")
    return f"nominations/{nomination_id}/{document_type}-{uuid4().hex}{extension}"


def generate_document_upload_url(
    key: str, content_type: str, expires_in: int | None = None
) -> str:
    """Presigned PUT URL the candidate uploads the document to."""
    current_settings = get_settings()
    return _url_client().generate_presigned_url(
        "put_object",
        Params={
            "Bucket": current_settings.SPACES_BUCKET,
            "Key": key,
            "ContentType": content_type,
        },
        ExpiresIn=expires_in or current_settings.DOCUMENT_UPLOAD_EXPIRE_SECONDS,
        HttpMethod="PUT",
    )


def generate_document_view_url(key: str, expires_in: int | None = None) -> str:
    """Time-limited GET URL for an admin reviewing the document."""
    current_settings = get_settings()
    return _url_client().generate_presigned_url(
        "get_object",
        Params={"Bucket": current_settings.SPACES_BUCKET, "Key": key},
        ExpiresIn=expires_in or current_settings.DOCUMENT_VIEW_EXPIRE_SECONDS,
        HttpMethod="GET",
    )


def ensure_bucket_exists() -> None:
    """Create the document bucket if it is missing (useful for MinIO setup)."""
    bucket = get_settings().SPACES_BUCKET
    s3_client = get_s3_client()

    try:
        s3_client.head_bucket(Bucket=bucket)
        logger.info(f"Bucket exists: {bucket}")
    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code", "")

        if error_code in ("404", "NoSuchBucket"):
            s3_client.create_bucket(Bucket=bucket)
            logger.info(f"Created bucket: {bucket}")
        elif error_code == "403":
            logger.error(f"Access denied to bucket {bucket}")
            raise
        else:
            logger.error(f"Error checking bucket {bucket}: {e}")
            raise


def check_storage() -> bool:
    """Whether the document bucket is reachable."""
    try:
        get_s3_client().head_bucket(Bucket=get_settings().SPACES_BUCKET)
    except (BotoCoreError, ClientError) as e:
        logger.warning(f"Storage health check failed: {e}")
        return False
    return True
