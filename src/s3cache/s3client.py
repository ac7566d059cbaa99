from botocore.config import Config
from botocore.exceptions import BotoCoreError
from botocore.exceptions import ClientError
from s3cache.interfaces import IObjectStore
from s3cache.interfaces import ObjectStoreError
from s3cache.objects import ObjectMetadata
from s3cache.objects import StoredObject
from zope.interface import implementer

import boto3
import logging


logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


class S3OperationError(ObjectStoreError):
    """Wraps botocore errors to avoid leaking AWS infrastructure details."""


def _metadata(key, response):
    # Newer botocore keeps the raw header in ExpiresString and drops
    # Expires when it cannot be parsed.
    expires = response.get("ExpiresString") or response.get("Expires")
    return ObjectMetadata(
        key=key,
        expires=expires,
        etag=response.get("ETag", ""),
        content_type=response.get("ContentType", ""),
        content_length=response.get("ContentLength", 0),
        storage_class=response.get("StorageClass", "STANDARD"),
    )


@implementer(IObjectStore)
class S3Client:
    """Thin boto3 wrapper for S3-compatible object storage."""

    def __init__(
        self,
        bucket_name,
        endpoint_url=None,
        region_name=None,
        aws_access_key_id=None,
        aws_secret_access_key=None,
        use_ssl=True,
        addressing_style="auto",
        connect_timeout=60,
        read_timeout=60,
        max_attempts=3,
    ):
        if not bucket_name:
            raise ValueError("bucket-name must not be empty")
        self.bucket_name = bucket_name

        config = Config(
            s3={"addressing_style": addressing_style},
            connect_timeout=connect_timeout,
            read_timeout=read_timeout,
            retries={"max_attempts": max_attempts, "mode": "standard"},
        )

        kwargs = {"config": config}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        if region_name:
            kwargs["region_name"] = region_name
        if aws_access_key_id:
            kwargs["aws_access_key_id"] = aws_access_key_id
        if aws_secret_access_key:
            kwargs["aws_secret_access_key"] = aws_secret_access_key
        kwargs["use_ssl"] = use_ssl
        if not use_ssl:
            logger.warning(
                "S3 SSL is disabled, cached values and credentials are "
                "transmitted in cleartext"
            )

        self._client = boto3.client("s3", **kwargs)

    def __repr__(self):
        return f"<S3Client bucket={self.bucket_name!r}>"

    @staticmethod
    def _is_not_found(e):
        return e.response.get("Error", {}).get("Code") in _NOT_FOUND_CODES

    def _wrap_client_error(self, e, operation, key):
        """Wrap ClientError in a generic error, logging the original at DEBUG."""
        logger.debug("S3 %s failed for key=%s: %s", operation, key, e)
        raise S3OperationError(
            f"S3 {operation} failed for key={key}: "
            f"{e.response.get('Error', {}).get('Code', 'Unknown')}"
        ) from e

    def _wrap_botocore_error(self, e, operation, key):
        """Wrap connection, timeout and stream errors raised before S3 answered."""
        logger.debug("S3 %s failed for key=%s: %s", operation, key, e)
        raise S3OperationError(
            f"S3 {operation} failed for key={key}: {type(e).__name__}"
        ) from e

    def put_object(
        self,
        key,
        body,
        expires,
        content_type="application/octet-stream",
        storage_class="STANDARD",
    ):
        try:
            response = self._client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=body,
                Expires=expires,
                ContentType=content_type,
                StorageClass=storage_class,
            )
        except ClientError as e:
            self._wrap_client_error(e, "put", key)
        except BotoCoreError as e:
            self._wrap_botocore_error(e, "put", key)
        return response.get("ETag", "")

    def get_object(self, key):
        try:
            response = self._client.get_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if self._is_not_found(e):
                return None
            self._wrap_client_error(e, "get", key)
        except BotoCoreError as e:
            self._wrap_botocore_error(e, "get", key)
        try:
            body = response["Body"].read()
        except BotoCoreError as e:
            self._wrap_botocore_error(e, "get", key)
        return StoredObject(metadata=_metadata(key, response), body=body)

    def head_object(self, key):
        try:
            response = self._client.head_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if self._is_not_found(e):
                return None
            self._wrap_client_error(e, "head", key)
        except BotoCoreError as e:
            self._wrap_botocore_error(e, "head", key)
        return _metadata(key, response)

    def delete_object(self, key):
        try:
            self._client.delete_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if self._is_not_found(e):
                return
            self._wrap_client_error(e, "delete", key)
        except BotoCoreError as e:
            self._wrap_botocore_error(e, "delete", key)

    def list_objects(self, prefix=""):
        paginator = self._client.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(Bucket=self.bucket_name, Prefix=prefix):
                for obj in page.get("Contents", []):
                    yield obj["Key"]
        except ClientError as e:
            self._wrap_client_error(e, "list", prefix)
        except BotoCoreError as e:
            self._wrap_botocore_error(e, "list", prefix)
