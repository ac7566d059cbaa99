from datetime import datetime
from datetime import timedelta
from datetime import timezone
from unittest import mock

import boto3
import pytest
from botocore.exceptions import ClientError
from botocore.exceptions import EndpointConnectionError
from botocore.exceptions import ReadTimeoutError
from moto import mock_aws

from s3cache import expiry
from s3cache.interfaces import IObjectStore
from s3cache.interfaces import ObjectStoreError
from s3cache.s3client import S3Client
from s3cache.s3client import S3OperationError


EXPIRES = datetime(2030, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def s3_env():
    with mock_aws():
        boto3.client("s3", region_name="us-east-1").create_bucket(Bucket="test-bucket")
        yield


@pytest.fixture
def client(s3_env):
    return S3Client(bucket_name="test-bucket", region_name="us-east-1")


def _client_error(code, operation="HeadObject"):
    return ClientError({"Error": {"Code": code, "Message": "boom"}}, operation)


class TestS3ClientInterface:
    def test_interface_provided(self, client):
        assert IObjectStore.providedBy(client)

    def test_empty_bucket_name_rejected(self, s3_env):
        with pytest.raises(ValueError):
            S3Client(bucket_name="")

    def test_ssl_disabled_warns(self, s3_env, caplog):
        S3Client(bucket_name="test-bucket", region_name="us-east-1", use_ssl=False)
        assert "SSL is disabled" in caplog.text


class TestPutGet:
    def test_put_returns_etag(self, client):
        etag = client.put_object("k.bin", b"payload", EXPIRES)
        assert etag

    def test_get_returns_body_and_metadata(self, client):
        client.put_object("k.bin", b"payload", EXPIRES, content_type="text/plain")

        obj = client.get_object("k.bin")

        assert obj is not None
        assert obj.key == "k.bin"
        assert obj.body == b"payload"
        assert obj.metadata.content_type == "text/plain"
        assert expiry.parse_expires(obj.metadata.expires) == EXPIRES

    def test_get_missing_returns_none(self, client):
        assert client.get_object("missing.bin") is None

    def test_put_overwrites(self, client):
        client.put_object("k.bin", b"one", EXPIRES)
        client.put_object("k.bin", b"two", EXPIRES + timedelta(days=1))

        obj = client.get_object("k.bin")
        assert obj.body == b"two"
        assert expiry.parse_expires(obj.metadata.expires) == EXPIRES + timedelta(
            days=1
        )

    def test_storage_class(self, client):
        client.put_object(
            "k.bin", b"payload", EXPIRES, storage_class="REDUCED_REDUNDANCY"
        )
        assert client.head_object("k.bin").storage_class == "REDUCED_REDUNDANCY"


class TestHeadObject:
    def test_head_object_exists(self, client):
        client.put_object("head/k.bin", b"head test", EXPIRES)

        meta = client.head_object("head/k.bin")

        assert meta is not None
        assert meta.content_length == 9
        assert expiry.parse_expires(meta.expires) == EXPIRES

    def test_head_object_missing(self, client):
        assert client.head_object("missing/k.bin") is None

    def test_head_error_wrapped(self, client):
        with mock.patch.object(
            client._client, "head_object", side_effect=_client_error("AccessDenied")
        ):
            with pytest.raises(S3OperationError, match="AccessDenied"):
                client.head_object("k.bin")

    def test_wrapped_error_is_store_error(self, client):
        with mock.patch.object(
            client._client, "get_object", side_effect=_client_error("SlowDown")
        ):
            with pytest.raises(ObjectStoreError):
                client.get_object("k.bin")


class TestDeleteObject:
    def test_delete_object(self, client):
        client.put_object("del/k.bin", b"delete me", EXPIRES)
        assert client.head_object("del/k.bin") is not None

        client.delete_object("del/k.bin")

        assert client.head_object("del/k.bin") is None

    def test_delete_nonexistent_does_not_raise(self, client):
        client.delete_object("nonexistent/k.bin")

    def test_delete_error_wrapped(self, client):
        with mock.patch.object(
            client._client, "delete_object", side_effect=_client_error("InternalError")
        ):
            with pytest.raises(S3OperationError):
                client.delete_object("k.bin")


class TestListObjects:
    def test_list_objects(self, client):
        for i in range(3):
            client.put_object(f"list/{i}.bin", b"x", EXPIRES)
        client.put_object("other/0.bin", b"x", EXPIRES)

        keys = list(client.list_objects("list/"))

        assert set(keys) == {"list/0.bin", "list/1.bin", "list/2.bin"}

    def test_list_objects_empty(self, client):
        assert list(client.list_objects("nonexistent/")) == []

    def test_list_whole_bucket(self, client):
        client.put_object("a.bin", b"x", EXPIRES)
        client.put_object("b/c.bin", b"x", EXPIRES)
        assert set(client.list_objects()) == {"a.bin", "b/c.bin"}

    def test_list_is_lazy(self, client):
        keys = client.list_objects("list/")
        assert iter(keys) is keys

    def test_list_paginates(self, client):
        for i in range(12):
            client.put_object(f"page/{i:02d}.bin", b"x", EXPIRES)
        paginate = client._client.get_paginator("list_objects_v2").paginate

        def small_pages(**kwargs):
            return paginate(PaginationConfig={"PageSize": 5}, **kwargs)

        paginator = mock.Mock(paginate=small_pages)
        with mock.patch.object(client._client, "get_paginator", return_value=paginator):
            keys = list(client.list_objects("page/"))

        assert len(keys) == 12

    def test_list_error_wrapped(self, client):
        paginator = mock.Mock()
        paginator.paginate.side_effect = _client_error("AccessDenied", "ListObjectsV2")
        with mock.patch.object(client._client, "get_paginator", return_value=paginator):
            with pytest.raises(S3OperationError):
                list(client.list_objects("x/"))


@pytest.fixture
def unreachable_client():
    # Nothing listens on port 1; connections are refused immediately.
    return S3Client(
        bucket_name="test-bucket",
        endpoint_url="http://127.0.0.1:1",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
        connect_timeout=1,
        read_timeout=1,
        max_attempts=1,
    )


class TestConnectionErrors:
    def test_put_wrapped(self, unreachable_client):
        with pytest.raises(S3OperationError, match="EndpointConnectionError"):
            unreachable_client.put_object("k.bin", b"payload", EXPIRES)

    def test_get_wrapped(self, unreachable_client):
        with pytest.raises(S3OperationError):
            unreachable_client.get_object("k.bin")

    def test_head_wrapped(self, unreachable_client):
        with pytest.raises(S3OperationError):
            unreachable_client.head_object("k.bin")

    def test_delete_wrapped(self, unreachable_client):
        with pytest.raises(S3OperationError):
            unreachable_client.delete_object("k.bin")

    def test_list_wrapped(self, unreachable_client):
        with pytest.raises(S3OperationError):
            list(unreachable_client.list_objects("cache/"))

    def test_original_error_chained(self, unreachable_client):
        with pytest.raises(S3OperationError) as excinfo:
            unreachable_client.head_object("k.bin")
        assert isinstance(excinfo.value.__cause__, EndpointConnectionError)

    def test_body_read_timeout_wrapped(self, client):
        body = mock.Mock()
        body.read.side_effect = ReadTimeoutError(endpoint_url="http://s3.test")
        with mock.patch.object(
            client._client, "get_object", return_value={"Body": body}
        ):
            with pytest.raises(S3OperationError, match="ReadTimeoutError"):
                client.get_object("k.bin")
