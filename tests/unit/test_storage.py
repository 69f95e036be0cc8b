"""Unit tests for the object storage gateway."""
import pytest
from io import BytesIO
from unittest.mock import MagicMock, patch

from botocore.exceptions import ClientError

from bzr_portal.core.exceptions import ObjectNotFoundError, StorageUnavailableError
from bzr_portal.services.storage import StorageGateway, get_s3_client


def _client_error(code, operation="GetObject"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@pytest.mark.unit
class TestStorageGateway:
    """Test cases for StorageGateway."""

    @pytest.fixture
    def client(self):
        return MagicMock()

    @pytest.fixture
    def gateway(self, client):
        return StorageGateway(client=client)

    @pytest.mark.asyncio
    async def test_get_object(self, gateway, client):
        client.get_object.return_value = {
            "Body": BytesIO(b"Pravila"),
            "ContentType": "text/plain",
            "ContentLength": 7,
            "ETag": '"abc123"',
        }

        stored = await gateway.get("bucket", "a.txt")

        assert stored.data == b"Pravila"
        assert stored.content_type == "text/plain"
        assert stored.size == 7
        assert stored.etag == "abc123"

    @pytest.mark.asyncio
    async def test_missing_object_not_retried(self, gateway, client):
        client.get_object.side_effect = _client_error("NoSuchKey")

        with pytest.raises(ObjectNotFoundError) as exc_info:
            await gateway.get("bucket", "nema.txt")

        assert exc_info.value.key == "nema.txt"
        assert client.get_object.call_count == 1

    @pytest.mark.asyncio
    async def test_put_translates_errors(self, gateway, client):
        client.put_object.side_effect = _client_error("AccessDenied", "PutObject")

        with pytest.raises(StorageUnavailableError):
            await gateway.put("bucket", "a.txt", b"x", "text/plain")

    @pytest.mark.asyncio
    async def test_put_returns_key(self, gateway, client):
        key = await gateway.put("bucket", "u1/a.txt", b"x", "text/plain")

        assert key == "u1/a.txt"
        client.put_object.assert_called_once_with(
            Bucket="bucket", Key="u1/a.txt", Body=b"x", ContentType="text/plain"
        )

    @pytest.mark.asyncio
    async def test_list_skips_directory_markers(self, gateway, client):
        paginator = MagicMock()
        paginator.paginate.return_value = [
            {"Contents": [{"Key": "propisi/"}, {"Key": "propisi/zakon.pdf"}]},
            {},
        ]
        client.get_paginator.return_value = paginator

        assert await gateway.list("bucket", "propisi/") == ["propisi/zakon.pdf"]

    @pytest.mark.asyncio
    async def test_delete(self, gateway, client):
        await gateway.delete("bucket", "a.txt")

        client.delete_object.assert_called_once_with(Bucket="bucket", Key="a.txt")

    def test_s3_client_uses_wasabi_endpoint(self):
        with patch("bzr_portal.services.storage.boto3.client") as mock_client:
            get_s3_client()

        assert mock_client.call_args.kwargs["endpoint_url"].startswith("https://s3.")
