"""Tests for S3Client class."""

import pytest
from unittest.mock import MagicMock, patch
from botocore.exceptions import ClientError, EndpointConnectionError

from imgresizer.errors import StorageError
from imgresizer.s3_client import S3Client
from imgresizer.s3_config import S3Config


class TestS3Client:
    """Tests for S3Client class."""

    @pytest.fixture
    def config(self):
        """Fixture providing S3 config."""
        return S3Config(
            endpoint='https://test-endpoint.example.com:9000',
            bucket='test-bucket',
            prefix='images',
            access_key='test-access-key',
            secret_key='test-secret-key',
            region='us-east-1',
        )

    @pytest.fixture
    def client_with_mock(self, config):
        """Fixture providing S3Client with mocked boto3."""
        mock_boto = MagicMock()
        with patch('imgresizer.s3_client.boto3.client', return_value=mock_boto):
            client = S3Client(config)
            # Store ref so tests can configure mock behavior
            client._test_mock = mock_boto
            yield client

    def test_client_uses_path_addressing_for_endpoint(self, config):
        """Test custom endpoints use path-style addressing."""
        with patch('imgresizer.s3_client.boto3.client') as mock_client:
            S3Client(config)

        kwargs = mock_client.call_args.kwargs
        assert kwargs['endpoint_url'] == 'https://test-endpoint.example.com:9000'
        assert kwargs['region_name'] == 'us-east-1'
        assert kwargs['config'].s3 == {'addressing_style': 'path'}

    def test_get_key(self, client_with_mock):
        """Test keys are placed under the prefix."""
        assert client_with_mock.get_key('resized/small/a.small.jpg') == 'images/resized/small/a.small.jpg'

    def test_get_key_no_prefix(self, config):
        """Test an empty prefix leaves the filename as the key."""
        config.prefix = ''
        with patch('imgresizer.s3_client.boto3.client'):
            client = S3Client(config)

        assert client.get_key('/a.jpg') == 'a.jpg'

    def test_get_object_url_endpoint(self, client_with_mock):
        """Test URLs for a custom endpoint."""
        url = client_with_mock.get_object_url('images/a b.jpg')

        assert url == 'https://test-endpoint.example.com:9000/test-bucket/images/a%20b.jpg'

    def test_get_object_url_aws(self, config):
        """Test URLs for AWS virtual-hosted buckets."""
        config.endpoint = None
        with patch('imgresizer.s3_client.boto3.client'):
            client = S3Client(config)

        assert client.get_object_url('images/a.jpg') == (
            'https://test-bucket.s3.us-east-1.amazonaws.com/images/a.jpg'
        )

    def test_upload_object(self, client_with_mock):
        """Test uploading an object."""
        client_with_mock.upload_object('images/a.jpg', b'data', 'image/jpeg')

        client_with_mock._test_mock.put_object.assert_called_once_with(
            Bucket='test-bucket',
            Key='images/a.jpg',
            Body=b'data',
            ContentType='image/jpeg',
        )

    def test_upload_object_with_acl(self, config):
        """Test the configured ACL is applied."""
        config.acl = 'public-read'
        mock_boto = MagicMock()
        with patch('imgresizer.s3_client.boto3.client', return_value=mock_boto):
            client = S3Client(config)

        client.upload_object('images/a.jpg', b'data')

        assert mock_boto.put_object.call_args.kwargs['ACL'] == 'public-read'

    async def test_persist_returns_url(self, client_with_mock):
        """Test persist uploads under the prefix and returns the object URL."""
        url = await client_with_mock.persist('a.original.png', b'png', 'image/png')

        assert url == 'https://test-endpoint.example.com:9000/test-bucket/images/a.original.png'
        call = client_with_mock._test_mock.put_object.call_args.kwargs
        assert call['Key'] == 'images/a.original.png'
        assert call['ContentType'] == 'image/png'

    async def test_persist_client_error(self, client_with_mock):
        """Test S3 errors are raised as StorageError."""
        client_with_mock._test_mock.put_object.side_effect = ClientError(
            {'Error': {'Code': 'AccessDenied', 'Message': 'Access Denied'}},
            'PutObject'
        )

        with pytest.raises(StorageError) as exc_info:
            await client_with_mock.persist('a.jpg', b'data')
        assert 'images/a.jpg' in str(exc_info.value)

    async def test_persist_connection_error(self, client_with_mock):
        """Test connection errors are raised as StorageError."""
        client_with_mock._test_mock.put_object.side_effect = EndpointConnectionError(
            endpoint_url='https://test-endpoint.example.com:9000'
        )

        with pytest.raises(StorageError):
            await client_with_mock.persist('a.jpg', b'data')


class TestS3Config:
    """Tests for S3Config."""

    def test_from_env(self, monkeypatch):
        """Test reading configuration from the environment."""
        monkeypatch.setenv('AWS_S3_BUCKET_NAME', 'bucket')
        monkeypatch.setenv('AWS_REGION', 'eu-west-1')
        monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'key')
        monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'secret')
        monkeypatch.setenv('S3_VERIFY_SSL', 'false')
        monkeypatch.delenv('S3_PREFIX', raising=False)
        monkeypatch.delenv('S3_ENDPOINT', raising=False)

        config = S3Config.from_env()

        assert config.bucket == 'bucket'
        assert config.region == 'eu-west-1'
        assert config.prefix == 'images'
        assert config.endpoint is None
        assert config.verify_ssl is False
        assert config.validate() == []

    def test_validate_missing(self):
        """Test every required setting is reported."""
        errors = S3Config().validate()

        assert len(errors) == 4
