"""
S3Client - S3 storage backend for variant uploads.
"""

import asyncio
import logging
from typing import Optional
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .errors import StorageError
from .s3_config import S3Config


class S3Client:
    """
    Wrapper for S3 uploads.

    Provides key construction, object URLs and uploads; persist() is the
    storage backend entry point used by the dispatcher.
    """

    name = 's3'

    def __init__(self, config: S3Config, logger: Optional[logging.Logger] = None):
        """
        Initialize S3 client.

        Args:
            config: S3 configuration
            logger: Optional logger instance
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

        self._client = boto3.client(
            's3',
            endpoint_url=config.endpoint,
            aws_access_key_id=config.access_key,
            aws_secret_access_key=config.secret_key,
            region_name=config.region,
            config=Config(
                signature_version='s3v4',
                s3={'addressing_style': 'path' if config.endpoint else 'auto'}
            ),
            verify=config.verify_ssl
        )

    @property
    def client(self):
        """Return the underlying boto3 client."""
        return self._client

    def get_key(self, filename: str) -> str:
        """Build the object key for a variant filename."""
        filename = filename.lstrip('/')
        prefix = (self.config.prefix or '').strip('/')
        return f"{prefix}/{filename}" if prefix else filename

    def get_object_url(self, key: str) -> str:
        """Public URL of an object."""
        quoted = quote(key)
        if self.config.endpoint:
            return f"{self.config.endpoint.rstrip('/')}/{self.config.bucket}/{quoted}"
        return f"https://{self.config.bucket}.s3.{self.config.region}.amazonaws.com/{quoted}"

    def upload_object(
        self,
        key: str,
        data: bytes,
        content_type: str = 'application/octet-stream'
    ) -> None:
        """Upload an object to S3."""
        params = {
            'Bucket': self.config.bucket,
            'Key': key,
            'Body': data,
            'ContentType': content_type,
        }
        if self.config.acl:
            params['ACL'] = self.config.acl
        self._client.put_object(**params)

    async def persist(
        self,
        filename: str,
        data: bytes,
        content_type: str = 'application/octet-stream'
    ) -> str:
        """
        Upload a payload.

        Returns:
            URL of the uploaded object

        Raises:
            StorageError: If the upload fails
        """
        key = self.get_key(filename)
        try:
            await asyncio.to_thread(self.upload_object, key, data, content_type)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to upload {key} to bucket {self.config.bucket}: {e}", e) from e

        self.logger.debug(f"Uploaded: s3://{self.config.bucket}/{key} ({len(data)} bytes)")
        return self.get_object_url(key)
