"""
S3Config - Configuration for the S3 storage backend.
"""

import os
from dataclasses import dataclass
from typing import List, Optional


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'y', 't')


@dataclass
class S3Config:
    """
    S3 configuration.

    Attributes:
        bucket: Bucket name
        region: AWS region (e.g., 'us-east-1')
        access_key: Access key id
        secret_key: Secret access key
        endpoint: Custom endpoint URL (MinIO etc.); None for AWS
        prefix: Key prefix for stored variants
        acl: Optional canned ACL applied to uploads (e.g., 'public-read')
        verify_ssl: Verify TLS certificates
    """
    bucket: Optional[str] = None
    region: Optional[str] = None
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    endpoint: Optional[str] = None
    prefix: str = 'images'
    acl: Optional[str] = None
    verify_ssl: bool = True

    @classmethod
    def from_env(cls) -> 'S3Config':
        """Create configuration from AWS_* / S3_* environment variables."""
        return cls(
            bucket=os.getenv('AWS_S3_BUCKET_NAME'),
            region=os.getenv('AWS_REGION'),
            access_key=os.getenv('AWS_ACCESS_KEY_ID'),
            secret_key=os.getenv('AWS_SECRET_ACCESS_KEY'),
            endpoint=os.getenv('S3_ENDPOINT') or None,
            prefix=os.getenv('S3_PREFIX', 'images'),
            acl=os.getenv('S3_ACL') or None,
            verify_ssl=_env_bool('S3_VERIFY_SSL', True),
        )

    def validate(self) -> List[str]:
        """Validate configuration, returning a list of error messages."""
        errors = []
        if not self.bucket:
            errors.append('AWS_S3_BUCKET_NAME is required when S3 storage is enabled')
        if not self.region:
            errors.append('AWS_REGION is required when S3 storage is enabled')
        if not self.access_key:
            errors.append('AWS_ACCESS_KEY_ID is required when S3 storage is enabled')
        if not self.secret_key:
            errors.append('AWS_SECRET_ACCESS_KEY is required when S3 storage is enabled')
        return errors
