"""
ResizerConfig - Construction-time settings for ImageResizer.
"""

import os
from dataclasses import dataclass, field
from typing import List

from .local_client import LocalConfig
from .s3_config import S3Config
from .variant_cache import DEFAULT_CACHE_DIR


def _env_flag(name: str) -> bool:
    return os.getenv(name, '').strip().lower() == 'true'


@dataclass
class ResizerConfig:
    """
    Backend enable-flags, backend settings and cache settings.

    Attributes:
        enable_local_storage: Persist variants to the local filesystem
        enable_s3_storage: Persist variants to S3
        local: Local storage configuration
        s3: S3 configuration
        cache_enabled: Use the variant cache
        cache_path: Variant cache directory
        log_level: Log level name for the CLI
    """
    enable_local_storage: bool = False
    enable_s3_storage: bool = False
    local: LocalConfig = field(default_factory=LocalConfig)
    s3: S3Config = field(default_factory=S3Config)
    cache_enabled: bool = False
    cache_path: str = DEFAULT_CACHE_DIR
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls) -> 'ResizerConfig':
        """Create configuration from environment variables."""
        return cls(
            enable_local_storage=_env_flag('ENABLE_LOCAL_STORAGE'),
            enable_s3_storage=_env_flag('ENABLE_S3_STORAGE'),
            local=LocalConfig.from_env(),
            s3=S3Config.from_env(),
            cache_enabled=_env_flag('ENABLE_IMAGE_CACHE'),
            cache_path=os.getenv('IMAGE_CACHE_PATH') or DEFAULT_CACHE_DIR,
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
        )

    def validate(self, require_backend: bool = True) -> List[str]:
        """
        Validate configuration, returning a list of error messages.

        Args:
            require_backend: Require at least one enabled storage backend
        """
        errors = []
        if require_backend and not (self.enable_local_storage or self.enable_s3_storage):
            errors.append(
                'At least one storage backend must be enabled '
                '(ENABLE_LOCAL_STORAGE or ENABLE_S3_STORAGE)'
            )
        if self.enable_local_storage:
            errors.extend(self.local.validate())
        if self.enable_s3_storage:
            errors.extend(self.s3.validate())
        if self.cache_enabled and not self.cache_path:
            errors.append('IMAGE_CACHE_PATH must not be empty when the cache is enabled')
        return errors
