"""
Tests for ResizerConfig.
"""

from imgresizer.local_client import LocalConfig
from imgresizer.resizer_config import ResizerConfig
from imgresizer.variant_cache import DEFAULT_CACHE_DIR


class TestResizerConfig:
    """Tests for ResizerConfig."""

    def test_defaults(self):
        """Test nothing is enabled by default."""
        config = ResizerConfig()

        assert config.enable_local_storage is False
        assert config.enable_s3_storage is False
        assert config.cache_enabled is False
        assert config.cache_path == DEFAULT_CACHE_DIR

    def test_from_env(self, monkeypatch):
        """Test flags only turn on for the literal 'true'."""
        monkeypatch.setenv('ENABLE_LOCAL_STORAGE', 'TRUE')
        monkeypatch.setenv('LOCAL_STORAGE_PATH', '/srv/images')
        monkeypatch.setenv('ENABLE_S3_STORAGE', '1')
        monkeypatch.setenv('ENABLE_IMAGE_CACHE', 'true')
        monkeypatch.setenv('IMAGE_CACHE_PATH', '/var/cache/img')
        monkeypatch.setenv('LOG_LEVEL', 'debug')

        config = ResizerConfig.from_env()

        assert config.enable_local_storage is True
        assert config.enable_s3_storage is False
        assert config.local.root_path == '/srv/images'
        assert config.cache_enabled is True
        assert config.cache_path == '/var/cache/img'
        assert config.log_level == 'DEBUG'

    def test_validate_requires_backend(self):
        """Test at least one backend must be enabled."""
        errors = ResizerConfig().validate()

        assert len(errors) == 1
        assert 'storage backend' in errors[0]

    def test_validate_without_backend_requirement(self):
        assert ResizerConfig().validate(require_backend=False) == []

    def test_validate_local_needs_root(self):
        """Test enabled local storage needs a root path."""
        errors = ResizerConfig(enable_local_storage=True).validate()

        assert any('LOCAL_STORAGE_PATH' in e for e in errors)

    def test_validate_s3_settings(self):
        """Test enabled S3 storage reports each missing setting."""
        errors = ResizerConfig(enable_s3_storage=True).validate()

        assert len(errors) == 4

    def test_valid_local(self, tmp_path):
        config = ResizerConfig(enable_local_storage=True, local=LocalConfig(str(tmp_path)))
        assert config.validate() == []
