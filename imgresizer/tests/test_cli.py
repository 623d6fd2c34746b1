"""Tests for CLI module."""

import json
import logging

import pytest

from imgresizer.cli import build_options, create_parser, get_config, main


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove storage and cache settings from the environment."""
    for name in (
        'ENABLE_LOCAL_STORAGE', 'LOCAL_STORAGE_PATH', 'ENABLE_S3_STORAGE',
        'AWS_S3_BUCKET_NAME', 'AWS_REGION', 'AWS_ACCESS_KEY_ID',
        'AWS_SECRET_ACCESS_KEY', 'S3_ENDPOINT', 'S3_PREFIX',
        'ENABLE_IMAGE_CACHE', 'IMAGE_CACHE_PATH', 'LOG_LEVEL',
    ):
        monkeypatch.delenv(name, raising=False)


class TestCreateParser:
    """Tests for argument parser creation."""

    def test_parser_created(self):
        """Test parser is created successfully."""
        parser = create_parser()
        assert parser is not None

    def test_process_command(self):
        """Test process command parsing."""
        parser = create_parser()
        args = parser.parse_args([
            'process', 'photo.jpg', '-f', 'webp', '-q', '75',
            '--size', 'small', '--size', 'large', '--local-root', 'out',
        ])

        assert args.command == 'process'
        assert args.image == 'photo.jpg'
        assert args.format == 'webp'
        assert args.quality == 75.0
        assert args.size == ['small', 'large']
        assert args.local_root == 'out'

    def test_cache_flags_exclusive(self):
        """Test --cache and --no-cache cannot be combined."""
        parser = create_parser()

        with pytest.raises(SystemExit):
            parser.parse_args(['process', 'a.jpg', '--cache', '--no-cache'])

    def test_clear_cache_command(self):
        """Test clear-cache command parsing."""
        parser = create_parser()
        args = parser.parse_args(['clear-cache', '--cache-dir', '/tmp/c'])

        assert args.command == 'clear-cache'
        assert args.cache_dir == '/tmp/c'


class TestBuildOptions:
    """Tests for build_options."""

    def test_transformations(self):
        """Test transform flags become tagged operations in order."""
        args = create_parser().parse_args([
            'process', 'a.jpg', '--rotate', '90', '--flip', 'horizontal',
            '--grayscale', '--tint', '#ff0000',
        ])

        options = build_options(args)

        assert options['transformations'] == [
            {'op': 'rotate', 'degrees': 90.0},
            {'op': 'flip', 'axis': 'horizontal'},
            {'op': 'grayscale'},
            {'op': 'tint', 'color': '#ff0000'},
        ]

    def test_no_transformations(self):
        args = create_parser().parse_args(['process', 'a.jpg'])
        assert 'transformations' not in build_options(args)


class TestGetConfig:
    """Tests for get_config."""

    def test_overrides(self):
        """Test CLI options enable backends and the cache."""
        args = create_parser().parse_args([
            'process', 'a.jpg', '--local-root', 'out', '--cache', '--cache-dir', 'c',
        ])

        config = get_config(args)

        assert config.enable_local_storage is True
        assert config.local.root_path == 'out'
        assert config.cache_enabled is True
        assert config.cache_path == 'c'

    def test_no_cache_overrides_env(self, monkeypatch):
        monkeypatch.setenv('ENABLE_IMAGE_CACHE', 'true')
        args = create_parser().parse_args(['process', 'a.jpg', '--no-cache'])

        assert get_config(args).cache_enabled is False


class TestMain:
    """Tests for main entry point."""

    def test_no_command(self):
        """Test main without a command prints help and fails."""
        assert main([]) == 1

    def test_sizes(self, capsys):
        """Test sizes command lists the default profiles."""
        assert main(['sizes']) == 0

        out = capsys.readouterr().out
        assert 'small' in out
        assert '1024' in out

    def test_process_local(self, tmp_path, sample_image_bytes, capsys):
        """Test processing an image into local storage."""
        image = tmp_path / 'photo.jpg'
        image.write_bytes(sample_image_bytes)
        out_dir = tmp_path / 'out'

        code = main([
            'process', str(image), '--local-root', str(out_dir),
            '--size', 'small', '--no-cache',
        ])

        assert code == 0
        result = json.loads(capsys.readouterr().out)
        assert result['metadata']['resized']['small']['width'] == 320
        assert result['local']['original'].startswith(str(out_dir.resolve()))
        assert list(out_dir.glob('resized/small/photo-*.small.jpg'))

    def test_process_logs_cache_status(self, tmp_path, sample_image_bytes, caplog, capsys):
        """Test the cache entry status is logged when the cache is enabled."""
        caplog.set_level(logging.INFO, logger='imgresizer')
        image = tmp_path / 'photo.jpg'
        image.write_bytes(sample_image_bytes)
        args = [
            'process', str(image), '--local-root', str(tmp_path / 'out'),
            '--size', 'small', '--cache', '--cache-dir', str(tmp_path / 'cache'),
        ]

        assert main(args) == 0
        assert 'Cache miss, entry present' in caplog.text

        caplog.clear()
        assert main(args) == 0
        assert 'Cache hit, entry present' in caplog.text

    def test_process_output_file(self, tmp_path, sample_image_bytes):
        """Test the JSON result can be written to a file."""
        image = tmp_path / 'photo.jpg'
        image.write_bytes(sample_image_bytes)
        output = tmp_path / 'result.json'

        code = main([
            'process', str(image), '--local-root', str(tmp_path / 'out'),
            '--size', 'small', '--no-cache', '-o', str(output),
        ])

        assert code == 0
        assert 'metadata' in json.loads(output.read_text())

    def test_process_without_backend(self, tmp_path, sample_image_bytes):
        """Test processing fails without an enabled backend."""
        image = tmp_path / 'photo.jpg'
        image.write_bytes(sample_image_bytes)

        assert main(['process', str(image)]) == 1

    def test_process_missing_file(self, tmp_path):
        """Test a missing input file fails."""
        assert main(['process', str(tmp_path / 'missing.jpg'), '--local-root', str(tmp_path)]) == 1

    def test_process_invalid_quality(self, tmp_path, sample_image_bytes):
        """Test an out-of-range quality fails."""
        image = tmp_path / 'photo.jpg'
        image.write_bytes(sample_image_bytes)

        assert main(['process', str(image), '--local-root', str(tmp_path / 'out'), '-q', '150']) == 1

    def test_clear_cache(self, tmp_path):
        """Test clear-cache removes the cache directory."""
        cache_dir = tmp_path / 'cache'
        (cache_dir / 'entry').mkdir(parents=True)

        assert main(['clear-cache', '--cache-dir', str(cache_dir)]) == 0
        assert not cache_dir.exists()
