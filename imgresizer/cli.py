"""
Command Line Interface for imgresizer.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

import urllib3

from .errors import ImageResizerError
from .resizer import ImageResizer
from .resizer_config import ResizerConfig
from .size_profile import DEFAULT_SIZES
from .variant_cache import VariantCache


def setup_logging(verbose: bool, level_name: str = 'INFO') -> logging.Logger:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    logging.getLogger('boto3').setLevel(logging.WARNING)
    logging.getLogger('botocore').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('PIL').setLevel(logging.WARNING)

    return logging.getLogger('imgresizer')


def get_config(args: argparse.Namespace) -> ResizerConfig:
    """Get configuration from environment and CLI overrides."""
    config = ResizerConfig.from_env()

    if getattr(args, 'local_root', None):
        config.enable_local_storage = True
        config.local.root_path = args.local_root
    if getattr(args, 's3_bucket', None):
        config.enable_s3_storage = True
        config.s3.bucket = args.s3_bucket
    if getattr(args, 's3_region', None):
        config.s3.region = args.s3_region
    if getattr(args, 's3_endpoint', None):
        config.s3.endpoint = args.s3_endpoint
    if getattr(args, 's3_prefix', None):
        config.s3.prefix = args.s3_prefix
    if getattr(args, 'cache_dir', None):
        config.cache_path = args.cache_dir
    if getattr(args, 'no_cache', False):
        config.cache_enabled = False
    elif getattr(args, 'cache', False):
        config.cache_enabled = True

    return config


def build_options(args: argparse.Namespace) -> dict:
    """Translate process arguments into processing options."""
    options = {
        'output_format': args.format,
        'quality': args.quality,
        'optimize_output_format': args.optimize,
        'process_sizes': args.size,
        'filename_strategy': args.strategy,
    }

    transformations = []
    if args.rotate is not None:
        transformations.append({'op': 'rotate', 'degrees': args.rotate})
    if args.flip:
        transformations.append({'op': 'flip', 'axis': args.flip})
    if args.grayscale:
        transformations.append({'op': 'grayscale'})
    if args.tint:
        transformations.append({'op': 'tint', 'color': args.tint})
    if transformations:
        options['transformations'] = transformations

    return options


def add_storage_arguments(parser: argparse.ArgumentParser) -> None:
    """Add storage configuration arguments to a parser."""
    local_group = parser.add_argument_group('Local Storage')
    local_group.add_argument('--local-root', metavar='PATH',
                             help='Enable local storage under PATH (overrides LOCAL_STORAGE_PATH)')

    s3_group = parser.add_argument_group('S3 Storage')
    s3_group.add_argument('--s3-bucket', help='Enable S3 storage in bucket (overrides AWS_S3_BUCKET_NAME)')
    s3_group.add_argument('--s3-region', help='Override AWS_REGION')
    s3_group.add_argument('--s3-endpoint', help='Override S3_ENDPOINT')
    s3_group.add_argument('--s3-prefix', help='Override S3_PREFIX')


def add_cache_arguments(parser: argparse.ArgumentParser) -> None:
    cache_group = parser.add_argument_group('Cache')
    cache_group.add_argument('--cache-dir', metavar='DIR', help='Override IMAGE_CACHE_PATH')
    toggle = cache_group.add_mutually_exclusive_group()
    toggle.add_argument('--cache', action='store_true', help='Enable the variant cache')
    toggle.add_argument('--no-cache', action='store_true', help='Disable the variant cache')


def cmd_process(args: argparse.Namespace) -> int:
    """Execute process command."""
    config = get_config(args)
    logger = setup_logging(args.verbose, config.log_level)

    if config.enable_s3_storage and not config.s3.verify_ssl:
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    try:
        with open(args.image, 'rb') as f:
            data = f.read()
    except OSError as e:
        logger.error(f"Cannot read {args.image}: {e}")
        return 1

    try:
        resizer = ImageResizer(config, logger=logger)
        result = asyncio.run(resizer.process(data, args.name or args.image, build_options(args)))
    except ImageResizerError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1

    if resizer.cache.enabled:
        cached = asyncio.run(resizer.cache.entry_exists(result.fingerprint))
        logger.info(
            f"Cache {'hit' if result.cache_hit else 'miss'}, "
            f"entry {'present' if cached else 'not written'}: {result.fingerprint}"
        )

    output = json.dumps(result.to_dict(), indent=2)
    if args.output:
        with open(args.output, 'w', encoding='utf-8') as f:
            f.write(output + '\n')
        logger.info(f"Result written to: {args.output}")
    else:
        print(output)

    return 0 if not result.failed_backends else 2


def cmd_clear_cache(args: argparse.Namespace) -> int:
    """Execute clear-cache command."""
    config = get_config(args)
    logger = setup_logging(args.verbose, config.log_level)

    cache = VariantCache(config.cache_path, enabled=True, logger=logger)
    try:
        asyncio.run(cache.clear())
    except ImageResizerError as e:
        logger.error(f"{e}")
        return 1
    return 0


def cmd_sizes(args: argparse.Namespace) -> int:
    """Execute sizes command."""
    print(f"{'Size':<12} {'Width':>6} {'Quality':>8}")
    for profile in DEFAULT_SIZES.values():
        print(f"{profile.key:<12} {profile.width:>6} {profile.default_quality:>8}")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog='imgresizer',
        description='Generate resized image variants and store them locally or on S3',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m imgresizer process photo.jpg --local-root ./out
  python -m imgresizer process logo.png --optimize --size small --cache
  python -m imgresizer clear-cache --cache-dir .image_cache

Storage and cache settings are read from the environment (ENABLE_LOCAL_STORAGE,
LOCAL_STORAGE_PATH, ENABLE_S3_STORAGE, AWS_*, ENABLE_IMAGE_CACHE,
IMAGE_CACHE_PATH) and may be overridden with the options below.
"""
    )

    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Process command
    proc_parser = subparsers.add_parser('process', help='Process an image and store its variants')
    proc_parser.add_argument('image', help='Image file to process')
    proc_parser.add_argument('--name', help='Original filename used for naming (default: IMAGE)')
    proc_parser.add_argument('-f', '--format', help='Output format (jpeg, png, webp, tiff, avif)')
    proc_parser.add_argument('-q', '--quality', type=float, help='Quality 0-100')
    proc_parser.add_argument('--optimize', action='store_true',
                             help='Choose the output format from the image transparency')
    proc_parser.add_argument('--size', action='append', metavar='KEY',
                             help='Size key to generate (repeatable; default: all)')
    proc_parser.add_argument('--strategy', help='Filename strategy name (default, flat)')
    proc_parser.add_argument('--rotate', type=float, metavar='DEG', help='Rotate clockwise by DEG')
    proc_parser.add_argument('--flip', choices=['vertical', 'horizontal'], help='Flip along an axis')
    proc_parser.add_argument('--grayscale', action='store_true', help='Convert to grayscale')
    proc_parser.add_argument('--tint', metavar='HEX', help='Tint colour (e.g., #ff8800)')
    proc_parser.add_argument('-o', '--output', help='Write the JSON result to a file')
    proc_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    add_storage_arguments(proc_parser)
    add_cache_arguments(proc_parser)

    # Clear cache command
    clear_parser = subparsers.add_parser('clear-cache', help='Remove all cached variants')
    clear_parser.add_argument('--cache-dir', metavar='DIR', help='Override IMAGE_CACHE_PATH')
    clear_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    # Sizes command
    subparsers.add_parser('sizes', help='List the default size profiles')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.command == 'process':
        return cmd_process(args)
    elif args.command == 'clear-cache':
        return cmd_clear_cache(args)
    elif args.command == 'sizes':
        return cmd_sizes(args)

    return 1


if __name__ == '__main__':
    sys.exit(main())
