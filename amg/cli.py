#!/usr/bin/env python3
"""Command-line interface for All Music Guide lookups.

This module provides the amg-tag tool: search the AMG site for an artist or
album, load an object by id or url, or parse a saved AMG page offline, and
print what was found.
"""

import argparse
import json
import logging
import os
import sys
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, List

from amg import __version__
from amg.core import AllMusicGuide
from amg.dataclasses import AlbumInfo, AMGConfig, ArtistInfo
from amg.errors import AMGError
from amg.parsers import CREDITS_IMG, TRACKS_IMG, extract_object_id, parse_album_page, parse_artist_page


def setup_logging(debug: bool = False, quiet: bool = False):
    """Configure logging for CLI."""
    level = logging.DEBUG if debug else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(levelname)s: %(message)s'
    )


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description='Look up artist and album information on the All Music Guide',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s Miles Davis
  %(prog)s --album "Kind of Blue"
  %(prog)s --id P1234
  %(prog)s --url www.allmusic.com/cg/amg.dll?p=amg&sql=11:abc~C
  %(prog)s saved_artist_page.html
  %(prog)s --cache-dir .amg_cache Miles Davis
  %(prog)s --cache-dir .amg_cache --clear-cache
  %(prog)s --cache-dir .amg_cache --cache-info

Environment Variables:
  PROXY_HOST      Proxy server hostname
  PROXY_PORT      Proxy server port
  PROXY_USERNAME  Proxy authentication username
  PROXY_PASSWORD  Proxy authentication password
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        'words',
        nargs='*',
        help='Artist name, or the path of a saved AMG page to parse offline'
    )

    lookup_group = parser.add_mutually_exclusive_group()
    lookup_group.add_argument(
        '--artist',
        help='Search for an artist by name'
    )
    lookup_group.add_argument(
        '--album',
        help='Search for an album by name'
    )
    lookup_group.add_argument(
        '--id',
        help='Load an artist or album by AMG object id'
    )
    lookup_group.add_argument(
        '--url',
        help='Load the AMG object a url points at'
    )

    parser.add_argument(
        '--manual',
        action='store_true',
        help='Return search results instead of following a likely match'
    )

    parser.add_argument(
        '--format',
        choices=['json', 'text'],
        default='json',
        help='Output format (default: json)'
    )

    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )

    parser.add_argument(
        '-q', '--quiet',
        action='store_true',
        help='Only log warnings and errors'
    )

    # Cache configuration
    cache_group = parser.add_argument_group('cache options')
    cache_group.add_argument(
        '--cache-dir',
        help='Cache responses in this directory (caching is off without it)'
    )
    cache_group.add_argument(
        '--clear-cache',
        action='store_true',
        help='Clear cached responses and exit'
    )
    cache_group.add_argument(
        '--cache-info',
        action='store_true',
        help='Show cache statistics and exit'
    )

    # Proxy configuration
    proxy_group = parser.add_argument_group('proxy options')
    proxy_group.add_argument(
        '--proxy-host',
        help='Proxy server hostname (default: from PROXY_HOST env var)'
    )
    proxy_group.add_argument(
        '--proxy-port',
        type=int,
        help='Proxy server port (default: from PROXY_PORT env var)'
    )
    proxy_group.add_argument(
        '--proxy-username',
        help='Proxy username (default: from PROXY_USERNAME env var)'
    )
    proxy_group.add_argument(
        '--proxy-password',
        help='Proxy password (default: from PROXY_PASSWORD env var)'
    )
    proxy_group.add_argument(
        '--no-proxy',
        action='store_true',
        help='Disable proxy usage (use direct connection)'
    )

    return parser.parse_args(argv)


def create_config_from_args(args) -> AMGConfig:
    """Create AMGConfig from command-line arguments and environment variables."""
    # Get proxy settings from args or environment
    proxy_host = args.proxy_host or os.environ.get('PROXY_HOST')
    proxy_port = args.proxy_port or (
        int(os.environ.get('PROXY_PORT')) if os.environ.get('PROXY_PORT') else None
    )
    proxy_username = args.proxy_username or os.environ.get('PROXY_USERNAME')
    proxy_password = args.proxy_password or os.environ.get('PROXY_PASSWORD')

    # Credentials are optional; host and port are not
    proxy_enabled = not args.no_proxy and all([proxy_host, proxy_port])

    return AMGConfig(
        proxy_enabled=proxy_enabled,
        proxy_host=proxy_host,
        proxy_port=proxy_port,
        proxy_username=proxy_username,
        proxy_password=proxy_password,
        cache_enabled=args.cache_dir is not None,
        cache_dir=args.cache_dir or AMGConfig.cache_dir,
        auto_select=not args.manual,
    )


def normalize_url(url: str) -> str:
    if '://' not in url:
        return f"http://{url}"
    return url


def parse_saved_page(path: Path):
    """Parse a saved artist or album page without touching the network."""
    html = path.read_text(encoding='utf-8', errors='replace')
    if TRACKS_IMG in html or CREDITS_IMG in html:
        return parse_album_page(html)
    return parse_artist_page(html)


def to_serializable(result: Any) -> Any:
    if isinstance(result, list):
        return [to_serializable(item) for item in result]
    if is_dataclass(result):
        return asdict(result)
    return result


def format_text(result: Any) -> str:
    """Short human-readable summary of a lookup result."""
    lines: List[str] = []

    if isinstance(result, list):
        lines.append(f"{len(result)} search result(s):")
        for item in result:
            if hasattr(item, 'album_title'):
                lines.append(f"  {item.artist} - {item.album_title} ({item.year or '?'}) [{item.album_id}]")
            else:
                marker = '*' if item.likely_match else ' '
                lines.append(f" {marker}{item.artist} - {item.genre or ''} {item.decades or ''} [{item.artist_id}]")

    elif isinstance(result, AlbumInfo):
        lines.append(f"{result.artist} - {result.album_title}")
        if result.release_date:
            lines.append(f"Released: {result.release_date}")
        if result.amg_rating is not None:
            lines.append(f"Rating: {result.amg_rating}")
        if result.genre:
            lines.append(f"Genre: {', '.join(result.genre)}")
        if result.styles:
            lines.append(f"Styles: {', '.join(result.styles)}")
        for track in result.tracks:
            length = f" ({track.length})" if track.length else ''
            lines.append(f"  {track.number or '?'}. {track.name}{length}")

    elif isinstance(result, ArtistInfo):
        if result.formed_date or result.born_date:
            lines.append(f"Formed/born: {result.formed_date or result.born_date}")
        if result.genres:
            lines.append(f"Genres: {', '.join(result.genres)}")
        if result.styles:
            lines.append(f"Styles: {', '.join(result.styles)}")
        if result.years_active:
            lines.append(f"Active: {', '.join(result.years_active)}")
        lines.append(f"Discography: {len(result.discography)} release(s)")
        for entry in result.discography:
            lines.append(f"  {entry.year or '????'} {entry.title} ({entry.type})")

    return '\n'.join(lines)


def print_result(result: Any, output_format: str) -> None:
    if output_format == 'text':
        print(format_text(result))
    else:
        print(json.dumps(to_serializable(result), indent=2, ensure_ascii=False))


def print_cache_info(cache_info) -> None:
    if cache_info.get('cache_enabled'):
        print(f"Cache directory: {cache_info.get('cache_dir', 'N/A')}")
        print(f"Total cached files: {cache_info.get('total_files', 0)}")
        print(f"Total cache size: {cache_info.get('total_size_mb', 0):.2f} MB")
        print(f"Cache expiry: {cache_info.get('expiry_seconds', 0)} seconds")
        if cache_info.get('expired_files', 0) > 0:
            print(f"Expired files: {cache_info.get('expired_files', 0)}")
    else:
        print("Cache is disabled")


def run_lookup(args, config: AMGConfig):
    name = ' '.join(args.words) if args.words else None

    # A single existing path is a saved page
    if name and len(args.words) == 1 and Path(name).is_file():
        return parse_saved_page(Path(name))

    with AllMusicGuide(config) as amg:
        if args.album:
            return amg.search_album(name=args.album)
        if args.id:
            return amg.lookup_object(args.id)
        if args.url:
            return amg.lookup_object(extract_object_id(normalize_url(args.url)))
        return amg.search_artist(name=args.artist or name)


def main(argv=None):
    """Main CLI entry point."""
    args = parse_args(argv)
    setup_logging(args.debug, args.quiet)
    logger = logging.getLogger(__name__)

    # Create config
    config = create_config_from_args(args)

    # Handle cache management commands
    if args.cache_info or args.clear_cache:
        with AllMusicGuide(config) as amg:
            if args.cache_info:
                print_cache_info(amg.get_cache_info())
                return 0

            cleared_count = amg.clear_cache()
            print(f"Cleared {cleared_count} cache file(s)")
            return 0

    # Require something to look up
    if not (args.words or args.artist or args.album or args.id or args.url):
        print("Error: an artist name, --album, --id, --url or a saved page is required", file=sys.stderr)
        print("Use --help for usage information", file=sys.stderr)
        return 1

    try:
        result = run_lookup(args, config)
        print_result(result, args.format)
        return 0

    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 130

    except (AMGError, ValueError, OSError) as e:
        logger.error(f"Fatal error: {e}")
        if args.debug:
            raise
        return 1


if __name__ == '__main__':
    sys.exit(main())
