"""Response caching for AMG browsing."""

import json
import logging
import re
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from .dataclasses import PageResponse
from .text_utils import make_filesystem_safe

DEFAULT_EXPIRY_SECONDS = 7 * 24 * 60 * 60


class ResponseCache:
    """Stores complete responses on disk, one JSON file per request key.

    Expiry is driven by each file's modification time.
    """

    def __init__(self, cache_dir: str, expiry_seconds: int = DEFAULT_EXPIRY_SECONDS,
                 clock: Callable[[], float] = time.time) -> None:
        self.cache_dir = Path(cache_dir)
        self.expiry_seconds = expiry_seconds
        self.clock = clock
        self.logger = logging.getLogger(__name__)

        if self.cache_dir.exists() and not self.cache_dir.is_dir():
            raise NotADirectoryError(f"Cache dir {self.cache_dir} exists, but is not a directory")

        # Create cache directory if it doesn't exist
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def key(method: str, url: str, body: Optional[str] = None) -> str:
        """Build a filesystem-safe cache key from method, url and request body."""
        target = re.sub(r'^[a-zA-Z][a-zA-Z0-9+.-]*://', '', url).replace('/', '-')

        key = f"{method.upper()}-{target}"
        if body and body.strip():
            key += f"-{body}"
        key = key.rstrip('-')

        return make_filesystem_safe(key)

    def _get_cache_file(self, key: str) -> Path:
        return self.cache_dir / f"{key}.json"

    def _is_expired(self, cache_file: Path) -> bool:
        age = self.clock() - cache_file.stat().st_mtime
        return age > self.expiry_seconds

    def get(self, key: str) -> Optional[PageResponse]:
        """Get cached response for key if it exists and is not expired."""
        cache_file = self._get_cache_file(key)

        if not cache_file.exists():
            self.logger.debug(f"Cache miss: {key}")
            return None

        if self._is_expired(cache_file):
            self.logger.debug(f"Cache expired: {key}")
            return None

        try:
            with open(cache_file, 'r', encoding='utf-8') as f:
                cache_data = json.load(f)
            response = PageResponse.from_dict(cache_data)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            self.logger.warning(f"Corrupted cache file for {key}: {e}")
            cache_file.unlink()  # Remove corrupted cache
            return None

        response.from_cache = True
        self.logger.debug(f"Cache hit: {key}")
        return response

    def put(self, key: str, response: PageResponse) -> None:
        """Persist the full response under key."""
        cache_file = self._get_cache_file(key)

        try:
            with open(cache_file, 'w', encoding='utf-8') as f:
                json.dump(response.to_dict(), f, ensure_ascii=False, indent=2)
            self.logger.debug(f"Cached response for: {key}")
        except OSError as e:
            self.logger.error(f"Failed to cache response for {key}: {e}")

    def clear_cache(self) -> int:
        """Clear all cached files."""
        cache_files = list(self.cache_dir.glob("*.json"))
        for cache_file in cache_files:
            cache_file.unlink()
        self.logger.info(f"Cleared {len(cache_files)} cache files")
        return len(cache_files)

    def get_cache_info(self) -> Dict[str, Any]:
        """Get cache statistics."""
        cache_files = list(self.cache_dir.glob("*.json"))

        total_size = sum(f.stat().st_size for f in cache_files)
        total_size_mb = total_size / (1024 * 1024)
        expired_count = sum(1 for f in cache_files if self._is_expired(f))

        return {
            'cache_enabled': True,
            'total_files': len(cache_files),
            'total_size_mb': round(total_size_mb, 2),
            'expired_files': expired_count,
            'cache_dir': str(self.cache_dir),
            'expiry_seconds': self.expiry_seconds
        }

    def cleanup_expired(self) -> int:
        """Clean up expired cache files. Returns number of files removed."""
        removed_count = 0
        for cache_file in list(self.cache_dir.glob("*.json")):
            if self._is_expired(cache_file):
                cache_file.unlink()
                removed_count += 1
                self.logger.debug(f"Removed expired cache: {cache_file.name}")

        if removed_count > 0:
            self.logger.info(f"Cleaned up {removed_count} expired cache files")
        return removed_count
