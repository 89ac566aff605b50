"""All Music Guide client built on the form-driving Browser.

This module provides a small interface for looking up artist and album
information on the AMG site, usable standalone or from the amg-tag CLI.
"""

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .browser import Browser
from .cache_manager import ResponseCache
from .dataclasses import AlbumInfo, AlbumSearchResult, AMGConfig, ArtistInfo, ArtistSearchResult
from .parsers import (analyze_artist_search_results, extract_object_id, find_more_info_link,
                      identify_object_id, parse_album_page, parse_album_search_results,
                      parse_artist_page, parse_artist_search_results)

SEARCH_BUTTON_IMG = 'img/mus_3.gif'
SEARCH_FIELD = 'sql'
SEARCH_TYPE_RADIO = 'opt1'
ALBUM_SEARCH_TYPE = '2'

ArtistLookup = Union[ArtistInfo, List[ArtistSearchResult]]
AlbumLookup = Union[AlbumInfo, List[AlbumSearchResult]]


class AllMusicGuide:
    """Standalone AMG client for use in any application."""

    def __init__(self, config: Optional[AMGConfig] = None, browser: Optional[Browser] = None) -> None:
        self.config = config or AMGConfig()  # Use defaults if no config provided
        self.logger = logging.getLogger(__name__)

        # Initialize components
        self._init_cache_manager()
        self.browser = browser or Browser(self.config, cache=self.cache_manager)

    def _init_cache_manager(self) -> None:
        """Initialize response cache."""
        self.cache_manager = None
        if self.config.cache_enabled:
            # Make cache_dir absolute if it's not already
            cache_dir = Path(self.config.cache_dir)
            if not cache_dir.is_absolute():
                cache_dir = cache_dir.resolve()

            self.cache_manager = ResponseCache(str(cache_dir), self.config.cache_expiry_seconds)

    def __enter__(self) -> 'AllMusicGuide':
        return self

    def __exit__(self, _exc_type, _exc_val, _exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Release the browser session."""
        self.browser.close()

    def make_url(self, object_id: str) -> str:
        """URL of the page for an AMG object id."""
        if not re.search(r'~C$', object_id, re.IGNORECASE):
            object_id = f"{object_id}~C"
        return f"{self.config.base_url}/cg/amg.dll?p=amg&sql={object_id}"

    def navigate_home(self) -> None:
        self.logger.info("Loading AMG home page...")
        self.browser.navigate(self.config.base_url)

    def navigate_to_object(self, object_id: str, message: str) -> None:
        self.logger.info(f"{message}...")
        self.browser.navigate(self.make_url(object_id))

    def search_artist(self, name: Optional[str] = None, id: Optional[str] = None,
                      auto: Optional[bool] = None) -> ArtistLookup:
        """Search for an artist by name or load one by id.

        Args:
            name: Artist name typed into the site search box
            id: AMG artist id (takes effect only when name is not given)
            auto: Follow a likely match from the results; defaults to config.auto_select

        Returns:
            ArtistInfo for the artist page reached, or the list of search
            results when no single match could be picked
        """
        if not name and not id:
            raise ValueError("Must specify one of name or id")
        if auto is None:
            auto = self.config.auto_select

        if name:
            self.navigate_home()
            self.logger.info(f"Searching for artist {name}...")
            self.browser.fill(SEARCH_FIELD, name)
            self.browser.press(src=SEARCH_BUTTON_IMG)
        else:
            self.navigate_to_object(id, "Loading artist page")

        search_results = parse_artist_search_results(self.browser.document, name)
        if search_results:
            if len(search_results) > 1:
                self.logger.info(f"{len(search_results)} search results found")

            result = analyze_artist_search_results(name, search_results)
            if result is None or not auto or not result.artist_id:
                return search_results

            if len(search_results) > 1:
                self.logger.info("Automatically selecting likely match.")
            self.navigate_to_object(result.artist_id, "Loading artist page")

        # Partial artist pages link to the complete one
        link = find_more_info_link(self.browser.document)
        if link is not None:
            artist_id = extract_object_id(link.get('href'))
            if not artist_id.startswith('R'):
                self.navigate_to_object(artist_id, "Getting complete artist info")

        return parse_artist_page(self.browser.response.body)

    def search_album(self, name: Optional[str] = None, id: Optional[str] = None) -> AlbumLookup:
        """Search for an album by name or load one by id.

        A single search result is followed to its album page; several are
        returned as they are.
        """
        if not name and not id:
            raise ValueError("Must specify one of name or id")

        if name:
            self.navigate_home()
            self.logger.info(f"Searching for album {name}...")
            self.browser.fill(SEARCH_FIELD, name)
            self.browser.set_radio(SEARCH_TYPE_RADIO, ALBUM_SEARCH_TYPE)
            self.browser.press(src=SEARCH_BUTTON_IMG)
        else:
            self.navigate_to_object(id, "Loading album page")

        search_results = parse_album_search_results(self.browser.document)
        if len(search_results) == 1 and search_results[0].album_id:
            self.navigate_to_object(search_results[0].album_id, "Loading album page")
        elif search_results:
            self.logger.info(f"{len(search_results)} search results found")
            return search_results

        return parse_album_page(self.browser.response.body)

    def lookup_object(self, object_id: str) -> Union[ArtistLookup, AlbumLookup]:
        """Load an artist or album page by id."""
        if identify_object_id(object_id) == 'album':
            return self.search_album(id=object_id)
        return self.search_artist(id=object_id)

    def clear_cache(self) -> int:
        """Clear cached responses and return number of files cleared."""
        if self.cache_manager:
            return self.cache_manager.clear_cache()
        return 0

    def get_cache_info(self) -> Dict[str, Any]:
        """Get cache statistics."""
        if self.cache_manager:
            return self.cache_manager.get_cache_info()
        return {'cache_enabled': False}
