"""Page parsers for All Music Guide artist, album and search result pages.

Layout notes for the AMG markup these parsers understand:

Artist and album pages lay out their facts as two-cell rows: a key cell with
class ``co3`` followed by the value cell.

The discography on an artist page is split into up to four sections (albums,
compilations and boxsets, eps and singles, bootlegs and videos). Each data
table is preceded by a table holding the section's header image, which is
how sections are told apart. Data tables have 5-6 columns:

1. AMG pick (image), rating (image)
2. Year (text), in print (image)
3. Title (text/link)
4. Buy link (ignored)
5. Label (text/optional link)
6. Type (single character), absent from the albums table

Search result pages are recognised by a sentinel header cell with a fixed
background image and caption.
"""

import logging
import re
from typing import Dict, List, Optional, Tuple, Union

from .dataclasses import (AlbumInfo, AlbumSearchResult, ArtistInfo, ArtistSearchResult, Credit,
                          DiscographyEntry, Member, Track)
from .document import Document, Element, parse
from .errors import PageStructureError
from .text_utils import clean

logger = logging.getLogger(__name__)

# Album page
TRACKS_IMG = '/img/htrk1.gif'
TRACK_LIST_ROW_CLASS = 'co1'
CREDITS_IMG = '/img/hcred1.gif'
CREDITS_ROW_CLASS = 'co1'
REVIEW_TABLE_CLASS = 'ft3'

# Search results
ALBUM_RESULTS_HEADER_BG = '/img/bgr02.gif'
ALBUM_RESULTS_SENTINEL = 'AMG Rating'
ALBUM_RESULTS_ROW_CLASS = 'co1'
ARTIST_RESULTS_HEADER_BG = '/img/bgr02.gif'
ARTIST_RESULTS_SENTINEL = 'NAMES STARTING WITH'
ARTIST_RESULTS_LIKELY_CLASS = 'co4'

# Artist page
KEY_CELL_CLASS = 'co3'
MORE_INFO_IMG = '/img/continue2.jpg'
FEATURED_ALBUMS_BG = '/img/bgr01.jpg'
DISCO_ALBUMS_IMG = '/img/hdisc11.gif'
DISCO_COMPS_IMG = '/img/hdisc21.gif'
DISCO_EPS_IMG = '/img/hdisc31.gif'
DISCO_BOOTLEGS_IMG = '/img/hdisc41.gif'
DISCO_TYPES = (DISCO_ALBUMS_IMG, DISCO_COMPS_IMG, DISCO_EPS_IMG, DISCO_BOOTLEGS_IMG)

# Image src -> (field, value) for the pick / rating / in-print indicators
IMAGE_FLAGS: Dict[str, Tuple[str, Union[bool, float]]] = {
    '/img/nopick.gif': ('amg_pick', False),
    '/img/pick.gif': ('amg_pick', True),
    '/img/av0.gif': ('in_print', False),
    '/img/av1.gif': ('in_print', True),
}
_RATINGS = (0.0, 0.5, 1.0, 1.5, 2.0, 2.5, 3.0, 4.0, 4.5, 5.0)
for _index, _stars in enumerate(_RATINGS):
    IMAGE_FLAGS[f'/img/rt{_index}.gif'] = ('amg_rating', _stars)
    IMAGE_FLAGS[f'/img/st_r{_index}.gif'] = ('amg_rating', _stars)

_DATE_LOCATION_RE = re.compile(r'^(.*?)\s+in\s+(.*)$', re.IGNORECASE)
_OBJECT_ID_RE = re.compile(r'sql=([^&]+)')


def extract_object_id(href: Optional[str]) -> str:
    """AMG object id from a link such as ``/cg/amg.dll?p=amg&sql=Bjgjyeat04``."""
    match = _OBJECT_ID_RE.search(href or '')
    if not match:
        raise ValueError(f"Cannot extract object ID from string {href}")
    return match.group(1)


def identify_object_id(object_id: str) -> str:
    """'album' or 'artist' depending on the id prefix."""
    if object_id[:1].lower() == 'a':
        return 'album'
    if object_id[:1].lower() == 'b':
        return 'artist'
    raise ValueError(f"Unrecognized type of AMG object id ({object_id})")


def element_text(element: Optional[Element]) -> str:
    return clean(element.text_content()) if element is not None else ''


def links_text(element: Element) -> List[str]:
    return [element_text(link) for link in element.find_descendants('a')]


def split_list(value: str) -> List[str]:
    return [item for item in re.split(r'\s*,\s*', value) if item]


def apply_image_flags(element: Element, record) -> None:
    """Set pick / rating / in-print fields on record from indicator images under element."""
    for image in element.find_descendants('img'):
        flag = IMAGE_FLAGS.get(image.get('src', ''))
        if flag:
            setattr(record, flag[0], flag[1])


def _split_date_location(value: str) -> Tuple[str, Optional[str]]:
    match = _DATE_LOCATION_RE.match(value)
    if match:
        return match.group(1), match.group(2)
    return value, None


def _key_value_rows(document: Document) -> List[Tuple[str, str, Element]]:
    rows = []
    for key_cell in document.find_descendants('td', {'class': KEY_CELL_CLASS}):
        value_cell = key_cell.next_element_sibling()
        if value_cell is None:
            continue
        rows.append((element_text(key_cell), element_text(value_cell), value_cell))
    return rows


def parse_artist_page(html: str) -> ArtistInfo:
    """Parse an artist page, discography included."""
    logger.info("Parsing artist info...")
    document = parse(html)
    artist = ArtistInfo()

    for key, value, value_cell in _key_value_rows(document):
        if re.search(r'formed', key, re.IGNORECASE):
            artist.formed_date, artist.formed_location = _split_date_location(value)
        elif re.search(r'disbanded', key, re.IGNORECASE):
            artist.disbanded_date, artist.disbanded_location = _split_date_location(value)
        elif re.search(r'born', key, re.IGNORECASE):
            artist.born_date, artist.born_location = _split_date_location(value)
        elif re.search(r'died', key, re.IGNORECASE):
            artist.died_date, artist.died_location = _split_date_location(value)
        elif re.search(r'years active', key, re.IGNORECASE):
            for image in value_cell.find_descendants('img'):
                match = re.search(r'dec(\d)x\.gif', image.get('src', ''), re.IGNORECASE)
                if match:
                    artist.years_active.append(f"{match.group(1)}0s")
        elif re.search(r'group members', key, re.IGNORECASE):
            for link in value_cell.find_descendants('a'):
                artist.members.append(Member(
                    name=element_text(link),
                    artist_id=extract_object_id(link.get('href'))
                ))
        elif re.search(r'genres', key, re.IGNORECASE):
            artist.genres = links_text(value_cell)
        elif re.search(r'styles', key, re.IGNORECASE):
            artist.styles = links_text(value_cell)
        elif re.search(r'tones', key, re.IGNORECASE):
            artist.tones = split_list(value)
        elif re.search(r'labels', key, re.IGNORECASE):
            artist.labels = links_text(value_cell)
        elif re.search(r'instruments', key, re.IGNORECASE):
            artist.instruments = split_list(value)

    document.release()

    logger.info("Parsing discography...")
    artist.discography = parse_discography(html)
    return artist


def _discography_tables(document: Document) -> List[Tuple[str, Element]]:
    """Pair every discography data table with the section image that precedes it."""
    tables = document.find_descendants('table')
    selected = []

    index = 0
    while index < len(tables):
        table = tables[index]
        index += 1

        for disco_type in DISCO_TYPES:
            if not table.find_descendant('img', {'src': disco_type}):
                continue
            if index >= len(tables):
                break

            data_table = tables[index]
            index += 1

            # The album list may be preceded by a table of featured album covers
            if disco_type == DISCO_ALBUMS_IMG and data_table.get('background') == FEATURED_ALBUMS_BG:
                if index >= len(tables):
                    break
                data_table = tables[index]
                index += 1

            selected.append((disco_type, data_table))
            break

    return selected


def _discography_type(disco_type: str, amg_type: Optional[str]) -> Optional[str]:
    if amg_type is None:
        return 'album'
    if disco_type == DISCO_COMPS_IMG:
        if amg_type == 'x':
            return 'boxset'
        return 'compilation' if not amg_type else None
    if disco_type == DISCO_EPS_IMG:
        if not amg_type:
            return 'ep'
        return 'single' if amg_type == 's' else None
    if disco_type == DISCO_BOOTLEGS_IMG:
        if amg_type == 'b' or not amg_type:
            return 'bootleg'
        return 'video' if amg_type == 'v' else None
    return 'album'


def parse_discography(html: str) -> List[DiscographyEntry]:
    """Parse the discography tables of an artist page."""
    marker = re.search('|'.join(re.escape(img) for img in DISCO_TYPES), html)
    if not marker:
        return []

    # Start from the table holding the first section image
    start = html.rfind('<table', 0, marker.end())
    if start == -1:
        start = html.rfind('<TABLE', 0, marker.end())
    document = parse(html[max(start, 0):])

    discography = []
    for disco_type, table in _discography_tables(document):
        for row in table.find_descendants('tr'):
            cells = row.find_descendants('td')
            if len(cells) < 5:
                continue

            entry = DiscographyEntry()

            # Pick and rating; year and in print
            apply_image_flags(cells[0], entry)
            apply_image_flags(cells[1], entry)
            entry.year = element_text(cells[1])

            link = cells[2].find_descendant('a')
            if link is not None:
                entry.title = element_text(link)
                entry.album_id = extract_object_id(link.get('href'))

            entry.label = element_text(cells[4])

            amg_type = element_text(cells[5]) if len(cells) > 5 else None
            entry.type = _discography_type(disco_type, amg_type)

            discography.append(entry)

    document.release()
    return discography


def parse_album_page(html: str) -> AlbumInfo:
    """Parse an album page: facts, tracks, credits and cover url."""
    logger.info("Parsing album info...")
    document = parse(html)
    album = AlbumInfo()

    for key, value, value_cell in _key_value_rows(document):
        if re.search(r'artist', key, re.IGNORECASE):
            album.artist = value
            link = value_cell.find_descendant('a')
            if link is not None:
                album.artist_id = extract_object_id(link.get('href'))
        elif re.search(r'album title', key, re.IGNORECASE):
            album.album_title = value
        elif re.search(r'date of release', key, re.IGNORECASE):
            stripped = re.sub(r'inprint', '', value, count=1, flags=re.IGNORECASE)
            album.in_print = stripped != value
            album.release_date = clean(re.sub(r'\(release\)', '', stripped, count=1, flags=re.IGNORECASE))
        elif re.search(r'rating', key, re.IGNORECASE):
            apply_image_flags(value_cell, album)
        elif re.search(r'genre', key, re.IGNORECASE):
            album.genre = links_text(value_cell)
        elif re.search(r'tones', key, re.IGNORECASE):
            album.tones = split_list(value)
        elif re.search(r'styles', key, re.IGNORECASE):
            album.styles = links_text(value_cell)
        elif re.search(r'time', key, re.IGNORECASE):
            album.time = value
        elif re.search(r'library view', key, re.IGNORECASE):
            link = value_cell.find_descendant('a')
            if link is not None:
                album.marc_id = extract_object_id(link.get('href'))

    album.tracks = parse_album_tracks(document)
    album.credits = parse_album_credits(document)
    album.cover_url = parse_album_cover(document)

    document.release()
    return album


def _marked_table(document: Document, image_src: str) -> Optional[Element]:
    image = document.find_descendant('img', {'src': image_src})
    if image is None:
        return None

    table = image.find_ancestor('table')
    if table is None:
        raise PageStructureError(
            f"Found image {image_src} but not the table containing it. "
            f"The AMG page layout has probably changed."
        )
    return table


def parse_album_tracks(document: Document) -> List[Track]:
    table = _marked_table(document, TRACKS_IMG)
    if table is None:
        return []

    tracks = []
    for row in table.find_descendants('tr', {'class': TRACK_LIST_ROW_CLASS}):
        cells = row.find_descendants('td')
        if len(cells) < 5:
            continue

        # Rows wrapping a nested row: use the inner one
        if len(cells) > 6:
            inner_row = cells[0].find_descendant('tr')
            if inner_row is None:
                continue
            cells = inner_row.find_descendants('td')
            if len(cells) < 5:
                continue

        if len(cells) == 6:
            del cells[2]  # extra spacer

        track = Track()

        # Review link, or a pick image
        if re.search(r'review', element_text(cells[0]), re.IGNORECASE):
            link = cells[0].find_descendant('a')
            if link is not None:
                track.review_id = extract_object_id(link.get('href'))
        else:
            apply_image_flags(cells[0], track)

        apply_image_flags(cells[1], track)

        number = re.search(r'(\d+)\.', element_text(cells[2]))
        if number:
            track.number = int(number.group(1))

        track_info = element_text(cells[4])
        length = re.search(r'\s*-?\s*(\d\d?:\d\d)', track_info)
        if length:
            track.length = length.group(1)
            track_info = track_info[:length.start()] + track_info[length.end():]

        credit = re.search(r'(.*)\(([^)]+)\)', track_info)
        if credit:
            track.credit = credit.group(2)
            track_info = credit.group(1) + track_info[credit.end():]

        track.name = clean(track_info)
        tracks.append(track)

    return tracks


def parse_album_credits(document: Document) -> List[Credit]:
    table = _marked_table(document, CREDITS_IMG)
    if table is None:
        return []

    credits = []
    for row in table.find_descendants('tr', {'class': CREDITS_ROW_CLASS}):
        cells = row.find_descendants('td')
        if len(cells) < 3:
            continue

        link = cells[0].find_descendant('a')
        if link is not None:
            credit = Credit(artist=element_text(link), artist_id=extract_object_id(link.get('href')))
        else:
            credit = Credit(artist=element_text(cells[0]))

        # cells[1] is a dash
        credit.roles = element_text(cells[2])
        credits.append(credit)

    return credits


def parse_album_cover(document: Document) -> Optional[str]:
    """Cover image url from the review table: the first image wider than 100px."""
    review_table = document.find_descendant('table', {'class': REVIEW_TABLE_CLASS})
    if review_table is None:
        return None

    def is_cover(image: Element) -> bool:
        width = image.get('width', '')
        return width.isdigit() and int(width) > 100

    image = review_table.find_descendant('img', predicate=is_cover)
    return image.get('src') if image is not None else None


def parse_artist_search_results(document: Document,
                                desired_name: Optional[str] = None) -> List[ArtistSearchResult]:
    """Rows of an artist search result page.

    An exact (case-insensitive) name match short-circuits to a one-element list.
    """
    header = document.find_descendant(
        'td', {'background': ARTIST_RESULTS_HEADER_BG},
        lambda element: ARTIST_RESULTS_SENTINEL in element.text_content()
    )
    if header is None:
        return []

    table = header.find_ancestor('table')
    if table is None:
        return []

    results = []
    for row in table.find_descendants('tr'):
        if ARTIST_RESULTS_SENTINEL in row.text_content():
            continue

        cells = row.find_descendants('td')
        if len(cells) < 3:
            continue
        artist_cell, genre_cell, decades_cell = cells[:3]

        link = artist_cell.find_descendant('a')
        record = ArtistSearchResult(
            artist=element_text(artist_cell),
            artist_id=extract_object_id(link.get('href')) if link is not None else None,
            genre=element_text(genre_cell),
            decades=element_text(decades_cell),
            likely_match=row.get('class') == ARTIST_RESULTS_LIKELY_CLASS,
        )

        if desired_name and record.artist.lower() == desired_name.lower():
            return [record]
        results.append(record)

    return results


def parse_album_search_results(document: Document) -> List[AlbumSearchResult]:
    header = document.find_descendant(
        'th', {'background': ALBUM_RESULTS_HEADER_BG},
        lambda element: ALBUM_RESULTS_SENTINEL in element.text_content()
    )
    if header is None:
        return []

    table = header.find_ancestor('table')
    if table is None:
        return []

    results = []
    for row in table.find_descendants('tr', {'class': ALBUM_RESULTS_ROW_CLASS}):
        cells = row.find_descendants('td')
        if len(cells) < 5:
            continue
        rating_cell, artist_cell, title_cell, year_cell, genre_cell = cells[:5]

        record = AlbumSearchResult(
            artist=element_text(artist_cell),
            album_title=element_text(title_cell),
            year=element_text(year_cell),
            genre=element_text(genre_cell),
        )
        apply_image_flags(rating_cell, record)

        link = title_cell.find_descendant('a')
        if link is not None:
            record.album_id = extract_object_id(link.get('href'))

        results.append(record)

    return results


def analyze_artist_search_results(desired_name: Optional[str],
                                  results: List[ArtistSearchResult]) -> Optional[ArtistSearchResult]:
    """Pick the likely intended artist from search results, if one stands out."""
    if len(results) == 1:
        return results[0]

    wanted = (desired_name or '').lower()
    single_likely_match = None
    likely_count = 0
    for result in results:
        if not result.likely_match:
            continue
        if wanted and result.artist.lower() == wanted:
            return result
        likely_count += 1
        single_likely_match = result

    return single_likely_match if likely_count == 1 else None


def find_more_info_link(document: Document) -> Optional[Element]:
    """The "read more" link of an artist page showing partial data."""
    image = document.find_descendant('img', {'src': MORE_INFO_IMG})
    if image is None:
        return None
    return image.find_ancestor('a')
