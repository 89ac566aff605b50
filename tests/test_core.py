"""Tests for the AllMusicGuide site client."""

import pytest

from amg.core import AllMusicGuide
from amg.dataclasses import AlbumInfo, AlbumSearchResult, AMGConfig, ArtistInfo, ArtistSearchResult

BASE_URL = 'http://amg.test'

PARTIAL_ARTIST_HTML = '''
<html><body>
<table><tr><td class="co3">Genres</td><td><a href="/g">Jazz</a></td></tr></table>
<a href="/cg/amg.dll?p=amg&amp;sql={more_id}"><img src="/img/continue2.jpg"></a>
</body></html>
'''


def object_url(object_id):
    return f'{BASE_URL}/cg/amg.dll?p=amg&sql={object_id}'


@pytest.fixture
def amg(test_config, browser):
    with AllMusicGuide(test_config, browser=browser) as client:
        yield client


@pytest.fixture
def site(adapter, home_html, artist_search_html, artist_html, album_search_html, album_html):
    """Fake AMG site wired to the sample pages."""
    adapter.add(f'{BASE_URL}/', home_html)
    adapter.add(f'{BASE_URL}/cg/amg.dll?p=amg&opt1=1&sql=Miles%20Davis', artist_search_html)
    adapter.add(f'{BASE_URL}/cg/amg.dll?p=amg&opt1=1&sql=Miles', artist_search_html)
    adapter.add(object_url('11:abc~C'), PARTIAL_ARTIST_HTML.format(more_id='11:full~C'))
    adapter.add(object_url('11:full~C'), artist_html)
    adapter.add(f'{BASE_URL}/cg/amg.dll?p=amg&opt1=2&sql=Kind%20of%20Blue', album_search_html)
    adapter.add(object_url('10:kob~C'), album_html)
    return adapter


class TestMakeUrl:
    """Test suite for object URLs."""

    def test_adds_suffix(self, amg):
        assert amg.make_url('11:abc') == object_url('11:abc~C')

    def test_keeps_existing_suffix(self, amg):
        assert amg.make_url('11:abc~c') == object_url('11:abc~c')

    def test_uses_configured_base(self):
        with AllMusicGuide(AMGConfig(base_url='http://mirror.test', cache_enabled=False)) as client:
            assert client.make_url('A1') == 'http://mirror.test/cg/amg.dll?p=amg&sql=A1~C'


class TestSearchArtist:
    """Test suite for artist lookups."""

    def test_requires_name_or_id(self, amg):
        with pytest.raises(ValueError):
            amg.search_artist()

    def test_search_follows_match_and_more_info(self, amg, site):
        artist = amg.search_artist(name='Miles Davis')

        assert isinstance(artist, ArtistInfo)
        assert artist.formed_location == 'New York, NY'
        assert [entry.title for entry in artist.discography] == ['Kind of Blue', 'Complete Sessions', 'Best Of']
        assert [sent.url for sent in site.requests] == [
            f'{BASE_URL}/',
            f'{BASE_URL}/cg/amg.dll?p=amg&opt1=1&sql=Miles%20Davis',
            object_url('11:abc~C'),
            object_url('11:full~C'),
        ]

    def test_manual_returns_results(self, amg, site):
        results = amg.search_artist(name='Miles', auto=False)

        assert len(results) == 3
        assert all(isinstance(result, ArtistSearchResult) for result in results)
        assert len(site.requests) == 2

    def test_auto_select_follows_single_likely_match(self, amg, site):
        artist = amg.search_artist(name='Miles')
        assert isinstance(artist, ArtistInfo)
        assert site.requests[2].url == object_url('11:abc~C')

    def test_auto_select_from_config(self, test_config, browser, site):
        test_config.auto_select = False
        client = AllMusicGuide(test_config, browser=browser)
        assert isinstance(client.search_artist(name='Miles'), list)

    def test_ambiguous_results_are_returned(self, amg, adapter, home_html):
        page = '''
            <table>
                <tr><td background="/img/bgr02.gif">NAMES STARTING WITH</td></tr>
                <tr class="co1"><td><a href="?sql=11:a~C">Art One</a></td><td>Jazz</td><td>50s</td></tr>
                <tr class="co1"><td><a href="?sql=11:b~C">Art Two</a></td><td>Rock</td><td>60s</td></tr>
            </table>'''
        adapter.add(f'{BASE_URL}/', home_html)
        adapter.add(f'{BASE_URL}/cg/amg.dll?p=amg&opt1=1&sql=Art', page)

        results = amg.search_artist(name='Art')

        assert [result.artist for result in results] == ['Art One', 'Art Two']

    def test_by_id(self, amg, site):
        artist = amg.search_artist(id='11:full~C')

        assert artist.genres == ['Jazz']
        assert [sent.url for sent in site.requests] == [object_url('11:full~C')]

    def test_review_link_is_not_followed(self, amg, adapter):
        adapter.add(object_url('11:part~C'), PARTIAL_ARTIST_HTML.format(more_id='R99'))

        artist = amg.search_artist(id='11:part~C')

        assert artist.genres == ['Jazz']
        assert len(adapter.requests) == 1


class TestSearchAlbum:
    """Test suite for album lookups."""

    def test_requires_name_or_id(self, amg):
        with pytest.raises(ValueError):
            amg.search_album()

    def test_several_results(self, amg, site):
        results = amg.search_album(name='Kind of Blue')

        assert [result.album_id for result in results] == ['10:kob~C', '10:tribute~C']
        assert all(isinstance(result, AlbumSearchResult) for result in results)

    def test_single_result_is_followed(self, amg, adapter, home_html, album_search_html, album_html):
        single = album_search_html.split('<tr class="co1">')
        single_result_page = '<tr class="co1">'.join(single[:2]) + '</table></body></html>'
        adapter.add(f'{BASE_URL}/', home_html)
        adapter.add(f'{BASE_URL}/cg/amg.dll?p=amg&opt1=2&sql=Kind%20of%20Blue', single_result_page)
        adapter.add(object_url('10:kob~C'), album_html)

        album = amg.search_album(name='Kind of Blue')

        assert isinstance(album, AlbumInfo)
        assert album.album_title == 'Kind of Blue'
        assert [track.name for track in album.tracks] == ['So What', 'Freddie Freeloader']

    def test_by_id(self, amg, site):
        album = amg.search_album(id='10:kob~C')
        assert album.marc_id == 'M123'


class TestLookupObject:
    """Test suite for lookups by object id."""

    def test_album_id(self, amg, adapter, album_html):
        adapter.add(object_url('A123~C'), album_html)
        assert isinstance(amg.lookup_object('A123'), AlbumInfo)

    def test_artist_id(self, amg, adapter, artist_html):
        adapter.add(object_url('B456~C'), artist_html)
        assert isinstance(amg.lookup_object('B456'), ArtistInfo)

    def test_unknown_id(self, amg):
        with pytest.raises(ValueError):
            amg.lookup_object('Z1')


class TestCacheFacade:
    """Test suite for cache management through the client."""

    def test_cache_disabled(self, amg):
        assert amg.cache_manager is None
        assert amg.get_cache_info() == {'cache_enabled': False}
        assert amg.clear_cache() == 0

    def test_cache_is_off_by_default(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with AllMusicGuide(AMGConfig()) as client:
            assert client.cache_manager is None
            assert client.browser.cache is None
        assert list(tmp_path.iterdir()) == []

    def test_cache_enabled(self, temp_cache_dir):
        config = AMGConfig(cache_enabled=True, cache_dir=str(temp_cache_dir), cache_expiry_seconds=60)
        with AllMusicGuide(config) as client:
            assert client.browser.cache is client.cache_manager
            info = client.get_cache_info()
            assert info['cache_enabled'] is True
            assert info['expiry_seconds'] == 60
            assert client.clear_cache() == 0
