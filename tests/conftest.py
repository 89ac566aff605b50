"""Pytest configuration and fixtures for AMG tests."""

import http.client
import io
from types import SimpleNamespace
from typing import Dict, List, Optional
from unittest.mock import Mock

import pytest
import requests
from requests.adapters import BaseAdapter
from requests.cookies import extract_cookies_to_jar
from requests.structures import CaseInsensitiveDict

from amg.browser import Browser
from amg.cache_manager import ResponseCache
from amg.dataclasses import AMGConfig

BASE_URL = 'http://amg.test'


class RawBody(io.BytesIO):
    """Body stream carrying the header block requests reads Set-Cookie from."""

    def __init__(self, body: bytes, message: http.client.HTTPMessage) -> None:
        super().__init__(body)
        self._original_response = SimpleNamespace(msg=message)


def make_response(request, status: int = 200, body: str = '', headers: Optional[Dict[str, str]] = None,
                  cookies: Optional[Dict[str, str]] = None) -> requests.Response:
    """Build a complete requests.Response without a socket behind it.

    Cookies are sent as real Set-Cookie headers, so the session jar picks
    them up with its usual domain and path rules.
    """
    message = http.client.HTTPMessage()
    for name, value in (headers or {}).items():
        message[name] = value
    for name, value in (cookies or {}).items():
        message['Set-Cookie'] = f'{name}={value}; Path=/'

    response = requests.Response()
    response.status_code = status
    response.headers = CaseInsensitiveDict(headers or {})
    if cookies:
        response.headers['Set-Cookie'] = ', '.join(message.get_all('Set-Cookie'))
    response._content = body.encode('utf-8')
    response._content_consumed = True
    response.encoding = 'utf-8'
    response.raw = RawBody(response._content, message)
    response.url = request.url
    response.request = request
    extract_cookies_to_jar(response.cookies, request, response.raw)
    return response


class FakeAdapter(BaseAdapter):
    """Transport adapter serving canned responses keyed by (method, url).

    Several responses registered for the same key are served in order; the
    last one keeps being served once the others are used up.
    """

    def __init__(self) -> None:
        super().__init__()
        self.routes: Dict[tuple, List] = {}
        self.requests: List[requests.PreparedRequest] = []
        self.fallback_body: Optional[str] = None  # served with 200 for unknown urls when set

    def add(self, url: str, body: str = '', status: int = 200, headers: Optional[Dict[str, str]] = None,
            cookies: Optional[Dict[str, str]] = None, method: str = 'GET') -> None:
        self.routes.setdefault((method, url), []).append(
            dict(status=status, body=body, headers=headers, cookies=cookies)
        )

    def add_error(self, url: str, error: Exception, method: str = 'GET') -> None:
        self.routes.setdefault((method, url), []).append(error)

    def send(self, request, **kwargs):
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url))
        if not queue:
            if self.fallback_body is not None:
                return make_response(request, body=self.fallback_body)
            return make_response(request, status=404, body='Not Found')

        route = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(route, Exception):
            raise route
        return make_response(request, **route)

    def close(self) -> None:
        pass


@pytest.fixture
def temp_cache_dir(tmp_path):
    """Create temporary cache directory for tests."""
    return tmp_path / "test_cache"


@pytest.fixture
def cache_manager(temp_cache_dir):
    """Create response cache instance for testing."""
    return ResponseCache(str(temp_cache_dir))


@pytest.fixture
def test_config():
    """Configuration pointing at the fake site, with the cache disabled."""
    return AMGConfig(
        base_url=BASE_URL,
        max_attempts=3,
        retry_delay=2.0,
        cache_enabled=False,
    )


@pytest.fixture
def adapter():
    return FakeAdapter()


@pytest.fixture
def session(adapter):
    session = requests.Session()
    session.mount('http://', adapter)
    session.mount('https://', adapter)
    return session


@pytest.fixture
def sleep():
    """Stand-in for time.sleep so retry delays cost nothing."""
    return Mock()


@pytest.fixture
def browser(test_config, session, sleep):
    browser = Browser(test_config, session=session, sleep=sleep)
    yield browser
    browser.close()


@pytest.fixture
def home_html():
    """AMG home page with the site search form."""
    return '''
    <html>
    <body>
        <FORM name="search" action="/cg/amg.dll" method="get">
            <input type="hidden" name="p" value="amg">
            <B>Search:</B> <input type="text" name="sql" value="">
            <input type="radio" name="opt1" value="1" checked> Artist
            <input type="radio" name="opt1" value="2"> Album
            <input type="radio" name="opt1" value="3"> Song
            <input type="image" src="img/mus_3.gif" border="0">
        </FORM>
        <a href="/cg/amg.dll?p=amg&amp;sql=11:abc~C">Featured Artist</a>
    </body>
    </html>
    '''


@pytest.fixture
def artist_search_html():
    """AMG artist search results page."""
    return '''
    <html>
    <body>
        <table>
            <tr><td background="/img/bgr02.gif" colspan="3">NAMES STARTING WITH "MILES"</td></tr>
            <tr class="co4">
                <td><a href="/cg/amg.dll?p=amg&amp;sql=11:abc~C">Miles Davis</a></td>
                <td>Jazz</td>
                <td>40s 50s 60s</td>
            </tr>
            <tr class="co1">
                <td><a href="/cg/amg.dll?p=amg&amp;sql=11:def~C">Miles Davis Quintet</a></td>
                <td>Jazz</td>
                <td>50s</td>
            </tr>
            <tr class="co1">
                <td><a href="/cg/amg.dll?p=amg&amp;sql=11:ghi~C">Buddy Miles</a></td>
                <td>Rock</td>
                <td>70s</td>
            </tr>
        </table>
    </body>
    </html>
    '''


@pytest.fixture
def artist_html():
    """AMG artist page with facts and a two-section discography."""
    return '''
    <html>
    <body>
        <table>
            <tr><td class="co3">Formed</td><td>1945 in New York, NY</td></tr>
            <tr><td class="co3">Years Active</td><td><img src="/img/dec4x.gif"><img src="/img/dec5x.gif"></td></tr>
            <tr><td class="co3">Group Members</td>
                <td><a href="/cg/amg.dll?p=amg&amp;sql=11:m1~C">John Coltrane</a>,
                    <a href="/cg/amg.dll?p=amg&amp;sql=11:m2~C">Bill Evans</a></td></tr>
            <tr><td class="co3">Genres</td><td><a href="/cg/amg.dll?p=amg&amp;sql=g1">Jazz</a></td></tr>
            <tr><td class="co3">Styles</td>
                <td><a href="/cg/amg.dll?p=amg&amp;sql=s1">Hard Bop</a> <a href="/cg/amg.dll?p=amg&amp;sql=s2">Cool</a></td></tr>
            <tr><td class="co3">Tones</td><td>Reflective, Cerebral</td></tr>
            <tr><td class="co3">Instruments</td><td>Trumpet, Flugelhorn</td></tr>
            <tr><td class="co3">Labels</td><td><a href="/cg/amg.dll?p=amg&amp;sql=l1">Columbia</a></td></tr>
        </table>

        <table><tr><td><img src="/img/hdisc11.gif"></td></tr></table>
        <table background="/img/bgr01.jpg"><tr><td>Featured albums</td></tr></table>
        <table>
            <tr>
                <td><img src="/img/pick.gif"><img src="/img/rt8.gif"></td>
                <td>1959<img src="/img/av1.gif"></td>
                <td><a href="/cg/amg.dll?p=amg&amp;sql=10:kob~C">Kind of Blue</a></td>
                <td>buy</td>
                <td>Columbia</td>
            </tr>
        </table>

        <table><tr><td><img src="/img/hdisc21.gif"></td></tr></table>
        <table>
            <tr>
                <td><img src="/img/nopick.gif"><img src="/img/rt6.gif"></td>
                <td>1996<img src="/img/av0.gif"></td>
                <td><a href="/cg/amg.dll?p=amg&amp;sql=10:box~C">Complete Sessions</a></td>
                <td>buy</td>
                <td>Legacy</td>
                <td>x</td>
            </tr>
            <tr>
                <td></td>
                <td>2001</td>
                <td><a href="/cg/amg.dll?p=amg&amp;sql=10:best~C">Best Of</a></td>
                <td>buy</td>
                <td>Sony</td>
                <td></td>
            </tr>
        </table>
    </body>
    </html>
    '''


@pytest.fixture
def album_search_html():
    """AMG album search results page with two rows."""
    return '''
    <html>
    <body>
        <table>
            <tr>
                <th background="/img/bgr02.gif">AMG Rating</th>
                <th>Artist</th><th>Title</th><th>Year</th><th>Genre</th>
            </tr>
            <tr class="co1">
                <td><img src="/img/st_r9.gif"></td>
                <td>Miles Davis</td>
                <td><a href="/cg/amg.dll?p=amg&amp;sql=10:kob~C">Kind of Blue</a></td>
                <td>1959</td>
                <td>Jazz</td>
            </tr>
            <tr class="co1">
                <td><img src="/img/st_r5.gif"></td>
                <td>Various Artists</td>
                <td><a href="/cg/amg.dll?p=amg&amp;sql=10:tribute~C">Kind of Blue Revisited</a></td>
                <td>2004</td>
                <td>Jazz</td>
            </tr>
        </table>
    </body>
    </html>
    '''


@pytest.fixture
def album_html():
    """AMG album page with facts, tracks, credits and a cover image."""
    return '''
    <html>
    <body>
        <table>
            <tr><td class="co3">Artist</td><td><a href="/cg/amg.dll?p=amg&amp;sql=11:abc~C">Miles Davis</a></td></tr>
            <tr><td class="co3">Album Title</td><td>Kind of Blue</td></tr>
            <tr><td class="co3">Date of Release</td><td>Aug 17, 1959 (release) inprint</td></tr>
            <tr><td class="co3">AMG Rating</td><td><img src="/img/st_r9.gif"></td></tr>
            <tr><td class="co3">Genre</td><td><a href="/cg/amg.dll?p=amg&amp;sql=g1">Jazz</a></td></tr>
            <tr><td class="co3">Styles</td><td><a href="/cg/amg.dll?p=amg&amp;sql=s3">Modal Music</a></td></tr>
            <tr><td class="co3">Tones</td><td>Relaxed, Nocturnal</td></tr>
            <tr><td class="co3">Time</td><td>45:44</td></tr>
            <tr><td class="co3">Library View</td><td><a href="/cg/amg.dll?p=amg&amp;sql=M123">MARC</a></td></tr>
        </table>

        <table class="ft3">
            <tr><td><img src="/img/spacer.gif" width="10"><img src="http://cover.test/kob.jpg" width="150"></td></tr>
        </table>

        <table>
            <tr><td><img src="/img/htrk1.gif"></td></tr>
            <tr class="co1">
                <td><img src="/img/pick.gif"></td><td></td><td>1.</td><td></td>
                <td>So What - 9:22 (Davis)</td>
            </tr>
            <tr class="co1">
                <td><a href="/cg/amg.dll?p=amg&amp;sql=R55">review</a></td><td></td><td>2.</td><td></td>
                <td>Freddie Freeloader - 9:46</td>
            </tr>
        </table>

        <table>
            <tr><td><img src="/img/hcred1.gif"></td></tr>
            <tr class="co1">
                <td><a href="/cg/amg.dll?p=amg&amp;sql=11:jc~C">John Coltrane</a></td>
                <td>-</td>
                <td>Sax (Tenor)</td>
            </tr>
            <tr class="co1">
                <td>Rudy Van Gelder</td>
                <td>-</td>
                <td>Engineer</td>
            </tr>
        </table>
    </body>
    </html>
    '''
