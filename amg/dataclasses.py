from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

DEFAULT_USER_AGENT = "Mozilla/4.0 (compatible; MSIE 5.5; Windows NT 5.0)"


@dataclass(repr=True)
class AMGConfig:
    """Configuration for the All Music Guide browser and client."""
    # Base URL configuration
    base_url: str = "http://www.allmusic.com"  # Point at a local server to watch traffic
    user_agent: str = DEFAULT_USER_AGENT

    # Proxy configuration
    proxy_enabled: bool = False
    proxy_host: Optional[str] = None
    proxy_port: Optional[int] = None
    proxy_username: Optional[str] = None
    proxy_password: Optional[str] = None
    proxy_use_tls: bool = False

    # Browser and retry settings
    max_attempts: int = 5
    retry_delay: float = 2.0  # Fixed sleep between attempts, in seconds
    request_timeout: float = 30.0
    max_redirects: int = 20

    # Cache settings
    cache_enabled: bool = False  # Off unless a cache directory is chosen
    cache_dir: str = '.amg_cache'
    cache_expiry_seconds: int = 7 * 24 * 60 * 60

    # Search behaviour
    auto_select: bool = True  # Follow a likely artist match instead of returning results

    @property
    def proxy_server_url(self) -> Optional[str]:
        """Build complete proxy server URL with protocol and credentials."""
        if not (self.proxy_host and self.proxy_port):
            return None
        protocol = "https" if self.proxy_use_tls else "http"
        if self.has_proxy_credentials:
            return f"{protocol}://{self.proxy_username}:{self.proxy_password}@{self.proxy_host}:{self.proxy_port}"
        return f"{protocol}://{self.proxy_host}:{self.proxy_port}"

    @property
    def is_proxy_valid(self) -> bool:
        """Check if proxy configuration is complete."""
        return (self.proxy_enabled and
                self.proxy_host is not None and
                self.proxy_port is not None)

    @property
    def has_proxy_credentials(self) -> bool:
        """Check if proxy username and password are provided."""
        return self.proxy_username is not None and self.proxy_password is not None


@dataclass(repr=True)
class PageResponse:
    """A complete HTTP response, reconstructable from the response cache."""
    url: str
    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ''
    from_cache: bool = False

    @property
    def is_error(self) -> bool:
        return self.status >= 400

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PageResponse':
        """Create PageResponse from dictionary (for loading from JSON)."""
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered_data = {k: v for k, v in data.items() if k in valid_fields}
        return cls(**filtered_data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert PageResponse to dictionary (for saving to JSON)."""
        data = asdict(self)
        del data['from_cache']
        return data


@dataclass(repr=True)
class Member:
    name: str
    artist_id: Optional[str] = None


@dataclass(repr=True)
class DiscographyEntry:
    """One album, single, compilation, etc. from an artist's discography."""
    title: Optional[str] = None
    album_id: Optional[str] = None
    year: Optional[str] = None
    label: Optional[str] = None
    type: Optional[str] = None  # album/boxset/compilation/ep/single/bootleg/video
    amg_rating: Optional[float] = None  # number of stars
    amg_pick: Optional[bool] = None
    in_print: Optional[bool] = None


@dataclass(repr=True)
class ArtistInfo:
    """Parsed artist page."""
    formed_date: Optional[str] = None
    formed_location: Optional[str] = None
    disbanded_date: Optional[str] = None
    disbanded_location: Optional[str] = None
    born_date: Optional[str] = None
    born_location: Optional[str] = None
    died_date: Optional[str] = None
    died_location: Optional[str] = None
    years_active: List[str] = field(default_factory=list)
    members: List[Member] = field(default_factory=list)
    genres: List[str] = field(default_factory=list)
    styles: List[str] = field(default_factory=list)
    labels: List[str] = field(default_factory=list)
    tones: List[str] = field(default_factory=list)
    instruments: List[str] = field(default_factory=list)
    discography: List[DiscographyEntry] = field(default_factory=list)


@dataclass(repr=True)
class Track:
    name: Optional[str] = None
    number: Optional[int] = None
    length: Optional[str] = None
    credit: Optional[str] = None  # Songwriting credit
    amg_pick: Optional[bool] = None
    review_id: Optional[str] = None


@dataclass(repr=True)
class Credit:
    artist: str
    artist_id: Optional[str] = None
    roles: Optional[str] = None  # e.g. "Sax (Baritone), Sax (Tenor)"


@dataclass(repr=True)
class AlbumInfo:
    """Parsed album page."""
    artist: Optional[str] = None
    artist_id: Optional[str] = None
    album_title: Optional[str] = None
    in_print: Optional[bool] = None
    release_date: Optional[str] = None
    amg_rating: Optional[float] = None
    amg_pick: Optional[bool] = None
    marc_id: Optional[str] = None
    time: Optional[str] = None
    genre: List[str] = field(default_factory=list)
    styles: List[str] = field(default_factory=list)
    tones: List[str] = field(default_factory=list)
    tracks: List[Track] = field(default_factory=list)
    credits: List[Credit] = field(default_factory=list)
    cover_url: Optional[str] = None


@dataclass(repr=True)
class ArtistSearchResult:
    artist: str
    artist_id: Optional[str] = None
    genre: Optional[str] = None
    decades: Optional[str] = None
    likely_match: bool = False


@dataclass(repr=True)
class AlbumSearchResult:
    artist: Optional[str] = None
    album_title: Optional[str] = None
    album_id: Optional[str] = None
    year: Optional[str] = None
    genre: Optional[str] = None
    amg_rating: Optional[float] = None
    amg_pick: Optional[bool] = None
    in_print: Optional[bool] = None
