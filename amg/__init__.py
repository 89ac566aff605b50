"""All Music Guide browsing and metadata lookup modules."""

__version__ = "0.2.0"

# Core standalone functionality
from .dataclasses import AMGConfig, PageResponse
from .core import (
    AllMusicGuide,
)
from .errors import AMGError, ElementNotFound, ExhaustedRetries, HTTPError, TransportError

# Internal components (for advanced usage)
from .browser import Browser, BrowserState
from .cache_manager import ResponseCache
from .document import Document, Element, parse
from .forms import Form, build_forms

__all__ = [
    # Version
    '__version__',

    # Core API
    'AllMusicGuide',
    'AMGConfig',
    'PageResponse',

    # Errors
    'AMGError',
    'ElementNotFound',
    'ExhaustedRetries',
    'HTTPError',
    'TransportError',

    # Internal components (for advanced usage)
    'Browser',
    'BrowserState',
    'ResponseCache',
    'Document',
    'Element',
    'parse',
    'Form',
    'build_forms',
]
