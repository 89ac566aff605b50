"""Text and markup normalization utilities for AMG page processing."""

import hashlib
import re

# Pure text-formatting tags. They are removed from markup before parsing and
# recursed through (never annotated) during the associated-text pass.
FORMATTING_TAGS = (
    'basefont', 'font', 'b', 'i', 's', 'strike', 'u',
    'blink', 'small', 'big', 'sub', 'sup', 'center', 'marquee',
)

_FORMATTING_TAG_RE = re.compile(
    r'<\s*/?\s*(?:%s)(?:\s[^>]*)?>' % '|'.join(FORMATTING_TAGS),
    re.IGNORECASE
)

NBSP = '\xa0'


def strip_formatting_tags(markup: str) -> str:
    """Remove inline formatting tag pairs (<B>, <FONT ...>, <CENTER>, ...) from markup.

    Substitution is repeated until the markup stops changing, so stripped
    markup is returned untouched.
    """
    if not markup:
        return markup or ''

    result = markup
    while True:
        stripped = _FORMATTING_TAG_RE.sub('', result)
        if stripped == result:
            return result
        result = stripped


def clean(text: str) -> str:
    """Remove non-breaking spaces and trim surrounding whitespace and CR/LF runs."""
    if not text:
        return ''
    return text.replace(NBSP, '').strip()


def make_filesystem_safe(text: str, max_length: int = 200) -> str:
    """Turn arbitrary text into a single safe filename component.

    Args:
        text: Input text (e.g. a cache key built from a URL)
        max_length: Longest name returned as-is; longer names become a SHA-256 digest

    Returns:
        Filename-safe string
    """
    result = re.sub(r'[<>:"/\\|?*\x00-\x1f]', '_', text)
    result = re.sub(r'\s+', '_', result)

    if len(result) > max_length:
        result = hashlib.sha256(text.encode('utf-8')).hexdigest()

    return result
