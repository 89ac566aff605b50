"""Serializes a form and the button that submits it into an HTTP request."""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from urllib.parse import quote, urljoin, urlsplit, urlunsplit

from .document import Element, SelectElement, option_text
from .forms import Form
from .text_utils import clean

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = 'application/x-www-form-urlencoded'


@dataclass(repr=True)
class Submission:
    """A fully built form request."""
    method: str
    url: str
    body: Optional[str] = None  # POST only
    headers: Dict[str, str] = field(default_factory=dict)


def make_pair(key: str, value: Optional[str]) -> str:
    """Percent-encode one key/value pair; a bare key when the value is empty."""
    pair = quote(key, safe='')
    if value is not None and value != '':
        pair += '=' + quote(value, safe='')
    return pair


def option_value(option: Element) -> Optional[str]:
    """Submitted value of an <option>: its value attribute, else its text."""
    value = option.get('value')
    if value is None:
        value = option_text(option) or None
    return value


def extract_pairs(form: Form, button: Optional[Element] = None) -> List[str]:
    """Encoded name/value pairs for everything the form currently submits."""
    pairs: List[str] = []

    def add(element: Element, value: Optional[str]) -> None:
        key = element.get('name')
        if key is None:
            return
        logger.debug(f"name: {key}, value: {value}")
        pairs.append(make_pair(key, value))

    if button is not None and clean(button.get('name') or ''):
        add(button, button.get('value'))

    for element in form.hidden:
        add(element, element.get('value'))

    # Checked state is read now, not when the form was built
    for element in form.checkboxes + form.radioboxes:
        if element.has_attr('checked'):
            add(element, element.get('value'))

    for element in form.textboxes:
        add(element, element.get('value'))

    for select in form.selectboxes:
        if not isinstance(select, SelectElement):
            continue
        for option in select.options:
            if option.has_attr('selected'):
                value = option_value(option)
                if value is not None:
                    add(select, value)

    for textarea in form.textareas:
        if textarea.associated_text is not None:
            add(textarea, textarea.associated_text)

    return pairs


def build_query_string(form: Form, button: Optional[Element] = None) -> str:
    return '&'.join(extract_pairs(form, button))


def resolve_action(form: Form, base_url: str) -> str:
    """Absolute action URL; a form without an action submits to the current location."""
    return urljoin(base_url, form.action or base_url)


def build_submission(form: Form, button: Optional[Element], base_url: str) -> Submission:
    """Build the request the browser sends when button is pressed on form.

    For GET the encoded pairs replace the query of the action URL; for POST
    they become a url-encoded body with a matching Content-Length.
    """
    method = 'POST' if form.method == 'POST' else 'GET'
    action = resolve_action(form, base_url)
    query_string = build_query_string(form, button)
    logger.debug(f"Submitting form {form.name}: {method} {action} query={query_string!r}")

    if method == 'POST':
        return Submission(
            method=method,
            url=action,
            body=query_string,
            headers={
                'Content-Type': FORM_CONTENT_TYPE,
                'Content-Length': str(len(query_string.encode('utf-8'))),
            }
        )

    scheme, netloc, path, _query, _fragment = urlsplit(action)
    return Submission(method=method, url=urlunsplit((scheme, netloc, path, query_string, '')))
