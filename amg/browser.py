"""Stateful form-driving browser used to walk the All Music Guide site."""

import enum
import logging
import time
from typing import Callable, Dict, List, Optional, Tuple
from urllib.parse import urljoin

import requests
from tenacity import (RetryError, Retrying, before_sleep_log, retry_if_exception_type,
                      stop_after_attempt, wait_fixed)

from .actions import (Action, Check, Click, Fill, Navigate, Press, SelectOption,
                      SetRadio, Uncheck)
from .cache_manager import ResponseCache
from .dataclasses import AMGConfig, PageResponse
from .document import Document, Element, SelectElement, annotate, parse
from .errors import ElementNotFound, ExhaustedRetries, HTTPError, TransportError
from .forms import Form, build_forms, matches_field
from .submission import build_submission
from .text_utils import strip_formatting_tags

DEFAULT_HEADERS = {
    'Accept-Language': 'en-us',
    'Accept': 'image/gif, image/x-xbitmap, image/jpeg, image/pjpeg, */*',
}


class BrowserState(enum.Enum):
    IDLE = 'idle'
    REQUESTING = 'requesting'
    REDIRECTING = 'redirecting'
    PARSING = 'parsing'
    FAILED = 'failed'


class Browser:
    """Drives one browsing session: current page, its forms and links, and cookies.

    Every successful navigation replaces the page tree, the forms and the
    links wholesale. Network actions (navigate, press, click) are retried as
    a whole, request plus redirects plus parse, with a fixed delay between
    attempts. Lookups that find nothing fail at once.

    A Browser is meant to be driven by a single caller; it does no locking.
    """

    def __init__(self, config: Optional[AMGConfig] = None, cache: Optional[ResponseCache] = None,
                 session: Optional[requests.Session] = None,
                 sleep: Callable[[float], None] = time.sleep) -> None:
        self.config = config or AMGConfig()
        self.cache = cache
        self.session = session or requests.Session()
        self.sleep = sleep
        self.logger = logging.getLogger(__name__)

        self.session.headers.update(DEFAULT_HEADERS)
        self.session.headers['User-Agent'] = self.config.user_agent
        if self.config.is_proxy_valid:
            proxy_url = self.config.proxy_server_url
            self.session.proxies = {'http': proxy_url, 'https': proxy_url}
            self.logger.debug(f"Using proxy: {self.config.proxy_host}:{self.config.proxy_port}")

        # Session state; cookies live in self.session.cookies, scoped by domain
        self.current_url: Optional[str] = None
        self.state = BrowserState.IDLE

        # Current page, replaced on every navigation
        self.response: Optional[PageResponse] = None
        self.document: Optional[Document] = None
        self.forms: Dict[str, Form] = {}
        self.links: List[Element] = []

    @property
    def cookies(self) -> Dict[str, str]:
        """Every cookie held by the session, flattened to name -> value."""
        return requests.utils.dict_from_cookiejar(self.session.cookies)

    def __enter__(self) -> 'Browser':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Release the current page and the HTTP session."""
        self._discard_page()
        self.session.close()

    # ------------------------------------------------------------------
    # Public actions
    # ------------------------------------------------------------------

    def navigate(self, url: str) -> PageResponse:
        return self.perform(Navigate(url))

    def press(self, form: Optional[str] = None, value: Optional[str] = None,
              name: Optional[str] = None, src: Optional[str] = None) -> PageResponse:
        return self.perform(Press(form=form, value=value, name=name, src=src))

    def click(self, href: str) -> PageResponse:
        return self.perform(Click(href))

    def fill(self, field: str, value: str) -> Element:
        return self.perform(Fill(field, value))

    def check(self, field: str) -> Element:
        return self.perform(Check(field))

    def uncheck(self, field: str) -> Element:
        return self.perform(Uncheck(field))

    def set_radio(self, field: str, value: str) -> Element:
        return self.perform(SetRadio(field, value))

    def select_option(self, field: str, option: str) -> Element:
        return self.perform(SelectOption(field, option))

    def perform(self, action: Action):
        """Run one action against the current page."""
        self.logger.debug(f"Performing {action!r}")

        if isinstance(action, Navigate):
            url = self._resolve(action.url)
            return self._with_retry(action, lambda: self._open('GET', url))

        if isinstance(action, Press):
            form, button = self._find_button(action)
            submission = build_submission(form, button, self.current_url or '')
            return self._with_retry(action, lambda: self._open(
                submission.method, submission.url, submission.body, submission.headers))

        if isinstance(action, Click):
            link = self._find_link(action.href)
            url = self._resolve(link.get('href'))
            return self._with_retry(action, lambda: self._open('GET', url))

        if isinstance(action, Fill):
            return self._fill(action.field, action.value)

        if isinstance(action, Check):
            checkbox = self._find_field('checkboxes', 'checkbox', action.field)
            checkbox.attrs['checked'] = 'checked'
            return checkbox

        if isinstance(action, Uncheck):
            checkbox = self._find_field('checkboxes', 'checkbox', action.field)
            checkbox.attrs.pop('checked', None)
            return checkbox

        if isinstance(action, SetRadio):
            return self._set_radio(action.field, action.value)

        if isinstance(action, SelectOption):
            return self._select_option(action.field, action.option)

        raise TypeError(f"Unsupported browser action: {action!r}")

    def load(self, response: PageResponse) -> PageResponse:
        """Make response the current page without touching the network."""
        self._load(response)
        self.state = BrowserState.IDLE
        return response

    # ------------------------------------------------------------------
    # Retry and transport
    # ------------------------------------------------------------------

    def _with_retry(self, action: Action, operation: Callable[[], PageResponse]) -> PageResponse:
        """Run operation under the attempt budget; only HTTP and transport errors are retried."""
        retryer = Retrying(
            stop=stop_after_attempt(self.config.max_attempts),
            wait=wait_fixed(self.config.retry_delay),
            retry=retry_if_exception_type((HTTPError, TransportError)),
            before_sleep=before_sleep_log(self.logger, logging.WARNING),
            sleep=self.sleep,
        )

        try:
            return retryer(operation)
        except RetryError as e:
            self.state = BrowserState.FAILED
            last_error = e.last_attempt.exception()
            self.logger.error(f"Giving up on {action!r} after {self.config.max_attempts} attempt(s): {last_error}")
            raise ExhaustedRetries(repr(action), self.config.max_attempts, last_error) from last_error

    def _resolve(self, url: str) -> str:
        if self.current_url:
            return urljoin(self.current_url, url)
        return url

    def _open(self, method: str, url: str, body: Optional[str] = None,
              headers: Optional[Dict[str, str]] = None) -> PageResponse:
        """Fetch url (following redirects) and make the result the current page."""
        try:
            response = self._fetch(method, url, body, headers)
            self._load(response)
        except Exception:
            self.state = BrowserState.FAILED
            raise

        self.state = BrowserState.IDLE
        return response

    def _fetch(self, method: str, url: str, body: Optional[str] = None,
               headers: Optional[Dict[str, str]] = None) -> PageResponse:
        cache_key = None
        if self.cache is not None and method == 'GET':
            cache_key = self.cache.key(method, url, body)
            cached = self.cache.get(cache_key)
            if cached is not None:
                self.logger.info(f"Loaded {url} from cache")
                return cached

        response = self._follow_redirects(method, url, body, headers)

        if cache_key is not None:
            self.cache.put(cache_key, response)
        return response

    def _follow_redirects(self, method: str, url: str, body: Optional[str] = None,
                          headers: Optional[Dict[str, str]] = None) -> PageResponse:
        """Issue the request, replaying it as a GET for every redirect hop."""
        self.state = BrowserState.REQUESTING
        self.logger.debug(f"{method} {url}")

        hops = 0
        while True:
            response = self._send(method, url, body, headers)
            self._log_cookies(response)

            if response.status_code >= 400:
                self.logger.warning(f"Request failed with status {response.status_code}: {url}")
                raise HTTPError(response.status_code, url)

            location = response.headers.get('Location')
            if not (300 <= response.status_code < 400 and location):
                break

            hops += 1
            if hops > self.config.max_redirects:
                raise TransportError(f"Exceeded {self.config.max_redirects} redirects starting at {url}")

            url = urljoin(url, location)
            method, body, headers = 'GET', None, None
            self.state = BrowserState.REDIRECTING
            self.logger.debug(f"Redirected ({response.status_code}) to {url}")

        return PageResponse(
            url=url,
            status=response.status_code,
            headers=dict(response.headers),
            body=response.text,
        )

    def _send(self, method: str, url: str, body: Optional[str],
              headers: Optional[Dict[str, str]]) -> requests.Response:
        """One hop: a single request. The session jar adds the cookies that apply to url."""
        request = requests.Request(method, url, headers=headers or {}, data=body)
        prepared = self.session.prepare_request(request)
        try:
            return self.session.send(prepared, allow_redirects=False, timeout=self.config.request_timeout)
        except requests.RequestException as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

    def _log_cookies(self, response: requests.Response) -> None:
        received = requests.utils.dict_from_cookiejar(response.cookies)
        if received:
            self.logger.debug(f"Received cookies: {list(received.keys())}")

    # ------------------------------------------------------------------
    # Page model
    # ------------------------------------------------------------------

    def _discard_page(self) -> None:
        """Explicitly release the current page tree and every form's own tree."""
        if self.document is not None:
            self.document.release()
        for form in self.forms.values():
            form.release()
        self.document = None
        self.forms = {}
        self.links = []

    def _load(self, response: PageResponse) -> None:
        self.state = BrowserState.PARSING
        self._discard_page()

        markup = strip_formatting_tags(response.body)
        document = parse(markup)
        self.links = annotate(document)
        self.document = document
        self.forms = build_forms(markup)
        self.response = response
        self.current_url = response.url

        self.logger.debug(f"The current url is {self.current_url} "
                          f"({len(self.forms)} form(s), {len(self.links)} link(s))")

    # ------------------------------------------------------------------
    # Element lookup and form state
    # ------------------------------------------------------------------

    def _find_button(self, action: Press) -> Tuple[Form, Element]:
        if action.value is None and action.name is None and action.src is None:
            raise ValueError("Must specify one of value, name or src")

        if action.form is not None:
            if action.form not in self.forms:
                raise ElementNotFound('form', action.form,
                                      f"There is no form named '{action.form}' in this document")
            forms = [self.forms[action.form]]
        else:
            forms = list(self.forms.values())

        for form in forms:
            for button in form.buttons:
                this_value = (button.get('value') or '').strip()
                if ((action.value is not None and this_value == action.value) or
                        (action.name is not None and button.get('name') == action.name) or
                        (action.src is not None and button.get('src') == action.src)):
                    return form, button

        selector = action.value or action.name or action.src
        raise ElementNotFound('button', selector)

    def _find_link(self, href: str) -> Element:
        for link in self.links:
            this_href = link.get('href')
            if this_href is not None and this_href.lower() == href.lower():
                return link
        raise ElementNotFound('link', href)

    def _find_field(self, bucket: str, kind: str, field: str) -> Element:
        for form in self.forms.values():
            for element in form.bucket(bucket):
                if matches_field(element, field):
                    return element
        raise ElementNotFound(kind, field)

    def _fill(self, field: str, value: str) -> Element:
        for form in self.forms.values():
            for textbox in form.textboxes:
                if matches_field(textbox, field):
                    self.logger.debug(f"Setting text field {field} to {value!r}")
                    textbox.attrs['value'] = value
                    return textbox

        for form in self.forms.values():
            for textarea in form.textareas:
                if matches_field(textarea, field):
                    self.logger.debug(f"Setting text area {field} to {value!r}")
                    textarea.associated_text = value
                    return textarea

        raise ElementNotFound('text field', field)

    def _set_radio(self, field: str, value: str) -> Element:
        for form in self.forms.values():
            matched = next((radio for radio in form.radioboxes if matches_field(radio, field)), None)
            if matched is None:
                continue

            group_name = matched.get('name')
            if group_name is None:
                group = [matched]
            else:
                group = [radio for radio in form.radioboxes if radio.get('name') == group_name]

            chosen = next((radio for radio in group if (radio.get('value') or '').strip() == value), None)
            if chosen is None:
                raise ElementNotFound('radio button', f"{field}={value}")

            for radio in group:
                if radio is chosen:
                    radio.attrs['checked'] = 'checked'
                else:
                    radio.attrs.pop('checked', None)
            return chosen

        raise ElementNotFound('radio group', field)

    def _select_option(self, field: str, option: str) -> Element:
        select = self._find_field('selectboxes', 'select box', field)
        if not isinstance(select, SelectElement):
            raise ElementNotFound('select box', field)

        options = select.options
        target = next((candidate for candidate in options if candidate.get('value') == option), None)
        if target is None:
            target = next((candidate for candidate in options if matches_field(candidate, option)), None)
        if target is None:
            raise ElementNotFound('option', option, f"No option '{option}' in select box '{field}'")

        if not select.multiple:
            for candidate in options:
                candidate.attrs.pop('selected', None)
        target.attrs['selected'] = 'selected'
        self.logger.debug(f"Found option {option} for select box {field}")
        return target
