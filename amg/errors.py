"""Exceptions raised by the AMG browsing engine and site client."""

from typing import Optional


class AMGError(Exception):
    """Base class for all errors raised by this package."""


class ElementNotFound(AMGError):
    """A form, field, button, option or link lookup found nothing on the current page."""

    def __init__(self, kind: str, name: str, message: Optional[str] = None):
        self.kind = kind
        self.name = name
        super().__init__(message or f"No matching {kind} '{name}' on the current page")


class HTTPError(AMGError):
    """A hop returned an error status (400 and above)."""

    def __init__(self, status_code: int, url: str):
        self.status_code = status_code
        self.url = url
        super().__init__(f"HTTP error {status_code} from {url}")


class TransportError(AMGError):
    """Connection failure, timeout or runaway redirect chain."""


class ExhaustedRetries(AMGError):
    """Every attempt of a network action failed."""

    def __init__(self, action: str, attempts: int, last_error: Optional[BaseException] = None):
        self.action = action
        self.attempts = attempts
        self.last_error = last_error
        detail = f": {last_error}" if last_error else ""
        super().__init__(f"Could not run {action} after {attempts} attempt(s){detail}")


class PageStructureError(AMGError):
    """A page marker was found but the structure around it was not."""
