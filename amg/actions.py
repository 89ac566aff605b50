"""The closed set of actions a Browser can perform."""

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class Navigate:
    """GET a url (relative urls resolve against the current location)."""
    url: str


@dataclass(frozen=True)
class Press:
    """Press a form button matched by value, name or image src."""
    form: Optional[str] = None  # None searches every form on the page
    value: Optional[str] = None
    name: Optional[str] = None
    src: Optional[str] = None


@dataclass(frozen=True)
class Click:
    """Follow a link seen on the current page."""
    href: str


@dataclass(frozen=True)
class Fill:
    field: str
    value: str


@dataclass(frozen=True)
class Check:
    field: str


@dataclass(frozen=True)
class Uncheck:
    field: str


@dataclass(frozen=True)
class SetRadio:
    field: str
    value: str


@dataclass(frozen=True)
class SelectOption:
    field: str
    option: str  # option value or label


Action = Union[Navigate, Press, Click, Fill, Check, Uncheck, SetRadio, SelectOption]
