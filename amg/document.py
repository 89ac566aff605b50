"""Document model: a navigable element tree built from arbitrary (often broken) HTML.

Markup is tokenized with BeautifulSoup's ``html.parser`` backend, which
auto-closes anything left open at end of input, and converted into a tree of
``Element`` objects stored in a per-document arena. Elements refer to their
parent by arena index and reach the arena through a weak reference, so the
tree holds no reference cycles and a released document cannot be walked
upwards any more.
"""

import logging
import weakref
from functools import cached_property
from typing import Callable, Dict, Iterator, List, Optional, Union

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PreformattedString, Tag

from .text_utils import FORMATTING_TAGS, clean

logger = logging.getLogger(__name__)

ROOT_TAG = '#document'

Predicate = Callable[['Element'], bool]
Node = Union['Element', str]


class Element:
    """A single tag: name, attributes, ordered children and derived label text."""

    def __init__(self, tag: str, attrs: Optional[Dict[str, str]] = None) -> None:
        self.tag = tag.lower()
        self.attrs: Dict[str, str] = dict(attrs or {})
        self.children: List[Node] = []
        self.node_id: Optional[int] = None
        self.parent_id: Optional[int] = None
        self._document_ref: Optional[weakref.ReferenceType] = None

        # Filled in by annotate()
        self.associated_text: Optional[str] = None
        self.before_text: Optional[str] = None

    def __repr__(self) -> str:
        shown = ' '.join(f'{k}="{v}"' for k, v in self.attrs.items())
        return f"<Element {self.tag}{' ' + shown if shown else ''}>"

    @property
    def document(self) -> Optional['Document']:
        return self._document_ref() if self._document_ref else None

    @property
    def parent(self) -> Optional['Element']:
        document = self.document
        if document is None or self.parent_id is None:
            return None
        return document.node(self.parent_id)

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.attrs.get(name.lower(), default)

    def has_attr(self, name: str) -> bool:
        return name.lower() in self.attrs

    def element_children(self) -> List['Element']:
        return [child for child in self.children if isinstance(child, Element)]

    def next_element_sibling(self) -> Optional['Element']:
        parent = self.parent
        if parent is None:
            return None
        siblings = parent.element_children()
        for index, sibling in enumerate(siblings):
            if sibling is self:
                return siblings[index + 1] if index + 1 < len(siblings) else None
        return None

    def text_content(self) -> str:
        """All descendant text runs, concatenated in document order."""
        parts = []
        stack: List[Node] = [self]
        while stack:
            node = stack.pop()
            if isinstance(node, Element):
                stack.extend(reversed(node.children))
            else:
                parts.append(node)
        return ''.join(parts)

    def iter_descendants(self) -> Iterator['Element']:
        """Depth-first, pre-order walk of descendant elements (self excluded)."""
        stack = list(reversed(self.element_children()))
        while stack:
            element = stack.pop()
            yield element
            stack.extend(reversed(element.element_children()))

    def matches(self, tag: Optional[str] = None, attrs: Optional[Dict[str, str]] = None,
                predicate: Optional[Predicate] = None) -> bool:
        """True when every supplied condition holds."""
        if tag is not None and self.tag != tag.lower():
            return False
        if attrs:
            for name, value in attrs.items():
                if self.attrs.get(name.lower()) != value:
                    return False
        if predicate is not None and not predicate(self):
            return False
        return True

    def find_descendants(self, tag: Optional[str] = None, attrs: Optional[Dict[str, str]] = None,
                         predicate: Optional[Predicate] = None) -> List['Element']:
        return [element for element in self.iter_descendants()
                if element.matches(tag, attrs, predicate)]

    def find_descendant(self, tag: Optional[str] = None, attrs: Optional[Dict[str, str]] = None,
                        predicate: Optional[Predicate] = None) -> Optional['Element']:
        for element in self.iter_descendants():
            if element.matches(tag, attrs, predicate):
                return element
        return None

    def find_ancestor(self, tag: Optional[str] = None, attrs: Optional[Dict[str, str]] = None,
                      predicate: Optional[Predicate] = None) -> Optional['Element']:
        """Walk the parent chain outwards; first match wins, None at the root."""
        ancestor = self.parent
        while ancestor is not None:
            if ancestor.matches(tag, attrs, predicate):
                return ancestor
            ancestor = ancestor.parent
        return None


class SelectElement(Element):
    """A <select>, with its option list discovered on demand."""

    @cached_property
    def options(self) -> List[Element]:
        """Option descendants in document order, at any depth.

        Unclosed <option> tags come out of the parser nested inside the
        previous option, so nested options are collected too.

        Computed on first access and kept as a snapshot: options added to or
        removed from the tree afterwards are not reflected here.
        """
        return [element for element in self.iter_descendants() if element.tag == 'option']

    @property
    def multiple(self) -> bool:
        return self.has_attr('multiple')


class Document:
    """Arena owning every element of one parse."""

    def __init__(self) -> None:
        self._nodes: List[Element] = []
        self.root: Optional[Element] = None
        self.released = False

    def __len__(self) -> int:
        return len(self._nodes)

    def add(self, element: Element, parent: Optional[Element] = None) -> Element:
        element.node_id = len(self._nodes)
        element._document_ref = weakref.ref(self)
        self._nodes.append(element)
        if parent is None:
            self.root = element
        else:
            element.parent_id = parent.node_id
            parent.children.append(element)
        return element

    def node(self, node_id: int) -> Optional[Element]:
        if 0 <= node_id < len(self._nodes):
            return self._nodes[node_id]
        return None

    def find_descendants(self, tag: Optional[str] = None, attrs: Optional[Dict[str, str]] = None,
                         predicate: Optional[Predicate] = None) -> List[Element]:
        if self.root is None:
            return []
        return self.root.find_descendants(tag, attrs, predicate)

    def find_descendant(self, tag: Optional[str] = None, attrs: Optional[Dict[str, str]] = None,
                        predicate: Optional[Predicate] = None) -> Optional[Element]:
        if self.root is None:
            return None
        return self.root.find_descendant(tag, attrs, predicate)

    def release(self) -> None:
        """Tear down the tree. Elements still held elsewhere lose their parent links."""
        for element in self._nodes:
            element.children = []
            element.parent_id = None
            element._document_ref = None
        self._nodes = []
        self.root = None
        self.released = True


def _make_element(tag: Tag) -> Element:
    attrs = {name.lower(): ('' if value is None else str(value)) for name, value in tag.attrs.items()}
    if tag.name.lower() == 'select':
        return SelectElement(tag.name, attrs)
    return Element(tag.name, attrs)


def parse(markup: str) -> Document:
    """Parse markup into a Document. Never fails on malformed input."""
    soup = BeautifulSoup(markup or '', 'html.parser', multi_valued_attributes=None)

    document = Document()
    root = document.add(Element(ROOT_TAG))

    stack = [(child, root) for child in reversed(soup.contents)]
    while stack:
        node, parent = stack.pop()
        if isinstance(node, Tag):
            element = document.add(_make_element(node), parent)
            stack.extend((child, element) for child in reversed(node.contents))
        elif isinstance(node, NavigableString) and not isinstance(node, PreformattedString):
            parent.children.append(str(node))

    logger.debug(f"Parsed {len(markup or '')} characters into {len(document)} elements")
    return document


def element_text(element: Element) -> Optional[str]:
    """First meaningful text found inside an element.

    Children are scanned in order: the first non-empty text run wins,
    formatting-tag children are searched recursively, and a child carrying an
    href contributes its own complete text without being searched further.
    Other child elements are passed over.
    """
    for child in element.children:
        if not isinstance(child, Element):
            text = clean(child)
            if text:
                return text
            continue

        if child.tag in FORMATTING_TAGS:
            text = element_text(child)
        elif child.has_attr('href'):
            text = clean(child.text_content())
        else:
            continue

        if text:
            return text
    return None


def option_text(option: Element) -> str:
    """Text of an <option> itself, leaving out any option nested inside it."""
    parts = []
    stack: List[Node] = list(reversed(option.children))
    while stack:
        node = stack.pop()
        if isinstance(node, Element):
            if node.tag != 'option':
                stack.extend(reversed(node.children))
        else:
            parts.append(node)
    return clean(''.join(parts))


def annotate(document: Document) -> List[Element]:
    """Assign associated_text / before_text to every element.

    Returns every element carrying an href, in document order.
    """
    links: List[Element] = []
    if document.root is not None:
        _annotate_children(document.root, links)
    return links


def _annotate_children(root: Element, links: List[Element]) -> None:
    last_element: Optional[Element] = None
    before_text = root.associated_text

    for child in root.children:
        if not isinstance(child, Element):
            text = clean(child)
            if text:
                before_text = text
            continue

        if child.has_attr('href'):
            links.append(child)

        if before_text is not None:
            if child.tag not in ('a', 'option'):
                child.before_text = before_text
            before_text = None

        if child.tag not in FORMATTING_TAGS:
            text = element_text(child)
            if text is not None:
                child.associated_text = text
                before_text = text

        # An input/select labels the element right before it when that one has no text yet
        if last_element is not None and last_element.associated_text is None:
            if child.tag in ('input', 'select'):
                last_element.associated_text = before_text

        _annotate_children(child, links)
        last_element = child
