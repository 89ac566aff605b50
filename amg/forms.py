"""Form model: classifies a page's interactive elements into per-form buckets."""

import logging
import re
from typing import Dict, Iterator, List, Optional

from .document import Document, Element, annotate, parse
from .text_utils import strip_formatting_tags

logger = logging.getLogger(__name__)

# Recognized <input> types and the bucket each lands in
INPUT_TYPES = {
    'submit': 'buttons',
    'image': 'buttons',
    'hidden': 'hidden',
    'checkbox': 'checkboxes',
    'text': 'textboxes',
    'textfield': 'textboxes',
    'password': 'textboxes',
    'radio': 'radioboxes',
}

# Other tags that are form fields in their own right
TAG_TYPES = {
    'select': 'selectboxes',
    'textarea': 'textareas',
}

BUCKETS = ('buttons', 'hidden', 'checkboxes', 'textboxes', 'radioboxes', 'selectboxes', 'textareas')

DEFAULT_FORM_PREFIX = 'form'

_FORM_START_RE = re.compile(r'<\s*form[^>]*>', re.IGNORECASE)
_FORM_END_RE = re.compile(r'</form>', re.IGNORECASE)


class Form:
    """One <form> region of a page, parsed from its own markup fragment."""

    def __init__(self, name: str, element: Element, document: Document) -> None:
        self.name = name
        self.element = element
        self.document = document  # owned; released with the form

        self.buttons: List[Element] = []
        self.hidden: List[Element] = []
        self.checkboxes: List[Element] = []
        self.textboxes: List[Element] = []
        self.radioboxes: List[Element] = []
        self.selectboxes: List[Element] = []
        self.textareas: List[Element] = []

    def __repr__(self) -> str:
        counts = ', '.join(f"{bucket}={len(self.bucket(bucket))}" for bucket in BUCKETS if self.bucket(bucket))
        return f"<Form {self.name} {self.method} {self.action!r} {counts}>"

    @property
    def action(self) -> Optional[str]:
        return self.element.get('action') or None

    @property
    def method(self) -> str:
        return (self.element.get('method') or 'GET').strip().upper()

    def bucket(self, name: str) -> List[Element]:
        return getattr(self, name)

    def release(self) -> None:
        """Free this form's parse tree."""
        self.document.release()


def classify_element(element: Element, form: Form) -> None:
    """Recursively file every field under element into the form's buckets."""
    if element.tag == 'input':
        input_type = (element.get('type') or 'text').strip().lower()
        bucket = INPUT_TYPES.get(input_type)
        if bucket:
            form.bucket(bucket).append(element)
    elif element.tag in TAG_TYPES:
        form.bucket(TAG_TYPES[element.tag]).append(element)

    for child in element.element_children():
        classify_element(child, form)


def generate_form_name(forms: Dict[str, Form]) -> str:
    """Lowest unused form{N} name."""
    index = 0
    while f"{DEFAULT_FORM_PREFIX}{index}" in forms:
        index += 1
    return f"{DEFAULT_FORM_PREFIX}{index}"


def iter_form_fragments(markup: str) -> Iterator[str]:
    """Yield each <form ...> ... </form> span of the markup.

    A span runs to the first </form> after its start tag, or to the end of
    input when there is none. The scan resumes after each span, so spans
    never overlap.
    """
    position = 0
    while True:
        start = _FORM_START_RE.search(markup, position)
        if not start:
            return

        end = _FORM_END_RE.search(markup, start.end())
        if not end:
            yield markup[start.start():]
            return

        yield markup[start.start():end.end()]
        position = end.end()


def build_forms(markup: str) -> Dict[str, Form]:
    """Build the form model for a page: form name -> Form, in document order."""
    forms: Dict[str, Form] = {}

    for fragment in iter_form_fragments(markup or ''):
        document = parse(strip_formatting_tags(fragment))
        annotate(document)
        element = document.find_descendant('form')
        if element is None:
            document.release()
            continue

        name = element.get('name') or generate_form_name(forms)
        if name in forms:
            logger.debug(f"Duplicate form name '{name}', replacing earlier form")
            forms[name].release()

        form = Form(name, element, document)
        classify_element(element, form)
        forms[name] = form
        logger.debug(f"Found form: {form!r}")

    return forms


def matches_field(element: Element, name: str) -> bool:
    """Case-insensitive match of a field by name, associated text or before text."""
    wanted = name.lower()
    for candidate in (element.get('name'), element.associated_text, element.before_text):
        if candidate is not None and candidate.lower() == wanted:
            return True
    return False
