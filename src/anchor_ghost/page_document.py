"""Live browser document backend built on the Playwright sync API."""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional, TypeVar

from playwright.sync_api import ElementHandle, Error as PlaywrightError, JSHandle, Page

from .document import Document, DocumentElement, DocumentError, InvalidSelectorError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_STYLE_VISIBLE_SCRIPT = r"""
(el) => {
  const style = window.getComputedStyle(el);
  if (!style) return false;
  return style.visibility !== 'hidden' && style.visibility !== 'collapse' && style.display !== 'none';
}
"""

# Assigning through the prototype setter keeps framework value trackers
# (React and friends) in sync with the new value.
_WRITE_VALUE_SCRIPT = r"""
(el, value) => {
  const proto = Object.getPrototypeOf(el);
  const descriptor = proto ? Object.getOwnPropertyDescriptor(proto, 'value') : null;
  if (descriptor && descriptor.set) {
    descriptor.set.call(el, value);
  } else {
    el.value = value;
  }
}
"""


def _guard(operation: Callable[[], T], description: str) -> T:
    try:
        return operation()
    except PlaywrightError as exc:
        raise DocumentError(f"{description} failed: {exc}") from exc


class PageElement(DocumentElement):
    def __init__(self, handle: ElementHandle, document: "PageDocument") -> None:
        self._handle = handle
        self._document = document
        self._tag_name: Optional[str] = None

    def __repr__(self) -> str:
        return f"PageElement(<{self._tag_name or '?'}>)"

    @property
    def handle(self) -> ElementHandle:
        return self._handle

    def _evaluate(self, script: str, arg: Any = None) -> Any:
        if arg is None:
            return _guard(lambda: self._handle.evaluate(script), "evaluate")
        return _guard(lambda: self._handle.evaluate(script, arg), "evaluate")

    def _element_from(self, handle: JSHandle) -> Optional["PageElement"]:
        element = handle.as_element()
        if element is None:
            handle.dispose()
            return None
        return PageElement(element, self._document)

    @property
    def tag_name(self) -> str:
        if self._tag_name is None:
            self._tag_name = str(self._evaluate("el => el.tagName.toLowerCase()"))
        return self._tag_name

    def get_attribute(self, name: str) -> Optional[str]:
        return _guard(lambda: self._handle.get_attribute(name), f"get_attribute({name})")

    def parent(self) -> Optional["PageElement"]:
        handle = _guard(lambda: self._handle.evaluate_handle("el => el.parentElement"), "parent")
        return self._element_from(handle)

    def child_index(self) -> int:
        return int(
            self._evaluate(
                "el => el.parentElement ? Array.prototype.indexOf.call(el.parentElement.children, el) + 1 : 0"
            )
        )

    def closest(self, tag: str) -> Optional["PageElement"]:
        handle = _guard(lambda: self._handle.evaluate_handle("(el, tag) => el.closest(tag)", tag), "closest")
        return self._element_from(handle)

    def text_content(self) -> str:
        return _guard(lambda: self._handle.text_content(), "text_content") or ""

    def is_content_editable(self) -> bool:
        return bool(self._evaluate("el => Boolean(el.isContentEditable)"))

    def is_disabled(self) -> bool:
        return bool(self._evaluate("el => Boolean(el.disabled)"))

    def is_read_only(self) -> bool:
        return bool(self._evaluate("el => Boolean(el.readOnly)"))

    def is_visible(self) -> bool:
        box = _guard(lambda: self._handle.bounding_box(), "bounding_box")
        if not box or box["width"] <= 0 or box["height"] <= 0:
            return False
        return bool(self._evaluate(_STYLE_VISIBLE_SCRIPT))

    def read_value(self) -> str:
        value = self._evaluate("el => el.value")
        return "" if value is None else str(value)

    def write_value(self, value: str) -> None:
        self._evaluate(_WRITE_VALUE_SCRIPT, value)

    def read_text(self) -> str:
        return str(self._evaluate("el => el.textContent || ''"))

    def write_text(self, value: str) -> None:
        self._evaluate("(el, value) => { el.textContent = value; }", value)

    def dispatch_event(self, event_type: str) -> None:
        _guard(lambda: self._handle.dispatch_event(event_type, {"bubbles": True}), f"dispatch_event({event_type})")


class PageDocument(Document):
    """Wrap a Playwright page so the field pipeline can run against it."""

    def __init__(self, page: Page) -> None:
        self._page = page

    @property
    def page(self) -> Page:
        return self._page

    @property
    def url(self) -> str:
        return self._page.url

    def query_all(self, selector: str) -> List[DocumentElement]:
        handles = self._query(lambda: self._page.query_selector_all(f"css={selector}"), selector)
        return [PageElement(handle, self) for handle in handles]

    def query_one(self, selector: str) -> Optional[DocumentElement]:
        handle = self._query(lambda: self._page.query_selector(f"css={selector}"), selector)
        return PageElement(handle, self) if handle is not None else None

    def _query(self, operation: Callable[[], T], selector: str) -> T:
        try:
            return operation()
        except PlaywrightError as exc:
            message = str(exc)
            if "selector" in message.lower():
                raise InvalidSelectorError(f"Invalid selector {selector!r}: {message}") from exc
            raise DocumentError(f"Query {selector!r} failed: {message}") from exc
