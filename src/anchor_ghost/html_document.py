"""In-memory document backend built on BeautifulSoup.

Visibility is approximated from markup alone: the ``hidden`` attribute,
``type="hidden"`` inputs, unrendered containers, and inline ``display``,
``visibility``, ``width`` and ``height`` declarations on the element or its
ancestors.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

from .document import (
    CONTENT_EDITABLE_VALUES,
    Document,
    DocumentElement,
    DocumentError,
    InvalidSelectorError,
)

logger = logging.getLogger(__name__)

EventListener = Callable[["HtmlElement", str], None]

_UNRENDERED_TAGS = frozenset({"head", "template", "script", "style", "noscript"})
_ZERO_LENGTHS = frozenset({"0", "0px", "0em", "0rem", "0%"})


def _parse_style(style: Optional[str]) -> Dict[str, str]:
    declarations: Dict[str, str] = {}
    for chunk in (style or "").split(";"):
        if ":" not in chunk:
            continue
        name, _, value = chunk.partition(":")
        value = value.replace("!important", "").strip().lower()
        declarations[name.strip().lower()] = value
    return declarations


class HtmlElement(DocumentElement):
    def __init__(self, tag: Tag, document: "HtmlDocument") -> None:
        self._tag = tag
        self._document = document
        self._selection_cleared = False

    def __repr__(self) -> str:
        return f"HtmlElement(<{self.tag_name}>)"

    @property
    def tag(self) -> Tag:
        return self._tag

    @property
    def tag_name(self) -> str:
        return (self._tag.name or "").lower()

    def get_attribute(self, name: str) -> Optional[str]:
        value = self._tag.get(name)
        if value is None:
            return None
        if isinstance(value, list):
            return " ".join(value)
        return str(value)

    def parent(self) -> Optional["HtmlElement"]:
        parent = self._tag.parent
        if not _is_element(parent):
            return None
        return self._document.wrap(parent)

    def child_index(self) -> int:
        parent = self._tag.parent
        if not _is_element(parent):
            return 0
        siblings = [child for child in parent.children if isinstance(child, Tag)]
        for position, sibling in enumerate(siblings, start=1):
            if sibling is self._tag:
                return position
        return 0

    def closest(self, tag: str) -> Optional["HtmlElement"]:
        wanted = tag.lower()
        node: Optional[Tag] = self._tag
        while _is_element(node):
            if (node.name or "").lower() == wanted:
                return self._document.wrap(node)
            node = node.parent
        return None

    def text_content(self) -> str:
        return self._tag.get_text()

    def is_content_editable(self) -> bool:
        node: Optional[Tag] = self._tag
        while _is_element(node):
            flag = node.get("contenteditable")
            if flag is not None:
                return str(flag).strip().lower() in CONTENT_EDITABLE_VALUES
            node = node.parent
        return False

    def is_disabled(self) -> bool:
        return self.is_native_control() and self._tag.has_attr("disabled")

    def is_read_only(self) -> bool:
        return self.tag_name in {"input", "textarea"} and self._tag.has_attr("readonly")

    def is_visible(self) -> bool:
        if self.tag_name == "input" and (self.get_attribute("type") or "").lower() == "hidden":
            return False
        own_style = _parse_style(self.get_attribute("style"))
        if own_style.get("width") in _ZERO_LENGTHS or own_style.get("height") in _ZERO_LENGTHS:
            return False
        visibility_decided = False
        node: Optional[Tag] = self._tag
        while _is_element(node):
            if (node.name or "").lower() in _UNRENDERED_TAGS or node.has_attr("hidden"):
                return False
            style = _parse_style(node.get("style"))
            if style.get("display") == "none":
                return False
            if not visibility_decided and "visibility" in style:
                if style["visibility"] in {"hidden", "collapse"}:
                    return False
                visibility_decided = True
            node = node.parent
        return True

    def read_value(self) -> str:
        tag_name = self.tag_name
        if tag_name == "input":
            value = self.get_attribute("value")
            if value is None and (self.get_attribute("type") or "").lower() in {"checkbox", "radio"}:
                return "on"
            return value or ""
        if tag_name == "textarea":
            return self._tag.get_text()
        if tag_name == "select":
            if self._selection_cleared:
                return ""
            option = self._selected_option()
            return _option_value(option) if option is not None else ""
        raise DocumentError(f"<{tag_name}> has no value property")

    def write_value(self, value: str) -> None:
        tag_name = self.tag_name
        if tag_name == "input":
            self._tag["value"] = value
        elif tag_name == "textarea":
            self._tag.string = value
        elif tag_name == "select":
            self._select_option(value)
        else:
            raise DocumentError(f"<{tag_name}> has no value property")

    def read_text(self) -> str:
        return self._tag.get_text()

    def write_text(self, value: str) -> None:
        self._tag.string = value

    def dispatch_event(self, event_type: str) -> None:
        self._document.record_event(self, event_type)
        node: Optional[HtmlElement] = self
        while node is not None:
            for listener in self._document.listeners_for(node, event_type):
                listener(self, event_type)
            node = node.parent()

    def add_event_listener(self, event_type: str, listener: EventListener) -> None:
        self._document.add_listener(self, event_type, listener)

    def _options(self) -> List[Tag]:
        return self._tag.find_all("option")

    def _selected_option(self) -> Optional[Tag]:
        options = self._options()
        selected = [option for option in options if option.has_attr("selected")]
        if selected:
            return selected[-1]
        enabled = [option for option in options if not option.has_attr("disabled")]
        return enabled[0] if enabled else None

    def _select_option(self, value: str) -> None:
        match: Optional[Tag] = None
        for option in self._options():
            if option.has_attr("selected"):
                del option["selected"]
            if match is None and _option_value(option) == value:
                match = option
        if match is not None:
            match["selected"] = ""
        self._selection_cleared = match is None


def _option_value(option: Tag) -> str:
    value = option.get("value")
    if value is not None:
        return str(value)
    return " ".join(option.get_text().split())


def _is_element(node: object) -> bool:
    return isinstance(node, Tag) and not isinstance(node, BeautifulSoup)


class HtmlDocument(Document):
    """A parsed HTML document that can be mapped, filled and serialised back."""

    def __init__(self, html: str, url: str = "about:blank") -> None:
        self._soup = BeautifulSoup(html, "html.parser")
        self._url = url
        self._elements: Dict[int, HtmlElement] = {}
        self._listeners: Dict[int, Dict[str, List[EventListener]]] = {}
        self.events: List[tuple] = []

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "HtmlDocument":
        source = Path(path).expanduser()
        return cls(source.read_text(encoding="utf-8"), url=source.resolve().as_uri())

    @property
    def url(self) -> str:
        return self._url

    def wrap(self, tag: Tag) -> HtmlElement:
        element = self._elements.get(id(tag))
        if element is None or element.tag is not tag:
            element = HtmlElement(tag, self)
            self._elements[id(tag)] = element
        return element

    def query_all(self, selector: str) -> List[DocumentElement]:
        try:
            tags = self._soup.select(selector)
        except SelectorSyntaxError as exc:
            raise InvalidSelectorError(f"Invalid selector {selector!r}: {exc}") from exc
        return [self.wrap(tag) for tag in tags]

    def query_one(self, selector: str) -> Optional[DocumentElement]:
        try:
            tag = self._soup.select_one(selector)
        except SelectorSyntaxError as exc:
            raise InvalidSelectorError(f"Invalid selector {selector!r}: {exc}") from exc
        return self.wrap(tag) if tag is not None else None

    def remove(self, selector: str) -> int:
        """Detach every element matching ``selector``; returns how many were removed."""
        removed = 0
        for element in self.query_all(selector):
            element.tag.decompose()
            removed += 1
        return removed

    def add_listener(self, element: HtmlElement, event_type: str, listener: EventListener) -> None:
        self._listeners.setdefault(id(element.tag), {}).setdefault(event_type, []).append(listener)

    def listeners_for(self, element: HtmlElement, event_type: str) -> List[EventListener]:
        return list(self._listeners.get(id(element.tag), {}).get(event_type, []))

    def record_event(self, element: HtmlElement, event_type: str) -> None:
        self.events.append((element, event_type))
        logger.debug("Dispatched %s on <%s>", event_type, element.tag_name)

    def to_html(self) -> str:
        return str(self._soup)
