"""Resolve a human-meaningful label for a form element."""

from __future__ import annotations

from typing import Callable, Iterable, Optional

from .addressing import css_escape
from .document import Document, DocumentElement, InvalidSelectorError


def _clean(text: Optional[str]) -> str:
    return " ".join((text or "").split())


def resolve_label(element: DocumentElement, document: Document) -> str:
    """First non-blank of: aria-label, label[for], ancestor label, placeholder, name/id, tag.

    The placeholder is only ever used as a label source, never as a value.
    """
    sources: Iterable[Callable[[], Optional[str]]] = (
        lambda: element.get_attribute("aria-label"),
        lambda: _label_for(element, document),
        lambda: _ancestor_label(element),
        lambda: element.get_attribute("placeholder"),
        lambda: element.get_attribute("name"),
        lambda: element.get_attribute("id"),
    )
    for source in sources:
        label = _clean(source())
        if label:
            return label
    return element.tag_name.lower()


def _label_for(element: DocumentElement, document: Document) -> Optional[str]:
    element_id = element.get_attribute("id")
    if not element_id:
        return None
    try:
        label = document.query_one(f'label[for="{css_escape(element_id)}"]')
    except InvalidSelectorError:
        return None
    return label.text_content() if label is not None else None


def _ancestor_label(element: DocumentElement) -> Optional[str]:
    label = element.closest("label")
    return label.text_content() if label is not None else None
