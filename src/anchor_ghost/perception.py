"""Field perception: enumerate fillable surfaces and describe them."""

from __future__ import annotations

import logging
import time
from typing import List, Optional

from .addressing import synthesize_selector
from .document import Document, DocumentElement, DocumentError
from .labels import resolve_label
from .models import DomMap, FieldDescriptor

logger = logging.getLogger(__name__)

EDITABLE_SURFACE_SELECTOR = "input, textarea, select, [contenteditable]"

_BUTTON_INPUT_TYPES = frozenset({"button", "submit", "reset", "image"})

_INPUT_TYPE_ROLES = {
    "checkbox": "checkbox",
    "radio": "radio",
    "range": "slider",
    "number": "spinbutton",
    "search": "searchbox",
}


def role_for(element: DocumentElement) -> str:
    explicit = (element.get_attribute("role") or "").strip()
    if explicit:
        return explicit
    tag = element.tag_name
    if tag == "textarea":
        return "textarea"
    if tag == "select":
        return "combobox"
    if tag == "input":
        input_type = (element.get_attribute("type") or "text").strip().lower()
        return _INPUT_TYPE_ROLES.get(input_type, "textbox")
    if element.is_content_editable():
        return "textbox"
    return tag


def is_editable(element: DocumentElement) -> bool:
    if element.is_native_control():
        return not element.is_disabled() and not element.is_read_only()
    return element.is_content_editable()


def collect_fields(document: Document) -> List[FieldDescriptor]:
    """Describe every visible editable surface, in document order."""
    fields: List[FieldDescriptor] = []
    hidden = 0
    for element in document.query_all(EDITABLE_SURFACE_SELECTOR):
        if not _is_candidate(element):
            continue
        try:
            descriptor = describe_field(element, document)
        except DocumentError as exc:
            logger.warning("Skipping field that could not be described: %s", exc)
            continue
        if descriptor is None:
            hidden += 1
            continue
        fields.append(descriptor)
    logger.info("Mapped %s fields on %s (%s hidden skipped)", len(fields), document.url, hidden)
    return fields


def describe_field(element: DocumentElement, document: Document) -> Optional[FieldDescriptor]:
    """Build a descriptor, or return None when the element is not visible."""
    if not element.is_visible():
        return None
    return FieldDescriptor(
        selector=synthesize_selector(element, document),
        label=resolve_label(element, document),
        role=role_for(element),
        editable=is_editable(element),
        visible=True,
    )


def map_document(document: Document) -> DomMap:
    started = time.perf_counter()
    fields = collect_fields(document)
    duration_ms = (time.perf_counter() - started) * 1000.0
    return DomMap(url=document.url, fields=fields, scan_duration_ms=round(duration_ms, 2))


def _is_candidate(element: DocumentElement) -> bool:
    if element.is_native_control():
        if element.tag_name == "input":
            input_type = (element.get_attribute("type") or "").strip().lower()
            return input_type not in _BUTTON_INPUT_TYPES
        return True
    # Only elements explicitly marked content-editable, not contenteditable="false".
    return element.is_content_editable()
