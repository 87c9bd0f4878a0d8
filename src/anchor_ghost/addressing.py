"""Synthesize CSS addresses that relocate an element later."""

from __future__ import annotations

from typing import List, Optional

from .config import MAX_SELECTOR_DEPTH
from .document import Document, DocumentElement, InvalidSelectorError


def css_escape(value: str) -> str:
    """Escape ``value`` for use as a CSS identifier (CSSOM ``CSS.escape``)."""
    result: List[str] = []
    length = len(value)
    for index, char in enumerate(value):
        code = ord(char)
        if code == 0:
            result.append("�")
        elif 0x01 <= code <= 0x1F or code == 0x7F:
            result.append(f"\\{code:x} ")
        elif index == 0 and char.isdigit() and char.isascii():
            result.append(f"\\{code:x} ")
        elif index == 1 and char.isdigit() and char.isascii() and value[0] == "-":
            result.append(f"\\{code:x} ")
        elif index == 0 and char == "-" and length == 1:
            result.append("\\-")
        elif code >= 0x80 or char in "-_" or (char.isascii() and char.isalnum()):
            result.append(char)
        else:
            result.append(f"\\{char}")
    return "".join(result)


def synthesize_selector(
    element: DocumentElement,
    document: Optional[Document] = None,
    max_depth: int = MAX_SELECTOR_DEPTH,
) -> str:
    """Return ``#id`` when the element has an id, else a bounded nth-child path.

    When ``document`` is given the id is only used if it resolves to exactly one
    element. The positional path covers at most ``max_depth`` levels and is not
    guaranteed to stay unique once the surrounding markup changes.
    """
    element_id = element.get_attribute("id")
    if element_id and _id_is_unique(element_id, document):
        return f"#{css_escape(element_id)}"
    return positional_path(element, max_depth)


def positional_path(element: DocumentElement, max_depth: int = MAX_SELECTOR_DEPTH) -> str:
    parts: List[str] = []
    node: Optional[DocumentElement] = element
    while node is not None and len(parts) < max_depth:
        parent = node.parent()
        if parent is None:
            parts.append(node.tag_name)
            break
        parts.append(f"{node.tag_name}:nth-child({node.child_index()})")
        node = parent
    parts.reverse()
    return " > ".join(parts)


def _id_is_unique(element_id: str, document: Optional[Document]) -> bool:
    if document is None:
        return True
    try:
        return len(document.query_all(f"#{css_escape(element_id)}")) == 1
    except InvalidSelectorError:
        return False
