"""Document accessor interfaces consumed by the field pipeline.

The extractor, executor and undo manager only talk to these two classes, so the
same pipeline runs against a parsed HTML string (``HtmlDocument``) or a live
browser page (``PageDocument``).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

NATIVE_VALUE_TAGS = frozenset({"input", "textarea", "select"})
CONTENT_EDITABLE_VALUES = frozenset({"", "true", "plaintext-only"})


class DocumentError(RuntimeError):
    """Raised when the backing document cannot complete a read or write."""


class InvalidSelectorError(DocumentError):
    """Raised when a selector string is rejected by the selector engine."""


class DocumentElement(ABC):
    """A handle to one element of a document."""

    @property
    @abstractmethod
    def tag_name(self) -> str:
        """Lower-cased tag name."""

    @abstractmethod
    def get_attribute(self, name: str) -> Optional[str]:
        ...

    @abstractmethod
    def parent(self) -> Optional["DocumentElement"]:
        """Parent element, or None at the document root."""

    @abstractmethod
    def child_index(self) -> int:
        """1-based position among the parent's element children (0 without a parent)."""

    @abstractmethod
    def closest(self, tag: str) -> Optional["DocumentElement"]:
        """Nearest inclusive ancestor with the given tag name."""

    @abstractmethod
    def text_content(self) -> str:
        ...

    @abstractmethod
    def is_content_editable(self) -> bool:
        ...

    @abstractmethod
    def is_disabled(self) -> bool:
        ...

    @abstractmethod
    def is_read_only(self) -> bool:
        ...

    @abstractmethod
    def is_visible(self) -> bool:
        """True when the element has a non-zero box and is not hidden by styling."""

    @abstractmethod
    def read_value(self) -> str:
        ...

    @abstractmethod
    def write_value(self, value: str) -> None:
        ...

    @abstractmethod
    def read_text(self) -> str:
        ...

    @abstractmethod
    def write_text(self, value: str) -> None:
        ...

    @abstractmethod
    def dispatch_event(self, event_type: str) -> None:
        """Fire a bubbling synthetic event so page listeners observe a change."""

    def is_native_control(self) -> bool:
        return self.tag_name in NATIVE_VALUE_TAGS


class Document(ABC):
    """The current document, as exposed by the hosting environment."""

    @property
    @abstractmethod
    def url(self) -> str:
        ...

    @abstractmethod
    def query_all(self, selector: str) -> List[DocumentElement]:
        """All matches in document order. Raises InvalidSelectorError on bad syntax."""

    @abstractmethod
    def query_one(self, selector: str) -> Optional[DocumentElement]:
        """First match or None. Raises InvalidSelectorError on bad syntax."""
