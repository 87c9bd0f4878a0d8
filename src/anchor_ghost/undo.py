"""One-level undo for plan execution."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import List, Literal, Optional, Set

from .document import DocumentElement, DocumentError

logger = logging.getLogger(__name__)

WriteChannel = Literal["value", "text"]

NOTIFY_EVENTS = ("input", "change")


def write_channel_for(element: DocumentElement) -> Optional[WriteChannel]:
    """``value`` for native form controls, ``text`` for content-editable, else None."""
    if element.is_native_control():
        return "value"
    if element.is_content_editable():
        return "text"
    return None


def read_through(element: DocumentElement, channel: WriteChannel) -> str:
    return element.read_value() if channel == "value" else element.read_text()


def write_through(element: DocumentElement, channel: WriteChannel, value: str) -> None:
    """Assign ``value`` and fire input/change so bound listeners see the update."""
    if channel == "value":
        element.write_value(value)
    else:
        element.write_text(value)
    for event_type in NOTIFY_EVENTS:
        element.dispatch_event(event_type)


@dataclass
class UndoEntry:
    element: DocumentElement
    selector: str
    previous_value: str
    channel: WriteChannel


@dataclass
class UndoBuffer:
    """Pre-execution values for every field one execution touched."""

    token: str = field(default_factory=lambda: uuid.uuid4().hex)
    entries: List[UndoEntry] = field(default_factory=list)
    _selectors: Set[str] = field(default_factory=set, repr=False)

    def __len__(self) -> int:
        return len(self.entries)

    def __bool__(self) -> bool:
        return bool(self.entries)

    def has(self, selector: str) -> bool:
        return selector in self._selectors

    def record(self, element: DocumentElement, selector: str, previous_value: str, channel: WriteChannel) -> bool:
        """Snapshot a field unless this execution already recorded the selector."""
        if selector in self._selectors:
            return False
        self.entries.append(UndoEntry(element, selector, previous_value, channel))
        self._selectors.add(selector)
        return True

    def drain(self) -> List[UndoEntry]:
        entries = self.entries
        self.entries = []
        self._selectors = set()
        return entries


class UndoManager:
    """Owns the single undo buffer of one document context.

    Starting a new execution discards an unrestored buffer; restoring drains it,
    so a second restore in a row is a no-op.
    """

    def __init__(self) -> None:
        self._buffer: Optional[UndoBuffer] = None

    @property
    def token(self) -> Optional[str]:
        return self._buffer.token if self._buffer else None

    @property
    def pending(self) -> int:
        return len(self._buffer) if self._buffer else 0

    def begin(self) -> UndoBuffer:
        if self._buffer:
            logger.debug("Discarding unrestored undo buffer %s (%s entries)", self._buffer.token, len(self._buffer))
        self._buffer = UndoBuffer()
        return self._buffer

    def restore(self, token: Optional[str] = None) -> int:
        """Write every recorded value back; returns how many fields were restored."""
        buffer = self._buffer
        if not buffer:
            logger.debug("Nothing to restore")
            return 0
        if token is not None and token != buffer.token:
            logger.warning("Ignoring restore for stale undo token %s (current %s)", token, buffer.token)
            return 0

        restored = 0
        # Last-in-first-out so aliased selectors unwind to the original value.
        for entry in reversed(buffer.drain()):
            try:
                write_through(entry.element, entry.channel, entry.previous_value)
                restored += 1
            except DocumentError as exc:
                logger.warning("Could not restore %s: %s", entry.selector, exc)
        self._buffer = None
        logger.info("Restored %s fields", restored)
        return restored
