"""Pipeline runner: map a document, plan a note fill, execute it."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from playwright.sync_api import Error as PlaywrightError, sync_playwright

from .audit import AuditLog
from .config import DEFAULT_BROWSER, PLAYWRIGHT_CHANNEL, PLAYWRIGHT_EXECUTABLE
from .document import Document
from .executor import execute_plan
from .models import DomMap, ExecutionResult, FillPlan
from .page_document import PageDocument
from .perception import map_document
from .planner import PlanGenerator
from .undo import UndoManager

logger = logging.getLogger(__name__)

VIEWPORT = {"width": 1440, "height": 900}


@dataclass
class FillOutcome:
    dom_map: DomMap
    plan: FillPlan
    result: ExecutionResult


def fill_document(
    document: Document,
    note: str,
    *,
    undo: Optional[UndoManager] = None,
    generator: Optional[PlanGenerator] = None,
    target_note_field: Optional[str] = None,
    preview: bool = False,
    audit: Optional[AuditLog] = None,
) -> FillOutcome:
    """Run one map -> plan -> execute cycle against ``document``."""
    dom_map = map_document(document)
    plan = (generator or PlanGenerator()).generate(
        dom_map.url, dom_map.fields, note, target_note_field=target_note_field
    )
    if audit:
        audit.plan_generated(plan)
    result = execute_plan(document, plan, undo or UndoManager(), preview=preview)
    if audit and not preview:
        audit.plan_executed(result, url=document.url)
    return FillOutcome(dom_map=dom_map, plan=plan, result=result)


@contextmanager
def open_page(
    url: str,
    *,
    browser: Optional[str] = None,
    headless: bool = True,
    timeout_ms: int = 15000,
) -> Iterator[PageDocument]:
    """Launch a browser, load ``url`` and yield it as a ``PageDocument``."""
    engine_name = (browser or DEFAULT_BROWSER).lower()
    with sync_playwright() as playwright:
        launch_kwargs = {"headless": headless}
        if engine_name in {"chrome", "chromium"}:
            engine = playwright.chromium
            if engine_name == "chrome" or PLAYWRIGHT_CHANNEL:
                launch_kwargs["channel"] = PLAYWRIGHT_CHANNEL or "chrome"
            if PLAYWRIGHT_EXECUTABLE:
                launch_kwargs["executable_path"] = PLAYWRIGHT_EXECUTABLE
        elif engine_name == "firefox":
            engine = playwright.firefox
        elif engine_name == "webkit":
            engine = playwright.webkit
        else:
            raise ValueError(f"Unsupported browser: {engine_name}")

        instance = engine.launch(**launch_kwargs)
        try:
            context = instance.new_context(viewport=VIEWPORT)
            page = context.new_page()
            logger.info("Opening %s in %s", url, engine_name)
            page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
            yield PageDocument(page)
        finally:
            try:
                instance.close()
            except PlaywrightError as exc:
                logger.debug("Browser close failed: %s", exc)
