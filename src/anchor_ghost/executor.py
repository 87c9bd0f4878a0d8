"""Apply fill plans to a live document and report per-step outcomes."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Union

from .document import Document, DocumentElement, DocumentError, InvalidSelectorError
from .models import ExecutionError, ExecutionResult, FillPlan, FillStep, StepResult
from .undo import UndoBuffer, UndoManager, read_through, write_channel_for, write_through

logger = logging.getLogger(__name__)

NOT_FOUND = "not found"
UNWRITABLE = "unwritable"
WRITE_FAILED = "write failed"


class StepFailure(Exception):
    """A single step could not be applied; carries the reportable message."""


def execute_plan(
    document: Document,
    plan: Union[FillPlan, Sequence[FillStep]],
    undo: UndoManager,
    *,
    plan_id: Optional[str] = None,
    preview: bool = False,
) -> ExecutionResult:
    """Apply ``plan`` step by step; no per-step problem escapes as an exception.

    A fresh undo buffer replaces any previous one before the first write. With
    ``preview`` the steps are resolved and checked but nothing is written.
    """
    if isinstance(plan, FillPlan):
        steps: Sequence[FillStep] = plan.steps
        plan_id = plan_id or plan.id
    else:
        steps = plan
    plan_id = plan_id or "adhoc"

    buffer = UndoBuffer() if preview else undo.begin()
    results: List[StepResult] = []
    errors: List[ExecutionError] = []

    for step in steps:
        try:
            _apply_step(document, step, buffer, preview)
        except StepFailure as exc:
            message = str(exc)
            logger.warning("Step %s failed: %s", step.selector, message)
            errors.append(ExecutionError(selector=step.selector, message=message))
            results.append(StepResult(selector=step.selector, label=step.label, success=False, error=message))
            continue
        results.append(StepResult(selector=step.selector, label=step.label, success=True))

    applied = len(results) - len(errors)
    failed = len(errors)
    touched = bool(buffer)
    result = ExecutionResult(
        plan_id=plan_id,
        ok=failed == 0,
        status=_status(applied, failed, preview),
        applied=applied,
        failed=failed,
        touched=touched,
        errors=errors or None,
        results=results,
        undo_token=buffer.token if touched and not preview else None,
    )
    if not steps:
        logger.info("Plan %s had no steps; nothing to do", plan_id)
    else:
        logger.info("Plan %s: %s applied, %s failed (status=%s)", plan_id, applied, failed, result.status)
    return result


def resolve_step_target(document: Document, selector: str) -> DocumentElement:
    try:
        element = document.query_one(selector)
    except InvalidSelectorError as exc:
        raise StepFailure(f"{NOT_FOUND}: {exc}") from exc
    except DocumentError as exc:
        raise StepFailure(f"{NOT_FOUND}: lookup failed ({exc})") from exc
    if element is None:
        raise StepFailure(f"{NOT_FOUND}: no element matches {selector}")
    return element


def _apply_step(document: Document, step: FillStep, buffer: UndoBuffer, preview: bool) -> None:
    element = resolve_step_target(document, step.selector)
    try:
        channel = write_channel_for(element)
    except DocumentError as exc:
        raise StepFailure(f"{WRITE_FAILED}: {exc}") from exc
    if channel is None:
        raise StepFailure(f"{UNWRITABLE}: <{element.tag_name}> supports neither a value property nor content editing")
    if preview:
        return
    try:
        if not buffer.has(step.selector):
            buffer.record(element, step.selector, read_through(element, channel), channel)
        write_through(element, channel, step.value)
    except DocumentError as exc:
        raise StepFailure(f"{WRITE_FAILED}: {exc}") from exc


def _status(applied: int, failed: int, preview: bool) -> str:
    if preview:
        return "preview"
    if applied == 0 and failed == 0:
        return "noop"
    if failed == 0:
        return "applied"
    if applied == 0:
        return "failed"
    return "partial"
