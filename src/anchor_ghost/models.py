"""Core data models for Anchor Ghost."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

ASSIGN_VALUE = "assign-value"

ExecutionStatus = Literal["applied", "partial", "failed", "noop", "preview"]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PayloadValidationError(ValueError):
    """Raised when a boundary payload has the wrong top-level shape."""


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class FieldDescriptor(_WireModel):
    """Snapshot of one fillable surface; may be stale after the document changes."""

    selector: str
    label: str
    role: str
    editable: bool
    visible: bool


class FillStep(_WireModel):
    selector: str
    action: Literal["assign-value"] = ASSIGN_VALUE
    value: str
    label: Optional[str] = None


class FillPlan(_WireModel):
    id: str
    url: str
    created_at: datetime = Field(default_factory=utc_now, alias="createdAt")
    steps: List[FillStep] = Field(default_factory=list)
    note_target_selector: Optional[str] = Field(default=None, alias="noteTargetSelector")
    meta: Optional[Dict[str, Any]] = None


class ExecutionError(_WireModel):
    selector: str
    message: str


class StepResult(_WireModel):
    selector: str
    label: Optional[str] = None
    success: bool
    error: Optional[str] = None


class ExecutionResult(_WireModel):
    plan_id: str = Field(alias="planId")
    ok: bool
    status: ExecutionStatus
    applied: int = 0
    failed: int = 0
    touched: bool = False
    errors: Optional[List[ExecutionError]] = None
    results: List[StepResult] = Field(default_factory=list)
    undo_token: Optional[str] = Field(default=None, alias="undoToken")


class DomMap(_WireModel):
    url: str
    captured_at: datetime = Field(default_factory=utc_now, alias="capturedAt")
    fields: List[FieldDescriptor] = Field(default_factory=list)
    scan_duration_ms: Optional[float] = Field(default=None, alias="scanDurationMs")


def parse_field_descriptors(items: Any) -> List[FieldDescriptor]:
    """Validate a raw ``fields`` list, dropping entries that are not descriptors."""
    if not isinstance(items, list):
        raise PayloadValidationError("'fields' must be an array")
    fields: List[FieldDescriptor] = []
    for index, item in enumerate(items):
        if not _looks_like_descriptor(item):
            logger.debug("Dropping malformed field descriptor at index %s", index)
            continue
        try:
            fields.append(FieldDescriptor.model_validate(item))
        except ValidationError:
            logger.debug("Dropping invalid field descriptor at index %s", index)
    return fields


def normalize_dom_map(body: Any) -> DomMap:
    """Validate a DOM map payload received from the document context."""
    if not isinstance(body, dict):
        raise PayloadValidationError("Invalid DOM map payload: body is not an object")
    if not isinstance(body.get("url"), str):
        raise PayloadValidationError("Invalid DOM map payload: 'url' must be a string")
    if not isinstance(body.get("fields"), list):
        raise PayloadValidationError("Invalid DOM map payload: 'fields' must be an array")

    payload: Dict[str, Any] = {"url": body["url"], "fields": parse_field_descriptors(body["fields"])}
    if isinstance(body.get("capturedAt"), str):
        payload["capturedAt"] = body["capturedAt"]
    duration = body.get("scanDurationMs")
    if isinstance(duration, (int, float)) and not isinstance(duration, bool):
        payload["scanDurationMs"] = float(duration)
    try:
        return DomMap.model_validate(payload)
    except ValidationError as exc:
        raise PayloadValidationError(f"Invalid DOM map payload: {exc}") from exc


def _looks_like_descriptor(value: Any) -> bool:
    if not isinstance(value, dict):
        return False
    return (
        isinstance(value.get("selector"), str)
        and isinstance(value.get("label"), str)
        and isinstance(value.get("role"), str)
        and isinstance(value.get("editable"), bool)
        and isinstance(value.get("visible"), bool)
    )
