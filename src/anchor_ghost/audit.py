"""Append-only audit trail for plans, executions and restores."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import ExecutionResult, FillPlan

logger = logging.getLogger(__name__)


class AuditLog:
    """Write structured events to a JSON-lines file.

    Field values are never written; events carry ids, selectors and counts only.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def write(self, event: str, **fields: Any) -> None:
        payload: Dict[str, Any] = {"event": event, **fields}
        payload.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(payload, ensure_ascii=False) + "\n")

    def plan_generated(self, plan: FillPlan) -> None:
        self.write(
            "plan_generated",
            planId=plan.id,
            url=plan.url,
            steps=len(plan.steps),
            selectors=[step.selector for step in plan.steps],
            noteTargetSelector=plan.note_target_selector,
        )

    def plan_executed(self, result: ExecutionResult, url: Optional[str] = None) -> None:
        self.write(
            "plan_executed",
            planId=result.plan_id,
            url=url,
            status=result.status,
            applied=result.applied,
            failed=result.failed,
            errors=[error.to_payload() for error in result.errors or []],
            undoToken=result.undo_token,
        )

    def undo_restored(self, token: Optional[str], restored: int) -> None:
        self.write("undo_restored", undoToken=token, restored=restored)

    def read(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        events: List[Dict[str, Any]] = []
        with self.path.open("r", encoding="utf-8") as fh:
            for line in fh:
                line = line.strip()
                if not line:
                    continue
                try:
                    events.append(json.loads(line))
                except json.JSONDecodeError:
                    logger.debug("Skipping unreadable audit line")
        return events
