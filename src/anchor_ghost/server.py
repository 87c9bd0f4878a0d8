"""Local HTTP agent: receives DOM maps and answers fill-plan requests."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import Body, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from .audit import AuditLog
from .models import DomMap, PayloadValidationError, normalize_dom_map, parse_field_descriptors
from .planner import PlanGenerator

logger = logging.getLogger(__name__)


class PlanRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    note: str = ""
    url: Optional[str] = None
    fields: Optional[List[Any]] = None
    target_note_field: Optional[str] = Field(default=None, alias="targetNoteField")


class AgentState:
    def __init__(self) -> None:
        self.latest_map: Optional[DomMap] = None


def create_app(generator: Optional[PlanGenerator] = None, audit: Optional[AuditLog] = None) -> FastAPI:
    app = FastAPI(title="Anchor Ghost Agent")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # the extension's content script posts from arbitrary page origins
        allow_methods=["*"],
        allow_headers=["*"],
    )
    state = AgentState()
    planner = generator or PlanGenerator()
    app.state.agent = state

    @app.get("/")
    async def health() -> Dict[str, Any]:
        return {"ok": True, "msg": "Anchor Ghost Agent running"}

    @app.post("/dom")
    async def receive_dom(body: Any = Body(...)) -> Dict[str, Any]:
        try:
            dom_map = normalize_dom_map(body)
        except PayloadValidationError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        state.latest_map = dom_map
        logger.info("Stored DOM map for %s (%s fields)", dom_map.url, len(dom_map.fields))
        return {"ok": True, "fields": len(dom_map.fields)}

    @app.get("/dom")
    async def latest_dom() -> Dict[str, Any]:
        if state.latest_map is None:
            raise HTTPException(status_code=404, detail="No DOM map has been received yet")
        return state.latest_map.to_payload()

    @app.post("/actions/plan")
    async def plan_fill(request: PlanRequest) -> Dict[str, Any]:
        if request.fields is not None:
            try:
                fields = parse_field_descriptors(request.fields)
            except PayloadValidationError as exc:
                raise HTTPException(status_code=422, detail=str(exc)) from exc
            url = request.url
        elif state.latest_map is not None:
            fields = list(state.latest_map.fields)
            url = request.url or state.latest_map.url
        else:
            raise HTTPException(status_code=409, detail="No fields supplied and no DOM map stored")

        plan = planner.generate(url or "", fields, request.note, target_note_field=request.target_note_field)
        if audit:
            audit.plan_generated(plan)
        return plan.to_payload()

    return app


app = create_app()
