"""Request/response correlation between an orchestrator and a document context.

The orchestrator side (``BridgeClient``) sends ``BridgeRequest`` messages over
whatever channel the host provides and awaits the matching ``BridgeResponse``.
The document side (``DocumentAgent``) runs the field pipeline against its
document and always answers with data or an error string.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import BaseModel, Field, ValidationError

from .audit import AuditLog
from .config import BRIDGE_TIMEOUT_S
from .document import Document, DocumentError
from .executor import execute_plan
from .models import DomMap, ExecutionResult, FillPlan, PayloadValidationError
from .perception import map_document
from .undo import UndoManager

logger = logging.getLogger(__name__)

MAP = "MAP"
FILL = "FILL"
UNDO = "UNDO"


class BridgeError(RuntimeError):
    """The document context answered with an error."""


class BridgeTimeoutError(BridgeError):
    """No response arrived before the caller-side timeout."""


class BridgeRequest(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    action: str
    payload: Dict[str, Any] = Field(default_factory=dict)


class BridgeResponse(BaseModel):
    id: str
    action: str
    data: Optional[Any] = None
    error: Optional[str] = None


Sender = Callable[[BridgeRequest], Awaitable[None]]


class BridgeClient:
    def __init__(self, send: Sender, timeout_s: float = BRIDGE_TIMEOUT_S) -> None:
        self._send = send
        self.timeout_s = timeout_s
        self._pending: Dict[str, asyncio.Future] = {}

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def request(self, action: str, payload: Optional[Dict[str, Any]] = None, *, timeout_s: Optional[float] = None) -> Any:
        request = BridgeRequest(action=action, payload=payload or {})
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[request.id] = future
        timeout = self.timeout_s if timeout_s is None else timeout_s
        try:
            await self._send(request)
            response: BridgeResponse = await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise BridgeTimeoutError(f"Timeout waiting for {action} response after {timeout:g}s") from exc
        finally:
            self._pending.pop(request.id, None)

        if response.error:
            raise BridgeError(f"{action} failed: {response.error}")
        return response.data

    def deliver(self, response: BridgeResponse) -> bool:
        """Resolve the request ``response`` answers; unknown or late ids are dropped."""
        future = self._pending.get(response.id)
        if future is None or future.done():
            logger.debug("Dropping response %s for %s; no pending request", response.id, response.action)
            return False
        future.set_result(response)
        return True

    async def map_fields(self, *, timeout_s: Optional[float] = None) -> DomMap:
        data = await self.request(MAP, timeout_s=timeout_s)
        return DomMap.model_validate(data)

    async def execute(self, plan: FillPlan, *, preview: bool = False, timeout_s: Optional[float] = None) -> ExecutionResult:
        data = await self.request(FILL, {"plan": plan.to_payload(), "preview": preview}, timeout_s=timeout_s)
        return ExecutionResult.model_validate(data)

    async def undo(self, token: Optional[str] = None, *, timeout_s: Optional[float] = None) -> int:
        payload = {"undoToken": token} if token else {}
        data = await self.request(UNDO, payload, timeout_s=timeout_s)
        return int((data or {}).get("restored", 0))


class DocumentAgent:
    """Document-side handler for MAP, FILL and UNDO requests."""

    def __init__(self, document: Document, undo: Optional[UndoManager] = None, audit: Optional[AuditLog] = None) -> None:
        self.document = document
        self.undo = undo or UndoManager()
        self.audit = audit

    def handle(self, request: BridgeRequest) -> BridgeResponse:
        response_action = f"{request.action}_RESPONSE"
        try:
            data = self._dispatch(request)
        except (PayloadValidationError, ValidationError) as exc:
            logger.warning("Rejected %s payload: %s", request.action, exc)
            return BridgeResponse(id=request.id, action=response_action, error=f"Invalid payload: {exc}")
        except Exception as exc:  # noqa: BLE001 - errors must travel back as responses
            logger.exception("Bridge action %s failed", request.action)
            return BridgeResponse(id=request.id, action=response_action, error=str(exc))
        return BridgeResponse(id=request.id, action=response_action, data=data)

    def _dispatch(self, request: BridgeRequest) -> Any:
        if request.action == MAP:
            return map_document(self.document).to_payload()

        if request.action == FILL:
            raw_plan = request.payload.get("plan")
            if not isinstance(raw_plan, dict):
                raise PayloadValidationError("'plan' must be an object")
            plan = FillPlan.model_validate(raw_plan)
            preview = bool(request.payload.get("preview", False))
            result = execute_plan(self.document, plan, self.undo, preview=preview)
            if self.audit and not preview:
                self.audit.plan_executed(result, url=self.document.url)
            return result.to_payload()

        if request.action == UNDO:
            token = request.payload.get("undoToken")
            if token is not None and not isinstance(token, str):
                raise PayloadValidationError("'undoToken' must be a string")
            restored = self.undo.restore(token)
            if self.audit:
                self.audit.undo_restored(token, restored)
            return {"restored": restored}

        raise BridgeError(f"Unknown action: {request.action}")


class LocalChannel:
    """Relay requests to an in-process ``DocumentAgent`` through the event loop."""

    def __init__(self, agent: DocumentAgent, delay_s: float = 0.0) -> None:
        self.agent = agent
        self.delay_s = delay_s
        self._client: Optional[BridgeClient] = None

    def connect(self, timeout_s: float = BRIDGE_TIMEOUT_S) -> BridgeClient:
        self._client = BridgeClient(self._send, timeout_s=timeout_s)
        return self._client

    async def _send(self, request: BridgeRequest) -> None:
        asyncio.get_running_loop().call_later(self.delay_s, self._relay, request)

    def _relay(self, request: BridgeRequest) -> None:
        response = self.agent.handle(request)
        if self._client is not None:
            self._client.deliver(response)
