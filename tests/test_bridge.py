from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from anchor_ghost.bridge import (  # noqa: E402
    BridgeClient,
    BridgeError,
    BridgeRequest,
    BridgeResponse,
    BridgeTimeoutError,
    DocumentAgent,
    LocalChannel,
)
from anchor_ghost.html_document import HtmlDocument  # noqa: E402
from anchor_ghost.planner import generate_plan  # noqa: E402

FIXTURE = Path(__file__).resolve().parent / "fixtures" / "chart.html"


def _agent() -> DocumentAgent:
    return DocumentAgent(HtmlDocument.from_path(FIXTURE))


@pytest.mark.asyncio
async def test_map_fill_undo_over_local_channel() -> None:
    agent = _agent()
    client = LocalChannel(agent).connect(timeout_s=2)

    dom_map = await client.map_fields()
    assert len(dom_map.fields) == 6

    plan = generate_plan(dom_map.url, dom_map.fields, "Stable.")
    result = await client.execute(plan)
    assert result.ok is True
    assert result.undo_token

    assert await client.undo(result.undo_token) == len(plan.steps)
    assert await client.undo() == 0
    assert client.pending == 0


@pytest.mark.asyncio
async def test_preview_over_bridge_leaves_document_untouched() -> None:
    agent = _agent()
    client = LocalChannel(agent).connect(timeout_s=2)
    dom_map = await client.map_fields()
    plan = generate_plan(dom_map.url, dom_map.fields, "Stable.")

    result = await client.execute(plan, preview=True)

    assert result.status == "preview"
    assert agent.document.query_one("#assessment").read_value() == ""
    assert agent.undo.pending == 0


@pytest.mark.asyncio
async def test_request_times_out_with_explicit_error() -> None:
    async def never_answer(request: BridgeRequest) -> None:
        return None

    client = BridgeClient(never_answer, timeout_s=0.05)
    with pytest.raises(BridgeTimeoutError):
        await client.request("MAP")
    assert client.pending == 0


@pytest.mark.asyncio
async def test_responses_are_correlated_by_id() -> None:
    sent: list[BridgeRequest] = []

    async def collect(request: BridgeRequest) -> None:
        sent.append(request)

    client = BridgeClient(collect, timeout_s=1)

    async def answer_in_reverse() -> None:
        while len(sent) < 2:
            await asyncio.sleep(0)
        for request in reversed(sent):
            client.deliver(BridgeResponse(id=request.id, action="ECHO_RESPONSE", data=request.payload["n"]))

    first, second, _ = await asyncio.gather(
        client.request("ECHO", {"n": 1}),
        client.request("ECHO", {"n": 2}),
        answer_in_reverse(),
    )
    assert (first, second) == (1, 2)


def test_unknown_response_ids_are_dropped() -> None:
    async def noop(request: BridgeRequest) -> None:
        return None

    client = BridgeClient(noop)
    assert client.deliver(BridgeResponse(id="missing", action="MAP_RESPONSE")) is False


@pytest.mark.asyncio
async def test_error_responses_raise_bridge_error() -> None:
    client = LocalChannel(_agent()).connect(timeout_s=2)
    with pytest.raises(BridgeError, match="Unknown action"):
        await client.request("EXPLODE")


def test_agent_rejects_malformed_plan_without_raising() -> None:
    agent = _agent()
    response = agent.handle(BridgeRequest(action="FILL", payload={"plan": {"id": "p", "steps": "nope"}}))
    assert response.action == "FILL_RESPONSE"
    assert response.error and response.error.startswith("Invalid payload")
    assert agent.undo.pending == 0

    response = agent.handle(BridgeRequest(action="FILL", payload={"plan": ["not", "an", "object"]}))
    assert response.error and "'plan' must be an object" in response.error
