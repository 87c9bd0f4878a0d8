import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from anchor_ghost.audit import AuditLog
from anchor_ghost.html_document import HtmlDocument
from anchor_ghost.runner import fill_document
from anchor_ghost.undo import UndoManager

FIXTURE = Path(__file__).resolve().parent / "fixtures" / "chart.html"


def test_fill_and_restore_are_audited_without_values(tmp_path):
    audit = AuditLog(tmp_path / "audit" / "events.jsonl")
    undo = UndoManager()
    outcome = fill_document(HtmlDocument.from_path(FIXTURE), "Patient reports chest pain.", undo=undo, audit=audit)
    token = outcome.result.undo_token
    audit.undo_restored(token, undo.restore(token))

    events = audit.read()
    assert [event["event"] for event in events] == ["plan_generated", "plan_executed", "undo_restored"]
    assert events[0]["noteTargetSelector"] == "#assessment"
    assert events[1]["applied"] == len(outcome.plan.steps)
    assert events[2]["restored"] == len(outcome.plan.steps)
    assert "chest pain" not in (tmp_path / "audit" / "events.jsonl").read_text(encoding="utf-8")


def test_preview_is_not_recorded_as_execution(tmp_path):
    audit = AuditLog(tmp_path / "events.jsonl")
    fill_document(HtmlDocument.from_path(FIXTURE), "Stable.", preview=True, audit=audit)
    assert [event["event"] for event in audit.read()] == ["plan_generated"]
