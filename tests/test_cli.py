import json
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import main  # noqa: E402
from anchor_ghost.html_document import HtmlDocument  # noqa: E402

FIXTURE = Path(__file__).resolve().parent / "fixtures" / "chart.html"


def _run(args, capsys):
    main.main(args)
    return json.loads(capsys.readouterr().out)


def test_map_command_lists_fields(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    payload = _run(["map", str(FIXTURE)], capsys)
    assert len(payload["fields"]) == 6


def test_plan_command_reads_saved_map(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    fields_file = tmp_path / "map.json"
    fields_file.write_text(
        json.dumps(
            {
                "url": "http://ehr.test/",
                "fields": [
                    {"selector": "#name", "label": "Patient Name", "role": "textbox", "editable": True, "visible": True},
                    {"selector": "#notes", "label": "Assessment", "role": "textbox", "editable": True, "visible": True},
                ],
            }
        ),
        encoding="utf-8",
    )
    plan = _run(["plan", "--fields", str(fields_file), "--note", "Stable."], capsys)
    assert plan["url"] == "http://ehr.test/"
    assert plan["noteTargetSelector"] == "#notes"


def test_fill_command_writes_filled_html(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    out = tmp_path / "filled.html"
    report = _run(["fill", str(FIXTURE), "--note", "Stable.", "--out", str(out)], capsys)
    assert report["result"]["ok"] is True
    filled = HtmlDocument.from_path(out)
    assert filled.query_one("#assessment").read_value() == "Stable."
    assert filled.query_one("#pt_name").read_value() == "DEMO_PATIENT_NAME"


def test_fill_command_can_undo(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    out = tmp_path / "restored.html"
    report = _run(["fill", str(FIXTURE), "--note", "Stable.", "--undo", "--out", str(out)], capsys)
    assert report["restored"] == len(report["plan"]["steps"])
    assert HtmlDocument.from_path(out).query_one("#assessment").read_value() == ""


def test_missing_file_exits(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(SystemExit):
        main.main(["map", str(tmp_path / "absent.html")])
