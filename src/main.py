"""CLI entrypoint for Anchor Ghost."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional

from anchor_ghost.audit import AuditLog
from anchor_ghost.config import AGENT_HOST, AGENT_PORT, DEFAULT_BROWSER, LOG_DIR, get_audit_log_path
from anchor_ghost.document import Document
from anchor_ghost.html_document import HtmlDocument
from anchor_ghost.models import PayloadValidationError, parse_field_descriptors
from anchor_ghost.perception import map_document
from anchor_ghost.planner import PlanGenerator
from anchor_ghost.runner import fill_document, open_page
from anchor_ghost.undo import UndoManager


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Map form fields and fill them from a clinical note.")
    parser.add_argument("--log-level", default="INFO", help="Python logging level.")
    parser.add_argument("--audit-log", help="Append audit events to this JSON-lines file.")
    sub = parser.add_subparsers(dest="command", required=True)

    map_cmd = sub.add_parser("map", help="List the visible fillable fields of a page.")
    _add_target_args(map_cmd)

    plan_cmd = sub.add_parser("plan", help="Generate a fill plan from a saved field map.")
    plan_cmd.add_argument("--fields", required=True, help="JSON file with a DOM map or a list of fields.")
    _add_note_args(plan_cmd)
    plan_cmd.add_argument("--url", help="Override the URL recorded on the plan.")

    fill_cmd = sub.add_parser("fill", help="Map, plan and fill a page in one pass.")
    _add_target_args(fill_cmd)
    _add_note_args(fill_cmd)
    fill_cmd.add_argument("--preview", action="store_true", help="Resolve steps without writing anything.")
    fill_cmd.add_argument("--undo", action="store_true", help="Restore the original values after filling.")
    fill_cmd.add_argument("--out", help="Write the filled HTML here (HTML file targets only).")

    serve_cmd = sub.add_parser("serve", help="Run the local HTTP agent.")
    serve_cmd.add_argument("--host", default=AGENT_HOST)
    serve_cmd.add_argument("--port", type=int, default=AGENT_PORT)

    return parser.parse_args(argv)


def _add_target_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("target", help="Path to an HTML file or an http(s) URL.")
    parser.add_argument("--browser", default=DEFAULT_BROWSER, help="Browser engine for URLs (chromium, chrome, firefox, webkit).")
    parser.add_argument("--headed", action="store_true", help="Show the browser window for URLs.")


def _add_note_args(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--note", default="", help="Clinical note text.")
    group.add_argument("--note-file", help="Read the clinical note from this file.")
    parser.add_argument("--target-note-field", help="Label of the field that should receive the note.")


def main(argv: Optional[list] = None) -> None:
    args = parse_args(argv)
    log_file = _configure_logging(args.log_level)
    logging.info("Log file: %s", log_file)
    audit_path = Path(args.audit_log) if args.audit_log else get_audit_log_path()
    audit = AuditLog(audit_path) if audit_path else None

    if args.command == "map":
        with _open_target(args) as document:
            _emit(map_document(document).to_payload())
    elif args.command == "plan":
        _run_plan(args, audit)
    elif args.command == "fill":
        _run_fill(args, audit)
    elif args.command == "serve":
        _run_serve(args, audit)


def _run_plan(args: argparse.Namespace, audit: Optional[AuditLog]) -> None:
    fields_path = Path(args.fields).expanduser()
    if not fields_path.is_file():
        raise SystemExit(f"Fields file not found: {fields_path}")
    try:
        body = json.loads(fields_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Fields file is not valid JSON: {exc}") from exc
    raw_fields = body.get("fields") if isinstance(body, dict) else body
    try:
        fields = parse_field_descriptors(raw_fields)
    except PayloadValidationError as exc:
        raise SystemExit(f"Invalid fields file: {exc}") from exc
    url = args.url or (body.get("url") if isinstance(body, dict) else None) or ""
    plan = PlanGenerator().generate(url, fields, _read_note(args), target_note_field=args.target_note_field)
    if audit:
        audit.plan_generated(plan)
    _emit(plan.to_payload())


def _run_fill(args: argparse.Namespace, audit: Optional[AuditLog]) -> None:
    if args.out and _is_url(args.target):
        raise SystemExit("--out is only supported for HTML file targets")
    undo = UndoManager()
    with _open_target(args) as document:
        outcome = fill_document(
            document,
            _read_note(args),
            undo=undo,
            target_note_field=args.target_note_field,
            preview=args.preview,
            audit=audit,
        )
        report: dict = {"plan": outcome.plan.to_payload(), "result": outcome.result.to_payload()}
        if outcome.result.failed:
            logging.warning("%s of %s steps failed", outcome.result.failed, len(outcome.plan.steps))
        if args.undo:
            token = outcome.result.undo_token
            restored = undo.restore(token)
            if audit:
                audit.undo_restored(token, restored)
            report["restored"] = restored
        if args.out and isinstance(document, HtmlDocument):
            out_path = Path(args.out).expanduser()
            out_path.write_text(document.to_html(), encoding="utf-8")
            logging.info("Wrote filled document to %s", out_path)
        _emit(report)


def _run_serve(args: argparse.Namespace, audit: Optional[AuditLog]) -> None:
    import uvicorn

    from anchor_ghost.server import create_app

    uvicorn.run(create_app(audit=audit), host=args.host, port=args.port)


@contextmanager
def _open_target(args: argparse.Namespace) -> Iterator[Document]:
    if _is_url(args.target):
        with open_page(args.target, browser=args.browser, headless=not args.headed) as document:
            yield document
        return
    path = Path(args.target).expanduser()
    if not path.is_file():
        raise SystemExit(f"HTML file not found: {path}")
    yield HtmlDocument.from_path(path)


def _read_note(args: argparse.Namespace) -> str:
    if args.note_file:
        note_path = Path(args.note_file).expanduser()
        if not note_path.is_file():
            raise SystemExit(f"Note file not found: {note_path}")
        return note_path.read_text(encoding="utf-8")
    return args.note or ""


def _is_url(target: str) -> bool:
    return target.startswith(("http://", "https://", "file://"))


def _emit(payload: Any) -> None:
    sys.stdout.write(json.dumps(payload, indent=2, ensure_ascii=False) + "\n")


def _configure_logging(log_level: str) -> Path:
    level = getattr(logging, log_level.upper(), logging.INFO)
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    log_file = LOG_DIR / f"anchor-ghost-{datetime.now(timezone.utc).strftime('%Y%m%d-%H%M%S')}.log"
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(formatter)
    logging.basicConfig(level=level, handlers=[stream_handler, file_handler])
    return log_file


if __name__ == "__main__":
    main()
