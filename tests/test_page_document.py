import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from playwright.sync_api import Error as PlaywrightError, sync_playwright  # noqa: E402

from anchor_ghost.executor import execute_plan  # noqa: E402
from anchor_ghost.page_document import PageDocument  # noqa: E402
from anchor_ghost.perception import collect_fields  # noqa: E402
from anchor_ghost.planner import generate_plan  # noqa: E402
from anchor_ghost.undo import UndoManager  # noqa: E402

PAGE = """
<form>
  <label for="pt_name">Patient Name</label><input id="pt_name" value="">
  <label>Assessment <textarea name="assessment"></textarea></label>
  <input id="gone" style="display:none">
  <div contenteditable="true" aria-label="HPI">before</div>
</form>
<script>
  window.__seen = [];
  document.addEventListener('input', (e) => window.__seen.push(['input', e.target.tagName]));
  document.addEventListener('change', (e) => window.__seen.push(['change', e.target.tagName]));
</script>
"""


@pytest.fixture()
def page_document():
    with sync_playwright() as playwright:
        try:
            browser = playwright.chromium.launch(headless=True)
        except PlaywrightError as exc:
            pytest.skip(f"Chromium is not available: {exc}")
        page = browser.new_page()
        page.set_content(PAGE)
        try:
            yield PageDocument(page)
        finally:
            browser.close()


def test_live_page_fill_and_restore(page_document):
    fields = collect_fields(page_document)
    assert [field.label for field in fields] == ["Patient Name", "Assessment", "HPI"]

    undo = UndoManager()
    plan = generate_plan(page_document.url, fields, "Stable.")
    result = execute_plan(page_document, plan, undo)
    assert result.ok is True
    assert page_document.page.input_value("#pt_name") == "DEMO_PATIENT_NAME"
    assert page_document.page.evaluate("window.__seen.length") == 6

    assert undo.restore() == 3
    assert page_document.page.input_value("#pt_name") == ""
    assert page_document.page.text_content("[contenteditable]") == "before"
