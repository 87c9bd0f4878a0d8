import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from anchor_ghost.html_document import HtmlDocument
from anchor_ghost.labels import resolve_label


def _label(html: str, selector: str = "#target") -> str:
    doc = HtmlDocument(html)
    return resolve_label(doc.query_one(selector), doc)


def test_aria_label_wins_over_everything():
    html = '<label for="target">Visible</label><input id="target" aria-label=" Chief Complaint " placeholder="cc">'
    assert _label(html) == "Chief Complaint"


def test_label_for_attribute():
    html = '<label for="target">  Patient\n   Name </label><input id="target" placeholder="Name">'
    assert _label(html) == "Patient Name"


def test_blank_aria_label_falls_through():
    html = '<label for="target">Allergies</label><input id="target" aria-label="   ">'
    assert _label(html) == "Allergies"


def test_ancestor_label():
    html = "<label>Date of Birth <input id='target'></label>"
    assert _label(html) == "Date of Birth"


def test_placeholder_is_a_label_source():
    assert _label('<input id="target" placeholder="Assessment">') == "Assessment"


def test_name_then_id_then_tag():
    assert _label('<input id="target" name="dob">') == "dob"
    assert _label('<input id="target">') == "target"
    assert _label("<textarea></textarea>", "textarea") == "textarea"
