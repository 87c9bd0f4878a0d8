import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from anchor_ghost.addressing import css_escape, positional_path, synthesize_selector
from anchor_ghost.html_document import HtmlDocument


def test_id_fast_path_is_preferred():
    doc = HtmlDocument('<div><input id="pt_name"></div>')
    element = doc.query_one("input")
    assert synthesize_selector(element, doc) == "#pt_name"


def test_escaped_id_relocates_element():
    doc = HtmlDocument('<form><input id="1st-name"><input id="other"></form>')
    element = doc.query_all("input")[0]
    selector = synthesize_selector(element, doc)
    assert selector.startswith("#\\31 ")
    assert doc.query_one(selector) is element


def test_css_escape_matches_cssom_rules():
    assert css_escape("plain-id_1") == "plain-id_1"
    assert css_escape("-") == "\\-"
    assert css_escape("-1a") == "-\\31 a"
    assert css_escape("a.b:c") == "a\\.b\\:c"


def test_positional_path_without_id_relocates_element():
    doc = HtmlDocument(
        "<html><body><form><p>intro</p><label>Date of Birth <input name='dob'></label></form></body></html>"
    )
    element = doc.query_one("input")
    selector = synthesize_selector(element, doc)
    assert "nth-child" in selector
    assert " > " in selector
    assert doc.query_one(selector) is element


def test_positional_path_is_bounded_to_five_levels():
    html = "<html><body>" + "<div>" * 8 + "<input>" + "</div>" * 8 + "</body></html>"
    doc = HtmlDocument(html)
    element = doc.query_one("input")
    selector = positional_path(element)
    assert len(selector.split(" > ")) == 5
    assert selector.endswith("input:nth-child(1)")
    assert doc.query_one(selector) is element


def test_duplicate_ids_fall_back_to_positional_path():
    doc = HtmlDocument('<div><input id="dup"><input id="dup"></div>')
    second = doc.query_all("input")[1]
    selector = synthesize_selector(second, doc)
    assert not selector.startswith("#")
    assert doc.query_one(selector) is second
