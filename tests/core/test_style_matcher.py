# tests/core/test_style_matcher.py
import pytest
from bs4 import BeautifulSoup

from reconciler.services.style_match_service import StyleMatchService

STYLED_HTML = (
    '<p style="color:red" class="docx p1">Eerste</p>'
    '<p style="color:blue">Tweede</p>'
    '<table width="100%" border="1"><tr><td colspan="2" bgcolor="#eee" data-x="1">Cel</td></tr></table>'
)


@pytest.fixture
def matcher():
    return StyleMatchService()


def test_build_style_map_groups_records_per_tag(matcher):
    """Test of de StyleRecords per tag en in documentvolgorde worden opgebouwd."""
    style_map = matcher.build_style_map(STYLED_HTML)

    assert [r.style for r in style_map["p"]] == ["color:red", "color:blue"]
    assert [r.index for r in style_map["p"]] == [0, 1]
    assert style_map["p"][0].class_name == "docx p1"
    # Alleen attributen op de whitelist worden overgenomen.
    assert style_map["table"][0].attrs == {"width": "100%"}
    assert style_map["td"][0].attrs == {"colspan": "2", "bgcolor": "#eee"}


def test_transplant_copies_styles_by_position(matcher):
    """Elementen worden op (tag, positie) gekoppeld; bij tekort wordt de eerste stijl hergebruikt."""
    extractor = "<p>{{A}}</p><p>{{B}}</p><p>{{C}}</p>"
    result = matcher.transplant(extractor, STYLED_HTML)

    paragraphs = BeautifulSoup(result.html, "html.parser").find_all("p")
    assert [p["style"] for p in paragraphs] == ["color:red", "color:blue", "color:red"]
    assert paragraphs[0]["class"] == ["docx", "p1"]
    assert result.styled_elements == 3
    assert result.unstyled_elements == 0


def test_transplant_never_changes_text(matcher):
    """De tekst van het extractor-fragment blijft exact gelijk."""
    extractor = "<p>Beste {{Customer.Name}},</p><table><tr><td>{{Order.Total}}</td></tr></table>"
    result = matcher.transplant(extractor, STYLED_HTML)

    before = BeautifulSoup(extractor, "html.parser").get_text()
    after = BeautifulSoup(result.html, "html.parser").get_text()
    assert after == before

    td = BeautifulSoup(result.html, "html.parser").find("td")
    assert td["colspan"] == "2"
    assert not td.has_attr("data-x")


def test_tags_missing_from_styled_tree_stay_unstyled(matcher):
    """Een tag die niet in de gestylede boom voorkomt, krijgt geen stijl (geen fout)."""
    result = matcher.transplant("<h1>{{Title}}</h1>", STYLED_HTML)

    h1 = BeautifulSoup(result.html, "html.parser").find("h1")
    assert not h1.has_attr("style")
    assert result.styled_elements == 0
    assert result.unstyled_elements == 1


def test_empty_records_do_not_count_as_styled(matcher):
    result = matcher.transplant("<p>x</p>", "<p>zonder stijl</p>")
    assert result.styled_elements == 0
    assert result.html == "<p>x</p>"


def test_lookup_falls_back_to_first_record(matcher):
    style_map = matcher.build_style_map(STYLED_HTML)
    assert matcher.lookup(style_map, "p", 5).style == "color:red"
    assert matcher.lookup(style_map, "h2", 0) is None
