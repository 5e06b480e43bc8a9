# tests/core/test_reconcile_controller.py
import pytest

from reconciler.controllers.reconcile_controller import DEFAULT_FALLBACK_STYLE_SHEET, ReconcileController
from reconciler.model import ReconcileState, StyledFragment
from reconciler.services.token_scan_service import scan_tokens


@pytest.fixture
def controller():
    """Een fixture die een ReconcileController met standaard services levert."""
    return ReconcileController()


def test_styled_fragment_already_intact(controller):
    """Scenario A: de gestylede output bevat al intacte tokens."""
    styled = StyledFragment(html="<p style='color:red'>{{Name}}</p>", style_sheet="p { margin: 0; }")
    result = controller.reconcile("<p>{{Name}}</p>", styled)

    assert result.state == ReconcileState.CHECK_STYLED_INTACT
    assert result.html == styled.html
    assert result.style_sheet == styled.style_sheet
    assert result.token_count == 1


def test_split_token_is_repaired(controller):
    """Scenario B: een gesplitste token wordt hersteld, de stijl van <p> blijft behouden."""
    styled = StyledFragment(html='<p style="color:red">{{</span><span>Name</span><span>}}</p>')
    result = controller.reconcile("<p>{{Name}}</p>", styled)

    assert result.state == ReconcileState.REPAIR_STYLED
    assert "{{Name}}" in result.html
    assert result.html.startswith('<p style="color:red">')
    assert result.token_count == 1


def test_total_styled_failure_falls_back_to_extractor(controller):
    """Scenario C: niets te redden uit de gestylede boom, dus de extractor-output wordt gebruikt."""
    extractor = "<p>{{First}}</p><p>{{Last}}</p>"
    styled = StyledFragment(html='<div class="docx"><span>First</span><span>Last</span></div>', style_sheet=".docx{}")
    result = controller.reconcile(extractor, styled)

    assert result.state == ReconcileState.FALLBACK_EXTRACTOR
    assert result.html == extractor
    assert result.token_count == 2
    assert result.style_sheet == DEFAULT_FALLBACK_STYLE_SHEET
    assert [a.state for a in result.attempts] == [
        ReconcileState.CHECK_STYLED_INTACT,
        ReconcileState.REPAIR_STYLED,
        ReconcileState.TRANSPLANT_EXTRACTOR,
        ReconcileState.FALLBACK_EXTRACTOR,
    ]
    assert [a.accepted for a in result.attempts] == [False, False, False, True]


def test_lost_braces_are_recovered_by_transplant(controller):
    """De renderer verloor de accolades; de extractor-tekst krijgt de gestylede opmaak."""
    styled = StyledFragment(html='<p style="color:navy">Beste Name,</p>', style_sheet="p{}")
    result = controller.reconcile("<p>Beste {{Name}},</p>", styled)

    assert result.state == ReconcileState.TRANSPLANT_EXTRACTOR
    assert result.html == '<p style="color:navy">Beste {{Name}},</p>'
    assert result.style_sheet == "p{}"
    assert result.token_count == 1


def test_partially_intact_styled_tree_is_repaired(controller):
    """Eén token is intact, één gesplitst: herstel moet beide opleveren."""
    extractor = "<p>{{A}}</p><p>{{B}}</p>"
    styled = StyledFragment(html='<p style="x">{{A}}</p><p style="y">{{</span><span>B}}</p>')
    result = controller.reconcile(extractor, styled)

    assert result.state == ReconcileState.REPAIR_STYLED
    assert result.token_count == 2


def test_document_without_tokens_uses_styled_output(controller):
    """Zonder tokens telt alleen de opmaak."""
    styled = StyledFragment(html='<p style="font-weight:bold">Hallo</p>', style_sheet="p{}")
    result = controller.reconcile("<p>Hallo</p>", styled)

    assert result.state == ReconcileState.STYLED_DIRECT
    assert result.html == styled.html
    assert result.token_count == 0


def test_document_without_tokens_and_empty_styled_output(controller):
    result = controller.reconcile("<p>Hallo</p>", StyledFragment())
    assert result.state == ReconcileState.FALLBACK_EXTRACTOR
    assert result.html == "<p>Hallo</p>"


@pytest.mark.parametrize("extractor, styled_html", [
    ("<p>{{A}} en {{B}}</p>", "<p>{{A}} en {{</b><b>B}}</p>"),
    ("<p>{{A}}</p><p>{{B}}</p><p>{{C}}</p>", "<p style='c'>A</p><p>B</p>"),
    ("<h1>{{Title}}</h1><p>[[Body]]</p>", "<h1><span>{</span><span>{Title}}</span></h1><p>[[Body</i><i>]]</p>"),
    ("<p>{{Only}}</p>", ""),
])
def test_tokens_from_extractor_are_never_lost(controller, extractor, styled_html):
    """Het aantal tokens in de output is altijd gelijk aan dat van de extractor."""
    result = controller.reconcile(extractor, StyledFragment(html=styled_html))

    assert result.token_count == result.expected_token_count
    assert sorted(scan_tokens(result.html)) == sorted(scan_tokens(extractor))


def test_custom_fallback_style_sheet():
    controller = ReconcileController(fallback_style_sheet="body { margin: 0; }")
    result = controller.reconcile("<p>{{X}}</p>", StyledFragment())
    assert result.style_sheet == "body { margin: 0; }"
