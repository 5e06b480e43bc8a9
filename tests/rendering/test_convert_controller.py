# tests/rendering/test_convert_controller.py
import base64
import pytest
from unittest.mock import MagicMock

from reconciler.model import ReconcileState, StyledFragment
from renderer.controllers.convert_controller import ConvertController
from renderer.errors import InputError, UpstreamRenderingError
from renderer.utils.payload_utils import decode_base64_document

DOCX_BYTES = b"PK\x03\x04 nep-document"
ENCODED = base64.b64encode(DOCX_BYTES).decode("ascii")


@pytest.fixture
def collaborators():
    extractor = MagicMock()
    extractor.extract.return_value = "<p>Beste {{Customer.Name}},</p>"
    styled_renderer = MagicMock()
    styled_renderer.render.return_value = StyledFragment(
        html='<p style="color:red">Beste {{Customer</span><span>.Name}},</p>', style_sheet="p{margin:0}"
    )
    return extractor, styled_renderer, MagicMock()


def make_controller(collaborators, config=None):
    extractor, styled_renderer, pdf_renderer = collaborators
    return ConvertController(
        config or {}, extractor=extractor, styled_renderer=styled_renderer, pdf_renderer=pdf_renderer
    )


def test_convert_document_runs_full_pipeline(collaborators):
    """Decode, beide renders, reconciliatie en assemblage in één keer."""
    extractor, styled_renderer, _ = collaborators
    converted = make_controller(collaborators).convert_document(ENCODED)

    extractor.extract.assert_called_once_with(DOCX_BYTES)
    styled_renderer.render.assert_called_once_with(DOCX_BYTES)
    assert converted.reconciliation.state == ReconcileState.REPAIR_STYLED
    assert converted.token_count == 1
    assert converted.html.startswith("<!DOCTYPE html>")
    assert "{{Customer.Name}}" in converted.html
    assert "p{margin:0}" in converted.html


def test_styled_failure_fails_the_request(collaborators):
    _, styled_renderer, _ = collaborators
    styled_renderer.render.side_effect = UpstreamRenderingError("Styled rendering timed out")

    with pytest.raises(UpstreamRenderingError):
        make_controller(collaborators).convert_document(ENCODED)


def test_degraded_mode_returns_extractor_output(collaborators):
    """Met degrade_on_render_failure valt de conversie terug op de extractor."""
    _, styled_renderer, _ = collaborators
    styled_renderer.render.side_effect = UpstreamRenderingError("Styled rendering timed out")
    controller = make_controller(collaborators, {"reconcile": {"degrade_on_render_failure": True}})

    converted = controller.convert_document(ENCODED)

    assert converted.reconciliation.state == ReconcileState.FALLBACK_EXTRACTOR
    assert "<p>Beste {{Customer.Name}},</p>" in converted.html


def test_invalid_base64_stops_before_rendering(collaborators):
    """Scenario E: ongeldige base64 start geen enkele render."""
    extractor, styled_renderer, _ = collaborators

    with pytest.raises(InputError) as exc_info:
        make_controller(collaborators).convert_document("dit is *geen* base64!")

    assert exc_info.value.summary == "Invalid base64 document"
    extractor.extract.assert_not_called()
    styled_renderer.render.assert_not_called()


@pytest.mark.parametrize("html", [None, "", "   \n"])
def test_generate_pdf_requires_html(collaborators, html):
    _, _, pdf_renderer = collaborators
    with pytest.raises(InputError) as exc_info:
        make_controller(collaborators).generate_pdf(html)

    assert exc_info.value.summary == "HTML content is required"
    pdf_renderer.render.assert_not_called()


def test_generate_pdf_delegates_to_renderer(collaborators):
    _, _, pdf_renderer = collaborators
    pdf_renderer.render.return_value = b"%PDF"
    assert make_controller(collaborators).generate_pdf("<p>x</p>") == b"%PDF"


# --- payload decoding ---

def test_decode_accepts_data_url_and_line_breaks():
    wrapped = ENCODED[:8] + "\n" + ENCODED[8:]
    assert decode_base64_document(wrapped) == DOCX_BYTES
    assert decode_base64_document(f"data:application/octet-stream;base64,{ENCODED}") == DOCX_BYTES


@pytest.mark.parametrize("payload", [None, "", "   "])
def test_decode_rejects_empty_payload(payload):
    with pytest.raises(InputError) as exc_info:
        decode_base64_document(payload)
    assert exc_info.value.summary == "Document content is required"
