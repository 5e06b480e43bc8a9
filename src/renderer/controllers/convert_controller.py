# src/renderer/controllers/convert_controller.py
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Optional, Tuple

from reconciler.controllers.reconcile_controller import ReconcileController
from reconciler.model import StyledFragment
from reconciler.services.document_assembly_service import assemble_document
from renderer.errors import InputError, UpstreamRenderingError
from renderer.managers.browser_session_manager import session_factory_for
from renderer.model import ConvertedDocument
from renderer.services.pdf_render_service import PdfRenderService
from renderer.services.styled_render_service import StyledRenderService
from renderer.services.text_extract_service import TextExtractService
from renderer.utils.payload_utils import decode_base64_document

logger = logging.getLogger(__name__)


class ConvertController:
    """
    Orchestrates one conversion request:
    decode -> (extract || styled render) -> reconcile -> assemble.
    PDF generation is a single browser print of the given markup.
    """

    def __init__(
            self,
            config: Optional[Dict[str, Any]] = None,
            extractor: Optional[TextExtractService] = None,
            styled_renderer: Optional[StyledRenderService] = None,
            pdf_renderer: Optional[PdfRenderService] = None,
            reconcile_controller: Optional[ReconcileController] = None,
    ):
        config = config or {}
        renderer_config = config.get("renderer", {}) or {}
        reconcile_config = config.get("reconcile", {}) or {}

        factory = session_factory_for(renderer_config)
        self.extractor = extractor or TextExtractService()
        self.styled_renderer = styled_renderer or StyledRenderService(renderer_config, factory)
        self.pdf_renderer = pdf_renderer or PdfRenderService(renderer_config, factory)
        self.reconcile_controller = reconcile_controller or ReconcileController(
            fallback_style_sheet=reconcile_config.get("fallback_style_sheet")
        )
        self.degrade_on_render_failure = bool(reconcile_config.get("degrade_on_render_failure", False))

    def convert_document(self, encoded_document: str) -> ConvertedDocument:
        document = decode_base64_document(encoded_document)
        logger.info("Converting document of %d bytes.", len(document))

        extractor_html, styled = self._render_sources(document)
        reconciliation = self.reconcile_controller.reconcile(extractor_html, styled)
        html = assemble_document(reconciliation.html, reconciliation.style_sheet)
        return ConvertedDocument(html=html, reconciliation=reconciliation)

    def generate_pdf(self, html: Optional[str]) -> bytes:
        if not html or not isinstance(html, str) or not html.strip():
            raise InputError("HTML content is required")
        logger.info("Generating PDF from %d characters of HTML.", len(html))
        return self.pdf_renderer.render(html)

    def _render_sources(self, document: bytes) -> Tuple[str, StyledFragment]:
        """Runs both producers concurrently and joins on their results."""
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="render") as pool:
            extract_future = pool.submit(self.extractor.extract, document)
            styled_future = pool.submit(self.styled_renderer.render, document)

            extractor_html = extract_future.result()
            try:
                styled = styled_future.result()
            except UpstreamRenderingError as e:
                if not self.degrade_on_render_failure:
                    raise
                logger.warning("Styled rendering failed, continuing with extractor output only: %s", e)
                styled = StyledFragment()

        return extractor_html, styled
