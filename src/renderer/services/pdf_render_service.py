# src/renderer/services/pdf_render_service.py
import logging
from typing import Any, Dict, Optional

from playwright.sync_api import Error as PlaywrightError

from renderer.errors import UpstreamRenderingError
from renderer.managers.browser_session_manager import SessionFactory, session_factory_for

logger = logging.getLogger(__name__)


class PdfRenderService:
    """Prints literal HTML markup to PDF in a per-call browser session."""

    def __init__(self, config: Optional[Dict[str, Any]] = None, session_factory: Optional[SessionFactory] = None):
        renderer_config = config or {}
        self.page_format = renderer_config.get("pdf_format", "A4")
        self.print_background = bool(renderer_config.get("print_background", True))
        self.session_factory = session_factory or session_factory_for(renderer_config)

    def render(self, html: str) -> bytes:
        with self.session_factory() as session:
            try:
                page = session.new_page()
                page.set_content(html, wait_until="load")
                pdf = page.pdf(format=self.page_format, print_background=self.print_background)
            except PlaywrightError as e:
                raise UpstreamRenderingError("PDF rendering failed", str(e)) from e

        logger.debug("Rendered PDF of %d bytes.", len(pdf))
        return pdf
