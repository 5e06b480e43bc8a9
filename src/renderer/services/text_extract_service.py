# src/renderer/services/text_extract_service.py
import io
import logging
from typing import Optional

import mammoth

from renderer.errors import UpstreamRenderingError

logger = logging.getLogger(__name__)

# Coarse mapping on top of mammoth's defaults: headings, bold and italic come for free.
DEFAULT_STYLE_MAP = """
p[style-name='Title'] => h1.title:fresh
p[style-name='Subtitle'] => h2.subtitle:fresh
r[style-name='Strong'] => strong
u => u
strike => s
"""


class TextExtractService:
    """
    Converts a Word document into an HTML fragment with mammoth.
    High token fidelity: runs of text are merged, so placeholders come out intact.
    """

    def __init__(self, style_map: Optional[str] = None):
        self.style_map = style_map if style_map is not None else DEFAULT_STYLE_MAP

    def extract(self, document: bytes) -> str:
        try:
            result = mammoth.convert_to_html(io.BytesIO(document), style_map=self.style_map)
        except Exception as e:
            raise UpstreamRenderingError("Text extraction failed", str(e)) from e

        for message in result.messages:
            logger.debug("mammoth %s: %s", message.type, message.message)
        logger.debug("Extracted %d characters of HTML.", len(result.value))
        return result.value
