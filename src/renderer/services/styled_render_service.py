# src/renderer/services/styled_render_service.py
import html
import logging
from typing import Any, Dict, List, Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from reconciler.model import StyledFragment
from renderer.errors import UpstreamRenderingError
from renderer.managers.browser_session_manager import SessionFactory, session_factory_for
from renderer.utils.payload_utils import encode_base64

logger = logging.getLogger(__name__)

DEFAULT_SCRIPTS = [
    "https://unpkg.com/jszip@3.10.1/dist/jszip.min.js",
    "https://unpkg.com/docx-preview@0.3.2/dist/docx-preview.min.js",
]

PAGE_SHELL = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
{scripts}
</head>
<body>
<div id="docx-styles"></div>
<div id="docx-container"></div>
</body>
</html>"""

# Starts rendering without awaiting it; completion is signalled through window.__renderDone.
START_RENDER_JS = """
(payload) => {
  window.__renderDone = false;
  window.__renderError = null;
  (async () => {
    try {
      const bytes = Uint8Array.from(atob(payload), c => c.charCodeAt(0));
      await docx.renderAsync(
        new Blob([bytes]),
        document.getElementById('docx-container'),
        document.getElementById('docx-styles'),
        { inWrapper: false, ignoreWidth: true, ignoreHeight: true, breakPages: false, experimental: true }
      );
    } catch (e) {
      window.__renderError = String(e && e.message ? e.message : e);
    } finally {
      window.__renderDone = true;
    }
  })();
}
"""

COLLECT_JS = """
() => {
  const container = document.getElementById('docx-container');
  const sheets = Array.from(document.querySelectorAll('#docx-styles style'));
  container.querySelectorAll('style').forEach(s => { sheets.push(s); s.remove(); });
  return { html: container.innerHTML, css: sheets.map(s => s.textContent).join('\\n') };
}
"""


class StyledRenderService:
    """
    Renders a Word document in headless Chromium through docx-preview.
    High style fidelity; text runs, and with them placeholders, may be split.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, session_factory: Optional[SessionFactory] = None):
        renderer_config = config or {}
        self.scripts: List[str] = list(renderer_config.get("scripts") or DEFAULT_SCRIPTS)
        self.session_factory = session_factory or session_factory_for(renderer_config)

    def page_shell(self) -> str:
        tags = "\n".join(f'<script src="{html.escape(src, quote=True)}"></script>' for src in self.scripts)
        return PAGE_SHELL.format(scripts=tags)

    def render(self, document: bytes) -> StyledFragment:
        with self.session_factory() as session:
            try:
                page = session.new_page()
                page.set_content(self.page_shell(), wait_until="load")
                page.evaluate(START_RENDER_JS, encode_base64(document))
                page.wait_for_function("() => window.__renderDone === true", timeout=session.timeout_ms)

                error = page.evaluate("() => window.__renderError")
                if error:
                    raise UpstreamRenderingError("Styled rendering failed", error)

                collected = page.evaluate(COLLECT_JS)
            except PlaywrightTimeoutError as e:
                raise UpstreamRenderingError(
                    "Styled rendering timed out", f"no completion signal within {session.timeout_ms} ms"
                ) from e
            except PlaywrightError as e:
                raise UpstreamRenderingError("Styled rendering failed", str(e)) from e

        fragment = StyledFragment(html=collected.get("html") or "", style_sheet=collected.get("css") or "")
        logger.debug(
            "Styled rendering produced %d characters of HTML and %d of CSS.",
            len(fragment.html), len(fragment.style_sheet)
        )
        return fragment
