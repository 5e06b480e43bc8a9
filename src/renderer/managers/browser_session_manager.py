# src/renderer/managers/browser_session_manager.py
import logging
from typing import Any, Callable, Dict, List, Optional

from playwright.sync_api import Browser, Page, Playwright, sync_playwright
from playwright.sync_api import Error as PlaywrightError

from renderer.errors import ResourceError, UpstreamRenderingError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 60000


class BrowserSession:
    """
    One headless Chromium process, scoped to a single request.

    Use as a context manager: the browser and the playwright driver are released
    on every exit path. A failure during release is logged and never replaces
    the outcome of the work done inside the block.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        renderer_config = config or {}
        self.timeout_ms = int(renderer_config.get("timeout_ms", DEFAULT_TIMEOUT_MS))
        self.headless = bool(renderer_config.get("headless", True))
        self.launch_args: List[str] = list(renderer_config.get("launch_args", []))

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    def __enter__(self) -> "BrowserSession":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    @property
    def is_open(self) -> bool:
        return self._browser is not None

    def open(self) -> None:
        if self.is_open:
            return
        try:
            self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(
                headless=self.headless, args=self.launch_args
            )
            logger.debug("BrowserSession: Chromium launched (headless=%s).", self.headless)
        except PlaywrightError as e:
            self.close()
            raise UpstreamRenderingError("Could not launch browser", str(e)) from e

    def new_page(self) -> Page:
        if not self._browser:
            raise RuntimeError("BrowserSession is not open")
        page = self._browser.new_page()
        page.set_default_timeout(self.timeout_ms)
        return page

    def close(self) -> None:
        self._release("browser", self._browser, lambda b: b.close())
        self._browser = None
        self._release("playwright driver", self._playwright, lambda p: p.stop())
        self._playwright = None

    @staticmethod
    def _release(name: str, resource: Any, closer: Callable[[Any], None]) -> None:
        if resource is None:
            return
        try:
            closer(resource)
            logger.debug("BrowserSession: %s closed.", name)
        except Exception as e:
            error = ResourceError(f"Failed to close {name}", str(e))
            logger.error("%s", error, exc_info=True)


SessionFactory = Callable[[], BrowserSession]


def session_factory_for(config: Optional[Dict[str, Any]] = None) -> SessionFactory:
    """Returns a factory creating fresh, unopened sessions with the given renderer config."""
    return lambda: BrowserSession(config)
