# src/docserver/core/utils/path_utils.py
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class PathUtils:
    """
    A central utility for reliably retrieving important package paths.
    """

    @staticmethod
    def get_server_package_root() -> Path:
        """Returns the directory of the installed 'docserver' package."""
        return Path(__file__).resolve().parents[2]

    @staticmethod
    def get_settings_file() -> Path:
        return PathUtils.get_server_package_root() / "settings.json"

    @staticmethod
    def get_default_output_dir(input_dir: Path) -> Path:
        """
        Returns the default output directory for a batch run.
        (e.g., /path/to/docs/converted)
        """
        return input_dir / "converted"
