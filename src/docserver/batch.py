"""
Batch conversion of a directory of Word documents.

Runs every .docx through the same pipeline as the HTTP service and writes
the result next to it as HTML (or PDF, by printing the reconciled HTML).

Usage examples:
    docbatch --input-dir templates/
    docbatch --input-dir templates/ --output-dir out/ --format pdf --overwrite
"""

import argparse
import base64
import logging
import sys
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from docserver.core.managers.config_manager import config_manager
from docserver.core.utils.configure_logging import configure_from_settings
from docserver.core.utils.path_utils import PathUtils
from renderer.controllers.convert_controller import ConvertController

logger = logging.getLogger(__name__)


def find_documents(input_dir: Path) -> List[Path]:
    """Returns the .docx files of a directory, skipping Word lock files ('~$...')."""
    return sorted(
        p for p in input_dir.glob("*.docx")
        if p.is_file() and not p.name.startswith("~$")
    )


def convert_file(controller: ConvertController, source: Path, target: Path, output_format: str) -> int:
    """Converts one file and returns the number of preserved tokens."""
    encoded = base64.b64encode(source.read_bytes()).decode("ascii")
    converted = controller.convert_document(encoded)
    if output_format == "pdf":
        target.write_bytes(controller.generate_pdf(converted.html))
    else:
        target.write_text(converted.html, encoding="utf-8")
    return converted.token_count


def run_batch(
        controller: ConvertController,
        input_dir: Path,
        output_dir: Path,
        output_format: str = "html",
        overwrite: bool = False,
) -> int:
    """Converts all documents in input_dir. Returns the number of failed files."""
    documents = find_documents(input_dir)
    if not documents:
        logger.warning("No .docx files found in %s", input_dir)
        return 0

    output_dir.mkdir(parents=True, exist_ok=True)
    failures = 0
    for source in tqdm(documents, desc="Converting", unit="doc"):
        target = output_dir / f"{source.stem}.{output_format}"
        if target.exists() and not overwrite:
            logger.info("Skipping %s (exists, use --overwrite).", target.name)
            continue
        try:
            tokens = convert_file(controller, source, target, output_format)
            logger.info("%s -> %s (%d tokens)", source.name, target.name, tokens)
        except Exception as e:
            failures += 1
            logger.error("Failed to convert %s: %s", source.name, e)

    return failures


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Convert a directory of Word documents to HTML or PDF")
    parser.add_argument("--input-dir", type=Path, required=True, help="Directory containing .docx files")
    parser.add_argument("--output-dir", type=Path, default=None, help="Target directory (default: <input>/converted)")
    parser.add_argument("--format", choices=("html", "pdf"), default="html", help="Output format")
    parser.add_argument("--overwrite", action="store_true", help="Replace existing output files")
    args = parser.parse_args(argv)

    configure_from_settings(config_manager)

    input_dir: Path = args.input_dir
    if not input_dir.is_dir():
        logger.error("Input directory does not exist: %s", input_dir)
        return 2

    output_dir = args.output_dir or PathUtils.get_default_output_dir(input_dir)
    controller = ConvertController(config_manager.get_all())
    failures = run_batch(controller, input_dir, output_dir, args.format, args.overwrite)
    return 1 if failures else 0


if __name__ == '__main__':
    sys.exit(main())
