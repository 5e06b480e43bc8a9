# src/reconciler/services/document_assembly_service.py
import logging
import re
from enum import Enum
from typing import Union

from reconciler.model import ConversionEnvelope

logger = logging.getLogger(__name__)

DOCUMENT_ROOT_RE = re.compile(r"^\s*(?:<!doctype\b|<html\b)", re.IGNORECASE)
HEAD_CLOSE_RE = re.compile(r"</head\s*>", re.IGNORECASE)
HTML_OPEN_RE = re.compile(r"<html\b[^>]*>", re.IGNORECASE)

DOCUMENT_SHELL = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{title}</title>
{style_block}
</head>
<body>
{body}
</body>
</html>"""


class OutputFormat(str, Enum):
    HTML = "html"
    JSON = "json"
    PDF = "pdf"


def _style_block(style_sheet: str) -> str:
    style_sheet = (style_sheet or "").strip()
    return f"<style>\n{style_sheet}\n</style>" if style_sheet else ""


def assemble_document(fragment: str, style_sheet: str = "", title: str = "Document") -> str:
    """
    Wraps a reconciled fragment in a complete, self-contained HTML document.

    A fragment that already is a document gets the style sheet injected into its
    head instead of being wrapped a second time.
    """
    fragment = fragment or ""
    style_block = _style_block(style_sheet)

    if DOCUMENT_ROOT_RE.match(fragment):
        if not style_block:
            return fragment
        if HEAD_CLOSE_RE.search(fragment):
            return HEAD_CLOSE_RE.sub(lambda m: f"{style_block}\n{m.group(0)}", fragment, count=1)
        html_open = HTML_OPEN_RE.search(fragment)
        if html_open:
            end = html_open.end()
            return f"{fragment[:end]}\n<head>\n{style_block}\n</head>{fragment[end:]}"
        # A bare doctype with no html element; put the sheet right after it.
        logger.debug("Document root without <html> element; inserting style after doctype.")
        doctype_end = fragment.find(">") + 1
        return f"{fragment[:doctype_end]}\n{style_block}{fragment[doctype_end:]}"

    return DOCUMENT_SHELL.format(title=title, style_block=style_block, body=fragment)


def package_output(document: str, output_format: OutputFormat) -> Union[str, dict]:
    """Returns raw markup, or the JSON envelope dict for the `json` selector."""
    if output_format == OutputFormat.JSON:
        return ConversionEnvelope(success=True, html=document).to_dict()
    return document
