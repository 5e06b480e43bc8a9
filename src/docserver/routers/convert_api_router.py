import logging
from typing import Iterable, Optional

from flask import Blueprint, Response, current_app, jsonify, request
from werkzeug.exceptions import RequestEntityTooLarge

from reconciler.model import ConversionEnvelope
from reconciler.services.document_assembly_service import OutputFormat, package_output
from renderer.errors import ConversionError, InputError
from renderer.utils.payload_utils import encode_base64

logger = logging.getLogger(__name__)

convert_api_router = Blueprint('convert_api_router', __name__)


# --- HELPER FUNCTIONS ---

def get_convert_controller():
    """Retrieves the convert controller from the Flask application context."""
    controller = current_app.config.get('CONVERT_CONTROLLER')
    if not controller:
        raise RuntimeError("ConvertController is not set in app.config['CONVERT_CONTROLLER']")
    return controller


def read_json_object() -> Optional[dict]:
    """The JSON body as a dict. An absent or unparsable body is empty; None means JSON that is not an object."""
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    return payload if isinstance(payload, dict) else None


def resolve_output_format(payload: dict, allowed: Iterable[OutputFormat], default: OutputFormat) -> OutputFormat:
    """Reads the output selector from the body, then the query string."""
    raw = payload.get('format') or request.args.get('format') or default.value
    try:
        output_format = OutputFormat(str(raw).strip().lower())
    except ValueError:
        output_format = None
    if output_format not in allowed:
        choices = ", ".join(f.value for f in allowed)
        raise InputError("Unsupported output format", f"'{raw}' (expected one of: {choices})")
    return output_format


def error_response(summary: str, details=None, status: int = 500):
    envelope = ConversionEnvelope(success=False, error=summary, details=details)
    return jsonify(envelope.to_dict()), status


# --- API ROUTES ---

@convert_api_router.route('/generate-pdf', methods=['POST'])
def generate_pdf():
    """Renders literal HTML to PDF. Returns the binary, or base64 inside the envelope."""
    payload = read_json_object()
    if payload is None:
        return error_response("Invalid request body", "JSON object expected", 400)
    try:
        output_format = resolve_output_format(payload, (OutputFormat.PDF, OutputFormat.JSON), OutputFormat.PDF)
        pdf = get_convert_controller().generate_pdf(payload.get('html'))
    except InputError as e:
        return error_response(e.summary, e.details, 400)
    except Exception as e:
        logger.error("PDF error: %s", e, exc_info=True)
        return error_response("Failed to generate PDF", getattr(e, 'details', None) or str(e))

    if output_format == OutputFormat.JSON:
        return jsonify(ConversionEnvelope(success=True, pdf=encode_base64(pdf)).to_dict())

    return Response(pdf, mimetype='application/pdf', headers={"Content-Length": str(len(pdf))})


@convert_api_router.route('/convert-docx', methods=['POST'])
def convert_docx():
    """
    Converts a base64-encoded Word document to a self-contained HTML document,
    keeping merge fields such as '{{Customer.Name}}' intact.
    """
    payload = read_json_object()
    if payload is None:
        return error_response("Invalid request body", "JSON object expected", 400)
    try:
        output_format = resolve_output_format(payload, (OutputFormat.HTML, OutputFormat.JSON), OutputFormat.HTML)
        converted = get_convert_controller().convert_document(payload.get('document') or payload.get('docx'))
    except InputError as e:
        return error_response(e.summary, e.details, 400)
    except ConversionError as e:
        logger.error("Conversion error: %s", e)
        return error_response("Failed to convert document", e.details or e.summary)
    except Exception as e:
        logger.error("Conversion error: %s", e, exc_info=True)
        return error_response("Failed to convert document", str(e))

    logger.info(
        "Converted document via %s with %d tokens.",
        converted.reconciliation.state.value, converted.token_count
    )
    body = package_output(converted.html, output_format)
    if isinstance(body, dict):
        return jsonify(body)
    return Response(body, mimetype='text/html')


@convert_api_router.app_errorhandler(RequestEntityTooLarge)
def request_too_large(e):
    limit = current_app.config.get('MAX_CONTENT_LENGTH')
    return error_response("Request body too large", f"limit is {limit} bytes", 413)
