from flask import Blueprint

# Blueprint for the liveness endpoint
status_router = Blueprint('status_router', __name__)


@status_router.route('/')
def index():
    """Plain-text liveness check."""
    return "HTML to PDF Service is running", 200, {"Content-Type": "text/plain; charset=utf-8"}
