"""
Merge-field preserving document service.
Main entry point for the Flask-based conversion API.
"""

import argparse
import logging
import os
from typing import List, Optional, Tuple

from flask import Flask
from flask_cors import CORS

from docserver.core.managers.config_manager import ConfigManager, config_manager
from docserver.core.utils.configure_logging import configure_from_settings
from docserver.routers.convert_api_router import convert_api_router
from docserver.routers.status_router import status_router
from renderer.controllers.convert_controller import ConvertController

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONTENT_LENGTH = 20 * 1024 * 1024
DEFAULT_PORT = 10000


def create_app(
        config: Optional[ConfigManager] = None,
        convert_controller: Optional[ConvertController] = None
) -> Flask:
    """
    Application factory wiring the conversion controller into the Flask app.
    """
    config = config or config_manager
    flask_app = Flask(__name__)
    CORS(flask_app)

    server_config = config.get_section("server")
    flask_app.config['MAX_CONTENT_LENGTH'] = int(
        server_config.get("max_content_length") or DEFAULT_MAX_CONTENT_LENGTH
    )

    # Controllers reach the Blueprints through app.config
    flask_app.config['CONVERT_CONTROLLER'] = convert_controller or ConvertController(config.get_all())

    flask_app.register_blueprint(status_router)
    flask_app.register_blueprint(convert_api_router)

    return flask_app


def resolve_bind_address(args: argparse.Namespace, config: ConfigManager) -> Tuple[str, int]:
    """
    Host and port to listen on. The command line wins, then the PORT variable
    that hosting platforms set, then the 'server' section.
    """
    server_config = config.get_section("server")
    host = args.host or server_config.get("host") or "0.0.0.0"
    port = args.port or os.environ.get("PORT") or server_config.get("port") or DEFAULT_PORT
    return host, int(port)


def main(argv: Optional[List[str]] = None):
    """
    Parses arguments and starts the server.
    """
    parser = argparse.ArgumentParser(description="Merge-field preserving HTML/PDF conversion service")
    parser.add_argument("--host", type=str, default=None, help="Host interface to bind to")
    parser.add_argument("--port", type=int, default=None, help="Port to bind the server to")
    parser.add_argument("--debug", action="store_true", help="Enable Flask debug mode and DEBUG logging")
    args = parser.parse_args(argv)

    if args.debug:
        config_manager.set_nested("debug.level", "DEBUG")
    configure_from_settings(config_manager)

    host, port = resolve_bind_address(args, config_manager)

    app = create_app()
    logger.info("Server running on %s:%s", host, port)
    for rule in app.url_map.iter_rules():
        if rule.endpoint != 'static':
            logger.debug("Route: %s %s", ",".join(sorted(rule.methods - {"HEAD", "OPTIONS"})), rule)

    # use_reloader=False keeps a single process; each request owns its browser
    app.run(debug=args.debug, host=host, port=port, use_reloader=False)


if __name__ == '__main__':
    main()
