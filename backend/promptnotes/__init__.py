import logging

from flask import Flask
from flask_cors import CORS
from pydantic import ValidationError as PydanticValidationError
from werkzeug.exceptions import HTTPException

from .config import Config
from .errors import NotesError
from .routing import FunctionPathMiddleware, RecordIdConverter

logger = logging.getLogger(__name__)


def create_app(testing: bool = False, services=None):
    """
    Build the Flask app.

    Args:
        testing: Skip production config validation and service wiring
        services: Prebuilt Services container (tests inject one backed by fakeredis)
    """
    logging.basicConfig(level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO))

    app = Flask(__name__)
    app.config["TESTING"] = testing
    app.url_map.converters["id"] = RecordIdConverter

    if services is None:
        if not testing:
            Config.validate()
        from .services.container import create_services

        services = create_services()
    app.extensions["services"] = services

    # In development, reflect any origin for easier testing
    origins = "*" if Config.FLASK_ENV == "development" else Config.allowed_origins()
    CORS(
        app,
        origins=origins,
        supports_credentials=True,
        allow_headers=["Content-Type"],
        methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    )

    from .auth_routes import bp as auth_bp
    from .routes import bp as api_bp
    from .routes import note_types_bp, notes_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(notes_bp)
    app.register_blueprint(note_types_bp)
    app.register_blueprint(api_bp)

    _register_error_handlers(app)

    app.wsgi_app = FunctionPathMiddleware(app.wsgi_app, Config.FUNCTION_PATH_PREFIXES)

    return app


def _register_error_handlers(app: Flask) -> None:
    from .auth import clear_session_cookie
    from .responses import failure

    @app.errorhandler(NotesError)
    def handle_notes_error(e: NotesError):
        response, status = failure(e.message, e.status_code)
        if e.clear_session:
            clear_session_cookie(response)
        return response, status

    @app.errorhandler(PydanticValidationError)
    def handle_invalid_body(e: PydanticValidationError):
        return failure("Invalid request body", 400)

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        if e.code == 404:
            return failure("Route not found", 404)
        return failure(e.description or e.name, e.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.exception("Unhandled error on request")
        return failure(NotesError.default_message, 500)
