import logging

from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from devdocs import __version__
from devdocs.models import storage
from devdocs.services.docgen import DocGenerator
from devdocs.utils.mailer import mailer_from_config
from devdocs.utils.ratelimit import RateLimiter
from .config import get_config, check_secrets
from .errors import register_error_handlers

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "DevDocs API",
        "version": __version__,
        "description": "Generate Markdown documentation for code snippets; cookie-based session refresh.",
    },
    "basePath": "/",
    "schemes": ["http", "https"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
        }
    }
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: True,   # include all endpoints
            "model_filter": lambda tag: True,   # include all models
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}


def create_app(config_name: str | None = None, overrides: dict | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    `overrides` is applied on top of the selected config class (handy in tests).
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    if overrides:
        app.config.update(overrides)
    check_secrets(app.config)

    logging.getLogger("devdocs").setLevel(app.config["LOG_LEVEL"])

    # The refresh cookie only crosses origins with credentials enabled
    CORS(
        app,
        resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}},
        supports_credentials=True,
        allow_headers=["Content-Type", "Authorization"],
        methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    )

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Global error handlers returning the uniform error envelope
    register_error_handlers(app)

    # Database: bind the shared DBStorage to this app's database
    storage.reload(app.config["DATABASE_URL"], echo=app.config["SQL_ECHO"])

    # Collaborators the blueprints reach through app.extensions (swappable in tests)
    app.extensions["mailer"] = mailer_from_config(app.config)
    app.extensions["docgen"] = DocGenerator.from_config(app.config)
    app.extensions["rate_limiter"] = RateLimiter()

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .snippets import bp as snippets_bp

    app.register_blueprint(health_bp, url_prefix="/api")
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(snippets_bp, url_prefix="/api/snippets")

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        # scoped_session.remove(), preventing connection leaks
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to DevDocs API",
            "docs": "/apidocs/",
            "health": "/api/health",
        }, 200

    return app
