from flask import Flask
from flasgger import Swagger
from flask_cors import CORS
import logging

from .config import DEV_JWT_SECRET, get_config
from .errors import register_error_handlers
from models import storage  # DBStorage singleton (scoped_session)
from services.auth_service import AuthService
from utils.security import TokenCodec, configure_hasher

logger = logging.getLogger(__name__)

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0.0",
    "info": {
        "title": "User Auth API",
        "version": "1.0.0",
        "description": "Registration, login, refresh-token rotation, logout and own-profile access.",
    },
    "basePath": "/",  # blueprints are mounted under /api/v1
    "schemes": ["http"],
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


def create_app(config_name: str | None = None, db_storage=None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    The signing secret and hasher work factor are fixed here, once, and the
    AuthService built from them is shared by every request.
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    if app.config["APP_ENV"] in ("prod", "production") and app.config["JWT_SECRET"] == DEV_JWT_SECRET:
        raise RuntimeError("JWT_SECRET must be set in production")

    # Cross-Origin Resource Sharing: enable for dev, configurable for prod
    CORS(app, resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}})

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)

    configure_hasher(
        time_cost=app.config["ARGON2_TIME_COST"],
        memory_cost=app.config["ARGON2_MEMORY_COST"],
        parallelism=app.config["ARGON2_PARALLELISM"],
    )
    db = db_storage or storage
    codec = TokenCodec.from_config(app.config)
    app.extensions["token_codec"] = codec
    app.extensions["auth_service"] = AuthService(db, codec)

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .users import bp as users_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")
    app.register_blueprint(users_bp, url_prefix="/api/v1")

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        # calls scoped_session.remove(), preventing connection leaks
        db.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to User Auth API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    logger.debug("App created with %r", codec)
    return app
