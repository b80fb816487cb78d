import os
from datetime import timedelta

import click
from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_pymongo import PyMongo
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge
from werkzeug.middleware.proxy_fix import ProxyFix

from .auth import build_admin_guard, register_admin_routes
from .catalog import register_background_image_routes, register_showcase_routes
from .customization_routes import register_customization_routes
from .defaults import DEFAULT_CUSTOMIZATION_OPTIONS
from .errors import ApiError
from .media import CloudinaryImageStore, configure_cloudinary

load_dotenv()


def env_flag(name: str, default: str) -> bool:
    return (os.getenv(name, default) or default).strip().lower() not in (
        "0",
        "false",
        "no",
        "off",
    )


def create_app(test_config=None, db=None, image_store=None) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)

    trusted_proxy_hops_raw = os.getenv("TRUSTED_PROXY_HOPS", "1")
    try:
        trusted_proxy_hops = max(0, int(trusted_proxy_hops_raw))
    except (TypeError, ValueError):
        trusted_proxy_hops = 1
    if trusted_proxy_hops:
        app.wsgi_app = ProxyFix(
            app.wsgi_app,
            x_for=trusted_proxy_hops,
            x_proto=trusted_proxy_hops,
            x_host=trusted_proxy_hops,
            x_port=trusted_proxy_hops,
        )

    # --- Configuration ---
    app.config["JWT_SECRET_KEY"] = (os.getenv("JWT_SECRET_KEY") or "").strip()
    app.config["JWT_ACCESS_TOKEN_EXPIRES"] = timedelta(hours=24)
    app.config["JWT_ERROR_MESSAGE_KEY"] = "message"
    app.config["MONGO_URI"] = os.getenv(
        "MONGO_URI", "mongodb://localhost:27017/neonflora"
    )
    max_upload_mb = int(os.getenv("MAX_UPLOAD_SIZE_MB", "10"))
    app.config["MAX_CONTENT_LENGTH"] = max_upload_mb * 1024 * 1024
    app.config["UPLOAD_STAGING_FOLDER"] = os.getenv(
        "UPLOAD_STAGING_FOLDER", os.path.join(app.root_path, "uploads")
    )
    app.config["CUSTOMIZATION_OPTIONS_UPSERT"] = env_flag(
        "CUSTOMIZATION_OPTIONS_UPSERT", "1"
    )

    if test_config:
        app.config.update(test_config)

    if not app.config.get("JWT_SECRET_KEY"):
        raise RuntimeError(
            "JWT_SECRET_KEY is not configured. Refusing to start without a signing secret."
        )

    os.makedirs(app.config["UPLOAD_STAGING_FOLDER"], exist_ok=True)
    app.logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())

    # --- Initialize extensions ---
    allowed_origins = [
        "http://localhost:5173",
        "http://localhost:4173",
        "http://localhost:3000",
        os.getenv("FRONTEND_URL", "").strip(),
    ]
    cors_extra = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if cors_extra:
        for origin in cors_extra.split(","):
            trimmed = origin.strip()
            if trimmed:
                allowed_origins.append(trimmed)
    allowed_origins = [origin for origin in allowed_origins if origin]

    CORS(app, supports_credentials=True, origins=allowed_origins or "*")

    jwt = JWTManager(app)

    @jwt.unauthorized_loader
    def missing_token_response(reason):
        return jsonify({"message": "No token provided"}), 401

    @jwt.invalid_token_loader
    def invalid_token_response(reason):
        return jsonify({"message": "Invalid token"}), 401

    @jwt.expired_token_loader
    def expired_token_response(jwt_header, jwt_payload):
        return jsonify({"message": "Token has expired"}), 401

    if db is None:
        db = PyMongo(app).db
    if image_store is None:
        image_store = CloudinaryImageStore(app.logger, configure_cloudinary(app))

    require_admin_user = build_admin_guard(db)

    # --- ROUTES ---
    register_admin_routes(app, db)
    register_background_image_routes(app, db, image_store, require_admin_user)
    register_showcase_routes(
        app,
        db,
        image_store,
        require_admin_user,
        url_prefix="/api/best-sellers",
        collection_name="best_sellers",
        folder="bestseller-products",
        label="best-seller",
    )
    register_showcase_routes(
        app,
        db,
        image_store,
        require_admin_user,
        url_prefix="/api/featured-products",
        collection_name="featured_products",
        folder="featured-products",
        label="featured product",
    )
    customization_service = register_customization_routes(
        app, db, image_store, require_admin_user
    )

    @app.route("/health")
    def health():
        return {"status": "ok"}, 200

    # --- Errors ---
    @app.errorhandler(ApiError)
    def handle_api_error(error: ApiError):
        if error.status_code >= 500:
            app.logger.error("Request failed: %s", error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(RequestEntityTooLarge)
    def handle_upload_too_large(error):
        return (
            jsonify(
                {"message": f"File size is too large. Maximum size is {max_upload_mb}MB."}
            ),
            400,
        )

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        return jsonify({"message": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        if isinstance(error, HTTPException):
            return handle_http_error(error)
        app.logger.exception("Unhandled error: %s", error)
        return jsonify({"message": "Internal server error"}), 500

    # --- CLI ---
    @app.cli.command("seed-customization-options")
    def seed_customization_options():
        """Create the default neon and floro option sets if missing."""
        created = customization_service.ensure_defaults(DEFAULT_CUSTOMIZATION_OPTIONS)
        if created:
            click.echo(f"Initialized customization options for: {', '.join(created)}")
        else:
            click.echo("Customization options already exist.")

    return app


if __name__ == "__main__":
    application = create_app()
    port = int(os.environ.get("PORT", 5000))
    application.run(host="0.0.0.0", port=port)
