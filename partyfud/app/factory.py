from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from flask import Flask, g, jsonify, send_from_directory
from werkzeug.exceptions import HTTPException

from partyfud.app.config import Config
from partyfud.app.extensions import db, migrate, cors
from partyfud.app.common.errors import ApiError
from partyfud.app.common.request_context import init_request_id, attach_request_id
from partyfud.app.api.register import register_api_blueprints
from partyfud.app.cli import cli_bp


def create_app(config_object: type[Config] = Config) -> Flask:
    load_dotenv()

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object)
    app.config["MAX_CONTENT_LENGTH"] = (app.config.get("MAX_UPLOAD_MB", 5) + 1) * 1024 * 1024

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    # Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    cors.init_app(
        app,
        resources={r"/api/*": {"origins": app.config.get("CORS_ORIGINS") or "*"}},
        supports_credentials=True,
    )

    if not app.config.get("TESTING"):
        os.makedirs(app.config["UPLOAD_FOLDER"], exist_ok=True)

    @app.before_request
    def _before_request():
        init_request_id()

    @app.after_request
    def _after_request(response):
        return attach_request_id(response)

    @app.get("/health")
    def health():
        return {"status": "ok"}, 200

    @app.get("/uploads/<path:name>")
    def uploaded_file(name: str):
        return send_from_directory(app.config["UPLOAD_FOLDER"], name)

    register_api_blueprints(app)

    # CLI (flask seed)
    app.register_blueprint(cli_bp)

    @app.errorhandler(ApiError)
    def handle_api_error(err: ApiError):
        return jsonify(err.to_dict(getattr(g, "request_id", None))), err.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        payload = {
            "error": {
                "code": "http_error",
                "message": err.description,
                "details": {"name": err.name},
                "request_id": getattr(g, "request_id", None),
            }
        }
        return jsonify(payload), err.code or 500

    @app.errorhandler(Exception)
    def handle_unexpected(err: Exception):
        app.logger.exception("Unhandled exception")
        payload = {
            "error": {
                "code": "internal_error",
                "message": "Internal server error",
                "details": {},
                "request_id": getattr(g, "request_id", None),
            }
        }
        return jsonify(payload), 500

    return app
