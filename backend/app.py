"""
FLASK APP ENTRY POINT - TOTP BACKEND SERVER
===========================================

Sets up the Flask app, enables CORS for the dashboard frontend and registers
the TOTP blueprint.

Configuration (environment):
- SECRET_KEY       Flask secret key
- DASHOTP_ISSUER   issuer label used in provisioning URIs (default "Dashboard")
- DASHOTP_PERIOD   TOTP step in seconds (default 30)
- DASHOTP_WINDOW   verification window in steps (default 2)
"""
import logging
import os

from flask import Flask, jsonify
from flask_cors import CORS

from totp_core import DEFAULT_TIME_STEP, DEFAULT_WINDOW

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {value!r}") from None


def load_config() -> dict:
    return {
        "SECRET_KEY": os.getenv("SECRET_KEY", "dashotp-dev-secret-key"),
        "DASHOTP_ISSUER": os.getenv("DASHOTP_ISSUER", "Dashboard"),
        "DASHOTP_PERIOD": _env_int("DASHOTP_PERIOD", DEFAULT_TIME_STEP),
        "DASHOTP_WINDOW": _env_int("DASHOTP_WINDOW", DEFAULT_WINDOW),
    }


def create_app(config: dict = None) -> Flask:
    """
    Build the Flask app.

    `config` overrides values read from the environment (tests use this).
    """
    app = Flask(__name__)
    app.config.update(load_config())
    if config:
        app.config.update(config)

    # dashboard frontend is served from another origin
    CORS(app)

    from backend.routes import totp_bp

    app.register_blueprint(totp_bp)

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok"})

    logger.debug(
        "TOTP backend ready (period=%ss, window=%s)",
        app.config["DASHOTP_PERIOD"],
        app.config["DASHOTP_WINDOW"],
    )
    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    create_app().run(debug=True, host="0.0.0.0", port=5000)
