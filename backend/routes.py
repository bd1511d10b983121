"""
TOTP BACKEND API ROUTES - FLASK BLUEPRINT

Stateless JSON endpoints over totp_core. The secret travels in the request
body; nothing is stored server-side (persistence and QR rendering belong to
the dashboard).

EXAMPLES:
curl -X POST http://localhost:5000/api/totp/secret -H "Content-Type: application/json" -d "{}"
curl -X POST http://localhost:5000/api/totp/verify -H "Content-Type: application/json" \
     -d '{"secret": "JBSWY3DPEHPK3PXP", "code": "123456"}'
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from totp_core import (
    SECRET_LENGTH,
    TotpError,
    VerificationOutcome,
    build_uri,
    generate,
    generate_secret,
    remaining_seconds,
    verify_detailed,
)

logger = logging.getLogger(__name__)

totp_bp = Blueprint("totp", __name__, url_prefix="/api/totp")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _required(data: dict, *fields):
    missing = [f for f in fields if f not in data or data[f] is None or data[f] == ""]
    if missing:
        raise ValueError(f"Missing required field(s): {', '.join(missing)}")
    wrong = [f for f in fields if not isinstance(data[f], str)]
    if wrong:
        raise ValueError(f"Field(s) must be strings: {', '.join(wrong)}")
    return [data[f] for f in fields]


@totp_bp.errorhandler(ValueError)
def handle_value_error(exc):
    # DecodeError is a ValueError too
    logger.info("Rejected TOTP request: %s", exc)
    return jsonify({"error": str(exc)}), 400


@totp_bp.errorhandler(TotpError)
def handle_totp_error(exc):
    logger.error("TOTP computation failed: %s", exc)
    return jsonify({"error": str(exc)}), 400


@totp_bp.route("/secret", methods=["POST"])
def create_secret():
    """
    Generate a fresh secret.

    Body (optional): {"length": 32}
    """
    data = _json_body()
    length = data.get("length", SECRET_LENGTH)
    if not isinstance(length, int) or isinstance(length, bool):
        raise ValueError("length must be an integer")
    secret = generate_secret(length)
    logger.info("Generated secret %s... (%d chars)", secret[:4], len(secret))
    return jsonify({"secret": secret})


@totp_bp.route("/code", methods=["POST"])
def current_code():
    """
    Current code for a secret.

    Body: {"secret": "JBSWY3DPEHPK3PXP"}
    """
    (secret,) = _required(_json_body(), "secret")
    period = current_app.config["DASHOTP_PERIOD"]
    code = generate(secret, step=period)
    return jsonify({"code": code, "remaining": remaining_seconds(step=period), "period": period})


@totp_bp.route("/verify", methods=["POST"])
def verify_code():
    """
    Verify a submitted code.

    Body: {"secret": "...", "code": "123456", "window": 2}
    window may narrow, never widen, the configured DASHOTP_WINDOW.
    """
    data = _json_body()
    secret, code = _required(data, "secret", "code")
    window = data.get("window", current_app.config["DASHOTP_WINDOW"])
    if not isinstance(window, int) or isinstance(window, bool):
        raise ValueError("window must be an integer")
    max_window = current_app.config["DASHOTP_WINDOW"]
    if window > max_window:
        raise ValueError(f"window must not exceed {max_window}")
    outcome = verify_detailed(code, secret, window=window, step=current_app.config["DASHOTP_PERIOD"])
    if outcome is VerificationOutcome.UNAVAILABLE:
        logger.warning("TOTP verification could not be performed")
    return jsonify({"valid": outcome is VerificationOutcome.MATCH, "outcome": outcome.value})


@totp_bp.route("/uri", methods=["POST"])
def provisioning_uri():
    """
    otpauth:// URI for an authenticator app.

    Body: {"secret": "...", "account": "alice@example.com", "issuer": "Dashboard"}
    issuer defaults to DASHOTP_ISSUER.
    """
    data = _json_body()
    secret, account = _required(data, "secret", "account")
    issuer = data.get("issuer") or current_app.config["DASHOTP_ISSUER"]
    if not isinstance(issuer, str):
        raise ValueError("issuer must be a string")
    return jsonify({"uri": build_uri(secret, account, issuer)})
