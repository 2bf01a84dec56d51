"""
Application Factory for the link-page service

Implements the Flask application factory pattern with:
- Service wiring (storage client, reverse index, publisher, handoffs)
- Blueprint registration
- Security configuration (headers, sessions, rate limiting)
- Error handling mapped from the service exception taxonomy
"""

import logging
import time
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request, session

from linkpage.audit_logger import get_audit_logger, init_audit_logger
from linkpage.bdo import BdoClient
from linkpage.config import AppConfig, get_config, validate_config
from linkpage.errors import LinkPageError
from linkpage.handoff import HandoffStore
from linkpage.pages import render_error_page
from linkpage.payees import sanitize_related
from linkpage.payments import PaymentClient
from linkpage.publisher import Publisher
from linkpage.realtime import notify_handoff, socketio
from linkpage.resolver import Resolver
from linkpage.reverse_index import ReverseIndex
from linkpage.security import init_security
from linkpage.sessions import KeyRing, remember_related

logger = logging.getLogger(__name__)

# Blueprints whose errors render as HTML pages instead of JSON bodies.
HTML_BLUEPRINTS = {"pages"}


def create_app(config_override: Optional[AppConfig] = None) -> Flask:
    """
    Create and configure the Flask application using the factory pattern.

    Args:
        config_override: Optional configuration override for testing

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__)

    cfg = config_override or get_config()
    validate_config(cfg)
    app.config["APP_CONFIG"] = cfg

    # Set Flask secret key (required for sessions)
    app.secret_key = cfg["FLASK_SECRET_KEY"] or "linkpage-dev-secret"

    init_security(app, cfg)
    init_audit_logger()

    app.extensions["linkpage"] = build_services(cfg)
    socketio.init_app(
        app,
        cors_allowed_origins=cfg.get("SOCKETIO_CORS", "*"),
        async_mode=cfg.get("SOCKETIO_ASYNC_MODE") or None,
    )
    app.extensions["linkpage"]["handoffs"].on_transition(notify_handoff)

    register_blueprints(app)
    register_error_handlers(app)
    register_request_handlers(app)

    logger.info("🚀 Application factory completed successfully")
    return app


def build_services(cfg: AppConfig) -> Dict[str, Any]:
    """Construct the long-lived service objects shared by every request."""
    bdo = BdoClient(
        cfg["BDO_BASE_URL"],
        backend=cfg["BDO_BACKEND"],
        hash_=cfg["BDO_HASH"],
        timeout=cfg["HTTP_TIMEOUT"],
    )
    payments = PaymentClient(cfg["ADDIE_BASE_URL"], backend=cfg["ADDIE_BACKEND"], timeout=cfg["HTTP_TIMEOUT"])

    index = ReverseIndex(
        cfg["MAPPINGS_FILE"] or None,
        flush_every=cfg["MAPPINGS_FLUSH_EVERY"],
        flush_interval=cfg["MAPPINGS_FLUSH_INTERVAL"],
        backup_interval=cfg["MAPPINGS_BACKUP_INTERVAL"],
    )
    # Loaded before serving any traffic.
    index.load()

    handoffs = HandoffStore(
        ttl=cfg["HANDOFF_TTL"],
        grace=cfg["HANDOFF_GRACE"],
        sequence_length=cfg["HANDOFF_SEQUENCE_LENGTH"],
        max_attempts=cfg["HANDOFF_MAX_ATTEMPTS"],
        require_app_signature=cfg["HANDOFF_REQUIRE_APP_SIGNATURE"],
    )

    logger.info(f"✅ Services ready (bdo={cfg['BDO_BACKEND']}, addie={cfg['ADDIE_BACKEND']}, mappings={len(index)})")
    return {
        "bdo": bdo,
        "payments": payments,
        "index": index,
        "publisher": Publisher(bdo, index),
        "resolver": Resolver(bdo, index),
        "handoffs": handoffs,
        "keyring": KeyRing(),
    }


def register_blueprints(app: Flask) -> None:
    """Register all application blueprints."""

    # Page views (landing, emojicode, alphanumeric identifier)
    from linkpage.blueprints.pages import pages_bp
    app.register_blueprint(pages_bp)

    # Document creation, session tapestries, payment intents
    from linkpage.blueprints.links import links_bp
    app.register_blueprint(links_bp)

    # Web-to-app purchase handoff
    from linkpage.blueprints.handoff import handoff_bp
    app.register_blueprint(handoff_bp)

    # Admin/operations blueprint (health, metrics)
    from linkpage.blueprints.admin import admin_bp
    app.register_blueprint(admin_bp)

    logger.info("✅ All blueprints registered")


def register_error_handlers(app: Flask) -> None:
    """Register global error handlers."""

    audit_logger = get_audit_logger()

    @app.errorhandler(LinkPageError)
    def link_page_error(e: LinkPageError):
        if e.status_code >= 500:
            logger.error(f"{type(e).__name__}: {e.message}")
            audit_logger.log_error(e.error, e.message, context={"path": request.path})
        else:
            logger.info(f"{type(e).__name__} on {request.path}: {e.message}")

        if request.blueprint in HTML_BLUEPRINTS:
            app_name = app.config["APP_CONFIG"]["APP_NAME"]
            return render_error_page(e.message, app_name), e.status_code
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(400)
    def bad_request(e):
        return jsonify({"success": False, "error": "bad_request", "message": str(e)}), 400

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"success": False, "error": "not_found", "message": "Resource not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"success": False, "error": "method_not_allowed", "message": str(e)}), 405

    @app.errorhandler(429)
    def rate_limit_exceeded(e):
        audit_logger.log_rate_limit_exceeded(request.remote_addr or "unknown", request.path)
        return jsonify({"success": False, "error": "rate_limit_exceeded", "message": str(e)}), 429

    @app.errorhandler(500)
    def internal_error(e):
        logger.error(f"Internal server error: {e}", exc_info=True)
        audit_logger.log_error("internal_error", str(e), context={"path": request.path})
        return jsonify({"success": False, "error": "internal_error", "message": "An unexpected error occurred"}), 500


def register_request_handlers(app: Flask) -> None:
    """Register before/after request handlers."""

    from linkpage.blueprints.admin import observe_request

    @app.before_request
    def capture_relevant_references():
        """Remember relevant references posted with any JSON body."""
        request.environ["linkpage.started"] = time.perf_counter()
        if not request.is_json:
            return
        body = request.get_json(silent=True)
        if isinstance(body, dict) and body.get("relevantBDOs"):
            remember_related(session, sanitize_related(body["relevantBDOs"]))

    @app.after_request
    def record_metrics(response):
        started = request.environ.get("linkpage.started")
        elapsed = time.perf_counter() - started if started else 0.0
        observe_request(request, response, elapsed)
        return response
