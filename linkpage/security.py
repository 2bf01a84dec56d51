"""Security helpers for configuring Flask in production."""
from __future__ import annotations

import logging
import os
from datetime import timedelta
from typing import Any, Mapping

from flask import Flask
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_talisman import Talisman
from werkzeug.middleware.proxy_fix import ProxyFix

logger = logging.getLogger(__name__)

# Module level so blueprints can decorate routes at import time.
limiter = Limiter(key_func=get_remote_address, strategy="fixed-window")

JSON_LOG_FORMAT = (
    "{\"level\":\"%(levelname)s\",\"msg\":\"%(message)s\",\"name\":\"%(name)s\",\"path\":\"%(pathname)s\","
    "\"lineno\":%(lineno)d}"
)


def _as_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).lower() in {"1", "true", "yes", "on"}


def configure_logging(cfg: Mapping[str, Any]) -> None:
    log_level = str(cfg.get("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, log_level, logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if not any(isinstance(handler, logging.StreamHandler) for handler in root_logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(JSON_LOG_FORMAT))
        root_logger.addHandler(handler)


def init_security(app: Flask, cfg: Mapping[str, Any]) -> Limiter:
    """Initialise standard security middleware, sessions and rate limiting."""

    # Respect reverse proxy headers for TLS detection and client IP extraction.
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1)  # type: ignore[assignment]

    production = str(cfg.get("FLASK_ENV") or os.getenv("FLASK_ENV", "development")).strip().lower() == "production"
    force_https = _as_bool(cfg.get("FORCE_HTTPS"), production)
    if not force_https and production:
        logger.warning(
            "FORCE_HTTPS disabled while FLASK_ENV=production – ensure this is intentional before deploying."
        )

    secure_cookies = _as_bool(cfg.get("SECURE_COOKIES"), production)
    app.config.update(
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SECURE=secure_cookies,
        SESSION_COOKIE_SAMESITE="Lax",
        PERMANENT_SESSION_LIFETIME=timedelta(days=int(cfg.get("SESSION_LIFETIME_DAYS", 365))),
    )

    csp = {
        "default-src": "'self'",
        "img-src": "* data:",
        # link pages are inline SVG styled by inline CSS
        "style-src": "'self' 'unsafe-inline'",
        "script-src": "'self' https://cdnjs.cloudflare.com",
        # Socket.IO handoff status push
        "connect-src": "'self' wss: ws:",
    }
    Talisman(
        app,
        force_https=force_https,
        force_file_save=False,
        content_security_policy=csp,
        session_cookie_secure=secure_cookies,
        session_cookie_samesite="Lax",
        frame_options="DENY",
        referrer_policy="no-referrer",
    )

    app.config["RATELIMIT_ENABLED"] = _as_bool(cfg.get("RATE_LIMIT_ENABLED"), True)
    app.config["RATELIMIT_DEFAULT"] = cfg.get("RATE_LIMIT_DEFAULT") or "300/hour"
    app.config["RATELIMIT_STORAGE_URI"] = cfg.get("RATELIMIT_STORAGE_URI") or "memory://"
    limiter.init_app(app)
    if not app.config["RATELIMIT_ENABLED"]:
        logger.info("Rate limiting disabled")

    configure_logging(cfg)
    return limiter
