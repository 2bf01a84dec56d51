"""
Pages Blueprint - Link-Page Views

Serves rendered link pages for direct browser navigation:
- ``/?emojicode=...``: resolve by emoji identifier
- ``/?pubKey=...&timestamp=...&signature=...``: owner view, signed
- ``/t/<identifier>``: resolve by alphanumeric public-key prefix
"""

import logging

from flask import Blueprint, current_app, request

from linkpage.pages import render_landing_page, render_page
from linkpage.resolver import ResolvedPage

logger = logging.getLogger(__name__)

pages_bp = Blueprint("pages", __name__)


def _resolver():
    return current_app.extensions["linkpage"]["resolver"]


def _app_name() -> str:
    return current_app.config["APP_CONFIG"]["APP_NAME"]


def _render(page: ResolvedPage) -> str:
    logger.info(f"Rendering {len(page.links)} links ({'demo' if page.demo else page.title})")
    return render_page(page.title, page.svg, authenticated=page.authenticated, demo=page.demo, app_name=_app_name())


@pages_bp.route("/")
def index():
    emojicode = request.args.get("emojicode")
    pub_key = request.args.get("pubKey")

    if emojicode:
        logger.info(f"Fetching document by emojicode: {emojicode}")
        return _render(_resolver().resolve_by_emoji(emojicode))

    if pub_key:
        page = _resolver().resolve_signed(
            pub_key,
            request.args.get("timestamp", ""),
            request.args.get("signature", ""),
        )
        return _render(page)

    return render_landing_page(_app_name())


@pages_bp.route("/t/<identifier>")
def by_identifier(identifier: str):
    """Resolve a document by a prefix of its public key."""
    logger.info(f"Looking up alphanumeric identifier: {identifier}")
    return _render(_resolver().resolve_by_prefix(identifier))
