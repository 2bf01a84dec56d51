"""
Handoff Blueprint - Web-to-App Purchase Handoff

One route per handoff operation; each is a thin adapter between the HTTP body
and ``HandoffStore``. Errors raised by the store are mapped to status codes by
the factory's ``LinkPageError`` handler.
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from linkpage.audit_logger import short
from linkpage.errors import ValidationError
from linkpage.identity import generate_keypair
from linkpage.payees import sanitize_related
from linkpage.publisher import build_document
from linkpage.renderer import parse_links, truncate_links
from linkpage.security import limiter

logger = logging.getLogger(__name__)

handoff_bp = Blueprint("handoff", __name__)

VERIFY_RATE_LIMIT = "30 per minute"


def _handoffs():
    return current_app.extensions["linkpage"]["handoffs"]


def _body() -> dict:
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


@handoff_bp.route("/handoff/create", methods=["POST"])
def create_handoff():
    """
    Start a handoff from the web.

    Body:
        {"bdoData": {"title", "links", "source"?, "style"?, "template"?}, "relevantBDOs"?, "productType"?}
        (``links``/``title`` at the top level are accepted too)

    Returns:
        token, color sequence, expiry and pricing
    """
    body = _body()
    draft_data = body.get("bdoData") if isinstance(body.get("bdoData"), dict) else {}
    links = truncate_links(parse_links(draft_data.get("links") or body.get("links")))

    cfg = current_app.config["APP_CONFIG"]
    web_price, app_price = cfg["WEB_PRICE"], cfg["APP_PRICE"]

    draft = build_document(
        links,
        title=draft_data.get("title") or body.get("title"),
        source=draft_data.get("source") or "create-page",
        status="pending_purchase",
        style=draft_data.get("style"),
        template=draft_data.get("template"),
    )
    reserved = generate_keypair()
    logger.info(f"Reserved document key {short(reserved.pub_key, 16)} for handoff")

    handoff = _handoffs().create(
        draft,
        reserved,
        related=sanitize_related(body.get("relevantBDOs")),
        product_kind=body.get("productType") or "linkitylink",
        web_price=web_price,
        app_price=app_price,
    )

    discount = web_price - app_price
    return jsonify({
        "success": True,
        **handoff,
        "webPrice": web_price,
        "appPrice": app_price,
        "discount": discount,
        "discountPercent": round(discount * 100 / web_price) if web_price else 0,
    })


@handoff_bp.route("/handoff/<token>/verify", methods=["POST"])
@limiter.limit(VERIFY_RATE_LIMIT)
def verify_sequence(token: str):
    """Body: {"sequence": ["red", "blue", ...]}"""
    result = _handoffs().verify_sequence(token, _body().get("sequence"))
    logger.info(f"Sequence verified for {short(token)}")
    return jsonify(result)


@handoff_bp.route("/handoff/<token>/associate", methods=["POST"])
def associate(token: str):
    """Body: {"pubKey", "uuid", "timestamp"?, "signature"?}"""
    body = _body()
    view = _handoffs().associate_app_credentials(
        token,
        body.get("pubKey"),
        body.get("uuid"),
        timestamp=body.get("timestamp"),
        signature=body.get("signature"),
    )
    return jsonify({"success": True, "handoff": view})


@handoff_bp.route("/handoff/<token>/status")
def status(token: str):
    return jsonify({"success": True, **_handoffs().get_status(token)})


@handoff_bp.route("/handoff/<token>")
def get_for_app(token: str):
    data = _handoffs().get_for_app(token, request.args.get("appPubKey"))
    return jsonify({"success": True, "data": data})


@handoff_bp.route("/handoff/<token>/complete", methods=["POST"])
def complete(token: str):
    """Body: {"appPubKey", "paymentConfirmation"?}"""
    app_pub_key = _body().get("appPubKey")
    publisher = current_app.extensions["linkpage"]["publisher"]

    def publish(draft, keypair):
        result = publisher.publish(draft, keypair, purchasedVia="app-handoff", appPubKey=app_pub_key)
        return result.to_dict()

    result = _handoffs().complete(token, app_pub_key, publish)
    return jsonify({"success": True, **result, "message": "Document published"})


@handoff_bp.route("/handoff-stats")
def stats():
    return jsonify(_handoffs().stats())
