"""
Links Blueprint - Document Creation and Purchases

Creates link-page documents, lists the ones created in the current browser
session and prepares payment intents with revenue splits.
"""

import logging

from flask import Blueprint, current_app, jsonify, request, session

from linkpage.audit_logger import get_audit_logger
from linkpage.errors import ValidationError
from linkpage.linktree import parse_linktree
from linkpage.payees import collect_payees, sanitize_related, to_stripe_metadata
from linkpage.publisher import build_document
from linkpage.renderer import parse_links, truncate_links
from linkpage.sessions import (
    add_tapestry,
    get_or_create_user,
    list_tapestries,
    recall_related,
    session_user_uuid,
    user_keypair,
)

logger = logging.getLogger(__name__)
audit_logger = get_audit_logger()

links_bp = Blueprint("links", __name__)


def _services():
    return current_app.extensions["linkpage"]


def _body() -> dict:
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


@links_bp.route("/parse-linktree", methods=["POST"])
def parse_linktree_page():
    """
    Import links from a Linktree page without publishing anything.

    Body:
        {"url": "https://linktr.ee/<username>"}

    Returns:
        links (regular then social), username, source and sourceUrl for ``POST /create``
    """
    url = _body().get("url")
    timeout = current_app.config["APP_CONFIG"]["HTTP_TIMEOUT"]
    return jsonify({"success": True, **parse_linktree(url, timeout=timeout)})


@links_bp.route("/create", methods=["POST"])
def create():
    """
    Create and publish a link-page document.

    Body:
        {"title": str?, "links": [{"title", "url", "isSocial"?}], "source": str?, "sourceUrl": str?}

    Returns:
        JSON identifiers only (uuid, pubKey, emojicode, userUUID); clients build URLs
    """
    services = _services()
    body = _body()
    links = truncate_links(parse_links(body.get("links")))
    title = body.get("title") or "My Links"

    user = get_or_create_user(session, services["keyring"])
    logger.info(f"Creating document with {len(links)} links: {title}")

    document = build_document(
        links,
        title=title,
        source=body.get("source"),
        source_url=body.get("sourceUrl"),
        style=body.get("style"),
        template=body.get("template"),
    )
    result = services["publisher"].publish(document)

    add_tapestry(session, services["keyring"], {
        "bdoUUID": result.uuid,
        "emojicode": result.emojicode,
        "pubKey": result.pub_key,
        "title": title,
        "linkCount": len(links),
        "createdAt": document["createdAt"],
    })

    return jsonify({"success": True, **result.to_dict(), "userUUID": user["uuid"]})


@links_bp.route("/my-tapestries")
def my_tapestries():
    user_uuid = session_user_uuid(session)
    if not user_uuid:
        return jsonify({"success": True, "tapestries": [], "message": "No user session found"})

    tapestries = list_tapestries(session)
    logger.info(f"Found {len(tapestries)} tapestries for {user_uuid}")
    return jsonify({"success": True, "tapestries": tapestries, "userUUID": user_uuid})


@links_bp.route("/create-payment-intent", methods=["POST"])
def create_payment_intent():
    """
    Create a payment intent for a web purchase.

    Relevant references come from the body when present, otherwise from the
    session. Payees found in those documents share the payment.
    """
    services = _services()
    cfg = current_app.config["APP_CONFIG"]

    body = _body()
    if body.get("relevantBDOs"):
        related = sanitize_related(body["relevantBDOs"])
    else:
        related = recall_related(session)

    payees = collect_payees(related, services["bdo"])

    user = get_or_create_user(session, services["keyring"])
    keypair = user_keypair(user, services["keyring"])
    payments = services["payments"]
    if not user.get("addieUUID"):
        user["addieUUID"] = payments.create_user(keypair)
        session["user"] = user
        session.modified = True

    amount = cfg["WEB_PRICE"]
    intent = payments.create_intent(
        user["addieUUID"],
        amount,
        cfg["CURRENCY"],
        keypair,
        payees=payees,
        metadata=to_stripe_metadata(related),
    )

    audit_logger.log_event(
        "payment.intent_created",
        user=user["uuid"],
        amount=amount,
        currency=cfg["CURRENCY"],
        payees=len(payees),
    )
    return jsonify({"success": True, **intent, "payeesIncluded": len(payees)})
