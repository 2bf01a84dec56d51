"""
Relevant-reference handling for purchases.

Clients may name documents ("relevant BDOs") whose payees should share the
revenue of a purchase. References arrive as ``{"emojicodes": [...],
"pubKeys": [...]}``, are sanitized, fetched concurrently and reduced to one
deduplicated payee list.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

import eventlet

from linkpage.bdo import BdoClient, normalize_document

logger = logging.getLogger(__name__)

MAX_REFERENCES = 20
MAX_METADATA_VALUE = 500
FETCH_POOL_SIZE = 10

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")


def empty_related() -> Dict[str, List[str]]:
    return {"emojicodes": [], "pubKeys": []}


def sanitize_related(raw: Any) -> Dict[str, List[str]]:
    """Keep non-empty string emojicodes and hex public keys, at most 20 of each."""
    if not isinstance(raw, dict):
        return empty_related()

    emojicodes = raw.get("emojicodes") or []
    pub_keys = raw.get("pubKeys") or []
    if not isinstance(emojicodes, list):
        emojicodes = []
    if not isinstance(pub_keys, list):
        pub_keys = []

    return {
        "emojicodes": [e for e in emojicodes if isinstance(e, str) and e][:MAX_REFERENCES],
        "pubKeys": [k for k in pub_keys if isinstance(k, str) and _HEX_RE.match(k)][:MAX_REFERENCES],
    }


def payee_key(payee: Dict[str, Any]) -> str:
    """Identity of a payee: pubKey, then uuid, then its canonical serialization."""
    if payee.get("pubKey"):
        return f"pubKey:{payee['pubKey']}"
    if payee.get("uuid"):
        return f"uuid:{payee['uuid']}"
    return "json:" + json.dumps(payee, sort_keys=True, default=str)


def extract_payees(blob: Any) -> List[Dict[str, Any]]:
    document = normalize_document(blob)
    payees = document.get("payees")
    if not isinstance(payees, list):
        payees = (document.get("data") or {}).get("payees") if isinstance(document.get("data"), dict) else None
    if not isinstance(payees, list):
        return []
    return [payee for payee in payees if isinstance(payee, dict)]


def collect_payees(related: Dict[str, List[str]], bdo_client: BdoClient) -> List[Dict[str, Any]]:
    """
    Fetch every referenced document concurrently and merge their payees.

    A reference that fails to resolve contributes nothing. The first occurrence
    of a payee wins; output order follows reference order (emojicodes first).
    """
    references: List[Tuple[str, str]] = [("emojicode", e) for e in related.get("emojicodes", [])]
    references += [("pubKey", k) for k in related.get("pubKeys", [])]
    if not references:
        return []

    def fetch(reference: Tuple[str, str]) -> List[Dict[str, Any]]:
        kind, value = reference
        try:
            if kind == "emojicode":
                blob = bdo_client.get_by_emojicode(value)
            else:
                blob = bdo_client.get_by_pubkey(value)
        except Exception as e:
            logger.warning(f"Could not fetch relevant BDO {kind}={value[:16]}: {e}")
            return []
        return extract_payees(blob)

    pool = eventlet.GreenPool(FETCH_POOL_SIZE)
    payees: List[Dict[str, Any]] = []
    seen = set()
    for found in pool.imap(fetch, references):
        for payee in found:
            key = payee_key(payee)
            if key in seen:
                continue
            seen.add(key)
            payees.append(payee)

    logger.info(f"Collected {len(payees)} payees from {len(references)} relevant BDOs")
    return payees


def to_stripe_metadata(related: Dict[str, List[str]]) -> Dict[str, str]:
    """Flatten references into Stripe metadata (string values, 500 chars max)."""
    emojicodes = list(related.get("emojicodes", []))[:MAX_REFERENCES]
    pub_keys = list(related.get("pubKeys", []))[:MAX_REFERENCES]

    metadata: Dict[str, str] = {}
    for i, emojicode in enumerate(emojicodes):
        metadata[f"bdo_emoji_{i}"] = emojicode[:MAX_METADATA_VALUE]
    for i, pub_key in enumerate(pub_keys):
        metadata[f"bdo_pubkey_{i}"] = pub_key[:MAX_METADATA_VALUE]

    metadata["bdo_emoji_count"] = str(len(emojicodes))
    metadata["bdo_pubkey_count"] = str(len(pub_keys))
    return metadata


def from_stripe_metadata(metadata: Optional[Dict[str, str]]) -> Dict[str, List[str]]:
    metadata = metadata or {}
    related = empty_related()
    for kind, prefix, count_key in (
        ("emojicodes", "bdo_emoji_", "bdo_emoji_count"),
        ("pubKeys", "bdo_pubkey_", "bdo_pubkey_count"),
    ):
        try:
            count = int(metadata.get(count_key) or 0)
        except ValueError:
            count = 0
        for i in range(count):
            value = metadata.get(f"{prefix}{i}")
            if value:
                related[kind].append(value)
    return related
