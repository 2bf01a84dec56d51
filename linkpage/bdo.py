"""Storage backend (BDO service) integration.

Documents are persisted as opaque JSON blobs under a signing keypair and made
public to receive an emojicode. The ``stub`` backend keeps everything in memory
for local development and tests; ``http`` talks to a real BDO service.
"""

import copy
import logging
import secrets
import time
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from linkpage.errors import NotFoundError, UpstreamError
from linkpage.identity import Keypair, sign

logger = logging.getLogger(__name__)

EMOJI_ALPHABET = (
    "😀", "🔗", "💎", "🌟", "🚀", "🎨", "🌈", "🔥", "🍀", "🌙",
    "⚡", "🎵", "🦄", "🐙", "🍉", "🌊", "🎯", "🧩", "🪐", "🌻",
)
EMOJICODE_LENGTH = 8


def normalize_document(blob: Any) -> Dict[str, Any]:
    """
    Normalize every known stored shape into ``{"title", "links", ...}``.

    Known shapes:
      - flat document: ``{"title": ..., "links": [...]}``
      - envelope: ``{"bdo": {...}}`` wrapping any of the others
      - nested: ``{"data": {"links": [...]}}``
      - legacy owner bag: ``{"carrierBag": {"links": [...]}}`` or
        ``{"data": {"carrierBag": {"links": [...]}}}``
    """
    if not isinstance(blob, dict):
        return {"title": None, "links": []}

    doc = blob.get("bdo") if isinstance(blob.get("bdo"), dict) else blob
    data = doc.get("data") if isinstance(doc.get("data"), dict) else {}

    links = None
    for candidate in (
        doc.get("links"),
        data.get("links"),
        (doc.get("carrierBag") or {}).get("links"),
        (data.get("carrierBag") or {}).get("links"),
    ):
        if isinstance(candidate, list):
            links = candidate
            break

    normalized = dict(doc)
    normalized["title"] = doc.get("title") or doc.get("name") or data.get("title")
    normalized["links"] = links or []
    return normalized


class BdoClient:
    """Client for the document storage backend."""

    def __init__(self, base_url: str, backend: str = "stub", hash_: str = "Linkitylink", timeout: int = 10):
        self.base_url = base_url.rstrip("/")
        self.backend = backend
        self.hash = hash_
        self.timeout = timeout
        # stub state: uuid -> record
        self._stub: Dict[str, Dict[str, Any]] = {}

    # ----------------- public API -----------------
    def create(self, bdo: Dict[str, Any], keypair: Keypair) -> str:
        """Persist ``bdo`` under ``keypair`` and return the backend uuid."""
        if self.backend == "http":
            payload = self._signed_payload(keypair, bdo=bdo)
            data = self._request("PUT", "/user/create", "create", json=payload)
            uuid = data.get("uuid")
            if not uuid:
                raise UpstreamError("BDO create response missing uuid")
            return uuid

        uuid = f"bdo_{secrets.token_hex(16)}"
        self._stub[uuid] = {
            "uuid": uuid,
            "pubKey": keypair.pub_key,
            "bdo": copy.deepcopy(bdo),
            "emojicode": None,
        }
        logger.info(f"Stub BDO created: {uuid}")
        return uuid

    def publish(self, uuid: str, bdo: Dict[str, Any], keypair: Keypair) -> str:
        """Make the document public and return its emojicode."""
        if self.backend == "http":
            payload = self._signed_payload(keypair, bdo=bdo, public=True)
            data = self._request("PUT", f"/user/{uuid}/bdo", "publish", json=payload)
            emojicode = data.get("emojiShortcode") or data.get("emojicode")
            if not emojicode:
                raise UpstreamError("BDO publish response missing emojicode")
            return emojicode

        record = self._stub.get(uuid)
        if record is None:
            raise UpstreamError(f"Unknown BDO uuid: {uuid}")
        if record["pubKey"] != keypair.pub_key:
            raise UpstreamError("Keypair does not own this BDO")
        record["bdo"] = copy.deepcopy(bdo)
        if not record["emojicode"]:
            record["emojicode"] = "".join(secrets.choice(EMOJI_ALPHABET) for _ in range(EMOJICODE_LENGTH))
        return record["emojicode"]

    def get_by_emojicode(self, emojicode: str) -> Dict[str, Any]:
        """Fetch a public document by its emojicode."""
        if self.backend == "http":
            return self._request("GET", f"/emoji/{quote(emojicode, safe='')}", "get_by_emojicode")

        for record in self._stub.values():
            if record["emojicode"] == emojicode:
                return {"bdo": copy.deepcopy(record["bdo"])}
        raise NotFoundError("Document not found")

    def get_by_pubkey(self, pub_key: str) -> Dict[str, Any]:
        """Fetch a document by the public key that created it."""
        if self.backend == "http":
            return self._request("GET", f"/pubkey/{pub_key}", "get_by_pubkey")

        for record in self._stub.values():
            if record["pubKey"] == pub_key:
                return {"bdo": copy.deepcopy(record["bdo"])}
        raise NotFoundError("Document not found")

    # ----------------- helpers -----------------
    def _signed_payload(self, keypair: Keypair, **fields: Any) -> Dict[str, Any]:
        timestamp = str(int(time.time() * 1000))
        message = timestamp + self.hash + keypair.pub_key
        return {
            "timestamp": timestamp,
            "hash": self.hash,
            "pubKey": keypair.pub_key,
            "signature": sign(message, keypair.private_key),
            **fields,
        }

    def _request(self, method: str, path: str, operation: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            resp = requests.request(method, url, json=json, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"BDO {operation} failed: {e}")
            raise UpstreamError(f"BDO {operation} failed: {e}") from e

        if resp.status_code == 404:
            raise NotFoundError("Document not found")
        if resp.status_code >= 300:
            raise UpstreamError(f"BDO {operation} failed: {resp.status_code} {resp.text}")

        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamError(f"BDO {operation} returned invalid JSON") from e
