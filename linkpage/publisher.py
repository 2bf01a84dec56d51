"""Document construction and the create + publish pipeline."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence

from linkpage.audit_logger import get_audit_logger
from linkpage.bdo import BdoClient
from linkpage.identity import Keypair, generate_keypair
from linkpage.renderer import LinkRecord, render
from linkpage.reverse_index import ReverseIndex

logger = logging.getLogger(__name__)
audit_logger = get_audit_logger()

DOCUMENT_TYPE = "linkitylink"


@dataclass(frozen=True)
class PublishResult:
    uuid: str
    pub_key: str
    emojicode: str

    def to_dict(self) -> Dict[str, str]:
        return {"uuid": self.uuid, "pubKey": self.pub_key, "emojicode": self.emojicode}


def build_document(
    links: Sequence[LinkRecord],
    title: Optional[str] = None,
    source: Optional[str] = None,
    source_url: Optional[str] = None,
    status: Optional[str] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """Build a link-page document; ``svgContent`` is rendered once, here."""
    document: Dict[str, Any] = {
        "title": title or "My Links",
        "type": DOCUMENT_TYPE,
        "svgContent": render(links),
        "links": [link.to_dict() for link in links],
        "createdAt": datetime.now(timezone.utc).isoformat(),
    }
    if source:
        document["source"] = source
    if source_url:
        document["sourceUrl"] = source_url
    if status:
        document["status"] = status
    document.update({key: value for key, value in extra.items() if value is not None})
    return document


class Publisher:
    """Persist documents to the storage backend and index their identifiers."""

    def __init__(self, bdo_client: BdoClient, index: ReverseIndex):
        self.bdo = bdo_client
        self.index = index

    def publish(self, document: Dict[str, Any], keypair: Optional[Keypair] = None, **index_extra: Any) -> PublishResult:
        """
        Create and publish ``document``.

        Args:
            document: Link-page document (see ``build_document``)
            keypair: Identity to publish under; a fresh one when omitted
            index_extra: Additional metadata stored with the index entry

        Returns:
            PublishResult with the backend uuid, public key and emojicode
        """
        keypair = keypair or generate_keypair()

        uuid = self.bdo.create(document, keypair)
        logger.info(f"BDO created: {uuid}")
        emojicode = self.bdo.publish(uuid, document, keypair)

        self.index.register(keypair.pub_key, emojicode, uuid=uuid, **index_extra)

        via = index_extra.get("purchasedVia", "direct")
        audit_logger.log_document_published(keypair.pub_key, emojicode, via=via)
        return PublishResult(uuid=uuid, pub_key=keypair.pub_key, emojicode=emojicode)
