"""
Identifier resolution.

Two public lookup keys converge on the same backend fetch:

- emojicode: handed straight to the storage backend
- alphanumeric prefix: matched against the reverse index, first match wins

Documents without links degrade to the demo link set rather than an error.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from linkpage.audit_logger import get_audit_logger
from linkpage.bdo import BdoClient, normalize_document
from linkpage.errors import AuthorizationError, NotFoundError, ValidationError
from linkpage.identity import verify
from linkpage.renderer import LinkRecord, demo_links, render, truncate_links
from linkpage.reverse_index import ReverseIndex

logger = logging.getLogger(__name__)
audit_logger = get_audit_logger()


@dataclass
class ResolvedPage:
    title: str
    links: List[LinkRecord] = field(default_factory=list)
    demo: bool = False
    authenticated: bool = False

    @property
    def svg(self) -> str:
        return render(self.links)


class Resolver:
    def __init__(self, bdo_client: BdoClient, index: ReverseIndex):
        self.bdo = bdo_client
        self.index = index

    def resolve_by_emoji(self, emojicode: str) -> ResolvedPage:
        if not emojicode:
            raise ValidationError("Missing emojicode")
        blob = self.bdo.get_by_emojicode(emojicode)
        audit_logger.log_event("document.resolved", via="emojicode", emojicode=emojicode)
        return self._page_from_blob(blob)

    def resolve_by_prefix(self, prefix: str) -> ResolvedPage:
        if not prefix:
            raise ValidationError("Missing identifier")
        match = self.index.lookup_prefix(prefix)
        if match is None:
            raise NotFoundError("Tapestry not found. Identifier may have expired.")

        pub_key, entry = match
        emojicode = entry.get("emojicode")
        if not emojicode:
            logger.warning(f"Mapping for {pub_key[:16]}... has no emojicode")
            raise NotFoundError("Tapestry not found. Identifier may have expired.")

        logger.info(f"Identifier {prefix} resolved to {pub_key[:16]}...")
        blob = self.bdo.get_by_emojicode(emojicode)
        audit_logger.log_event("document.resolved", via="prefix", emojicode=emojicode)
        return self._page_from_blob(blob)

    def resolve_signed(self, pub_key: str, timestamp: str, signature: str) -> ResolvedPage:
        """Owner view: the caller proves key ownership by signing ``timestamp + pubKey``."""
        if not (pub_key and timestamp and signature):
            raise ValidationError("pubKey, timestamp and signature are required")

        valid = verify(signature, timestamp + pub_key, pub_key)
        audit_logger.log_signature_verification(pub_key, valid, "owner-view")
        if not valid:
            raise AuthorizationError("Invalid signature")

        page = self._page_from_blob(self.bdo.get_by_pubkey(pub_key))
        page.authenticated = not page.demo
        return page

    def _page_from_blob(self, blob) -> ResolvedPage:
        document = normalize_document(blob)
        links = [LinkRecord.from_dict(item) for item in document["links"] if isinstance(item, dict)]

        if not links:
            logger.info("No links found in document, showing demo links")
            return ResolvedPage(title="Demo Links", links=demo_links(), demo=True)

        return ResolvedPage(title=document["title"] or "My Links", links=truncate_links(links))
