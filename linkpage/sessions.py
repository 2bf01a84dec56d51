"""Per-browser session bookkeeping: the lazily created user and its carrier bag.

Flask sessions live in a signed (not encrypted) cookie, so only public data
goes there: uuid, pubKey, carrier bag and payment-backend uuid. The user's
private key stays server-side in a ``KeyRing`` keyed by user uuid. A session
whose keys are no longer on the server (after a restart) gets a fresh user.
"""

import logging
import secrets
import threading
import time
from typing import Any, Dict, List, MutableMapping, Optional

from linkpage.identity import Keypair, generate_keypair

logger = logging.getLogger(__name__)

CARRIER_BAG_KEY = "linkitylink"
RELATED_KEY = "relevantBDOs"


class KeyRing:
    """In-memory private-key store for session users."""

    def __init__(self):
        self._lock = threading.Lock()
        self._keys: Dict[str, Keypair] = {}

    def put(self, user_uuid: str, keypair: Keypair) -> None:
        with self._lock:
            self._keys[user_uuid] = keypair

    def get(self, user_uuid: Optional[str]) -> Optional[Keypair]:
        if not user_uuid:
            return None
        with self._lock:
            return self._keys.get(user_uuid)

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)


def get_or_create_user(session: MutableMapping[str, Any], keyring: KeyRing) -> Dict[str, Any]:
    """Return the session user, creating uuid, keys and an empty carrier bag on first use."""
    user = session.get("user")
    if user and keyring.get(user.get("uuid")) is not None:
        return user

    keypair = generate_keypair()
    user = {
        "uuid": f"user_{int(time.time() * 1000)}_{secrets.token_hex(5)}",
        "pubKey": keypair.pub_key,
        "carrierBag": {CARRIER_BAG_KEY: []},
        "addieUUID": None,
    }
    keyring.put(user["uuid"], keypair)
    session["user"] = user
    session.permanent = True
    logger.info(f"User session created: {user['uuid']}")
    return user


def user_keypair(user: Dict[str, Any], keyring: KeyRing) -> Keypair:
    keypair = keyring.get(user.get("uuid"))
    if keypair is None:
        raise KeyError(f"No keys held for session user {user.get('uuid')}")
    return keypair


def add_tapestry(session: MutableMapping[str, Any], keyring: KeyRing, entry: Dict[str, Any]) -> int:
    """Prepend a published-document reference to the session's carrier bag."""
    user = get_or_create_user(session, keyring)
    bag = user.setdefault("carrierBag", {}).setdefault(CARRIER_BAG_KEY, [])
    bag.insert(0, {
        "bdoUUID": entry.get("bdoUUID"),
        "emojicode": entry.get("emojicode"),
        "pubKey": entry.get("pubKey"),
        "title": entry.get("title"),
        "linkCount": entry.get("linkCount"),
        "createdAt": entry.get("createdAt"),
    })
    # nested mutation is invisible to the session otherwise
    session["user"] = user
    session.modified = True
    return len(bag)


def list_tapestries(session: MutableMapping[str, Any]) -> List[Dict[str, Any]]:
    user = session.get("user") or {}
    return list((user.get("carrierBag") or {}).get(CARRIER_BAG_KEY, []))


def session_user_uuid(session: MutableMapping[str, Any]) -> Optional[str]:
    return (session.get("user") or {}).get("uuid")


def remember_related(session: MutableMapping[str, Any], related: Dict[str, List[str]]) -> None:
    """Keep sanitized relevant references for later purchase requests."""
    if related.get("emojicodes") or related.get("pubKeys"):
        session[RELATED_KEY] = related
        logger.info(
            f"relevantBDOs stored in session: {len(related.get('emojicodes', []))} emojicodes, "
            f"{len(related.get('pubKeys', []))} pubKeys"
        )


def recall_related(session: MutableMapping[str, Any]) -> Dict[str, List[str]]:
    related = session.get(RELATED_KEY) or {}
    return {"emojicodes": list(related.get("emojicodes", [])), "pubKeys": list(related.get("pubKeys", []))}

