"""
Web-to-app handoff.

A browser starts a discounted purchase, a companion app finishes it. The two
clients are tied together by a short color-sequence challenge:

1. web: ``create`` stores the unpublished document draft plus a reserved
   keypair and receives a bearer token and the color sequence to display
2. app: ``verify_sequence`` with the colors the user read off the screen
3. app: ``associate_app_credentials`` binds the app's public key
4. app: ``complete`` publishes the draft under the reserved keypair
5. web: ``get_status`` polls (or watches the realtime room) until completion

Every step is a one-way door guarded by a precondition on the stored record.
Entries are purged once ``expires_at`` passes; completed entries get a short
grace window so a late status poll still sees the result.
"""

from __future__ import annotations

import copy
import logging
import secrets
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from linkpage.audit_logger import get_audit_logger, short
from linkpage.errors import (
    AlreadyVerifiedError,
    AttemptsExhaustedError,
    AuthorizationError,
    CredentialConflictError,
    IncorrectSequenceError,
    NotFoundError,
    SequenceNotSolvedError,
    StateError,
    ValidationError,
)
from linkpage.identity import Keypair, verify

logger = logging.getLogger(__name__)
audit_logger = get_audit_logger()

COLORS = ("red", "blue", "green", "yellow", "purple", "orange")

DEFAULT_TTL = 30 * 60
COMPLETION_GRACE = 5 * 60
SEQUENCE_LENGTH = 5
MAX_ATTEMPTS = 5


class HandoffState(str, Enum):
    CREATED = "created"
    SEQUENCE_SOLVED = "sequence_solved"
    APP_BOUND = "app_bound"
    COMPLETED = "completed"
    EXPIRED = "expired"


def generate_token() -> str:
    return secrets.token_hex(32)


def generate_sequence(length: int = SEQUENCE_LENGTH) -> List[str]:
    """Colors drawn independently, with replacement."""
    return [secrets.choice(COLORS) for _ in range(length)]


def sequences_match(expected: Sequence[str], submitted: Any) -> bool:
    """Exact, order and length sensitive, case-insensitive comparison."""
    if not isinstance(submitted, (list, tuple)) or len(submitted) != len(expected):
        return False
    return all(
        isinstance(given, str) and given.lower() == color.lower()
        for color, given in zip(expected, submitted)
    )


@dataclass
class PendingHandoff:
    token: str
    sequence: List[str]
    document_draft: Dict[str, Any]
    document_pub_key: str
    related: Dict[str, List[str]]
    product_kind: str
    web_price: int
    app_price: int
    expires_at: float
    created_at: float
    sequence_completed: bool = False
    bound_app_pub_key: Optional[str] = None
    bound_app_identity: Optional[str] = None
    completed_at: Optional[float] = None
    attempts: int = 0
    reserved_keys: Optional[Keypair] = field(default=None, repr=False)
    result: Optional[Dict[str, Any]] = None
    publishing: bool = False

    @property
    def state(self) -> HandoffState:
        if self.completed_at is not None:
            return HandoffState.COMPLETED
        if self.bound_app_pub_key:
            return HandoffState.APP_BOUND
        if self.sequence_completed:
            return HandoffState.SEQUENCE_SOLVED
        return HandoffState.CREATED

    @property
    def discount(self) -> int:
        return self.web_price - self.app_price

    def app_view(self) -> Dict[str, Any]:
        """What the app needs to render its purchase confirmation."""
        return {
            "productKind": self.product_kind,
            "document": copy.deepcopy(self.document_draft),
            "documentPubKey": self.document_pub_key,
            "emojicode": self.result["emojicode"] if self.result else None,
            "related": copy.deepcopy(self.related),
            "appPrice": self.app_price,
            "webPrice": self.web_price,
            "discount": self.discount,
        }

    def status_view(self) -> Dict[str, Any]:
        """Safe for unauthenticated polling: no document, truncated app key."""
        completed = self.completed_at is not None
        return {
            "state": self.state.value,
            "sequenceCompleted": self.sequence_completed,
            "appPubKey": f"{self.bound_app_pub_key[:16]}..." if self.bound_app_pub_key else None,
            "completedAt": self.completed_at,
            "emojicode": self.result["emojicode"] if completed and self.result else None,
            "pubKey": self.document_pub_key if completed else None,
            "expiresAt": self.expires_at,
        }


Observer = Callable[[str, Dict[str, Any]], None]
PublishFn = Callable[[Dict[str, Any], Keypair], Dict[str, Any]]


class HandoffStore:
    """Owning service for pending handoffs (memory only, lost on restart)."""

    def __init__(
        self,
        ttl: int = DEFAULT_TTL,
        grace: int = COMPLETION_GRACE,
        sequence_length: int = SEQUENCE_LENGTH,
        max_attempts: Optional[int] = MAX_ATTEMPTS,
        require_app_signature: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl = ttl
        self.grace = grace
        self.sequence_length = sequence_length
        self.max_attempts = max_attempts
        self.require_app_signature = require_app_signature
        self._clock = clock
        self._lock = threading.RLock()
        self._handoffs: Dict[str, PendingHandoff] = {}
        self._observers: List[Observer] = []

    def __len__(self) -> int:
        return len(self._handoffs)

    def on_transition(self, observer: Observer) -> None:
        self._observers.append(observer)

    def _notify(self, handoff: PendingHandoff) -> None:
        status = handoff.status_view()
        for observer in self._observers:
            try:
                observer(handoff.token, status)
            except Exception as e:
                logger.error(f"Handoff observer failed: {e}", exc_info=True)

    def _get_live(self, token: str) -> PendingHandoff:
        """Return the handoff or raise NotFoundError; expired entries are dropped."""
        handoff = self._handoffs.get(token) if token else None
        if handoff is None:
            logger.info(f"Handoff not found: {short(token)}")
            raise NotFoundError("Handoff not found or expired")

        if handoff.expires_at <= self._clock():
            self._handoffs.pop(token, None)
            logger.info(f"Handoff expired: {short(token)}")
            audit_logger.log_event("handoff.expired", token=short(token), state=handoff.state.value)
            raise NotFoundError("Handoff not found or expired")

        return handoff

    # ----------------- operations -----------------
    def create(
        self,
        draft: Dict[str, Any],
        reserved_keys: Keypair,
        related: Optional[Dict[str, List[str]]] = None,
        product_kind: str = "linkitylink",
        web_price: int = 2000,
        app_price: int = 1500,
        ttl: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Register a pending handoff.

        Returns:
            dict with ``token`` (bearer credential for the following calls),
            ``sequence`` (colors for the web client to display) and ``expiresAt``
        """
        if not isinstance(draft, dict):
            raise ValidationError("Document draft must be an object")
        if not isinstance(web_price, int) or not isinstance(app_price, int) or app_price < 0 or web_price < 0:
            raise ValidationError("Prices must be non-negative integers")

        ttl = self.ttl if ttl is None else ttl
        now = self._clock()
        handoff = PendingHandoff(
            token=generate_token(),
            sequence=generate_sequence(self.sequence_length),
            document_draft=copy.deepcopy(draft),
            document_pub_key=reserved_keys.pub_key,
            related=copy.deepcopy(related) if related else {"emojicodes": [], "pubKeys": []},
            product_kind=product_kind,
            web_price=web_price,
            app_price=app_price,
            expires_at=now + ttl,
            created_at=now,
            reserved_keys=reserved_keys,
        )

        with self._lock:
            self._handoffs[handoff.token] = handoff

        logger.info(f"Created pending handoff: {short(handoff.token)} (expires in {ttl / 60:g} min)")
        audit_logger.log_event("handoff.created", token=short(handoff.token), product=product_kind)
        return {"token": handoff.token, "sequence": list(handoff.sequence), "expiresAt": handoff.expires_at}

    def verify_sequence(self, token: str, submitted: Any) -> Dict[str, Any]:
        with self._lock:
            handoff = self._get_live(token)

            if handoff.sequence_completed:
                raise AlreadyVerifiedError("Sequence already completed")

            if self.max_attempts and handoff.attempts >= self.max_attempts:
                raise AttemptsExhaustedError("Too many incorrect attempts; start a new handoff")

            if not sequences_match(handoff.sequence, submitted):
                handoff.attempts += 1
                audit_logger.log_handoff_transition(
                    token, HandoffState.SEQUENCE_SOLVED.value, success=False, reason="mismatch"
                )
                raise IncorrectSequenceError("Incorrect sequence")

            handoff.sequence_completed = True

        audit_logger.log_handoff_transition(token, HandoffState.SEQUENCE_SOLVED.value)
        self._notify(handoff)
        return {"success": True}

    def associate_app_credentials(
        self,
        token: str,
        pub_key: Optional[str],
        identity: Optional[str],
        timestamp: Optional[str] = None,
        signature: Optional[str] = None,
    ) -> Dict[str, Any]:
        with self._lock:
            handoff = self._get_live(token)

            if not handoff.sequence_completed:
                raise SequenceNotSolvedError("Sequence not yet completed: verify the color sequence first")

            if not pub_key or not identity:
                raise ValidationError("Missing app credentials (pubKey and uuid are required)")

            if handoff.bound_app_pub_key and handoff.bound_app_pub_key != pub_key:
                raise CredentialConflictError("Handoff is already bound to a different app")

            if self.require_app_signature:
                message = f"{timestamp or ''}{token}{pub_key}"
                if not (timestamp and signature and verify(signature, message, pub_key)):
                    audit_logger.log_signature_verification(pub_key, False, "handoff-associate")
                    raise AuthorizationError("Invalid app signature")

            handoff.bound_app_pub_key = pub_key
            handoff.bound_app_identity = identity
            view = handoff.app_view()

        logger.info(f"App associated with handoff: {short(token)} (app: {short(pub_key, 16)})")
        audit_logger.log_handoff_transition(token, HandoffState.APP_BOUND.value)
        self._notify(handoff)
        return view

    def get_for_app(self, token: str, app_pub_key: Optional[str]) -> Dict[str, Any]:
        with self._lock:
            handoff = self._get_live(token)
            if not handoff.bound_app_pub_key or handoff.bound_app_pub_key != app_pub_key:
                raise AuthorizationError("App not associated with this handoff")
            return handoff.app_view()

    def get_status(self, token: str) -> Dict[str, Any]:
        with self._lock:
            return self._get_live(token).status_view()

    def complete(self, token: str, app_pub_key: Optional[str], publish: PublishFn) -> Dict[str, Any]:
        """
        Publish the draft under the reserved keypair.

        ``publish(draft, keypair)`` must return ``{"uuid", "pubKey", "emojicode"}``.
        A repeated call returns the stored result without publishing again.
        """
        with self._lock:
            handoff = self._get_live(token)

            if not handoff.bound_app_pub_key or handoff.bound_app_pub_key != app_pub_key:
                raise AuthorizationError("App not authorized for this handoff")

            if handoff.result is not None:
                logger.info(f"Handoff already completed: {short(token)}")
                return dict(handoff.result)

            if handoff.publishing:
                raise StateError("Completion already in progress")

            handoff.publishing = True
            draft = copy.deepcopy(handoff.document_draft)
            keys = handoff.reserved_keys

        try:
            result = dict(publish(draft, keys))
        except Exception:
            with self._lock:
                handoff.publishing = False
            audit_logger.log_handoff_transition(token, HandoffState.COMPLETED.value, success=False, reason="publish")
            raise

        with self._lock:
            now = self._clock()
            handoff.publishing = False
            handoff.result = result
            handoff.completed_at = now
            handoff.expires_at = now + self.grace

        logger.info(f"Handoff completed: {short(token)}")
        audit_logger.log_handoff_transition(token, HandoffState.COMPLETED.value)
        self._notify(handoff)
        return dict(result)

    # ----------------- housekeeping -----------------
    def sweep(self, now: Optional[float] = None) -> int:
        """Delete every handoff whose expiry has passed, regardless of state."""
        now = self._clock() if now is None else now
        with self._lock:
            expired = [token for token, handoff in self._handoffs.items() if handoff.expires_at <= now]
            for token in expired:
                self._handoffs.pop(token, None)

        for token in expired:
            logger.info(f"Cleaning up expired handoff: {short(token)}")
        if expired:
            audit_logger.log_event("handoff.swept", count=len(expired))
        return len(expired)

    def stats(self) -> Dict[str, int]:
        now = self._clock()
        with self._lock:
            total = len(self._handoffs)
            active = sum(1 for handoff in self._handoffs.values() if handoff.expires_at > now)
        return {"total": total, "active": active, "expired": total - active}
