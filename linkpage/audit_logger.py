"""
Audit logging for the link-page service.

Every state change of a document, handoff or payment is written as one JSON
line to the ``audit`` logger.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

_logger = logging.getLogger("audit")
_audit_logger = None  # Will be initialized by init_audit_logger


def init_audit_logger():
    """Initialize the audit logger."""
    global _audit_logger

    _logger.setLevel(logging.INFO)

    # Add console handler if not already present
    if not _logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s - AUDIT - %(levelname)s - %(message)s"))
        _logger.addHandler(handler)

    _audit_logger = AuditLogger()

    _logger.info("Audit logger initialized")


def get_audit_logger():
    """Get the audit logger instance."""
    global _audit_logger

    if _audit_logger is None:
        init_audit_logger()
    return _audit_logger


def short(value: Optional[str], length: int = 8) -> Optional[str]:
    """Truncate tokens and keys before they reach a log line."""
    if not value:
        return value
    return f"{value[:length]}..."


class AuditLogger:
    """
    Audit logging interface for publish, handoff and payment events.

    Tokens and public keys must be passed through ``short`` by callers; the
    handoff token doubles as a bearer credential.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or _logger

    def log_event(self, event: str, **details: Any) -> None:
        """Generic structured audit event."""

        payload = {"event": event, **details, "timestamp": datetime.utcnow().isoformat()}
        self.logger.info(json.dumps(payload, default=str))

    def log_document_published(self, pub_key: str, emojicode: str, via: str = "direct"):
        """Log a document reaching the storage backend."""
        self.logger.info(f"DOCUMENT_PUBLISHED | pubkey={pub_key[:16]}... | emojicode={emojicode} | via={via}")

    def log_handoff_transition(self, token: str, state: str, success: bool = True, reason: Optional[str] = None):
        """Log a handoff state transition attempt."""
        status = "SUCCESS" if success else "FAILURE"
        msg = f"HANDOFF | token={token[:8]}... | state={state} | status={status}"
        if reason:
            msg += f" | reason={reason}"
        self.logger.info(msg)

    def log_signature_verification(self, pubkey: str, success: bool, signature_type: str):
        """Log cryptographic signature verification."""
        status = "SUCCESS" if success else "FAILURE"
        self.logger.info(f"SIG_VERIFY | pubkey={pubkey[:16]}... | type={signature_type} | status={status}")

    def log_upstream_call(self, service: str, operation: str, success: bool, error: Optional[str] = None):
        """Log a storage or payment backend call."""
        status = "SUCCESS" if success else "FAILURE"
        msg = f"UPSTREAM | service={service} | op={operation} | status={status}"
        if error:
            msg += f" | error={error}"
        self.logger.info(msg)

    def log_rate_limit_exceeded(self, ip_address: str, endpoint: str):
        """Log rate limit violation."""
        self.logger.warning(f"RATE_LIMIT_EXCEEDED | ip={ip_address} | endpoint={endpoint}")

    def log_error(self, error_type: str, error_msg: str, context: Optional[Dict[str, Any]] = None):
        """Log application error."""
        msg = f"ERROR | type={error_type} | msg={error_msg}"
        if context:
            msg += f" | context={context}"
        self.logger.error(msg)
