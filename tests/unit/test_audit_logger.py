"""
Unit tests for audit logging.
"""

import json
from unittest.mock import patch

import pytest

from linkpage.audit_logger import AuditLogger, get_audit_logger, init_audit_logger, short


class TestAuditLogger:
    """Test audit logger functionality."""

    @pytest.fixture
    def audit_logger(self):
        """Create an AuditLogger instance for testing."""
        return AuditLogger()

    def test_log_event_writes_json(self, audit_logger):
        with patch.object(audit_logger.logger, "info") as mock_info:
            audit_logger.log_event("handoff.created", token="abcdef12...", product="linkitylink")

            mock_info.assert_called_once()
            payload = json.loads(mock_info.call_args[0][0])
            assert payload["event"] == "handoff.created"
            assert payload["product"] == "linkitylink"
            assert "timestamp" in payload

    def test_log_document_published(self, audit_logger):
        with patch.object(audit_logger.logger, "info") as mock_info:
            audit_logger.log_document_published("02" + "a" * 64, "🔗💎", via="app-handoff")

            call_args = mock_info.call_args[0][0]
            assert "DOCUMENT_PUBLISHED" in call_args
            assert "pubkey=02aaaaaaaaaaaaaa..." in call_args
            assert "via=app-handoff" in call_args

    def test_log_handoff_transition_truncates_token(self, audit_logger):
        token = "f" * 64
        with patch.object(audit_logger.logger, "info") as mock_info:
            audit_logger.log_handoff_transition(token, "sequence_solved", success=False, reason="mismatch")

            call_args = mock_info.call_args[0][0]
            assert "HANDOFF" in call_args
            assert "token=ffffffff..." in call_args
            assert token not in call_args
            assert "status=FAILURE" in call_args
            assert "reason=mismatch" in call_args

    def test_log_signature_verification(self, audit_logger):
        with patch.object(audit_logger.logger, "info") as mock_info:
            audit_logger.log_signature_verification("02" + "b" * 64, True, "owner-view")

            call_args = mock_info.call_args[0][0]
            assert "SIG_VERIFY" in call_args
            assert "type=owner-view" in call_args
            assert "status=SUCCESS" in call_args

    def test_log_upstream_call_failure(self, audit_logger):
        with patch.object(audit_logger.logger, "info") as mock_info:
            audit_logger.log_upstream_call("addie", "create_intent", False, "timeout")

            call_args = mock_info.call_args[0][0]
            assert "service=addie" in call_args
            assert "status=FAILURE" in call_args
            assert "error=timeout" in call_args

    def test_log_rate_limit_exceeded(self, audit_logger):
        with patch.object(audit_logger.logger, "warning") as mock_warning:
            audit_logger.log_rate_limit_exceeded(ip_address="192.168.1.1", endpoint="/handoff/x/verify")

            call_args = mock_warning.call_args[0][0]
            assert "RATE_LIMIT_EXCEEDED" in call_args
            assert "ip=192.168.1.1" in call_args

    def test_log_error(self, audit_logger):
        with patch.object(audit_logger.logger, "error") as mock_error:
            audit_logger.log_error("upstream", "BDO down", context={"op": "publish"})

            call_args = mock_error.call_args[0][0]
            assert "type=upstream" in call_args
            assert "context=" in call_args


class TestAuditLoggerInitialization:
    def test_init_and_get(self):
        init_audit_logger()

        assert isinstance(get_audit_logger(), AuditLogger)

    def test_short(self):
        assert short("abcdefghijkl") == "abcdefgh..."
        assert short("abcdefghijklmnopqr", 16) == "abcdefghijklmnop..."
        assert short(None) is None
