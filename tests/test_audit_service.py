"""Tests for audit service."""

from unittest.mock import MagicMock

from shiftbook.audit.models import AuditLog
from shiftbook.audit.service import audit, client_ip


class TestClientIp:
    def test_extracts_forwarded_ip(self):
        request = MagicMock()
        request.headers = {"X-Forwarded-For": "1.2.3.4, 5.6.7.8"}
        assert client_ip(request) == "1.2.3.4"

    def test_uses_client_host(self):
        request = MagicMock()
        request.headers = {}
        request.client.host = "10.0.0.1"
        assert client_ip(request) == "10.0.0.1"

    def test_returns_empty_when_no_client(self):
        request = MagicMock()
        request.headers = {}
        request.client = None
        assert client_ip(request) == ""


class TestAudit:
    def test_creates_audit_log(self, db_session):
        request = MagicMock()
        request.headers = {"X-Forwarded-For": "192.168.1.1"}

        audit(db_session, request, "log_read", "log=abc, work_center=WC1", user_id="operator@example.com")
        db_session.commit()

        logs = db_session.query(AuditLog).all()
        assert len(logs) == 1
        assert logs[0].action == "log_read"
        assert logs[0].detail == "log=abc, work_center=WC1"
        assert logs[0].ip_address == "192.168.1.1"
        assert logs[0].user_id == "operator@example.com"

    def test_user_is_optional(self, db_session):
        request = MagicMock()
        request.headers = {}
        request.client.host = "127.0.0.1"

        audit(db_session, request, "category_delete")
        db_session.commit()

        log = db_session.query(AuditLog).one()
        assert log.user_id is None
        assert log.ip_address == "127.0.0.1"
