"""Tests for observability module."""

import json
import logging
import time

import pytest

from mono_core.observability import (
    LogContext,
    LogEntry,
    LogLevel,
    RequestContext,
    StructuredFormatter,
    StructuredLogger,
    Timer,
    clear_metric_callbacks,
    configure_logging,
    emit_counter,
    emit_metric,
    emit_timer,
    get_logger,
    log_security_event,
    register_metric_callback,
    request_id_var,
    tenant_id_var,
    user_id_var,
)


@pytest.fixture
def metrics():
    """Collects emitted metrics and unregisters afterwards."""
    received: list[tuple[str, float, dict]] = []
    register_metric_callback(lambda name, value, labels: received.append((name, value, labels)))
    yield received
    clear_metric_callbacks()


class TestLogContext:
    """Tests for LogContext."""

    def test_current_empty_outside_request(self) -> None:
        context = LogContext.current()
        assert context.request_id is None
        assert context.tenant_id is None
        assert context.user_id is None

    def test_to_dict_excludes_none_values(self) -> None:
        context = LogContext(request_id="req-1", user_id="user-1", extra={"route": "/x"})
        assert context.to_dict() == {"request_id": "req-1", "user_id": "user-1", "route": "/x"}


class TestLogEntry:
    """Tests for LogEntry."""

    def test_to_json_minimal(self) -> None:
        entry = LogEntry(
            level=LogLevel.INFO,
            message="Tenant created",
            timestamp="2024-01-01T00:00:00Z",
            logger="mono_core.tenants",
        )
        result = json.loads(entry.to_json())

        assert result == {
            "level": "INFO",
            "message": "Tenant created",
            "timestamp": "2024-01-01T00:00:00Z",
            "logger": "mono_core.tenants",
        }

    def test_to_json_optional_fields(self) -> None:
        entry = LogEntry(
            level=LogLevel.ERROR,
            message="Seed failed",
            timestamp="2024-01-01T00:00:00Z",
            logger="mono_core.permissions",
            context={"role": "tenant_admin"},
            error={"type": "ValueError", "message": "bad pattern"},
            duration_ms=12.5,
        )
        result = json.loads(entry.to_json())

        assert result["context"]["role"] == "tenant_admin"
        assert result["error"]["type"] == "ValueError"
        assert result["duration_ms"] == 12.5


class TestStructuredFormatter:
    """Tests for StructuredFormatter."""

    def _record(self, **extra) -> logging.LogRecord:
        record = logging.LogRecord(
            name="mono_core.test",
            level=logging.INFO,
            pathname="test.py",
            lineno=1,
            msg="Role assigned",
            args=(),
            exc_info=None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_formats_as_json(self) -> None:
        parsed = json.loads(StructuredFormatter().format(self._record()))

        assert parsed["level"] == "INFO"
        assert parsed["message"] == "Role assigned"
        assert parsed["logger"] == "mono_core.test"
        assert "timestamp" in parsed

    def test_merges_request_context(self) -> None:
        """Context variables and record context both land in the entry."""
        with RequestContext(request_id="req-9", tenant_id="tenant-1"):
            output = StructuredFormatter().format(
                self._record(context={"role": "viewer"}, duration_ms=3.0)
            )
        parsed = json.loads(output)

        assert parsed["context"] == {"request_id": "req-9", "tenant_id": "tenant-1", "role": "viewer"}
        assert parsed["duration_ms"] == 3.0


class TestStructuredLogger:
    """Tests for StructuredLogger."""

    def test_info_carries_context(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = StructuredLogger("mono_core.test.info")

        with caplog.at_level(logging.INFO, logger="mono_core.test.info"):
            logger.info("Tenant suspended", context={"tenant_id": "t1"}, duration_ms=1.5)

        assert len(caplog.records) == 1
        record = caplog.records[0]
        assert record.levelname == "INFO"
        assert record.context == {"tenant_id": "t1"}
        assert record.duration_ms == 1.5

    def test_error_attaches_exception(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = StructuredLogger("mono_core.test.error")

        with caplog.at_level(logging.ERROR, logger="mono_core.test.error"):
            logger.error("Cache read failed", error=RuntimeError("redis down"))

        assert caplog.records[0].levelname == "ERROR"
        assert caplog.records[0].exc_info[0] is RuntimeError


class TestRequestContext:
    """Tests for RequestContext."""

    def test_sets_and_resets_context_vars(self) -> None:
        with RequestContext(request_id="req-123", tenant_id="tenant-456", user_id="user-789"):
            assert request_id_var.get() == "req-123"
            assert tenant_id_var.get() == "tenant-456"
            assert user_id_var.get() == "user-789"

        assert request_id_var.get() is None
        assert tenant_id_var.get() is None

    def test_generates_request_id(self) -> None:
        with RequestContext() as ctx:
            assert ctx.request_id
            assert request_id_var.get() == ctx.request_id

    async def test_async_context_manager(self) -> None:
        async with RequestContext(request_id="async-req") as ctx:
            assert ctx.request_id == "async-req"
            assert request_id_var.get() == "async-req"
        assert request_id_var.get() is None


class TestTimer:
    """Tests for Timer."""

    def test_measures_duration(self) -> None:
        with Timer() as timer:
            time.sleep(0.05)

        assert timer.duration_ms >= 40
        assert timer.duration_ms < 1000


class TestMetrics:
    """Tests for metric functions."""

    def test_emit_metric(self, metrics) -> None:
        emit_metric("permissions.check", 2.0, {"allowed": True})

        assert metrics[-1] == ("permissions.check", 2.0, {"allowed": True})

    def test_counter_and_timer(self, metrics) -> None:
        emit_counter("tenants.created")
        emit_timer("platform.init", 123.45)

        assert metrics[-2][:2] == ("tenants.created", 1.0)
        assert metrics[-1][:2] == ("platform.init", 123.45)

    def test_tenant_label_from_context(self, metrics) -> None:
        with RequestContext(tenant_id="tenant-1"):
            emit_counter("saved_searches.created")

        assert metrics[-1][2]["tenant_id"] == "tenant-1"

    def test_failing_callback_does_not_raise(self, metrics) -> None:
        def broken(name: str, value: float, labels: dict) -> None:
            raise RuntimeError("sink down")

        register_metric_callback(broken)
        emit_counter("auth.login.succeeded")

        assert metrics[-1][0] == "auth.login.succeeded"


class TestSecurityEvents:
    """Tests for log_security_event."""

    def test_denial_logged_at_warning(self, caplog: pytest.LogCaptureFixture, metrics) -> None:
        with caplog.at_level(logging.INFO, logger="mono_core.security"):
            log_security_event("permission_denied", False, {"permission": "users.delete.tenant"})

        record = caplog.records[-1]
        assert record.levelname == "WARNING"
        assert record.context["event_type"] == "permission_denied"
        assert record.context["permission"] == "users.delete.tenant"
        assert metrics[-1][0] == "security.events"
        assert metrics[-1][2]["allowed"] is False

    def test_grant_logged_at_info(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="mono_core.security"):
            log_security_event("api_access_granted", True)

        assert caplog.records[-1].levelname == "INFO"


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_configures_package_logger(self) -> None:
        configure_logging(level="debug", format="text")

        root = logging.getLogger("mono_core")
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1

    def test_json_format_uses_structured_formatter(self) -> None:
        configure_logging(level=LogLevel.INFO, format="json")

        root = logging.getLogger("mono_core")
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)

    def test_get_logger_returns_structured_logger(self) -> None:
        assert isinstance(get_logger("mono_core.test"), StructuredLogger)
