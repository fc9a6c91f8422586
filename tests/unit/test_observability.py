"""
Unit tests for contextual logging and health checks.
"""

import logging

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from mdb_dashboard.observability import (
    HealthChecker,
    HealthCheckResult,
    HealthStatus,
    check_registry_health,
    clear_correlation_id,
    clear_request_context,
    fold_statuses,
    get_correlation_id,
    get_logger,
    get_logging_context,
    log_operation,
    probe_client,
    set_correlation_id,
    set_request_context,
)


@pytest.mark.unit
class TestLoggingContext:
    """Test correlation IDs and request context."""

    def teardown_method(self):
        clear_correlation_id()
        clear_request_context()

    def test_generated_correlation_id(self):
        correlation_id = set_correlation_id()

        assert correlation_id
        assert get_correlation_id() == correlation_id

    def test_explicit_correlation_id(self):
        set_correlation_id("req-123")
        assert get_logging_context()["correlation_id"] == "req-123"

        clear_correlation_id()
        assert "correlation_id" not in get_logging_context()

    def test_request_context_drops_none(self):
        set_request_context(operation="list_documents", database="shop", collection=None)

        context = get_logging_context()
        assert context["operation"] == "list_documents"
        assert context["database"] == "shop"
        assert "collection" not in context

    def test_adapter_adds_context(self, caplog):
        set_correlation_id("req-456")
        logger = get_logger("mdb_dashboard.tests")

        with caplog.at_level(logging.INFO, logger="mdb_dashboard.tests"):
            logger.info("hello", extra={"mongo_uri": "mongodb://h"})

        record = caplog.records[-1]
        assert record.correlation_id == "req-456"
        assert record.mongo_uri == "mongodb://h"

    def test_log_operation(self, caplog):
        logger = logging.getLogger("mdb_dashboard.tests")

        with caplog.at_level(logging.WARNING, logger="mdb_dashboard.tests"):
            log_operation(
                logger, "gateway.insert_document", logging.WARNING, success=False, duration_ms=1.5
            )

        record = caplog.records[-1]
        assert record.getMessage() == "gateway.insert_document failed in 1.50ms"
        assert record.success is False


@pytest.mark.unit
class TestHealthChecks:
    """Test health check functions."""

    @pytest.mark.asyncio
    async def test_mongodb_healthy(self, make_client):
        result = await probe_client(make_client())
        assert result.status == HealthStatus.HEALTHY

    @pytest.mark.asyncio
    async def test_mongodb_unreachable(self, make_client):
        client = make_client(ping_error=ServerSelectionTimeoutError("no servers"))

        result = await probe_client(client)

        assert result.status == HealthStatus.UNHEALTHY
        assert "no servers" in result.message

    @pytest.mark.asyncio
    async def test_mongodb_timeout(self, make_client):
        result = await probe_client(make_client(ping_delay=1), timeout_seconds=0.01)

        assert result.status == HealthStatus.UNHEALTHY
        assert "timed out" in result.message

    @pytest.mark.asyncio
    async def test_mongodb_missing_client(self):
        result = await probe_client(None)
        assert result.status == HealthStatus.UNHEALTHY

    @pytest.mark.asyncio
    async def test_registry_health(self, registry):
        assert (await check_registry_health(registry)).status == HealthStatus.HEALTHY

        await registry.close_all()

        assert (await check_registry_health(registry)).status == HealthStatus.UNHEALTHY
        assert (await check_registry_health(None)).status == HealthStatus.UNHEALTHY

    @pytest.mark.asyncio
    async def test_checker_folds_statuses(self):
        async def healthy():
            return HealthCheckResult("a", HealthStatus.HEALTHY, "ok")

        async def degraded():
            return HealthCheckResult("b", HealthStatus.DEGRADED, "slow")

        checker = HealthChecker()
        checker.register_check(healthy)
        assert (await checker.check_all())["status"] == "healthy"

        checker.register_check(degraded)
        report = await checker.check_all()
        assert report["status"] == "degraded"
        assert [check["name"] for check in report["checks"]] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_checker_reports_failing_check(self):
        async def broken():
            raise RuntimeError("check crashed")

        checker = HealthChecker()
        checker.register_check(broken)

        report = await checker.check_all()

        assert report["status"] == "unknown"
        assert report["checks"][0]["name"] == "broken"

    @pytest.mark.parametrize(
        "statuses, expected",
        [
            ([], HealthStatus.UNKNOWN),
            ([HealthStatus.HEALTHY, HealthStatus.HEALTHY], HealthStatus.HEALTHY),
            ([HealthStatus.HEALTHY, HealthStatus.UNKNOWN], HealthStatus.UNKNOWN),
            ([HealthStatus.UNKNOWN, HealthStatus.DEGRADED], HealthStatus.DEGRADED),
            ([HealthStatus.DEGRADED, HealthStatus.UNHEALTHY], HealthStatus.UNHEALTHY),
        ],
    )
    def test_fold_statuses(self, statuses, expected):
        assert fold_statuses(statuses) == expected
