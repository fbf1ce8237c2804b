"""Unit tests for structured logging functionality."""

import asyncio
import json
import logging
from datetime import UTC, datetime
from decimal import Decimal

import pytest

from order_lifecycle.shared.logging_utils import get_structured_logger


class TestStructuredLogger:
    """Test structured logging functionality."""

    def test_generate_correlation_id(self):
        logger = get_structured_logger("test")
        corr_id = logger.generate_correlation_id()

        assert corr_id.startswith("CORR_")
        assert len(corr_id) == 17  # CORR_ + 12 hex chars

    def test_set_and_clear_correlation_id(self):
        logger = get_structured_logger("test")
        assert logger.correlation_id is None

        logger.set_correlation_id("ORD-20261019-001")
        assert logger.correlation_id == "ORD-20261019-001"

        logger.clear_correlation_id()
        assert logger.correlation_id is None

    def test_structured_log_format(self, caplog):
        """Logs are JSON with correlation id and context."""
        logger = get_structured_logger("test.module")
        logger.set_correlation_id("ORD-20261019-001")

        with caplog.at_level(logging.INFO):
            logger.info(
                "Order created",
                total_amount=Decimal("27.00"),
                created_at=datetime(2026, 10, 19, tzinfo=UTC),
            )
        logger.clear_correlation_id()

        assert len(caplog.records) == 1
        log_data = json.loads(caplog.records[0].message)

        assert log_data["level"] == "INFO"
        assert log_data["message"] == "Order created"
        assert log_data["correlation_id"] == "ORD-20261019-001"
        assert log_data["context"]["total_amount"] == "27.00"
        assert log_data["context"]["created_at"].startswith("2026-10-19")

    def test_no_context_key_without_kwargs(self, caplog):
        logger = get_structured_logger("test.bare")
        with caplog.at_level(logging.WARNING):
            logger.warning("Something odd")

        log_data = json.loads(caplog.records[0].message)
        assert "context" not in log_data
        assert log_data["correlation_id"] == "none"

    def test_disabled_level_is_skipped(self, caplog):
        logger = get_structured_logger("test.quiet")
        with caplog.at_level(logging.ERROR):
            logger.debug("hidden")
            logger.info("hidden")
        assert caplog.records == []

    @pytest.mark.asyncio
    async def test_correlation_id_is_task_local(self):
        """Concurrent tasks do not see each other's correlation ids."""
        logger = get_structured_logger("test.tasks")

        async def worker(order_number: str) -> str | None:
            logger.set_correlation_id(order_number)
            await asyncio.sleep(0)
            return logger.correlation_id

        results = await asyncio.gather(*(worker(f"ORD-{i}") for i in range(5)))
        assert results == [f"ORD-{i}" for i in range(5)]
