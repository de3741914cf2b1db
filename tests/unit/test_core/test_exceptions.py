"""Unit tests for the worker exception taxonomy."""
from __future__ import annotations

import pytest

from lifecycle_worker.core.exceptions import (
    BatchDeleteFailure,
    DeliveryFailure,
    KeyLoadError,
    MetadataMissing,
    PoolSaturated,
    SchemaNotReady,
    WorkerError,
)


@pytest.mark.unit
class TestWorkerError:
    """Test suite for WorkerError."""

    def test_detail_and_extra(self):
        error = WorkerError("Store unavailable", extra={"pool": "primary"})

        assert str(error) == "Store unavailable"
        assert error.detail == "Store unavailable"
        assert error.extra == {"pool": "primary"}
        assert error.retryable is True

    def test_log_extra(self):
        extra = PoolSaturated("saturated", extra={"pool": "replica"}).to_log_extra()

        assert extra["error_type"] == "PoolSaturated"
        assert extra["pool"] == "replica"

    @pytest.mark.parametrize(
        "exc_class",
        [PoolSaturated, MetadataMissing, KeyLoadError],
    )
    def test_hierarchy(self, exc_class):
        assert issubclass(exc_class, WorkerError)


@pytest.mark.unit
class TestSpecificErrors:
    """Test suite for the errors carrying extra fields."""

    def test_schema_not_ready(self):
        error = SchemaNotReady(3, 5)

        assert error.current == 3
        assert error.required == 5
        assert error.extra["required_patch_level"] == 5
        assert "below required level 5" in error.detail

    def test_delivery_failure(self):
        error = DeliveryFailure("rejected", event_id=11, status_code=503)

        assert error.event_id == 11
        assert error.to_log_extra()["status_code"] == 503

    def test_key_load_error_not_retryable(self):
        assert KeyLoadError("bad key").retryable is False

    def test_batch_delete_failure(self):
        error = BatchDeleteFailure("boom", target="published_events", deleted_before_failure=2000)

        assert error.target == "published_events"
        assert error.extra["deleted_before_failure"] == 2000
