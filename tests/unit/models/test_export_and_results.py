"""Tests for ExportStatus snapshots and pipeline result types."""

from __future__ import annotations

import pytest
from pydantic import TypeAdapter, ValidationError

from bulkimport.models.export import ExportStatus
from bulkimport.models.results import PipelineFatal, PipelineOk, PipelineResult, PipelineRetry


class TestExportStatus:
    @pytest.mark.parametrize("entry", [None, {}])
    def test_missing_entry_is_empty(self, entry):
        status = ExportStatus.from_entry(entry)
        assert status.empty is True
        assert not status.started and not status.failed

    def test_started(self):
        status = ExportStatus.from_entry({"relation": "issues", "status": 0})
        assert status.started and not status.empty and not status.failed

    def test_failed_carries_error(self):
        status = ExportStatus.from_entry({"relation": "issues", "status": -1, "error": "disk full"})
        assert status.failed
        assert status.error == "disk full"

    def test_finished_batched(self):
        status = ExportStatus.from_entry({
            "relation": "uploads", "status": 1, "batched": True, "batches_count": 5,
        })
        assert status.batched and status.batches_count == 5
        assert not (status.empty or status.started or status.failed)

    def test_null_batches_count_is_zero(self):
        assert ExportStatus.from_entry({"status": 1, "batches_count": None}).batches_count == 0


class TestPipelineResult:
    def test_discriminates_on_kind(self):
        adapter = TypeAdapter(PipelineResult)
        assert isinstance(adapter.validate_python({"kind": "ok"}), PipelineOk)
        assert adapter.validate_python({"kind": "retry", "delay": 30}).delay == 30
        assert isinstance(adapter.validate_python({"kind": "fatal", "error": "x"}), PipelineFatal)

    def test_retry_delay_cannot_be_negative(self):
        with pytest.raises(ValidationError):
            PipelineRetry(delay=-1)
