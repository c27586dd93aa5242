"""Unit test fixtures — in-memory collaborators wired into a PipelineWorker."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from bulkimport.core.config import WorkerConfig
from bulkimport.importer.health import HealthDeferralPolicy, PipelineSchemaResolver, SchemaCatalog
from bulkimport.importer.lease import LeaseGuard
from bulkimport.importer.worker import PipelineWorker
from bulkimport.models.entity import Entity, EntitySourceType
from bulkimport.models.tracker import Tracker, TrackerStatus
from bulkimport.pipelines.registry import PipelineRegistry
from tests.fakes import (
    NOW,
    MemoryErrorTracker,
    MemoryExportSource,
    MemoryHealthOracle,
    MemoryImportStore,
    MemoryLeaseStore,
    MemoryScheduler,
)


@pytest.fixture
def store():
    return MemoryImportStore()


@pytest.fixture
def scheduler():
    return MemoryScheduler()


@pytest.fixture
def lease_store():
    return MemoryLeaseStore()


@pytest.fixture
def oracle():
    return MemoryHealthOracle()


@pytest.fixture
def export_source():
    return MemoryExportSource()


@pytest.fixture
def error_tracker():
    return MemoryErrorTracker()


@pytest.fixture
def registry():
    return PipelineRegistry()


@pytest.fixture
def catalog():
    return SchemaCatalog(
        associations={"project": {"issues": "issues", "uploads": "uploads"}},
        tables_to_schema={"issues": "main", "uploads": "main"},
    )


@pytest.fixture
def config():
    return WorkerConfig(
        file_extraction_perform_delay=10,
        defer_on_health_delay=300,
        empty_export_status_timeout=300,
        lease_timeout=30,
        max_retries=3,
        defer_on_health_signal=True,
        default_schema="main",
    )


@pytest.fixture
def worker(store, scheduler, lease_store, oracle, export_source, error_tracker,
           registry, catalog, config):
    policy = HealthDeferralPolicy(
        PipelineSchemaResolver(registry, catalog),
        oracle,
        default_schema=config.default_schema,
        delay=config.defer_on_health_delay,
        enabled=config.defer_on_health_signal,
    )
    return PipelineWorker(
        entities=store,
        trackers=store,
        batches=store,
        failures=store,
        registry=registry,
        export_source=export_source,
        health_policy=policy,
        lease_guard=LeaseGuard(lease_store, timeout=config.lease_timeout),
        scheduler=scheduler,
        error_tracker=error_tracker,
        config=config,
        clock=lambda: NOW,
    )


@pytest.fixture
def entity(store):
    return store.save_entity(Entity(
        id="entity-1",
        bulk_import_id="import-1",
        source_type=EntitySourceType.PROJECT_ENTITY,
        source_full_path="acme/widgets",
        source_version="17.0.0",
        created_at=NOW - timedelta(hours=1),
    ))


@pytest.fixture
def make_tracker(store, entity):
    def _make(
        tracker_id: str = "tracker-1",
        pipeline_name: str = "issues_pipeline",
        status: TrackerStatus = TrackerStatus.ENQUEUED,
        created_at: datetime | None = NOW - timedelta(minutes=1),
        **kwargs,
    ) -> Tracker:
        return store.save_tracker(Tracker(
            id=tracker_id,
            entity_id=entity.id,
            pipeline_name=pipeline_name,
            status=status,
            created_at=created_at,
            **kwargs,
        ))

    return _make
