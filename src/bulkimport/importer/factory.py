"""Production wiring for the pipeline worker and its runtime."""

from __future__ import annotations

from bulkimport.core.config import AppSettings
from bulkimport.core.logging import configure_logging
from bulkimport.importer.health import HealthDeferralPolicy, PipelineSchemaResolver, SchemaCatalog
from bulkimport.importer.lease import LeaseGuard
from bulkimport.importer.worker import PipelineWorker
from bulkimport.observability.error_tracking import SentryErrorTracker, initialise_sentry
from bulkimport.orchestration.sqs_consumer import SQSConsumer
from bulkimport.persistence import Persistence, create_persistence
from bulkimport.pipelines.registry import PipelineRegistry


def create_worker(
    registry: PipelineRegistry,
    catalog: SchemaCatalog,
    settings: AppSettings | None = None,
    persistence: Persistence | None = None,
) -> PipelineWorker:
    if settings is None:
        settings = AppSettings()
    if persistence is None:
        persistence = create_persistence(settings)

    health_policy = HealthDeferralPolicy(
        PipelineSchemaResolver(registry, catalog),
        persistence.health_oracle,
        default_schema=settings.worker.default_schema,
        delay=settings.worker.defer_on_health_delay,
        enabled=settings.worker.defer_on_health_signal,
    )

    return PipelineWorker(
        entities=persistence.store,
        trackers=persistence.store,
        batches=persistence.store,
        failures=persistence.store,
        registry=registry,
        export_source=persistence.export_source,
        health_policy=health_policy,
        lease_guard=LeaseGuard(persistence.lease_store, timeout=settings.worker.lease_timeout),
        scheduler=persistence.scheduler,
        error_tracker=SentryErrorTracker(),
        config=settings.worker,
    )


def create_consumer(
    registry: PipelineRegistry,
    catalog: SchemaCatalog,
    settings: AppSettings | None = None,
) -> SQSConsumer:
    """Configure logging and error tracking, then build the SQS runtime."""
    if settings is None:
        settings = AppSettings()

    configure_logging(level=settings.log_level, json_output=settings.log_json)
    initialise_sentry(settings)

    return SQSConsumer(
        create_worker(registry, catalog, settings),
        settings.sqs.pipeline_queue_url,
        max_retries=settings.worker.max_retries,
        region=settings.sqs.region,
        endpoint_url=settings.sqs.endpoint_url,
        wait_time_seconds=settings.sqs.wait_time_seconds,
        max_messages=settings.sqs.max_messages,
    )
