"""Pluggable persistence backends behind Protocol interfaces."""

from __future__ import annotations

from dataclasses import dataclass

from bulkimport.core.config import AppSettings
from bulkimport.persistence.dynamodb_backend import DynamoDBImportStore
from bulkimport.persistence.http_export_source import HttpExportSource
from bulkimport.persistence.redis_backend import RedisHealthOracle, RedisLeaseStore
from bulkimport.persistence.sqs_scheduler import SQSScheduler


@dataclass
class Persistence:
    store: DynamoDBImportStore
    lease_store: RedisLeaseStore
    health_oracle: RedisHealthOracle
    scheduler: SQSScheduler
    export_source: HttpExportSource


def create_persistence(settings: AppSettings | None = None) -> Persistence:
    """Create wired-up persistence backends from application settings."""
    if settings is None:
        settings = AppSettings()

    store = DynamoDBImportStore(
        table_suffix=settings.dynamodb.table_suffix,
        region=settings.dynamodb.region,
        endpoint_url=settings.dynamodb.endpoint_url,
    )

    lease_store = RedisLeaseStore(
        host=settings.redis.host,
        port=settings.redis.port,
        db=settings.redis.db,
    )

    health_oracle = RedisHealthOracle(
        host=settings.redis.host,
        port=settings.redis.port,
        db=settings.redis.db,
        key_prefix=settings.redis.health_key_prefix,
    )

    scheduler = SQSScheduler(
        pipeline_queue_url=settings.sqs.pipeline_queue_url,
        batch_queue_url=settings.sqs.batch_queue_url,
        region=settings.sqs.region,
        endpoint_url=settings.sqs.endpoint_url,
    )

    export_source = HttpExportSource(
        base_url=settings.source.base_url,
        access_token=settings.source.access_token,
        timeout=settings.source.timeout,
    )

    return Persistence(
        store=store,
        lease_store=lease_store,
        health_oracle=health_oracle,
        scheduler=scheduler,
        export_source=export_source,
    )
