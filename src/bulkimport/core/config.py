"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class DynamoDBConfig(BaseSettings):
    """DynamoDB import-state configuration."""

    model_config = {"env_prefix": "BULKIMPORT_DYNAMO_"}

    table_suffix: str = ""  # "-dev", "-uat", or "" for prod
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override


class RedisConfig(BaseSettings):
    """Redis lease store and health signal configuration."""

    model_config = {"env_prefix": "BULKIMPORT_REDIS_"}

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    health_key_prefix: str = "db_health"


class SQSConfig(BaseSettings):
    """SQS queue configuration."""

    model_config = {"env_prefix": "BULKIMPORT_SQS_"}

    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override
    pipeline_queue_url: str = ""
    batch_queue_url: str = ""
    wait_time_seconds: int = 20
    max_messages: int = 10


class SourceConfig(BaseSettings):
    """Remote source instance the export is pulled from."""

    model_config = {"env_prefix": "BULKIMPORT_SOURCE_"}

    base_url: str = "https://source.example.com/api/v4"
    access_token: str = ""
    timeout: int = 10


class WorkerConfig(BaseSettings):
    """Pipeline worker timings and retry budget (seconds)."""

    model_config = {"env_prefix": "BULKIMPORT_WORKER_"}

    file_extraction_perform_delay: int = 10
    defer_on_health_delay: int = 300
    empty_export_status_timeout: int = 300
    lease_timeout: int = 30
    max_retries: int = 3
    defer_on_health_signal: bool = True
    default_schema: str = "main"


class SentryConfig(BaseSettings):
    """Sentry error tracking configuration."""

    model_config = {"env_prefix": "BULKIMPORT_SENTRY_"}

    dsn: str | None = None
    traces_sample_rate: float = 0.0


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "BULKIMPORT_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"
    log_json: bool = False

    dynamodb: DynamoDBConfig = DynamoDBConfig()
    redis: RedisConfig = RedisConfig()
    sqs: SQSConfig = SQSConfig()
    source: SourceConfig = SourceConfig()
    worker: WorkerConfig = WorkerConfig()
    sentry: SentryConfig = SentryConfig()
