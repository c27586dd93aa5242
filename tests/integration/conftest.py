"""Integration test fixtures — LocalStack DynamoDB and SQS."""

from __future__ import annotations

import os
import sys

import boto3
import pytest

# Default LocalStack endpoint
LOCALSTACK_URL = os.environ.get("LOCALSTACK_URL", "http://localhost:4566")
TABLE_SUFFIX = "-inttest"
REGION = "us-east-1"


def _localstack_available() -> bool:
    """Check if LocalStack is reachable."""
    try:
        client = boto3.client("dynamodb", region_name=REGION, endpoint_url=LOCALSTACK_URL)
        client.list_tables()
        return True
    except Exception:
        return False


skip_no_localstack = pytest.mark.skipif(
    not _localstack_available(),
    reason="LocalStack not available",
)


@pytest.fixture(scope="session")
def localstack_ddb():
    """DynamoDB resource pointing at LocalStack."""
    return boto3.resource("dynamodb", region_name=REGION, endpoint_url=LOCALSTACK_URL)


@pytest.fixture(scope="session")
def localstack_sqs():
    """SQS client pointing at LocalStack."""
    return boto3.client("sqs", region_name=REGION, endpoint_url=LOCALSTACK_URL)


@pytest.fixture(scope="session")
def provisioned(localstack_ddb, localstack_sqs):
    """Create tables and queues via the provisioning script."""
    sys.path.insert(0, str(os.path.join(os.path.dirname(__file__), "..", "..", "scripts")))
    from create_tables import create_queues, create_tables

    create_tables(localstack_ddb, suffix=TABLE_SUFFIX)
    urls = create_queues(localstack_sqs, suffix=TABLE_SUFFIX)
    return {
        "pipeline_queue_url": urls[f"bulkimport-pipeline{TABLE_SUFFIX}"],
        "batch_queue_url": urls[f"bulkimport-pipeline-batch{TABLE_SUFFIX}"],
    }
