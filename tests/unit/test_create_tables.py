"""Tests for the table/queue creation script."""

from __future__ import annotations

import sys
from pathlib import Path

import boto3
import pytest
from moto import mock_aws

# Make scripts/ importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent / "scripts"))

from create_tables import create_queues, create_tables  # noqa: E402


@pytest.fixture
def aws():
    with mock_aws():
        yield boto3.resource("dynamodb", region_name="us-east-1")


class TestCreateTables:
    def test_creates_all_three_tables(self, aws):
        create_tables(aws, suffix="-test")
        tables = boto3.client("dynamodb", region_name="us-east-1").list_tables()["TableNames"]
        assert sorted(tables) == [
            "bulkimport-entities-test",
            "bulkimport-failures-test",
            "bulkimport-trackers-test",
        ]

    def test_idempotent_skips_existing(self, aws):
        create_tables(aws, suffix="-test")
        assert create_tables(aws, suffix="-test") == []


class TestCreateQueues:
    def test_creates_pipeline_and_batch_queues(self, aws):
        urls = create_queues(boto3.client("sqs", region_name="us-east-1"), suffix="-test")
        assert set(urls) == {"bulkimport-pipeline-test", "bulkimport-pipeline-batch-test"}
