"""Create the DynamoDB tables and SQS queues used by the pipeline coordinator.

Usage:
    python scripts/create_tables.py --endpoint-url http://localhost:4566 --with-queues
"""

from __future__ import annotations

import argparse
from typing import Any

import boto3

TABLE_DEFINITIONS: list[dict[str, Any]] = [
    {"name": "bulkimport-entities"},
    {"name": "bulkimport-trackers"},
    {"name": "bulkimport-failures"},
]

QUEUE_NAMES = ["bulkimport-pipeline", "bulkimport-pipeline-batch"]


def create_tables(ddb: Any, suffix: str = "") -> list[str]:
    """Create all import-state tables. Skips tables that already exist."""
    client = ddb.meta.client
    existing = client.list_tables().get("TableNames", [])
    created: list[str] = []

    for defn in TABLE_DEFINITIONS:
        table_name = f"{defn['name']}{suffix}"
        if table_name in existing:
            print(f"  Table {table_name} already exists, skipping")
            continue
        client.create_table(
            TableName=table_name,
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"},
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        created.append(table_name)
        print(f"  Created table {table_name}")
    return created


def create_queues(sqs: Any, suffix: str = "") -> dict[str, str]:
    """Create the pipeline and batch queues; returns name -> queue URL."""
    urls: dict[str, str] = {}
    for name in QUEUE_NAMES:
        queue_name = f"{name}{suffix}"
        urls[queue_name] = sqs.create_queue(QueueName=queue_name)["QueueUrl"]
        print(f"  Queue {queue_name}: {urls[queue_name]}")
    return urls


def main() -> None:
    parser = argparse.ArgumentParser(description="Create bulk import coordinator tables")
    parser.add_argument("--endpoint-url", default=None, help="AWS endpoint (e.g. http://localhost:4566)")
    parser.add_argument("--table-suffix", default="", help="Table/queue name suffix (e.g. -dev)")
    parser.add_argument("--region", default="us-east-1", help="AWS region")
    parser.add_argument("--with-queues", action="store_true", help="Also create SQS queues")
    args = parser.parse_args()

    kwargs: dict[str, Any] = {"region_name": args.region}
    if args.endpoint_url:
        kwargs["endpoint_url"] = args.endpoint_url

    print("Creating tables...")
    create_tables(boto3.resource("dynamodb", **kwargs), suffix=args.table_suffix)

    if args.with_queues:
        print("Creating queues...")
        create_queues(boto3.client("sqs", **kwargs), suffix=args.table_suffix)

    print("Done!")


if __name__ == "__main__":
    main()
