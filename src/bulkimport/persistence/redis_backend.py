"""Redis backends for the pipeline lease store and destination health signals."""

from __future__ import annotations

from typing import Optional
from uuid import uuid4

import redis

from bulkimport.core.exceptions import HealthSignalError, LeaseError


class RedisLeaseStore:
    """Production ILeaseStore: ``SET NX EX`` leases with token-checked release."""

    def __init__(self, host: str = "localhost", port: int = 6379, db: int = 0) -> None:
        self._host = host
        self._port = port
        self._db = db
        self._client = redis.Redis(
            host=host, port=port, db=db, decode_responses=True,
        )

    def try_acquire(self, key: str, timeout: int) -> Optional[str]:
        token = uuid4().hex
        try:
            acquired = self._client.set(key, token, nx=True, ex=timeout)
        except Exception as exc:
            raise LeaseError(f"Redis SET NX failed for key={key!r}: {exc}") from exc
        return token if acquired else None

    def release(self, key: str, token: str) -> None:
        """Delete the lease only while it still carries ``token``."""
        try:
            with self._client.pipeline() as pipe:
                pipe.watch(key)
                if pipe.get(key) != token:
                    pipe.unwatch()
                    return
                pipe.multi()
                pipe.delete(key)
                pipe.execute()
        except redis.WatchError:
            # Expired and re-acquired by another worker in the meantime.
            return
        except Exception as exc:
            raise LeaseError(f"Redis lease release failed for key={key!r}: {exc}") from exc

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except Exception:
            return False


class RedisHealthOracle:
    """IHealthOracle reading load indicators written by an external monitor.

    A key ``<prefix>:<schema>`` flags the whole schema, ``<prefix>:<schema>:<table>``
    a single table. Keys carry their own TTL; presence means "under load".
    """

    def __init__(self, host: str = "localhost", port: int = 6379, db: int = 0,
                 key_prefix: str = "db_health") -> None:
        self._key_prefix = key_prefix
        self._client = redis.Redis(
            host=host, port=port, db=db, decode_responses=True,
        )

    def _keys(self, schema: str, tables: list[str]) -> list[str]:
        return [f"{self._key_prefix}:{schema}"] + [
            f"{self._key_prefix}:{schema}:{table}" for table in tables
        ]

    def is_under_load(self, schema: str, tables: list[str]) -> bool:
        try:
            return self._client.exists(*self._keys(schema, tables)) > 0
        except Exception as exc:
            raise HealthSignalError(f"Redis EXISTS failed for schema={schema!r}: {exc}") from exc
