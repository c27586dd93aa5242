"""HTTP client for relation export statuses on the source instance."""

from __future__ import annotations

from typing import Any, Optional
from urllib.parse import quote

import httpx

from bulkimport.core.exceptions import ExportStatusError
from bulkimport.models.entity import Entity, PortableType

_RESOURCE = {PortableType.PROJECT: "projects", PortableType.GROUP: "groups"}


class HttpExportSource:
    """Production IExportSource reading ``export_relations/status``."""

    def __init__(self, base_url: str, access_token: str = "", timeout: int = 10,
                 client: httpx.Client | None = None) -> None:
        headers = {"PRIVATE-TOKEN": access_token} if access_token else {}
        self._client = client or httpx.Client(
            base_url=base_url, headers=headers, timeout=timeout,
        )

    def _status_path(self, entity: Entity) -> str:
        resource = _RESOURCE[entity.portable_type]
        return f"/{resource}/{quote(entity.source_full_path, safe='')}/export_relations/status"

    def fetch_relation_status(self, entity: Entity, relation: str) -> Optional[dict[str, Any]]:
        """Return the status entry for ``relation``, or None if it has none yet."""
        try:
            resp = self._client.get(self._status_path(entity), params={"relation": relation})
            resp.raise_for_status()
            payload = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ExportStatusError(f"Failed to fetch export status: {exc}") from exc

        if isinstance(payload, dict):
            payload = [payload]
        if not isinstance(payload, list):
            raise ExportStatusError(f"Unexpected export status payload: {payload!r}")

        for entry in payload:
            if isinstance(entry, dict) and entry.get("relation") == relation:
                return entry
        return None

    def close(self) -> None:
        self._client.close()
