"""Registry mapping pipeline names to pipeline implementations."""

from __future__ import annotations

from typing import Iterator

from bulkimport.core.exceptions import UnknownPipelineError
from bulkimport.core.protocols import IPipeline


class PipelineRegistry:
    """Name -> IPipeline lookup used in place of class loading by name."""

    def __init__(self, pipelines: dict[str, IPipeline] | None = None) -> None:
        self._pipelines: dict[str, IPipeline] = dict(pipelines or {})

    def register(self, name: str, pipeline: IPipeline) -> None:
        if name in self._pipelines:
            raise ValueError(f"Pipeline {name!r} is already registered")
        self._pipelines[name] = pipeline

    def get(self, name: str) -> IPipeline:
        try:
            return self._pipelines[name]
        except KeyError:
            raise UnknownPipelineError(f"No pipeline registered as {name!r}") from None

    def __contains__(self, name: object) -> bool:
        return name in self._pipelines

    def __iter__(self) -> Iterator[str]:
        return iter(self._pipelines)
