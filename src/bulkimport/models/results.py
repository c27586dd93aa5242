"""Tagged outcome of running a pipeline transformation."""

from __future__ import annotations

from typing import Literal, Union

from pydantic import BaseModel, Field


class PipelineOk(BaseModel):
    kind: Literal["ok"] = "ok"


class PipelineRetry(BaseModel):
    """The pipeline hit a transient condition and asks to be run again later."""

    kind: Literal["retry"] = "retry"
    delay: float = Field(ge=0)
    reason: str = ""


class PipelineFatal(BaseModel):
    kind: Literal["fatal"] = "fatal"
    error: str
    exception_class: str = "PipelineError"


PipelineResult = Union[PipelineOk, PipelineRetry, PipelineFatal]
