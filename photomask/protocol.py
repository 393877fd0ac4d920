"""
Message protocol between the preview pipeline and the compositing worker.

Requests and responses are closed tagged unions keyed on ``type``.
"""

from typing import Annotated, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

from .models import BlurBrushStroke, BlurRect


class _Message(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class InitRequest(_Message):
    """Capability probe."""

    type: Literal["INIT"] = "INIT"


class PreviewRequest(_Message):
    """Full source pixel buffer plus the regions to composite."""

    type: Literal["PREVIEW"] = "PREVIEW"
    generation: int = Field(..., ge=0)
    pixels: bytes = Field(..., repr=False)
    mode: str = "RGB"
    width: int = Field(..., ge=1)
    height: int = Field(..., ge=1)
    rects: Tuple[BlurRect, ...] = ()
    brush: Tuple[BlurBrushStroke, ...] = ()


class InitResponse(_Message):
    type: Literal["INIT_RESPONSE"] = "INIT_RESPONSE"
    has_offscreen_support: bool = Field(..., alias="hasOffscreenSupport")


class PreviewResponse(_Message):
    """Either a PNG-encoded result or an error message."""

    type: Literal["PREVIEW_RESPONSE"] = "PREVIEW_RESPONSE"
    generation: int = Field(..., ge=0)
    result: Optional[bytes] = Field(default=None, repr=False)
    error: Optional[str] = None

    @model_validator(mode="after")
    def _result_or_error(self) -> "PreviewResponse":
        if (self.result is None) == (self.error is None):
            raise ValueError("PreviewResponse needs exactly one of result or error")
        return self


WorkerRequest = Annotated[Union[InitRequest, PreviewRequest], Field(discriminator="type")]
WorkerResponse = Annotated[
    Union[InitResponse, PreviewResponse], Field(discriminator="type")
]

request_adapter = TypeAdapter(WorkerRequest)
response_adapter = TypeAdapter(WorkerResponse)
