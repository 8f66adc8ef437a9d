"""Request and response bodies of the HTTP API."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .msgs import DecodeError, EncodedImage


def _get(data: Any, key: str) -> Any:
    if not isinstance(data, Mapping):
        raise DecodeError(f"expected a mapping, got {type(data).__name__}")
    if key not in data:
        raise DecodeError(f"missing field `{key}`")
    return data[key]


def _get_str(data: Any, key: str) -> str:
    value = _get(data, key)
    if not isinstance(value, str):
        raise DecodeError(f"field `{key}` must be a string")
    return value


def _get_u8(data: Any, key: str) -> int:
    value = _get(data, key)
    if isinstance(value, str) and value.isascii() and value.isdigit():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 0xFF:
        raise DecodeError(f"field `{key}` must be an integer in [0, 255], got {value!r}")
    return value


def _single_variant(data: Any) -> tuple[str, Any]:
    if not isinstance(data, Mapping) or len(data) != 1:
        raise DecodeError("expected a mapping with exactly one variant")
    ((name, value),) = data.items()
    return name, value


@dataclass(frozen=True)
class InferenceSettingsQuery:
    """A new prompt for the inference pipeline."""

    prompt: str

    @classmethod
    def from_dict(cls, data: Any) -> InferenceSettingsQuery:
        return cls(_get_str(data, "prompt"))

    def to_dict(self) -> dict[str, Any]:
        return {"prompt": self.prompt}


@dataclass(frozen=True)
class InferenceResultQuery:
    """Which channel to read an inference result from."""

    channel_id: int

    @classmethod
    def from_dict(cls, data: Any) -> InferenceResultQuery:
        return cls(_get_u8(data, "channel_id"))


@dataclass(frozen=True)
class InferenceResult:
    """A prompt and the model's response for one channel."""

    stamp_ns: int
    channel_id: int
    prompt: str
    response: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "stamp_ns": self.stamp_ns,
            "channel_id": self.channel_id,
            "prompt": self.prompt,
            "response": self.response,
        }


@dataclass(frozen=True)
class InferenceResponse:
    """Either an inference result or an error message."""

    result: InferenceResult | None = None
    message: str | None = None

    @classmethod
    def success(cls, result: InferenceResult) -> InferenceResponse:
        return cls(result=result)

    @classmethod
    def error(cls, message: str) -> InferenceResponse:
        return cls(message=message)

    def to_dict(self) -> dict[str, Any]:
        if self.result is not None:
            return {"Success": self.result.to_dict()}
        return {"Error": {"error": self.message or ""}}


@dataclass(frozen=True)
class PipelineStartRequest:
    """The name of a pipeline to start."""

    name: str

    @classmethod
    def from_dict(cls, data: Any) -> PipelineStartRequest:
        return cls(_get_str(data, "name"))

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name}


@dataclass(frozen=True)
class PipelineStopRequest:
    """The name of a pipeline to stop."""

    name: str

    @classmethod
    def from_dict(cls, data: Any) -> PipelineStopRequest:
        return cls(_get_str(data, "name"))

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name}


class RecordingCommand(Enum):
    """A command for the recorder."""

    START = "Start"
    STOP = "Stop"


@dataclass(frozen=True)
class RecordingQuery:
    """A recording command sent over the API."""

    command: RecordingCommand

    @classmethod
    def from_dict(cls, data: Any) -> RecordingQuery:
        value = _get(data, "command")
        try:
            return cls(RecordingCommand(value))
        except ValueError as exc:
            raise DecodeError(f"unknown recording command {value!r}") from exc

    def to_dict(self) -> dict[str, Any]:
        return {"command": self.command.value}


@dataclass(frozen=True)
class StreamingQuery:
    """Which channel to read a streamed image from."""

    channel_id: int

    @classmethod
    def from_dict(cls, data: Any) -> StreamingQuery:
        return cls(_get_u8(data, "channel_id"))


@dataclass(frozen=True)
class StreamingResponse:
    """Either an encoded image or an error message."""

    image: EncodedImage | None = None
    message: str | None = None

    @classmethod
    def success(cls, image: EncodedImage) -> StreamingResponse:
        return cls(image=image)

    @classmethod
    def error(cls, message: str) -> StreamingResponse:
        return cls(message=message)

    def to_dict(self) -> dict[str, Any]:
        if self.image is not None:
            return {"Success": self.image.to_dict()}
        return {"Error": {"error": self.message or ""}}

    @classmethod
    def from_dict(cls, data: Any) -> StreamingResponse:
        name, value = _single_variant(data)
        if name == "Success":
            return cls.success(EncodedImage.from_dict(value))
        if name == "Error":
            return cls.error(_get_str(value, "error"))
        raise DecodeError(f"unknown variant `{name}`")