"""Messages exchanged between pipeline tasks, with JSON-style and binary encodings.

The binary encoding uses variable-length little-endian integers: values
below 251 take one byte; larger values are a marker byte (251, 252, 253
or 254) followed by 2, 4, 8 or 16 bytes. Single-byte fields are written
raw, and byte strings and text are written as their length followed by
their bytes.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

U8_MAX = 0xFF
U64_MAX = 0xFFFF_FFFF_FFFF_FFFF

_VARINT_WIDTH = {251: 2, 252: 4, 253: 8, 254: 16}


class DecodeError(ValueError):
    """Raised when a message cannot be decoded."""


def _check_uint(value: Any, name: str, maximum: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= maximum:
        raise ValueError(f"{name} must be an integer in [0, {maximum}], got {value!r}")


def _varint(value: int) -> bytes:
    if value < 251:
        return bytes([value])
    for marker, width in _VARINT_WIDTH.items():
        if value < 1 << (8 * width):
            return bytes([marker]) + value.to_bytes(width, "little")
    raise ValueError(f"integer too large to encode: {value}")


def _byte_string(payload: bytes) -> bytes:
    return _varint(len(payload)) + payload


class _Reader:
    """Sequential reader over an encoded buffer."""

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0

    def take(self, count: int) -> bytes:
        end = self._pos + count
        if end > len(self._data):
            raise DecodeError("unexpected end of input")
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def u8(self) -> int:
        return self.take(1)[0]

    def varint(self, maximum: int = U64_MAX) -> int:
        tag = self.u8()
        if tag < 251:
            value = tag
        elif tag in _VARINT_WIDTH:
            value = int.from_bytes(self.take(_VARINT_WIDTH[tag]), "little")
        else:
            raise DecodeError(f"invalid integer marker byte {tag}")
        if value > maximum:
            raise DecodeError(f"integer {value} out of range (max {maximum})")
        return value

    def byte_string(self) -> bytes:
        return self.take(self.varint())

    def text(self) -> str:
        try:
            return self.byte_string().decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"invalid utf-8 text: {exc}") from exc

    def finish(self) -> None:
        if self._pos != len(self._data):
            raise DecodeError(f"{len(self._data) - self._pos} trailing bytes after message")


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


def _get_bytes(data: Any, key: str) -> bytes:
    value = _get(data, key)
    if isinstance(value, str):
        raise DecodeError(f"field `{key}` must be a sequence of bytes")
    try:
        return bytes(value)
    except (TypeError, ValueError) as exc:
        raise DecodeError(f"field `{key}` must be a sequence of bytes: {exc}") from exc


@dataclass(frozen=True)
class ImageRgb8:
    """An 8-bit RGB image stored row by row, three bytes per pixel."""

    rows: int = 0
    cols: int = 0
    data: bytes = b""

    def __post_init__(self) -> None:
        _check_uint(self.rows, "rows", U64_MAX)
        _check_uint(self.cols, "cols", U64_MAX)
        object.__setattr__(self, "data", bytes(self.data))
        expected = self.rows * self.cols * 3
        if len(self.data) != expected:
            raise ValueError(
                f"image data has {len(self.data)} bytes, expected {expected} "
                f"for {self.rows}x{self.cols}x3"
            )

    def size(self) -> tuple[int, int]:
        """Return the image size as (width, height)."""
        return (self.cols, self.rows)


@dataclass
class ImageRgb8Msg:
    """A timestamped raw RGB image from one camera channel."""

    stamp_ns: int = 0
    channel_id: int = 0
    image: ImageRgb8 = field(default_factory=ImageRgb8)

    def __post_init__(self) -> None:
        _check_uint(self.stamp_ns, "stamp_ns", U64_MAX)
        _check_uint(self.channel_id, "channel_id", U8_MAX)

    def __repr__(self) -> str:
        return (
            f"ImageRgb8Msg(stamp_ns: {self.stamp_ns}, channel_id: {self.channel_id}, "
            f"size: {self.image.size()})"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "stamp_ns": self.stamp_ns,
            "channel_id": self.channel_id,
            "rows": self.image.rows,
            "cols": self.image.cols,
            "data": list(self.image.data),
        }

    @classmethod
    def from_dict(cls, data: Any) -> ImageRgb8Msg:
        stamp_ns = _get(data, "stamp_ns")
        channel_id = _get(data, "channel_id")
        rows = _get(data, "rows")
        cols = _get(data, "cols")
        payload = _get_bytes(data, "data")
        try:
            return cls(stamp_ns, channel_id, ImageRgb8(rows, cols, payload))
        except ValueError as exc:
            raise DecodeError(str(exc)) from exc

    def to_bytes(self) -> bytes:
        return b"".join(
            [
                _varint(self.stamp_ns),
                bytes([self.channel_id]),
                _varint(self.image.rows),
                _varint(self.image.cols),
                _byte_string(self.image.data),
            ]
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> ImageRgb8Msg:
        reader = _Reader(data)
        stamp_ns = reader.varint()
        channel_id = reader.u8()
        rows = reader.varint()
        cols = reader.varint()
        payload = reader.byte_string()
        reader.finish()
        try:
            image = ImageRgb8(rows, cols, payload)
        except ValueError as exc:
            raise DecodeError(str(exc)) from exc
        return cls(stamp_ns, channel_id, image)


@dataclass
class EncodedImage:
    """A compressed image (for example JPEG) from one camera channel."""

    stamp_ns: int = 0
    channel_id: int = 0
    data: bytes = b""
    encoding: str = ""

    def __post_init__(self) -> None:
        _check_uint(self.stamp_ns, "stamp_ns", U64_MAX)
        _check_uint(self.channel_id, "channel_id", U8_MAX)
        self.data = bytes(self.data)

    def to_dict(self) -> dict[str, Any]:
        return {
            "stamp_ns": self.stamp_ns,
            "channel_id": self.channel_id,
            "data": list(self.data),
            "encoding": self.encoding,
        }

    @classmethod
    def from_dict(cls, data: Any) -> EncodedImage:
        stamp_ns = _get(data, "stamp_ns")
        channel_id = _get(data, "channel_id")
        payload = _get_bytes(data, "data")
        encoding = _get_str(data, "encoding")
        try:
            return cls(stamp_ns, channel_id, payload, encoding)
        except ValueError as exc:
            raise DecodeError(str(exc)) from exc

    def to_bytes(self) -> bytes:
        return b"".join(
            [
                _varint(self.stamp_ns),
                bytes([self.channel_id]),
                _byte_string(self.data),
                _byte_string(self.encoding.encode("utf-8")),
            ]
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> EncodedImage:
        reader = _Reader(data)
        stamp_ns = reader.varint()
        channel_id = reader.u8()
        payload = reader.byte_string()
        encoding = reader.text()
        reader.finish()
        return cls(stamp_ns, channel_id, payload, encoding)


@dataclass
class PromptResponseMsg:
    """A prompt and the model's response for one camera channel."""

    stamp_ns: int = 0
    channel_id: int = 0
    prompt: str = ""
    response: str = ""

    def __post_init__(self) -> None:
        _check_uint(self.stamp_ns, "stamp_ns", U64_MAX)
        _check_uint(self.channel_id, "channel_id", U8_MAX)

    def to_dict(self) -> dict[str, Any]:
        return {
            "stamp_ns": self.stamp_ns,
            "channel_id": self.channel_id,
            "prompt": self.prompt,
            "response": self.response,
        }

    @classmethod
    def from_dict(cls, data: Any) -> PromptResponseMsg:
        stamp_ns = _get(data, "stamp_ns")
        channel_id = _get(data, "channel_id")
        prompt = _get_str(data, "prompt")
        response = _get_str(data, "response")
        try:
            return cls(stamp_ns, channel_id, prompt, response)
        except ValueError as exc:
            raise DecodeError(str(exc)) from exc

    def to_bytes(self) -> bytes:
        return b"".join(
            [
                _varint(self.stamp_ns),
                bytes([self.channel_id]),
                _byte_string(self.prompt.encode("utf-8")),
                _byte_string(self.response.encode("utf-8")),
            ]
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> PromptResponseMsg:
        reader = _Reader(data)
        stamp_ns = reader.varint()
        channel_id = reader.u8()
        prompt = reader.text()
        response = reader.text()
        reader.finish()
        return cls(stamp_ns, channel_id, prompt, response)