"""Pipeline tasks that encode camera images and publish results to the server."""

from __future__ import annotations

import io
import logging

from PIL import Image

from .models import InferenceResult
from .msgs import EncodedImage, ImageRgb8Msg, PromptResponseMsg
from .pipeline import SERVER_GLOBAL_STATE, ServerGlobalState

logger = logging.getLogger(__name__)


class ImageBroadcast:
    """Publishes encoded images on the image channel matching their channel id."""

    def __init__(self, state: ServerGlobalState | None = None) -> None:
        self.state = state if state is not None else SERVER_GLOBAL_STATE

    def process(self, msg: EncodedImage | None) -> None:
        if msg is None:
            return
        self.state.result_store.images[msg.channel_id].send(msg)


class InferenceBroadcast:
    """Publishes prompt responses on the inference channel matching their channel id."""

    def __init__(self, state: ServerGlobalState | None = None) -> None:
        self.state = state if state is not None else SERVER_GLOBAL_STATE

    def process(self, msg: PromptResponseMsg | None) -> None:
        if msg is None:
            return
        self.state.result_store.inference[msg.channel_id].send(
            InferenceResult(
                stamp_ns=msg.stamp_ns,
                channel_id=msg.channel_id,
                prompt=msg.prompt,
                response=msg.response,
            )
        )


class ImageEncoder:
    """Compresses raw RGB images to JPEG."""

    def process(self, msg: ImageRgb8Msg | None) -> EncodedImage | None:
        if msg is None:
            return None
        image = msg.image
        buffer = io.BytesIO()
        try:
            picture = Image.frombytes("RGB", (image.cols, image.rows), image.data)
            picture.save(buffer, format="JPEG")
        except (ValueError, OSError, SystemError) as exc:
            raise RuntimeError("Failed to encode image") from exc
        return EncodedImage(
            stamp_ns=msg.stamp_ns,
            channel_id=msg.channel_id,
            data=buffer.getvalue(),
            encoding="jpeg",
        )