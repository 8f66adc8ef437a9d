"""Request handlers of the HTTP API, independent of any web framework.

Every handler returns a pair of an HTTP status and a JSON-ready body.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from http import HTTPStatus
from typing import Any

from .models import (
    InferenceResponse,
    InferenceResultQuery,
    InferenceSettingsQuery,
    PipelineStartRequest,
    PipelineStopRequest,
    RecordingQuery,
    StreamingQuery,
    StreamingResponse,
)
from .pipeline import PipelineStore, ResultStore, spawn_bubbaloop_thread

logger = logging.getLogger(__name__)

Response = tuple[HTTPStatus, Any]
PipelineSpawner = Callable[[threading.Event], threading.Thread]

SUPPORTED_PIPELINES = ("bubbaloop", "cameras", "inference")

# Pipelines that can be started from this package; other supported names
# are reported as not supported until a spawner is registered here.
PIPELINE_SPAWNERS: dict[str, PipelineSpawner] = {"bubbaloop": spawn_bubbaloop_thread}


def get_inference_result(
    store: ResultStore, query: InferenceResultQuery, timeout: float | None = None
) -> Response:
    """Wait for the next inference result on the queried channel."""
    logger.debug("Request to get inference result: %s", query.channel_id)
    receiver = store.inference[query.channel_id].subscribe()
    try:
        result = receiver.recv(timeout)
    except TimeoutError:
        return HTTPStatus.OK, InferenceResponse.error(
            "Failed to get inference result: `just start-pipeline inference`"
        ).to_dict()
    return HTTPStatus.OK, InferenceResponse.success(result).to_dict()


def post_inference_settings(store: ResultStore, query: InferenceSettingsQuery) -> Response:
    """Pass a new prompt on to the inference pipeline."""
    logger.debug("Request to post inference settings: %s", query.prompt)
    store.inference_settings.send(query.prompt)
    return HTTPStatus.OK, {"success": True}


def post_recording_command(store: ResultStore, query: RecordingQuery) -> Response:
    """Pass a start or stop command on to the recorder."""
    logger.debug("Request to post recording command: %s", query.command)
    store.recording.send(query.command)
    return HTTPStatus.OK, {"success": True}


def get_streaming_image(
    store: ResultStore, query: StreamingQuery, timeout: float | None = None
) -> Response:
    """Wait for the next encoded image on the queried channel."""
    receiver = store.images[query.channel_id].subscribe()
    try:
        image = receiver.recv(timeout)
    except TimeoutError:
        return HTTPStatus.OK, StreamingResponse.error(
            "Failed to get streaming image: `just start-pipeline streaming`"
        ).to_dict()
    return HTTPStatus.OK, StreamingResponse.success(image).to_dict()


def start_pipeline(store: PipelineStore, request: PipelineStartRequest) -> Response:
    """Start the named pipeline unless it is unknown or already running."""
    logger.debug("Request to start pipeline: %s", request.name)
    name = request.name
    if name not in SUPPORTED_PIPELINES:
        logger.error(
            "Pipeline %s not supported. Try 'bubbaloop', 'cameras', 'inference', instead", name
        )
        return HTTPStatus.BAD_REQUEST, {
            "error": "Pipeline not supported. Try 'bubbaloop', 'cameras', 'inference' instead"
        }

    with store.lock:
        if name in store:
            logger.error("Pipeline %s already exists", name)
            return HTTPStatus.BAD_REQUEST, {"error": "Pipeline already exists"}

        spawner = PIPELINE_SPAWNERS.get(name)
        if spawner is None:
            logger.error("Pipeline %s not supported", name)
            return HTTPStatus.BAD_REQUEST, {"error": "Pipeline not supported"}

        stop_signal = threading.Event()
        store.register_pipeline(name, spawner(stop_signal), stop_signal)

    logger.debug("Pipeline %s started", name)
    return HTTPStatus.OK, {"message": f"Pipeline {name} started"}


def stop_pipeline(store: PipelineStore, request: PipelineStopRequest) -> Response:
    """Stop the named pipeline and wait for it to finish."""
    logger.debug("Request to stop pipeline: %s", request.name)
    if not store.unregister_pipeline(request.name):
        logger.error("Pipeline %s not found", request.name)
        return HTTPStatus.BAD_REQUEST, {"error": "Pipeline not found"}
    logger.debug("Pipeline %s stopped", request.name)
    return HTTPStatus.OK, {"message": f"Pipeline {request.name} stopped"}


def list_pipelines(store: PipelineStore) -> Response:
    """Describe every pipeline in the store."""
    logger.debug("Request to list pipelines")
    return HTTPStatus.OK, [info.to_dict() for info in store.list_pipelines()]