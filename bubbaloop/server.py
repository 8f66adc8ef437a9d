"""The HTTP API server and the command that starts it."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from collections.abc import Callable
from typing import Any

import uvicorn
from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from . import handles
from .models import (
    InferenceResultQuery,
    InferenceSettingsQuery,
    PipelineStartRequest,
    PipelineStopRequest,
    RecordingQuery,
    StreamingQuery,
)
from .msgs import DecodeError
from .pipeline import SERVER_GLOBAL_STATE, ServerGlobalState
from .stats import get_sysinfo, get_whoami

logger = logging.getLogger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000

# Handlers waiting for a channel value block until one arrives.
_RECV_TIMEOUT: float | None = None


def _respond(result: handles.Response) -> JSONResponse:
    status, body = result
    return JSONResponse(body, status_code=int(status))


def _path_query(request: Request, model: Any) -> Any:
    try:
        return model.from_dict(request.path_params)
    except DecodeError as exc:
        raise HTTPException(400, f"Invalid URL: {exc}") from exc


async def _json_body(request: Request, model: Any) -> Any:
    content_type = request.headers.get("content-type", "")
    if content_type.split(";")[0].strip().lower() != "application/json":
        raise HTTPException(415, "Expected request with `Content-Type: application/json`")
    try:
        data = json.loads(await request.body())
    except ValueError as exc:
        raise HTTPException(400, f"Failed to parse the request body as JSON: {exc}") from exc
    try:
        return model.from_dict(data)
    except DecodeError as exc:
        raise HTTPException(
            422, f"Failed to deserialize the JSON body into the target type: {exc}"
        ) from exc


async def _on_channel(call: Callable[[], handles.Response]) -> JSONResponse:
    try:
        return _respond(await run_in_threadpool(call))
    except IndexError as exc:
        raise HTTPException(500, "Channel out of range") from exc


def create_app(state: ServerGlobalState) -> Starlette:
    """Build the application serving the API over ``state``."""
    results = state.result_store
    pipelines = state.pipeline_store

    async def index(request: Request) -> Response:
        return PlainTextResponse("Welcome to Bubbaloop!")

    async def whoami(request: Request) -> Response:
        return JSONResponse(await run_in_threadpool(get_whoami))

    async def sysinfo(request: Request) -> Response:
        return JSONResponse(await run_in_threadpool(get_sysinfo))

    async def streaming_image(request: Request) -> Response:
        query = _path_query(request, StreamingQuery)
        return await _on_channel(
            lambda: handles.get_streaming_image(results, query, _RECV_TIMEOUT)
        )

    async def recording(request: Request) -> Response:
        query = await _json_body(request, RecordingQuery)
        return _respond(handles.post_recording_command(results, query))

    async def inference_result(request: Request) -> Response:
        query = _path_query(request, InferenceResultQuery)
        return await _on_channel(
            lambda: handles.get_inference_result(results, query, _RECV_TIMEOUT)
        )

    async def inference_settings(request: Request) -> Response:
        query = await _json_body(request, InferenceSettingsQuery)
        return _respond(handles.post_inference_settings(results, query))

    async def pipeline_start(request: Request) -> Response:
        body = await _json_body(request, PipelineStartRequest)
        return _respond(await run_in_threadpool(handles.start_pipeline, pipelines, body))

    async def pipeline_stop(request: Request) -> Response:
        body = await _json_body(request, PipelineStopRequest)
        return _respond(await run_in_threadpool(handles.stop_pipeline, pipelines, body))

    async def pipeline_list(request: Request) -> Response:
        return _respond(handles.list_pipelines(pipelines))

    routes = [
        Route("/", index, methods=["GET"]),
        Route("/api/v0/stats/whoami", whoami, methods=["GET"]),
        Route("/api/v0/stats/sysinfo", sysinfo, methods=["GET"]),
        Route("/api/v0/streaming/image/{channel_id}", streaming_image, methods=["GET"]),
        Route("/api/v0/recording", recording, methods=["POST"]),
        Route("/api/v0/inference/result/{channel_id}", inference_result, methods=["GET"]),
        Route("/api/v0/inference/settings", inference_settings, methods=["POST"]),
        Route("/api/v0/pipeline/start", pipeline_start, methods=["POST"]),
        Route("/api/v0/pipeline/stop", pipeline_stop, methods=["POST"]),
        Route("/api/v0/pipeline/list", pipeline_list, methods=["GET"]),
    ]
    return Starlette(routes=routes)


def _split_addr(addr: str) -> tuple[str, int]:
    host, sep, port = addr.rpartition(":")
    if not sep or not host:
        raise ValueError(f"invalid address {addr!r}: expected host:port")
    try:
        number = int(port)
    except ValueError as exc:
        raise ValueError(f"invalid port in address {addr!r}") from exc
    if not 0 <= number <= 0xFFFF:
        raise ValueError(f"port out of range in address {addr!r}")
    return host.strip("[]"), number


class ApiServer:
    """Serves the API until the process is interrupted."""

    async def start(self, addr: str, state: ServerGlobalState) -> None:
        host, port = _split_addr(addr)
        logger.info("🚀 Starting the server")
        logger.info("🔥 Listening on: %s", addr)
        logger.info("🔧 Press Ctrl+C to stop the server")
        config = uvicorn.Config(create_app(state), host=host, port=port, log_level="info")
        await uvicorn.Server(config).serve()


def _port(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid port: {value!r}") from exc
    if not 0 <= number <= 0xFFFF:
        raise argparse.ArgumentTypeError(f"port out of range: {value}")
    return number


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="serve", description="Bubbaloop server", add_help=False)
    parser.add_argument("--help", action="help", help="display usage information")
    parser.add_argument("-h", "--host", default=DEFAULT_HOST, help="the host to listen on")
    parser.add_argument("-p", "--port", type=_port, default=DEFAULT_PORT, help="the port to listen on")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse the command line and serve the API."""
    logging.basicConfig(level=logging.INFO)
    args = _build_parser().parse_args(argv)
    addr = f"{args.host}:{args.port}"
    asyncio.run(ApiServer().start(addr, SERVER_GLOBAL_STATE))
    return 0