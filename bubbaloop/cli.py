"""Command-line client for the server's HTTP API."""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

import httpx

from .models import (
    PipelineStartRequest,
    PipelineStopRequest,
    RecordingCommand,
    RecordingQuery,
)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000


def _port(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid port: {value!r}") from exc
    if not 0 <= number <= 0xFFFF:
        raise argparse.ArgumentTypeError(f"port out of range: {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    """Build the parser for the global options and the subcommands."""
    parser = argparse.ArgumentParser(prog="bubbaloop", description="Bubbaloop CLI", add_help=False)
    parser.add_argument("--help", action="help", help="display usage information")
    parser.add_argument("-h", "--host", default=DEFAULT_HOST, help="the host to listen on")
    parser.add_argument(
        "-p", "--port", type=_port, default=DEFAULT_PORT, help="the port to listen on"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    stats = commands.add_parser("stats", help="Get stats about the server")
    stats_modes = stats.add_subparsers(dest="mode", required=True)
    stats_modes.add_parser("whoami", help="Print the whoami")
    stats_modes.add_parser("sysinfo", help="Print the sysinfo")

    recording = commands.add_parser("recording", help="Recording management commands")
    recording_modes = recording.add_subparsers(dest="mode", required=True)
    recording_modes.add_parser("start", help="Start recording")
    recording_modes.add_parser("stop", help="Stop recording")

    pipeline = commands.add_parser("pipeline", help="Pipeline management commands")
    pipeline_modes = pipeline.add_subparsers(dest="mode", required=True)
    start = pipeline_modes.add_parser("start", help="Start a pipeline")
    start.add_argument("-n", "--name", required=True, help="the pipeline name")
    stop = pipeline_modes.add_parser("stop", help="Stop a pipeline")
    stop.add_argument("-n", "--name", required=True, help="the pipeline name")
    pipeline_modes.add_parser("list", help="List pipelines")

    return parser


def _request_for(args: argparse.Namespace) -> tuple[str, str, Any]:
    """Return the method, path and JSON body for the parsed command."""
    match (args.command, args.mode):
        case ("stats", "whoami"):
            return "GET", "/api/v0/stats/whoami", None
        case ("stats", "sysinfo"):
            return "GET", "/api/v0/stats/sysinfo", None
        case ("recording", "start"):
            return "POST", "/api/v0/recording", RecordingQuery(RecordingCommand.START).to_dict()
        case ("recording", "stop"):
            return "POST", "/api/v0/recording", RecordingQuery(RecordingCommand.STOP).to_dict()
        case ("pipeline", "start"):
            return "POST", "/api/v0/pipeline/start", PipelineStartRequest(args.name).to_dict()
        case ("pipeline", "stop"):
            return "POST", "/api/v0/pipeline/stop", PipelineStopRequest(args.name).to_dict()
        case ("pipeline", "list"):
            return "GET", "/api/v0/pipeline/list", None
    raise ValueError(f"unknown command: {args.command} {args.mode}")


def run_command(args: argparse.Namespace, client: httpx.Client) -> Any:
    """Send the request the parsed command describes and return the decoded JSON reply."""
    method, path, body = _request_for(args)
    url = f"http://{args.host}:{args.port}{path}"
    if body is None:
        response = client.request(method, url)
    else:
        response = client.request(method, url, json=body)
    return response.json()


def _pretty(value: Any) -> str:
    return json.dumps(value, indent=2, sort_keys=True, ensure_ascii=False)


def main(argv: list[str] | None = None) -> int:
    """Parse the command line, call the server and print its reply."""
    args = build_parser().parse_args(argv)
    try:
        with httpx.Client(timeout=None) as client:
            result = run_command(args, client)
    except (httpx.HTTPError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print(f"Result: {_pretty(result)}")
    return 0