# bubbaloop

A small serving library for computer vision and AI robotics. It runs a
lightweight HTTP API that manages background pipelines, relays
streamed camera images and inference results, forwards recording commands,
and reports information about the host machine.

## Installation

```
pip install .
```

To also install what the test suite needs:

```
pip install .[test]
```

## Running the server

```
bubbaloop-serve --host 0.0.0.0 --port 3000
```

`--host` (`-h`) and `--port` (`-p`) default to `0.0.0.0` and `3000`.

### Endpoints

| Method | Path                                   | Purpose                                   |
|--------|----------------------------------------|-------------------------------------------|
| GET    | `/`                                    | Welcome message                           |
| GET    | `/api/v0/stats/whoami`                 | User, host, platform and architecture     |
| GET    | `/api/v0/stats/sysinfo`                | Memory, CPUs, disks and OS details        |
| GET    | `/api/v0/streaming/image/{channel_id}` | Next encoded image on a channel (0–7)     |
| POST   | `/api/v0/recording`                    | `{"command": "Start"}` or `"Stop"`        |
| GET    | `/api/v0/inference/result/{channel_id}`| Next inference result on a channel (0–7)  |
| POST   | `/api/v0/inference/settings`           | `{"prompt": "..."}` sets the prompt       |
| POST   | `/api/v0/pipeline/start`               | `{"name": "bubbaloop"}` starts a pipeline |
| POST   | `/api/v0/pipeline/stop`                | `{"name": "bubbaloop"}` stops a pipeline  |
| GET    | `/api/v0/pipeline/list`                | Lists running pipelines and their status  |

The supported pipeline names are `bubbaloop`, `cameras` and `inference`.
Starting a pipeline that is already running, or one with an unknown name,
returns HTTP 400 with an `error` message.

## Command-line client

The `bubbaloop` command talks to a running server and prints the JSON reply.

```
bubbaloop stats whoami
bubbaloop stats sysinfo
bubbaloop pipeline start --name bubbaloop
bubbaloop pipeline list
bubbaloop pipeline stop --name bubbaloop
bubbaloop recording start
bubbaloop recording stop
```

Use `--host`/`-h` and `--port`/`-p` to reach a server somewhere other than
`0.0.0.0:3000`.

## Using it from Python

```python
from bubbaloop.pipeline import ServerGlobalState
from bubbaloop.server import ApiServer, create_app

state = ServerGlobalState()
app = create_app(state)          # a Starlette application
ApiServer().start("127.0.0.1:3000", state)
```

Messages such as `EncodedImage`, `ImageRgb8Msg` and `PromptResponseMsg` in
`bubbaloop.msgs` convert to and from dictionaries with `to_dict`/`from_dict`
and to and from a compact binary form with `to_bytes`/`from_bytes`.