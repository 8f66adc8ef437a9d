import asyncio
import threading
from contextlib import contextmanager
from unittest.mock import AsyncMock, patch

import pytest
from starlette.testclient import TestClient

from bubbaloop.models import InferenceResult, RecordingCommand
from bubbaloop.msgs import EncodedImage
from bubbaloop.pipeline import ServerGlobalState
from bubbaloop.server import ApiServer, create_app, main


@contextmanager
def feeding(sender, value):
    done = threading.Event()

    def run():
        while not done.is_set():
            sender.send(value)
            done.wait(0.01)

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    try:
        yield
    finally:
        done.set()
        thread.join()


@pytest.fixture
def state():
    server_state = ServerGlobalState()
    yield server_state
    for info in server_state.pipeline_store.list_pipelines():
        server_state.pipeline_store.unregister_pipeline(info.id)


@pytest.fixture
def client(state):
    return TestClient(create_app(state), raise_server_exceptions=False)


def test_index(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.text == "Welcome to Bubbaloop!"


def test_recording_command_reaches_the_store(client, state):
    response = client.post("/api/v0/recording", json={"command": "Start"})
    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert state.result_store.recording.try_recv() is RecordingCommand.START


def test_inference_settings_reach_the_store(client, state):
    response = client.post("/api/v0/inference/settings", json={"prompt": "cap en"})
    assert response.json() == {"success": True}
    assert state.result_store.inference_settings.try_recv() == "cap en"


def test_invalid_json_is_rejected(client):
    response = client.post(
        "/api/v0/recording", content=b"{not json", headers={"content-type": "application/json"}
    )
    assert response.status_code == 400


def test_missing_field_is_unprocessable(client):
    response = client.post("/api/v0/pipeline/start", json={})
    assert response.status_code == 422


def test_body_without_json_content_type(client):
    response = client.post("/api/v0/pipeline/start", content=b'{"name": "bubbaloop"}')
    assert response.status_code == 415


def test_pipeline_endpoints(client):
    response = client.post("/api/v0/pipeline/start", json={"name": "bubbaloop"})
    assert response.status_code == 200
    assert response.json() == {"message": "Pipeline bubbaloop started"}

    listed = client.get("/api/v0/pipeline/list")
    assert listed.json() == [{"id": "bubbaloop", "status": "Running"}]

    stopped = client.post("/api/v0/pipeline/stop", json={"name": "bubbaloop"})
    assert stopped.status_code == 200
    assert stopped.json() == {"message": "Pipeline bubbaloop stopped"}
    assert client.get("/api/v0/pipeline/list").json() == []

    again = client.post("/api/v0/pipeline/stop", json={"name": "bubbaloop"})
    assert again.status_code == 400
    assert again.json() == {"error": "Pipeline not found"}


def test_streaming_image_endpoint(client, state):
    image = EncodedImage(stamp_ns=4, channel_id=2, data=b"\x01\x02", encoding="jpeg")
    with feeding(state.result_store.images[2], image):
        response = client.get("/api/v0/streaming/image/2")
    assert response.status_code == 200
    assert response.json() == {"Success": image.to_dict()}


def test_inference_result_endpoint(client, state):
    result = InferenceResult(stamp_ns=1, channel_id=0, prompt="cap en", response="a dog")
    with feeding(state.result_store.inference[0], result):
        response = client.get("/api/v0/inference/result/0")
    assert response.json() == {"Success": result.to_dict()}


def test_channel_out_of_range(client):
    assert client.get("/api/v0/streaming/image/8").status_code == 500


def test_invalid_channel_in_path(client):
    assert client.get("/api/v0/inference/result/abc").status_code == 400


def test_whoami_endpoint(client):
    body = client.get("/api/v0/stats/whoami").json()
    assert set(body) == {
        "arch",
        "distro",
        "desktop_env",
        "device_name",
        "hostname",
        "platform",
        "realname",
        "username",
    }


def test_start_rejects_address_without_port(state):
    with pytest.raises(ValueError):
        asyncio.run(ApiServer().start("localhost", state))


def test_main_serves_on_requested_address():
    with patch("uvicorn.Server") as server_cls:
        server_cls.return_value.serve = AsyncMock()
        assert main(["-h", "127.0.0.1", "-p", "8080"]) == 0
    config = server_cls.call_args.args[0]
    assert (config.host, config.port) == ("127.0.0.1", 8080)
    server_cls.return_value.serve.assert_awaited_once()


def test_main_uses_defaults():
    with patch("uvicorn.Server") as server_cls:
        server_cls.return_value.serve = AsyncMock()
        assert main([]) == 0
    config = server_cls.call_args.args[0]
    assert (config.host, config.port) == ("0.0.0.0", 3000)


def test_main_rejects_bad_port():
    with pytest.raises(SystemExit):
        main(["-p", "70000"])