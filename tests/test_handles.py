import threading
from contextlib import contextmanager
from http import HTTPStatus

import pytest

from bubbaloop.handles import (
    get_inference_result,
    get_streaming_image,
    list_pipelines,
    post_inference_settings,
    post_recording_command,
    start_pipeline,
    stop_pipeline,
)
from bubbaloop.models import (
    InferenceResult,
    InferenceResultQuery,
    InferenceSettingsQuery,
    PipelineStartRequest,
    PipelineStopRequest,
    RecordingCommand,
    RecordingQuery,
    StreamingQuery,
)
from bubbaloop.msgs import EncodedImage
from bubbaloop.pipeline import PipelineStore, ResultStore


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
def results():
    return ResultStore()


@pytest.fixture
def pipelines():
    store = PipelineStore()
    yield store
    for info in store.list_pipelines():
        store.unregister_pipeline(info.id)


def test_post_inference_settings_forwards_prompt(results):
    status, body = post_inference_settings(results, InferenceSettingsQuery("describe the scene"))
    assert status == HTTPStatus.OK
    assert body == {"success": True}
    assert results.inference_settings.try_recv() == "describe the scene"


def test_post_recording_command_forwards_command(results):
    status, body = post_recording_command(results, RecordingQuery(RecordingCommand.STOP))
    assert status == HTTPStatus.OK
    assert body == {"success": True}
    assert results.recording.try_recv() is RecordingCommand.STOP


def test_inference_result_times_out_with_error(results):
    status, body = get_inference_result(results, InferenceResultQuery(2), timeout=0.01)
    assert status == HTTPStatus.OK
    assert body == {
        "Error": {"error": "Failed to get inference result: `just start-pipeline inference`"}
    }


def test_inference_result_returns_published_value(results):
    result = InferenceResult(stamp_ns=5, channel_id=1, prompt="cap en", response="a cat")
    with feeding(results.inference[1], result):
        status, body = get_inference_result(results, InferenceResultQuery(1), timeout=5)
    assert status == HTTPStatus.OK
    assert body == {"Success": result.to_dict()}


def test_inference_result_unknown_channel(results):
    with pytest.raises(IndexError):
        get_inference_result(results, InferenceResultQuery(8), timeout=0.01)


def test_streaming_image_times_out_with_error(results):
    status, body = get_streaming_image(results, StreamingQuery(0), timeout=0.01)
    assert body == {
        "Error": {"error": "Failed to get streaming image: `just start-pipeline streaming`"}
    }


def test_streaming_image_returns_published_image(results):
    image = EncodedImage(stamp_ns=9, channel_id=3, data=b"\xff\xd8", encoding="jpeg")
    with feeding(results.images[3], image):
        status, body = get_streaming_image(results, StreamingQuery(3), timeout=5)
    assert status == HTTPStatus.OK
    assert body == {"Success": image.to_dict()}


def test_start_unknown_pipeline_is_rejected(pipelines):
    status, body = start_pipeline(pipelines, PipelineStartRequest("nonexistent"))
    assert status == HTTPStatus.BAD_REQUEST
    assert body == {
        "error": "Pipeline not supported. Try 'bubbaloop', 'cameras', 'inference' instead"
    }
    assert len(pipelines) == 0


def test_start_supported_pipeline_without_spawner_is_rejected(pipelines):
    status, body = start_pipeline(pipelines, PipelineStartRequest("cameras"))
    assert status == HTTPStatus.BAD_REQUEST
    assert body == {"error": "Pipeline not supported"}
    assert "cameras" not in pipelines


def test_pipeline_lifecycle(pipelines):
    status, body = start_pipeline(pipelines, PipelineStartRequest("bubbaloop"))
    assert status == HTTPStatus.OK
    assert body == {"message": "Pipeline bubbaloop started"}

    status, body = start_pipeline(pipelines, PipelineStartRequest("bubbaloop"))
    assert status == HTTPStatus.BAD_REQUEST
    assert body == {"error": "Pipeline already exists"}

    status, body = list_pipelines(pipelines)
    assert status == HTTPStatus.OK
    assert body == [{"id": "bubbaloop", "status": "Running"}]

    status, body = stop_pipeline(pipelines, PipelineStopRequest("bubbaloop"))
    assert status == HTTPStatus.OK
    assert body == {"message": "Pipeline bubbaloop stopped"}
    assert list_pipelines(pipelines) == (HTTPStatus.OK, [])


def test_stop_missing_pipeline(pipelines):
    status, body = stop_pipeline(pipelines, PipelineStopRequest("bubbaloop"))
    assert status == HTTPStatus.BAD_REQUEST
    assert body == {"error": "Pipeline not found"}