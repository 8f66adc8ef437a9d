import pytest

from bubbaloop.models import (
    InferenceResponse,
    InferenceResult,
    InferenceResultQuery,
    InferenceSettingsQuery,
    PipelineStartRequest,
    PipelineStopRequest,
    RecordingCommand,
    RecordingQuery,
    StreamingQuery,
    StreamingResponse,
)
from bubbaloop.msgs import DecodeError, EncodedImage


def test_inference_settings_round_trip():
    query = InferenceSettingsQuery("cap en")
    assert InferenceSettingsQuery.from_dict(query.to_dict()) == query


def test_inference_settings_missing_prompt():
    with pytest.raises(DecodeError):
        InferenceSettingsQuery.from_dict({})


def test_inference_result_query_accepts_path_string():
    assert InferenceResultQuery.from_dict({"channel_id": "3"}).channel_id == 3


def test_inference_result_query_rejects_out_of_range():
    with pytest.raises(DecodeError):
        InferenceResultQuery.from_dict({"channel_id": 256})


def test_inference_response_success_shape():
    result = InferenceResult(stamp_ns=5, channel_id=1, prompt="p", response="r")
    assert InferenceResponse.success(result).to_dict() == {"Success": result.to_dict()}
    assert result.to_dict()["response"] == "r"


def test_inference_response_error_shape():
    response = InferenceResponse.error("nothing here")
    assert response.to_dict() == {"Error": {"error": "nothing here"}}


@pytest.mark.parametrize("cls", [PipelineStartRequest, PipelineStopRequest])
def test_pipeline_requests_round_trip(cls):
    request = cls("bubbaloop")
    assert request.to_dict() == {"name": "bubbaloop"}
    assert cls.from_dict(request.to_dict()) == request


def test_pipeline_request_rejects_non_string():
    with pytest.raises(DecodeError):
        PipelineStartRequest.from_dict({"name": 1})


@pytest.mark.parametrize("command", list(RecordingCommand))
def test_recording_query_round_trip(command):
    query = RecordingQuery(command)
    assert RecordingQuery.from_dict(query.to_dict()) == query


def test_recording_query_uses_variant_name():
    assert RecordingQuery(RecordingCommand.START).to_dict() == {"command": "Start"}


def test_recording_query_unknown_command():
    with pytest.raises(DecodeError):
        RecordingQuery.from_dict({"command": "Pause"})


def test_streaming_query_from_int():
    assert StreamingQuery.from_dict({"channel_id": 7}).channel_id == 7


def test_streaming_query_rejects_negative_string():
    with pytest.raises(DecodeError):
        StreamingQuery.from_dict({"channel_id": "-1"})


def test_streaming_response_success_round_trip():
    image = EncodedImage(stamp_ns=3, channel_id=2, data=b"\xff\xd8", encoding="jpeg")
    response = StreamingResponse.success(image)
    assert StreamingResponse.from_dict(response.to_dict()) == response
    assert response.to_dict()["Success"] == image.to_dict()


def test_streaming_response_error_round_trip():
    response = StreamingResponse.error("no image")
    assert response.to_dict() == {"Error": {"error": "no image"}}
    assert StreamingResponse.from_dict(response.to_dict()) == response


def test_streaming_response_rejects_multiple_variants():
    with pytest.raises(DecodeError):
        StreamingResponse.from_dict({"Success": {}, "Error": {"error": "x"}})


def test_streaming_response_rejects_unknown_variant():
    with pytest.raises(DecodeError):
        StreamingResponse.from_dict({"Other": {}})