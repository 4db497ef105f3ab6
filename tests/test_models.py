import pytest

from hls_transcode import InvalidConfiguration, SubmissionFailure, SubmissionResult, TranscodeSettings


def test_settings_defaults() -> None:
    settings = TranscodeSettings.from_env({})

    assert settings.project_id == ""
    assert settings.location == "asia-south1"
    assert settings.output_bucket == "movie-streaming-hls-output"
    assert settings.ladder_name == "h264_hls"
    assert settings.ladder_json is None
    assert settings.segment_duration == 6.0
    assert settings.manifest_file_name == "master.m3u8"
    assert settings.mediaconvert_endpoint is None


def test_settings_from_env() -> None:
    settings = TranscodeSettings.from_env({
        "TRANSCODE_PROJECT_ID": "my-project",
        "TRANSCODE_REGION": "us-central1",
        "TRANSCODE_OUTPUT_BUCKET": "out",
        "TRANSCODE_LADDER": "h264_hls_tuned",
        "TRANSCODE_SEGMENT_SECONDS": "4",
        "TRANSCODE_MANIFEST_NAME": "index.m3u8",
        "MEDIACONVERT_ENDPOINT": "https://abc.mediaconvert.us-east-1.amazonaws.com",
        "MEDIACONVERT_ROLE_ARN": "arn:aws:iam::123:role/mc",
        "AWS_REGION": "us-east-1",
    })

    assert settings.project_id == "my-project"
    assert settings.location == "us-central1"
    assert settings.output_bucket == "out"
    assert settings.ladder_name == "h264_hls_tuned"
    assert settings.segment_duration == 4.0
    assert settings.manifest_file_name == "index.m3u8"
    assert settings.mediaconvert_endpoint.startswith("https://abc.")
    assert settings.mediaconvert_role_arn == "arn:aws:iam::123:role/mc"
    assert settings.mediaconvert_queue_arn is None
    assert settings.aws_region == "us-east-1"


def test_settings_read_process_environment(monkeypatch) -> None:
    monkeypatch.setenv("TRANSCODE_PROJECT_ID", "env-project")

    assert TranscodeSettings.from_env().project_id == "env-project"


def test_result_classification() -> None:
    submitted = SubmissionResult(status="submitted", object_uri="gs://a/b.mp4", job_name="jobs/1")
    skipped = SubmissionResult(status="skipped", object_uri="gs://a/b.txt", reason="not a video")
    invalid = SubmissionResult(status="invalid", object_uri="gs://a/b.mp4", error=InvalidConfiguration("x"))
    failed = SubmissionResult(status="failed", object_uri="gs://a/b.mp4", error=SubmissionFailure("y"))

    assert [r.ok for r in (submitted, skipped, invalid, failed)] == [True, True, False, False]
    assert [r.retryable for r in (submitted, skipped, invalid, failed)] == [False, False, False, True]


def test_result_to_dict() -> None:
    failed = SubmissionResult(status="failed", object_uri="gs://a/b.mp4", error=SubmissionFailure("quota"))

    assert SubmissionResult(status="submitted", object_uri="gs://a/b.mp4", job_name="jobs/1").to_dict() == {
        "status": "submitted",
        "object": "gs://a/b.mp4",
        "job_name": "jobs/1",
    }
    assert failed.to_dict() == {"status": "failed", "object": "gs://a/b.mp4", "message": "quota"}


def test_error_retryability() -> None:
    assert SubmissionFailure.retryable is True
    assert InvalidConfiguration.retryable is False


def test_malformed_segment_seconds_names_the_variable() -> None:
    with pytest.raises(InvalidConfiguration, match="TRANSCODE_SEGMENT_SECONDS"):
        TranscodeSettings.from_env({"TRANSCODE_SEGMENT_SECONDS": "six"})


def test_empty_segment_seconds_uses_default() -> None:
    assert TranscodeSettings.from_env({"TRANSCODE_SEGMENT_SECONDS": ""}).segment_duration == 6.0
