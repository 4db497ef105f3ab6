import pytest
from cloudevents.http import CloudEvent

import main
from conftest import RecordingSubmitter
from hls_transcode import SubmissionFailure

ATTRIBUTES = {
    "id": "evt-42",
    "type": "google.cloud.storage.object.v1.finalized",
    "source": "//storage.googleapis.com/projects/_/buckets/uploads",
}


def _event(**data) -> CloudEvent:
    return CloudEvent(ATTRIBUTES, data)


def test_process_event_builds_uris_from_payload(settings, submitter) -> None:
    result = main.process_event(
        _event(bucket="uploads", name="movie.mp4", contentType="video/mp4"),
        settings=settings,
        submitter=submitter,
    )

    assert result.status == "submitted"
    (job,) = submitter.jobs
    assert job.input_uri == "gs://uploads/movie.mp4"
    assert job.output_uri == "gs://hls-output/movie/"


def test_transcode_on_upload_uses_module_dependencies(monkeypatch, settings, submitter) -> None:
    monkeypatch.setattr(main, "SETTINGS", settings)
    monkeypatch.setattr(main, "SUBMITTER", submitter)

    assert main.transcode_on_upload(_event(bucket="uploads", name="movie.mp4")) is None
    assert len(submitter.jobs) == 1


def test_transcode_on_upload_swallows_submission_errors(monkeypatch, settings, caplog) -> None:
    monkeypatch.setattr(main, "SETTINGS", settings)
    monkeypatch.setattr(main, "SUBMITTER", RecordingSubmitter(error=SubmissionFailure("quota exceeded")))

    main.transcode_on_upload(_event(bucket="uploads", name="movie.mp4"))

    assert "not transcoded" in caplog.text
    assert "quota exceeded" in caplog.text


def test_transcode_on_upload_ignores_missing_fields(monkeypatch, settings, submitter) -> None:
    monkeypatch.setattr(main, "SETTINGS", settings)
    monkeypatch.setattr(main, "SUBMITTER", submitter)

    main.transcode_on_upload(_event(bucket="uploads"))

    assert submitter.jobs == []


def test_default_submitter_targets_configured_location() -> None:
    assert main.SUBMITTER.parent == (
        f"projects/{main.SETTINGS.project_id}/locations/{main.SETTINGS.location}"
    )


@pytest.mark.parametrize("name", ["movie.mp4", "nested/dir/movie.webm"])
def test_output_prefix_strips_extension(settings, submitter, name) -> None:
    main.process_event(_event(bucket="uploads", name=name), settings=settings, submitter=submitter)

    assert submitter.jobs[0].output_uri == f"gs://hls-output/{name.split('.')[0]}/"
