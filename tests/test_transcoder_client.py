from datetime import timedelta
from types import SimpleNamespace

import pytest
from cloudevents.http import CloudEvent
from google.api_core.exceptions import InvalidArgument
from google.auth.exceptions import DefaultCredentialsError
from google.cloud.video import transcoder_v1

from hls_transcode import SubmissionFailure, build_job, get_ladder
import main
import transcoder_client
from transcoder_client import TranscoderSubmitter, to_transcoder_job


class FakeTranscoderClient:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def create_job(self, *, parent, job):
        self.calls.append((parent, job))
        if self.error is not None:
            raise self.error
        return SimpleNamespace(name=f"{parent}/jobs/abc123")


def _job(preset: str = "h264_hls"):
    renditions, audio = get_ladder(preset)
    return build_job("gs://uploads/movie.mp4", "gs://hls-output/movie/", renditions, audio=audio)


def test_submit_returns_job_name() -> None:
    client = FakeTranscoderClient()
    submitter = TranscoderSubmitter("my-project", "asia-south1", client=client)

    name = submitter.submit(_job())

    assert name == "projects/my-project/locations/asia-south1/jobs/abc123"
    parent, job = client.calls[0]
    assert parent == "projects/my-project/locations/asia-south1"
    assert job.input_uri == "gs://uploads/movie.mp4"
    assert job.output_uri == "gs://hls-output/movie/"


def test_api_errors_become_submission_failures() -> None:
    submitter = TranscoderSubmitter("p", "l", client=FakeTranscoderClient(error=InvalidArgument("bad job")))

    with pytest.raises(SubmissionFailure, match="bad job"):
        submitter.submit(_job())


def test_missing_project_is_a_submission_failure() -> None:
    client = FakeTranscoderClient()

    with pytest.raises(SubmissionFailure):
        TranscoderSubmitter("", "asia-south1", client=client).submit(_job())
    assert client.calls == []


def test_conversion_keeps_streams_and_manifest() -> None:
    job = to_transcoder_job(_job())

    assert [s.key for s in job.config.elementary_streams] == ["video_360p", "video_720p", "video_1080p"]
    h264 = job.config.elementary_streams[2].video_stream.h264
    assert (h264.width_pixels, h264.height_pixels, h264.bitrate_bps, h264.frame_rate) == (
        1920, 1080, 5_000_000, 30.0,
    )

    mux = job.config.mux_streams[0]
    assert mux.key == "hls_360p"
    assert mux.container == "ts"
    assert list(mux.elementary_streams) == ["video_360p"]
    assert mux.file_name == "360p/segments/segment_%04d.ts"
    assert mux.segment_settings.segment_duration == timedelta(seconds=6)

    (manifest,) = job.config.manifests
    assert manifest.file_name == "master.m3u8"
    assert manifest.type_ == transcoder_v1.types.Manifest.ManifestType.HLS
    assert list(manifest.mux_streams) == ["hls_360p", "hls_720p", "hls_1080p"]


def test_conversion_includes_audio_and_tuning() -> None:
    job = to_transcoder_job(_job("h264_hls_tuned"))

    audio = job.config.elementary_streams[-1]
    assert audio.key == "audio_aac"
    assert (audio.audio_stream.codec, audio.audio_stream.bitrate_bps) == ("aac", 64_000)

    h264 = job.config.elementary_streams[0].video_stream.h264
    assert h264.gop_duration == timedelta(seconds=2)
    assert h264.rate_control_mode == "vbr"
    assert h264.profile == "high"
    assert list(job.config.mux_streams[1].elementary_streams) == ["video_720p", "audio_aac"]


def test_credential_errors_become_submission_failures(monkeypatch) -> None:
    def no_credentials():
        raise DefaultCredentialsError("no ADC")

    monkeypatch.setattr(transcoder_client, "TranscoderServiceClient", no_credentials)
    submitter = TranscoderSubmitter("my-project", "asia-south1")

    with pytest.raises(SubmissionFailure, match="no ADC"):
        submitter.submit(_job())


def test_cloud_function_logs_credential_errors(monkeypatch, settings, caplog) -> None:
    def no_credentials():
        raise DefaultCredentialsError("no ADC")

    monkeypatch.setattr(transcoder_client, "TranscoderServiceClient", no_credentials)
    monkeypatch.setattr(main, "SETTINGS", settings)
    monkeypatch.setattr(main, "SUBMITTER", TranscoderSubmitter("my-project", "asia-south1"))
    event = CloudEvent(
        {"id": "evt-1", "type": "google.cloud.storage.object.v1.finalized", "source": "//storage"},
        {"bucket": "uploads", "name": "movie.mp4"},
    )

    assert main.transcode_on_upload(event) is None
    assert "not transcoded" in caplog.text
