from __future__ import annotations

import pytest

from hls_transcode import SubmissionFailure, TranscodeSettings, get_ladder


class RecordingSubmitter:
    """Stands in for a cloud submitter; remembers every job it was given."""

    def __init__(
        self,
        job_name: str = "projects/p/locations/l/jobs/job-1",
        error: Exception | None = None,
    ) -> None:
        self.job_name = job_name
        self.error = error
        self.jobs = []

    def submit(self, job):
        self.jobs.append(job)
        if self.error is not None:
            raise self.error
        return self.job_name


@pytest.fixture
def settings() -> TranscodeSettings:
    return TranscodeSettings(project_id="test-project", output_bucket="hls-output")


@pytest.fixture
def submitter() -> RecordingSubmitter:
    return RecordingSubmitter()


@pytest.fixture
def failing_submitter() -> RecordingSubmitter:
    return RecordingSubmitter(error=SubmissionFailure("service unavailable"))


@pytest.fixture
def base_ladder():
    renditions, _ = get_ladder("h264_hls")
    return renditions
