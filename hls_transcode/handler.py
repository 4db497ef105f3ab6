"""Upload orchestrator shared by the Cloud Functions and Lambda entry points.

``handle_upload`` takes one "object finalized" notification, builds the
HLS job for it and hands the job to an injected submitter.  It never raises
for ``InvalidConfiguration`` or ``SubmissionFailure``; both come back inside
a ``SubmissionResult`` so the caller decides whether the event is worth
redelivering.
"""

from __future__ import annotations

import logging
import mimetypes
from pathlib import PurePosixPath
from typing import Protocol

from .builder import build_job, derive_output_prefix, storage_uri
from .errors import InvalidConfiguration, SubmissionFailure
from .ladders import resolve_ladder
from .models import JobDescription, SubmissionResult, TranscodeSettings

logger = logging.getLogger(__name__)

VIDEO_EXTENSIONS = {".mp4", ".mov", ".avi", ".webm", ".mkv", ".m4v", ".mpg", ".mpeg", ".ts"}


class JobSubmitter(Protocol):
    """Anything that can send a ``JobDescription`` to a transcoding service."""

    def submit(self, job: JobDescription) -> str:
        """Submit *job* and return the service's job name or id.

        Raises ``SubmissionFailure`` when the service rejects the request.
        """
        ...


def is_video(name: str, content_type: str | None = None) -> bool:
    """Guess whether an uploaded object is a video from its metadata."""
    if content_type and content_type.startswith("video/"):
        return True
    if PurePosixPath(name).suffix.lower() in VIDEO_EXTENSIONS:
        return True
    guessed = mimetypes.guess_type(name)[0]
    return bool(guessed and guessed.startswith("video/"))


def handle_upload(
    bucket: str,
    name: str,
    *,
    settings: TranscodeSettings,
    submitter: JobSubmitter,
    scheme: str = "gs",
    content_type: str | None = None,
    event_id: str | None = None,
    event_type: str | None = None,
) -> SubmissionResult:
    """Build and submit the transcode job for one uploaded object."""
    logger.info("Event ID: %s", event_id)
    logger.info("Event Type: %s", event_type)
    logger.info("Bucket: %s", bucket)
    logger.info("File: %s", name)

    input_uri = storage_uri(scheme, bucket, name)

    if not is_video(name, content_type):
        logger.info("Skipping non-video object %s (content type %s)", input_uri, content_type)
        return SubmissionResult(status="skipped", object_uri=input_uri, reason="not a video")

    try:
        job = _build_for_object(input_uri, name, scheme, settings)
    except InvalidConfiguration as exc:
        logger.error("Invalid transcode configuration for %s: %s", input_uri, exc)
        return SubmissionResult(status="invalid", object_uri=input_uri, error=exc)

    try:
        job_name = submitter.submit(job)
    except SubmissionFailure as exc:
        logger.error("Error in transcoder job for %s: %s", input_uri, exc, exc_info=True)
        return SubmissionResult(status="failed", object_uri=input_uri, error=exc)

    logger.info("Job %s created for file %s", job_name, name)
    return SubmissionResult(
        status="submitted",
        object_uri=input_uri,
        job_name=job_name,
        details={"output_uri": job.output_uri},
    )


def _build_for_object(
    input_uri: str,
    name: str,
    scheme: str,
    settings: TranscodeSettings,
) -> JobDescription:
    renditions, audio = resolve_ladder(settings)
    output_uri = storage_uri(scheme, settings.output_bucket, derive_output_prefix(name))
    return build_job(
        input_uri,
        output_uri,
        renditions,
        audio=audio,
        segment_duration=settings.segment_duration,
        manifest_file_name=settings.manifest_file_name,
    )
