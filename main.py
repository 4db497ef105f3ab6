"""Cloud Functions entry point (Cloud Storage "object finalized" trigger).

Each upload to the watched bucket submits one Video Transcoder job that
writes 360p/720p/1080p HLS renditions and a ``master.m3u8`` manifest to
``gs://$TRANSCODE_OUTPUT_BUCKET/<name without extension>/``.

CloudEvent data format (only the fields used here)::

    {
        "bucket": "uploads",
        "name": "movie.mp4",
        "contentType": "video/mp4"   // optional
    }

Failures are logged and swallowed so the event is not redelivered.

Functions Framework entry point: ``transcode_on_upload``
"""

from __future__ import annotations

import logging

import functions_framework
from cloudevents.http import CloudEvent

from hls_transcode import SubmissionResult, TranscodeSettings, handle_upload
from transcoder_client import TranscoderSubmitter

logger = logging.getLogger()
logger.setLevel(logging.INFO)

# Built once per instance; the Transcoder client itself connects on first use.
SETTINGS = TranscodeSettings.from_env()
SUBMITTER = TranscoderSubmitter(SETTINGS.project_id, SETTINGS.location)


@functions_framework.cloud_event
def transcode_on_upload(cloud_event: CloudEvent) -> None:
    """Submit a transcode job for the object named in *cloud_event*."""
    result = process_event(cloud_event)
    if not result.ok:
        logger.error("Upload %s not transcoded: %s", result.object_uri, result.to_dict())


def process_event(
    cloud_event: CloudEvent,
    *,
    settings: TranscodeSettings | None = None,
    submitter: TranscoderSubmitter | None = None,
) -> SubmissionResult:
    """Handle one CloudEvent with explicit dependencies (defaults: module-level)."""
    data = cloud_event.data or {}
    return handle_upload(
        data.get("bucket", ""),
        data.get("name", ""),
        settings=settings or SETTINGS,
        submitter=submitter or SUBMITTER,
        scheme="gs",
        content_type=data.get("contentType"),
        event_id=cloud_event["id"],
        event_type=cloud_event["type"],
    )
