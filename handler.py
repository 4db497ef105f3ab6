"""AWS Lambda handler for video uploads (S3 or SQS trigger).

Receives S3 ``ObjectCreated`` records, either directly or wrapped in SQS
messages whose body is an S3 event notification, and submits one
MediaConvert HLS job per uploaded video.

SQS message body format::

    {
        "Records": [
            {"s3": {"bucket": {"name": "uploads"}, "object": {"key": "movie.mp4"}}}
        ]
    }

Only SQS records whose submission failed on the MediaConvert side are
reported in ``batchItemFailures``; invalid configuration is permanent and
is logged instead of being redelivered.

SAM entry point: ``handler.handler``
"""

from __future__ import annotations

import json
import logging
import urllib.parse
from typing import Any

from hls_transcode import SubmissionResult, TranscodeSettings, handle_upload
from mediaconvert_client import MediaConvertSubmitter

logger = logging.getLogger()
logger.setLevel(logging.INFO)

SETTINGS = TranscodeSettings.from_env()
SUBMITTER = MediaConvertSubmitter(
    SETTINGS.mediaconvert_role_arn,
    endpoint_url=SETTINGS.mediaconvert_endpoint,
    queue_arn=SETTINGS.mediaconvert_queue_arn,
    region_name=SETTINGS.aws_region,
)


# ---------------------------------------------------------------------------
# Lambda entry point
# ---------------------------------------------------------------------------

def handler(
    event: dict[str, Any],
    context: Any,
    *,
    settings: TranscodeSettings | None = None,
    submitter: MediaConvertSubmitter | None = None,
) -> dict[str, Any]:
    """Lambda handler for S3 and SQS batch events."""
    logger.info("Received event: %s", json.dumps(event))

    settings = settings or SETTINGS
    submitter = submitter or SUBMITTER

    results: list[dict[str, Any]] = []
    batch_item_failures: list[dict[str, str]] = []

    for record in event.get("Records", []):
        if record.get("eventSource") == "aws:sqs":
            message_id = record["messageId"]
            try:
                body = json.loads(record.get("body") or "{}")
            except json.JSONDecodeError:
                body = None
            if not isinstance(body, dict) or not isinstance(body.get("Records", []), list):
                logger.error("Discarding SQS message %s: body is not an S3 event notification", message_id)
                results.append({"status": "invalid", "message_id": message_id})
                continue
            outcomes = [
                _process_s3_record(r, settings, submitter) for r in body.get("Records", [])
            ]
            results.extend(o.to_dict() for o in outcomes)
            if any(o.retryable for o in outcomes):
                batch_item_failures.append({"itemIdentifier": message_id})
        else:
            results.append(_process_s3_record(record, settings, submitter).to_dict())

    return {"results": results, "batchItemFailures": batch_item_failures}


# ---------------------------------------------------------------------------
# Internal orchestration
# ---------------------------------------------------------------------------

def _process_s3_record(
    record: dict[str, Any],
    settings: TranscodeSettings,
    submitter: MediaConvertSubmitter,
) -> SubmissionResult:
    """Submit the job for a single S3 event record."""
    s3_info = record.get("s3", {})
    bucket = s3_info.get("bucket", {}).get("name", "")
    key = urllib.parse.unquote_plus(s3_info.get("object", {}).get("key", ""))

    return handle_upload(
        bucket,
        key,
        settings=settings,
        submitter=submitter,
        scheme="s3",
        event_id=record.get("responseElements", {}).get("x-amz-request-id"),
        event_type=record.get("eventName"),
    )
