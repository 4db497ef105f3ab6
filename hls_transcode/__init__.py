"""HLS transcode job builder for storage upload events.

Quick start::

    from hls_transcode import build_job, get_ladder

    renditions, audio = get_ladder("h264_hls")
    job = build_job(
        "gs://uploads/movie.mp4",
        "gs://hls-output/movie/",
        renditions,
        audio=audio,
    )
    job.to_dict()["config"]["manifests"][0]["muxStreams"]
    # ['hls_360p', 'hls_720p', 'hls_1080p']

Or from an event handler::

    from hls_transcode import handle_upload, TranscodeSettings
    result = handle_upload(bucket, name, settings=TranscodeSettings.from_env(),
                           submitter=my_submitter)
"""

from .builder import build_job, derive_output_prefix, validate_job
from .errors import InvalidConfiguration, SubmissionFailure, TranscodeError
from .handler import JobSubmitter, handle_upload, is_video
from .ladders import PRESETS, get_ladder, ladder_from_json, resolve_ladder
from .models import (
    AudioRendition,
    JobDescription,
    Manifest,
    Rendition,
    SegmentStream,
    SubmissionResult,
    TranscodeSettings,
)

__all__ = [
    "build_job",
    "derive_output_prefix",
    "validate_job",
    "handle_upload",
    "is_video",
    "JobSubmitter",
    "PRESETS",
    "get_ladder",
    "ladder_from_json",
    "resolve_ladder",
    "TranscodeError",
    "InvalidConfiguration",
    "SubmissionFailure",
    "AudioRendition",
    "JobDescription",
    "Manifest",
    "Rendition",
    "SegmentStream",
    "SubmissionResult",
    "TranscodeSettings",
]
