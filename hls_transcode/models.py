"""Data models for HLS transcode jobs.

The builder, the submitters and the entry points all exchange these
dataclasses.  ``JobDescription.to_dict`` renders the camelCase layout of
the Video Transcoder ``Job`` resource so a job can be logged or inspected
exactly as it would be sent.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any

from .errors import InvalidConfiguration


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass
class TranscodeSettings:
    """Deployment configuration, normally read from the environment.

    Defaults reproduce the original single-project deployment, so a bare
    environment only needs ``TRANSCODE_PROJECT_ID`` to submit Transcoder jobs.
    """

    project_id: str = ""
    location: str = "asia-south1"
    output_bucket: str = "movie-streaming-hls-output"

    # Ladder selection: a preset name, or a JSON document that overrides it
    ladder_name: str = "h264_hls"
    ladder_json: str | None = None

    segment_duration: float = 6.0          # seconds per .ts segment
    manifest_file_name: str = "master.m3u8"

    # MediaConvert (Lambda deployment only)
    mediaconvert_endpoint: str | None = None
    mediaconvert_role_arn: str = ""
    mediaconvert_queue_arn: str | None = None
    aws_region: str = "ap-south-1"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> TranscodeSettings:
        """Construct from ``os.environ`` (or any mapping with the same keys)."""
        env = os.environ if environ is None else environ
        return cls(
            project_id=env.get("TRANSCODE_PROJECT_ID", ""),
            location=env.get("TRANSCODE_REGION", "asia-south1"),
            output_bucket=env.get("TRANSCODE_OUTPUT_BUCKET", "movie-streaming-hls-output"),
            ladder_name=env.get("TRANSCODE_LADDER", "h264_hls"),
            ladder_json=env.get("TRANSCODE_LADDER_JSON") or None,
            segment_duration=_env_float(env, "TRANSCODE_SEGMENT_SECONDS", 6.0),
            manifest_file_name=env.get("TRANSCODE_MANIFEST_NAME", "master.m3u8"),
            mediaconvert_endpoint=env.get("MEDIACONVERT_ENDPOINT") or None,
            mediaconvert_role_arn=env.get("MEDIACONVERT_ROLE_ARN", ""),
            mediaconvert_queue_arn=env.get("MEDIACONVERT_QUEUE_ARN") or None,
            aws_region=env.get("AWS_REGION", "ap-south-1"),
        )


# ---------------------------------------------------------------------------
# Ladder entries
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Rendition:
    """One H.264 video quality level of the ladder."""

    name: str                    # e.g. "720p"; also used in keys and paths
    height: int                  # px
    width: int                   # px
    target_bitrate: int          # bits per second
    frame_rate: float = 30.0
    gop_duration: float | None = None   # seconds between keyframes; None = service default
    rate_control_mode: str | None = None  # "vbr" | "crf"; None = service default
    encoder_profile: str | None = None    # "baseline" | "main" | "high"

    @property
    def elementary_key(self) -> str:
        return f"video_{self.name}"

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height


@dataclass(frozen=True)
class AudioRendition:
    """The single audio encoding shared by every segment stream."""

    name: str = "aac"
    codec: str = "aac"
    bitrate: int = 64_000
    channel_count: int = 2
    sample_rate: int = 48_000

    @property
    def elementary_key(self) -> str:
        return f"audio_{self.name}"


# ---------------------------------------------------------------------------
# Job layout
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SegmentStream:
    """A multiplexed, time-sliced output (one HLS variant)."""

    key: str
    container: str
    elementary_streams: tuple[str, ...]  # video key first, then optional audio key
    file_name: str
    segment_duration: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "container": self.container,
            "elementaryStreams": list(self.elementary_streams),
            "fileName": self.file_name,
            "segmentSettings": {
                "segmentDuration": _format_seconds(self.segment_duration),
            },
        }


@dataclass(frozen=True)
class Manifest:
    """Adaptive-bitrate playlist listing segment streams in ladder order."""

    file_name: str
    protocol: str
    mux_streams: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "fileName": self.file_name,
            "type": self.protocol,
            "muxStreams": list(self.mux_streams),
        }


@dataclass(frozen=True)
class JobDescription:
    """Everything the transcoding service needs for one uploaded object."""

    input_uri: str
    output_uri: str
    renditions: tuple[Rendition, ...]
    segment_streams: tuple[SegmentStream, ...]
    manifests: tuple[Manifest, ...]
    audio: AudioRendition | None = None

    @property
    def segment_stream_keys(self) -> list[str]:
        return [s.key for s in self.segment_streams]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the Transcoder API ``Job`` JSON layout."""
        elementary: list[dict[str, Any]] = [
            {"key": r.elementary_key, "videoStream": {"h264": _h264_dict(r)}}
            for r in self.renditions
        ]
        if self.audio:
            elementary.append({
                "key": self.audio.elementary_key,
                "audioStream": {
                    "codec": self.audio.codec,
                    "bitrateBps": self.audio.bitrate,
                    "channelCount": self.audio.channel_count,
                    "sampleRateHertz": self.audio.sample_rate,
                },
            })
        return {
            "inputUri": self.input_uri,
            "outputUri": self.output_uri,
            "config": {
                "elementaryStreams": elementary,
                "muxStreams": [s.to_dict() for s in self.segment_streams],
                "manifests": [m.to_dict() for m in self.manifests],
            },
        }


# ---------------------------------------------------------------------------
# Submission outcome
# ---------------------------------------------------------------------------

@dataclass
class SubmissionResult:
    """Outcome of handling one uploaded object.

    ``status`` is one of ``submitted``, ``skipped``, ``invalid`` or
    ``failed``.  Only ``failed`` results are worth redelivering.
    """

    status: str
    object_uri: str
    job_name: str | None = None
    error: Exception | None = None
    reason: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status in ("submitted", "skipped")

    @property
    def retryable(self) -> bool:
        return self.status == "failed"

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"status": self.status, "object": self.object_uri}
        if self.job_name:
            result["job_name"] = self.job_name
        if self.reason:
            result["reason"] = self.reason
        if self.error is not None:
            result["message"] = str(self.error)
        return result


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _env_float(env: Any, name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise InvalidConfiguration(f"{name} must be a number of seconds, got {raw!r}") from None


def _h264_dict(rendition: Rendition) -> dict[str, Any]:
    h264: dict[str, Any] = {
        "heightPixels": rendition.height,
        "widthPixels": rendition.width,
        "bitrateBps": rendition.target_bitrate,
        "frameRate": rendition.frame_rate,
    }
    if rendition.gop_duration is not None:
        h264["gopDuration"] = _format_seconds(rendition.gop_duration)
    if rendition.rate_control_mode:
        h264["rateControlMode"] = rendition.rate_control_mode
    if rendition.encoder_profile:
        h264["profile"] = rendition.encoder_profile
    return h264


def _format_seconds(seconds: float) -> str:
    """Render a duration the way the Transcoder JSON API expects ("6s")."""
    if float(seconds).is_integer():
        return f"{int(seconds)}s"
    return f"{seconds}s"
