"""AWS Elemental MediaConvert submitter.

Translates a ``JobDescription`` into a MediaConvert ``HLS_GROUP_SETTINGS``
output group and submits it with ``boto3``, which is pre-installed in the
Lambda Python runtime.

MediaConvert uses account-specific endpoints.  Set ``MEDIACONVERT_ENDPOINT``
to skip the ``describe_endpoints`` lookup on cold start.  When running
locally with SAM / LocalStack, set ``AWS_SAM_LOCAL=1`` or
``LOCALSTACK_HOSTNAME`` to route requests to the local endpoint.
"""

from __future__ import annotations

import logging
import os
from pathlib import PurePosixPath
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from hls_transcode.errors import SubmissionFailure
from hls_transcode.models import AudioRendition, JobDescription, Rendition

logger = logging.getLogger(__name__)

RATE_CONTROL_MODES = {"vbr": "VBR", "cbr": "CBR", "qvbr": "QVBR"}
CODEC_PROFILES = {"baseline": "BASELINE", "main": "MAIN", "high": "HIGH"}
AAC_CODING_MODES = {1: "CODING_MODE_1_0", 2: "CODING_MODE_2_0"}


class MediaConvertSubmitter:
    """Submits jobs to MediaConvert on behalf of *role_arn*."""

    def __init__(
        self,
        role_arn: str,
        *,
        endpoint_url: str | None = None,
        queue_arn: str | None = None,
        region_name: str | None = None,
        client: Any = None,
    ) -> None:
        self.role_arn = role_arn
        self.endpoint_url = endpoint_url
        self.queue_arn = queue_arn
        self.region_name = region_name
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = self._create_client()
        return self._client

    def _create_client(self) -> Any:
        kwargs: dict = {"region_name": self.region_name}
        if os.environ.get("AWS_SAM_LOCAL") or os.environ.get("LOCALSTACK_HOSTNAME"):
            kwargs["endpoint_url"] = "http://host.docker.internal:4566"
            kwargs["aws_access_key_id"] = "test"
            kwargs["aws_secret_access_key"] = "test"
            return boto3.client("mediaconvert", **kwargs)

        if not self.endpoint_url:
            # Auto-discover the account endpoint
            discovery = boto3.client("mediaconvert", **kwargs)
            self.endpoint_url = discovery.describe_endpoints()["Endpoints"][0]["Url"]
            logger.info("Discovered MediaConvert endpoint %s", self.endpoint_url)
        return boto3.client("mediaconvert", endpoint_url=self.endpoint_url, **kwargs)

    def submit(self, job: JobDescription) -> str:
        """Create the MediaConvert job and return its id."""
        if not self.role_arn:
            raise SubmissionFailure("MEDIACONVERT_ROLE_ARN is not configured")

        request = to_mediaconvert_job(job, role_arn=self.role_arn)
        if self.queue_arn:
            request["Queue"] = self.queue_arn

        logger.info("Submitting %s -> %s to MediaConvert", job.input_uri, job.output_uri)
        try:
            response = self.client.create_job(**request)
        except (ClientError, BotoCoreError) as exc:
            raise SubmissionFailure(f"MediaConvert rejected job for {job.input_uri}: {exc}") from exc
        return response["Job"]["Id"]


# ---------------------------------------------------------------------------
# JobDescription -> MediaConvert CreateJob request
# ---------------------------------------------------------------------------

def to_mediaconvert_job(job: JobDescription, *, role_arn: str) -> dict[str, Any]:
    """Build the ``create_job`` keyword arguments for *job*.

    One HLS output group per manifest; its destination ends with the
    manifest stem so MediaConvert writes ``<output>/master.m3u8``.
    """
    renditions = {r.elementary_key: r for r in job.renditions}
    file_input: dict[str, Any] = {
        "FileInput": job.input_uri,
        "VideoSelector": {},
        "TimecodeSource": "ZEROBASED",
    }
    if job.audio:
        file_input["AudioSelectors"] = {
            "Audio Selector 1": {"DefaultSelection": "DEFAULT"},
        }

    streams = {s.key: s for s in job.segment_streams}
    output_groups = []
    for manifest in job.manifests:
        first = streams[manifest.mux_streams[0]]
        outputs = [
            _hls_output(renditions[streams[key].elementary_streams[0]], job.audio)
            for key in manifest.mux_streams
        ]
        output_groups.append({
            "Name": f"HLS {manifest.file_name}",
            "OutputGroupSettings": {
                "Type": "HLS_GROUP_SETTINGS",
                "HlsGroupSettings": {
                    "Destination": job.output_uri + PurePosixPath(manifest.file_name).stem,
                    "SegmentLength": max(1, round(first.segment_duration)),
                    "MinSegmentLength": 0,
                },
            },
            "Outputs": outputs,
        })

    return {
        "Role": role_arn,
        "Settings": {
            "TimecodeConfig": {"Source": "ZEROBASED"},
            "Inputs": [file_input],
            "OutputGroups": output_groups,
        },
    }


def _hls_output(rendition: Rendition, audio: AudioRendition | None) -> dict[str, Any]:
    h264: dict[str, Any] = {
        "RateControlMode": RATE_CONTROL_MODES.get(rendition.rate_control_mode or "", "CBR"),
        "FramerateControl": "SPECIFIED",
        "FramerateNumerator": round(rendition.frame_rate * 1000),
        "FramerateDenominator": 1000,
    }
    if h264["RateControlMode"] == "QVBR":
        h264["MaxBitrate"] = rendition.target_bitrate
    else:
        h264["Bitrate"] = rendition.target_bitrate
    if rendition.gop_duration is not None:
        h264["GopSize"] = rendition.gop_duration
        h264["GopSizeUnits"] = "SECONDS"
    if rendition.encoder_profile:
        h264["CodecProfile"] = CODEC_PROFILES.get(rendition.encoder_profile, "MAIN")

    output: dict[str, Any] = {
        "ContainerSettings": {"Container": "M3U8", "M3u8Settings": {}},
        "VideoDescription": {
            "Width": rendition.width,
            "Height": rendition.height,
            "CodecSettings": {"Codec": "H_264", "H264Settings": h264},
        },
        "NameModifier": f"_{rendition.name}",
    }
    if audio:
        output["AudioDescriptions"] = [
            {
                "CodecSettings": {
                    "Codec": "AAC",
                    "AacSettings": {
                        "Bitrate": audio.bitrate,
                        "CodingMode": AAC_CODING_MODES.get(audio.channel_count, "CODING_MODE_2_0"),
                        "SampleRate": audio.sample_rate,
                    },
                },
            }
        ]
    return output
