"""Google Cloud Video Transcoder submitter.

Translates a ``JobDescription`` into ``transcoder_v1`` protobuf types and
submits it with ``TranscoderServiceClient.create_job``.  The client is
created on first use (once per cold start) unless one is injected.
"""

from __future__ import annotations

import logging

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud.video import transcoder_v1
from google.cloud.video.transcoder_v1.services.transcoder_service import (
    TranscoderServiceClient,
)
from google.protobuf import duration_pb2

from hls_transcode.errors import SubmissionFailure
from hls_transcode.models import AudioRendition, JobDescription, Rendition

logger = logging.getLogger(__name__)


class TranscoderSubmitter:
    """Submits jobs to ``projects/{project_id}/locations/{location}``."""

    def __init__(
        self,
        project_id: str,
        location: str,
        client: TranscoderServiceClient | None = None,
    ) -> None:
        self.project_id = project_id
        self.location = location
        self._client = client

    @property
    def parent(self) -> str:
        return f"projects/{self.project_id}/locations/{self.location}"

    @property
    def client(self) -> TranscoderServiceClient:
        if self._client is None:
            self._client = TranscoderServiceClient()
        return self._client

    def submit(self, job: JobDescription) -> str:
        """Create the Transcoder job and return its resource name."""
        if not self.project_id:
            raise SubmissionFailure("TRANSCODE_PROJECT_ID is not configured")

        request_job = to_transcoder_job(job)
        logger.info("Submitting %s -> %s under %s", job.input_uri, job.output_uri, self.parent)
        try:
            response = self.client.create_job(parent=self.parent, job=request_job)
        except (GoogleAPIError, GoogleAuthError) as exc:
            raise SubmissionFailure(f"Transcoder rejected job for {job.input_uri}: {exc}") from exc
        return response.name


# ---------------------------------------------------------------------------
# JobDescription -> transcoder_v1.Job
# ---------------------------------------------------------------------------

def to_transcoder_job(job: JobDescription) -> transcoder_v1.types.Job:
    elementary_streams = [_video_stream(r) for r in job.renditions]
    if job.audio:
        elementary_streams.append(_audio_stream(job.audio))

    mux_streams = [
        transcoder_v1.types.MuxStream(
            key=s.key,
            container=s.container,
            elementary_streams=list(s.elementary_streams),
            file_name=s.file_name,
            segment_settings=transcoder_v1.types.SegmentSettings(
                segment_duration=_duration(s.segment_duration),
            ),
        )
        for s in job.segment_streams
    ]
    manifests = [
        transcoder_v1.types.Manifest(
            file_name=m.file_name,
            type_=transcoder_v1.types.Manifest.ManifestType[m.protocol],
            mux_streams=list(m.mux_streams),
        )
        for m in job.manifests
    ]

    return transcoder_v1.types.Job(
        input_uri=job.input_uri,
        output_uri=job.output_uri,
        config=transcoder_v1.types.JobConfig(
            elementary_streams=elementary_streams,
            mux_streams=mux_streams,
            manifests=manifests,
        ),
    )


def _video_stream(rendition: Rendition) -> transcoder_v1.types.ElementaryStream:
    h264 = transcoder_v1.types.VideoStream.H264CodecSettings(
        height_pixels=rendition.height,
        width_pixels=rendition.width,
        bitrate_bps=rendition.target_bitrate,
        frame_rate=rendition.frame_rate,
    )
    if rendition.gop_duration is not None:
        h264.gop_duration = _duration(rendition.gop_duration)
    if rendition.rate_control_mode:
        h264.rate_control_mode = rendition.rate_control_mode
    if rendition.encoder_profile:
        h264.profile = rendition.encoder_profile
    return transcoder_v1.types.ElementaryStream(
        key=rendition.elementary_key,
        video_stream=transcoder_v1.types.VideoStream(h264=h264),
    )


def _audio_stream(audio: AudioRendition) -> transcoder_v1.types.ElementaryStream:
    return transcoder_v1.types.ElementaryStream(
        key=audio.elementary_key,
        audio_stream=transcoder_v1.types.AudioStream(
            codec=audio.codec,
            bitrate_bps=audio.bitrate,
            channel_count=audio.channel_count,
            sample_rate_hertz=audio.sample_rate,
        ),
    )


def _duration(seconds: float) -> duration_pb2.Duration:
    whole = int(seconds)
    return duration_pb2.Duration(seconds=whole, nanos=int(round((seconds - whole) * 1e9)))
