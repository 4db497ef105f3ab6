"""Job descriptor builder.

Turns an input object, an output prefix and a rendition ladder into a
``JobDescription``: one elementary stream per rendition (plus the shared
audio stream, if any), one ``ts`` segment stream per rendition and a single
HLS manifest listing the segment streams in ladder order.

Everything here is pure.  Validation failures raise ``InvalidConfiguration``
before anything reaches the transcoding service.
"""

from __future__ import annotations

import logging
import re
from typing import Sequence

from .errors import InvalidConfiguration
from .models import AudioRendition, JobDescription, Manifest, Rendition, SegmentStream

logger = logging.getLogger(__name__)

SEGMENT_CONTAINER = "ts"
MANIFEST_PROTOCOL = "HLS"
DEFAULT_SEGMENT_DURATION = 6.0
DEFAULT_MANIFEST_NAME = "master.m3u8"

_STORAGE_URI = re.compile(r"^(gs|s3)://[a-z0-9][a-z0-9._-]{1,221}[a-z0-9]/\S")
_SEQUENCE_PLACEHOLDER = re.compile(r"%0?\d*d")


# ---------------------------------------------------------------------------
# Locations
# ---------------------------------------------------------------------------

def derive_output_prefix(name: str) -> str:
    """Strip the extension at the first ``.`` and return a folder prefix.

    ``"movie.mp4"`` becomes ``"movie/"``; ``"a/b.final.mov"`` becomes ``"a/b/"``.
    """
    stem = name.split(".", 1)[0]
    if not stem:
        raise InvalidConfiguration(f"Cannot derive an output prefix from {name!r}")
    return f"{stem}/"


def storage_uri(scheme: str, bucket: str, path: str) -> str:
    """Join a storage scheme, bucket and object path into a URI."""
    return f"{scheme}://{bucket}/{path.lstrip('/')}"


def segment_stream_key(rendition: Rendition) -> str:
    return f"hls_{rendition.name}"


def segment_file_name(rendition: Rendition) -> str:
    return f"{rendition.name}/segments/segment_%04d.{SEGMENT_CONTAINER}"


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------

def build_job(
    input_uri: str,
    output_uri: str,
    ladder: Sequence[Rendition],
    *,
    audio: AudioRendition | None = None,
    segment_duration: float = DEFAULT_SEGMENT_DURATION,
    manifest_file_name: str = DEFAULT_MANIFEST_NAME,
) -> JobDescription:
    """Build the job description for one uploaded video.

    *ladder* is ordered by ascending quality; the manifest keeps that order.
    Raises ``InvalidConfiguration`` if the inputs cannot form a valid job.
    """
    _check_uri(input_uri, "input")
    _check_uri(output_uri, "output")
    if not output_uri.endswith("/"):
        raise InvalidConfiguration(f"Output URI must end with '/': {output_uri}")

    renditions = tuple(ladder)
    _check_ladder(renditions, audio)
    if segment_duration <= 0:
        raise InvalidConfiguration(
            f"Segment duration must be positive, got {segment_duration}"
        )

    shared_audio = (audio.elementary_key,) if audio else ()
    segment_streams = tuple(
        SegmentStream(
            key=segment_stream_key(r),
            container=SEGMENT_CONTAINER,
            elementary_streams=(r.elementary_key, *shared_audio),
            file_name=segment_file_name(r),
            segment_duration=segment_duration,
        )
        for r in renditions
    )
    manifest = Manifest(
        file_name=manifest_file_name,
        protocol=MANIFEST_PROTOCOL,
        mux_streams=tuple(s.key for s in segment_streams),
    )

    job = JobDescription(
        input_uri=input_uri,
        output_uri=output_uri,
        renditions=renditions,
        segment_streams=segment_streams,
        manifests=(manifest,),
        audio=audio,
    )
    validate_job(job)
    return job


def validate_job(job: JobDescription) -> None:
    """Check cross-references inside an assembled job description."""
    elementary_keys = {r.elementary_key for r in job.renditions}
    if job.audio:
        elementary_keys.add(job.audio.elementary_key)

    stream_keys: set[str] = set()
    for stream in job.segment_streams:
        if stream.key in stream_keys:
            raise InvalidConfiguration(f"Duplicate segment stream key: {stream.key}")
        stream_keys.add(stream.key)

        missing = [k for k in stream.elementary_streams if k not in elementary_keys]
        if missing:
            raise InvalidConfiguration(
                f"Segment stream {stream.key} references unknown renditions: {missing}"
            )
        if stream.segment_duration > 0 and not _SEQUENCE_PLACEHOLDER.search(stream.file_name):
            raise InvalidConfiguration(
                f"Segment stream {stream.key} file name {stream.file_name!r} "
                f"has no sequence placeholder"
            )

    for manifest in job.manifests:
        dangling = [k for k in manifest.mux_streams if k not in stream_keys]
        if dangling:
            raise InvalidConfiguration(
                f"Manifest {manifest.file_name} references unknown segment streams: "
                f"{dangling}"
            )


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def _check_uri(uri: str, label: str) -> None:
    if not _STORAGE_URI.match(uri or ""):
        raise InvalidConfiguration(f"Malformed {label} storage URI: {uri!r}")


def _check_ladder(
    renditions: tuple[Rendition, ...],
    audio: AudioRendition | None,
) -> None:
    if not renditions:
        raise InvalidConfiguration("Rendition ladder is empty")

    seen: set[str] = set()
    for r in renditions:
        if not r.name:
            raise InvalidConfiguration("Rendition name must not be empty")
        if r.name in seen:
            raise InvalidConfiguration(f"Duplicate rendition name: {r.name}")
        seen.add(r.name)
        if r.width <= 0 or r.height <= 0:
            raise InvalidConfiguration(
                f"Rendition {r.name} has invalid dimensions {r.width}x{r.height}"
            )
        if r.target_bitrate <= 0 or r.frame_rate <= 0:
            raise InvalidConfiguration(
                f"Rendition {r.name} needs a positive bitrate and frame rate"
            )

    if audio is not None and (not audio.name or audio.bitrate <= 0):
        raise InvalidConfiguration(f"Invalid audio rendition: {audio}")

    # Aspect ratio drift is allowed, but usually a typo in the ladder.
    ratios = {round(r.aspect_ratio, 2) for r in renditions}
    if len(ratios) > 1:
        logger.warning("Rendition ladder mixes aspect ratios: %s", sorted(ratios))
