"""Rendition ladder presets.

Three encoder variants have been deployed over time.  They share the same
360p/720p/1080p resolution ladder and differ only in audio muxing and in
GOP / rate-control tuning, so each is kept as a named preset:

- ``h264_hls``        video only, service defaults for GOP and rate control.
- ``h264_hls_audio``  as above plus a shared AAC stereo track.
- ``h264_hls_tuned``  2-second GOP (aligned with segment boundaries), ``vbr``
  rate control, ``high`` profile, plus audio.

A deployment can also supply its own ladder as JSON::

    {
        "renditions": [
            {"name": "480p", "height": 480, "width": 854, "target_bitrate": 1000000}
        ],
        "audio": {"bitrate": 96000}   // optional
    }
"""

from __future__ import annotations

import json
from typing import Any, Optional

from .errors import InvalidConfiguration
from .models import AudioRendition, Rendition, TranscodeSettings

Ladder = tuple[tuple[Rendition, ...], Optional[AudioRendition]]

_BASE_LADDER = (
    Rendition(name="360p", height=360, width=640, target_bitrate=400_000),
    Rendition(name="720p", height=720, width=1280, target_bitrate=2_500_000),
    Rendition(name="1080p", height=1080, width=1920, target_bitrate=5_000_000),
)

_TUNED_LADDER = tuple(
    Rendition(
        name=r.name,
        height=r.height,
        width=r.width,
        target_bitrate=r.target_bitrate,
        frame_rate=r.frame_rate,
        gop_duration=2.0,
        rate_control_mode="vbr",
        encoder_profile="high",
    )
    for r in _BASE_LADDER
)

PRESETS: dict[str, Ladder] = {
    "h264_hls": (_BASE_LADDER, None),
    "h264_hls_audio": (_BASE_LADDER, AudioRendition()),
    "h264_hls_tuned": (_TUNED_LADDER, AudioRendition()),
}

_RENDITION_FIELDS = {
    "name": str,
    "height": int,
    "width": int,
    "target_bitrate": int,
    "frame_rate": float,
    "gop_duration": float,
    "rate_control_mode": str,
    "encoder_profile": str,
}
_AUDIO_FIELDS = {
    "name": str,
    "codec": str,
    "bitrate": int,
    "channel_count": int,
    "sample_rate": int,
}
# May be null in JSON; the service default applies.
_NULLABLE_FIELDS = {"gop_duration", "rate_control_mode", "encoder_profile"}


def get_ladder(name: str) -> Ladder:
    """Return the ``(renditions, audio)`` pair for a preset name."""
    try:
        return PRESETS[name]
    except KeyError:
        raise InvalidConfiguration(
            f"Unknown ladder preset {name!r}; expected one of {sorted(PRESETS)}"
        ) from None


def ladder_from_json(text: str) -> Ladder:
    """Parse a custom ladder document (see module docstring)."""
    try:
        doc = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidConfiguration(f"Ladder JSON is not valid: {exc}") from exc
    if not isinstance(doc, dict):
        raise InvalidConfiguration("Ladder JSON must be an object")

    entries = doc.get("renditions") or []
    if not isinstance(entries, list):
        raise InvalidConfiguration("Ladder JSON \"renditions\" must be a list")
    renditions = tuple(
        Rendition(**_pick(entry, _RENDITION_FIELDS, "rendition")) for entry in entries
    )
    audio_doc = doc.get("audio")
    audio = AudioRendition(**_pick(audio_doc, _AUDIO_FIELDS, "audio")) if audio_doc else None
    return renditions, audio


def resolve_ladder(settings: TranscodeSettings) -> Ladder:
    """Pick the ladder configured for this deployment.

    ``ladder_json`` wins over ``ladder_name`` when both are set.
    """
    if settings.ladder_json:
        return ladder_from_json(settings.ladder_json)
    return get_ladder(settings.ladder_name)


def _pick(entry: Any, allowed: dict[str, type], label: str) -> dict[str, Any]:
    if not isinstance(entry, dict):
        raise InvalidConfiguration(f"Each {label} must be an object, got {entry!r}")
    unknown = set(entry) - set(allowed)
    if unknown:
        raise InvalidConfiguration(f"Unknown {label} fields: {sorted(unknown)}")
    if label == "rendition":
        missing = [f for f in ("name", "height", "width", "target_bitrate") if f not in entry]
        if missing:
            raise InvalidConfiguration(f"Rendition {entry} is missing {missing}")
    for field, value in entry.items():
        if value is None and field in _NULLABLE_FIELDS:
            continue
        if not _has_type(value, allowed[field]):
            raise InvalidConfiguration(
                f"{label.capitalize()} field {field!r} must be {allowed[field].__name__}, "
                f"got {value!r}"
            )
    return dict(entry)


def _has_type(value: Any, expected: type) -> bool:
    if isinstance(value, bool):
        return False
    if expected is float:
        return isinstance(value, (int, float))
    return isinstance(value, expected)
