"""Exception types raised while building and submitting transcode jobs."""

from __future__ import annotations


class TranscodeError(Exception):
    """Base class for every error this package raises on purpose."""

    retryable = False


class InvalidConfiguration(TranscodeError):
    """The rendition ladder or job description is malformed.

    Detected locally before anything is sent to the transcoding service,
    so redelivering the same event cannot succeed.
    """


class SubmissionFailure(TranscodeError):
    """The transcoding service rejected the job or could not be reached."""

    retryable = True
