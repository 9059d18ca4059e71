"""Error taxonomy shared by the clients, the pipeline, and the surfaces.

WHY: GitHub, OpenAI, ElevenLabs and the local audio device each fail in
their own way. The synchronization core and the user-facing layers only
care about *what kind* of failure happened and a readable sentence about
it — never about raw response bodies.

HOW: Every error is a RoastError subclass with a fixed ``kind`` string and
a ``detail`` message. Boundary components (API clients, playback sources)
catch httpx/OS errors and raise one of these instead.

RULES:
- ``kind`` values are stable identifiers used by the HTTP API and the CLI
- ``detail`` is always human readable and safe to show to the user
- Speech errors never escape acquire_speech(); they become a fallback
"""

from __future__ import annotations


class RoastError(Exception):
    """Base class for every error the roast pipeline reports.

    RULES:
    - Subclasses override ``kind``
    - str(error) is the detail message
    """

    kind = "upstream_error"

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


class InvalidUsername(RoastError):
    """The submitted GitHub username fails the format check."""

    kind = "validation"


class UpstreamNotFound(RoastError):
    """The GitHub user does not exist. Shown as a form error, never retried."""

    kind = "not_found"


class UpstreamRateLimited(RoastError):
    """GitHub or the LLM backend refused the request for rate-limit reasons.

    Surfaced as a "try again later" message; not retried automatically.
    """

    kind = "rate_limited"


class GenerationFailed(RoastError):
    """The LLM backend returned no usable content."""

    kind = "generation_failed"


class SpeechQuotaExhausted(RoastError):
    """The TTS backend reported quota or rate-limit exhaustion."""

    kind = "speech_quota"


class SpeechBackendError(RoastError):
    """Any other TTS failure (bad status, transport error, empty audio)."""

    kind = "speech_error"


class PlaybackError(RoastError):
    """Audio could not be decoded or played on this device.

    Terminates the playback scheduler cleanly.
    """

    kind = "playback_error"
