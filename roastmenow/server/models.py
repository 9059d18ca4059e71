"""Pydantic request/response models for the HTTP API.

WHY: The FastAPI endpoints need typed schemas for request validation,
response serialization, and automatic OpenAPI documentation. The browser
front end renders straight from these shapes, so they have to stay stable.

HOW: Each endpoint has its own request and response model. Intensity is
an Enum so unknown values are rejected with 422 at the edge. Tokens and
cues have small models of their own, built from the core IR.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- Enum values match config.INTENSITIES exactly
- Response models never expose raw upstream payloads
- Python 3.9+ compatible (no PEP 604 unions, use Optional from typing)
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Intensity(str, Enum):
    """Roast intensity levels.

    RULES:
    - Values match config.INTENSITIES exactly
    """

    mild = "mild"
    medium = "medium"
    spicy = "spicy"
    no_mercy = "no_mercy"


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RoastRequest(BaseModel):
    """Generate a roast for a GitHub user."""

    username: str = Field(description="GitHub username, with or without a leading '@'.")
    intensity: Intensity = Field(
        default=Intensity.medium,
        description="How harsh the roast and the voice should be.",
    )


class SpeechRequest(BaseModel):
    """Synthesize the spoken version of a roast.

    RULES:
    - text is CleanText (markers already removed); markers are stripped
      again before synthesis
    """

    text: str = Field(description="Clean roast text to speak.")
    intensity: Intensity = Field(
        default=Intensity.medium,
        description="Selects voice settings and the fallback speaking rate.",
    )


class TimelineRequest(BaseModel):
    """Build tokens, cues and a schedule for a roast."""

    text: str = Field(description="Roast text, with or without cue markers.")
    intensity: Intensity = Field(
        default=Intensity.medium,
        description="Used to estimate the duration when duration_s is omitted.",
    )
    duration_s: Optional[float] = Field(
        default=None,
        ge=0,
        description="Real playback duration in seconds, if the audio is already known.",
    )


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class TokenInfo(BaseModel):
    index: int = Field(description="Position in the token sequence.")
    text: str = Field(description="Word text; empty for paragraph breaks.")
    is_break: bool = Field(description="True for a paragraph-break token.")
    ends_sentence: bool = Field(description="True when the word ends a sentence.")


class CueInfo(BaseModel):
    token_index: int = Field(description="Token whose highlight triggers the cue.")
    tag: str = Field(description="Cue tag, e.g. 'AIRHORN'.")
    sound_file: str = Field(description="Sound file name for this cue.")


class RoastResponse(BaseModel):
    """A generated roast, ready to display.

    RULES:
    - cue_source is "markers" or "heuristic"
    - cues are sorted by token_index
    """

    roast: str = Field(description="Raw roast text as generated, markers included.")
    clean_text: str = Field(description="Roast text with markers removed.")
    tokens: List[TokenInfo] = Field(description="Display tokens in reading order.")
    cues: List[CueInfo] = Field(description="Cue points bound to tokens.")
    cue_source: str = Field(description="'markers' or 'heuristic'.")
    intensity: Intensity = Field(description="Intensity used for generation.")


class SpeechFallbackResponse(BaseModel):
    """Returned instead of audio when remote synthesis is unavailable.

    WHY: The client should speak the text on the device and drive the
    highlighter from estimated_duration_s.
    """

    fallback: bool = Field(default=True, description="Always true.")
    text: str = Field(description="Optimized text to speak on the device.")
    estimated_duration_s: float = Field(description="Estimated speaking time in seconds.")
    reason: str = Field(description="Why remote synthesis was skipped (error kind).")


class TimelineResponse(BaseModel):
    """Everything a client needs to follow the playback clock."""

    clean_text: str = Field(description="Roast text with markers removed.")
    tokens: List[TokenInfo] = Field(description="Display tokens in reading order.")
    cues: List[CueInfo] = Field(description="Cue points bound to tokens.")
    cue_source: str = Field(description="'markers' or 'heuristic'.")
    schedule: List[float] = Field(description="Start time in seconds of each token.")
    duration_s: float = Field(description="Duration the schedule was scaled to.")
    estimated: bool = Field(description="True when duration_s is an estimate.")


class EffectInfo(BaseModel):
    tag: str = Field(description="Cue tag.")
    marker: str = Field(description="Marker literal as it appears in roast text.")
    sound_file: str = Field(description="Sound file name played for the effect.")


class ErrorResponse(BaseModel):
    """Standard error response body.

    RULES:
    - detail is always a human-readable error message
    - kind is the error taxonomy identifier (validation, not_found, ...)
    """

    detail: str = Field(description="Human-readable error description.")
    kind: Optional[str] = Field(default=None, description="Error kind identifier.")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="API version string.", json_schema_extra={"example": "0.1.0"})
