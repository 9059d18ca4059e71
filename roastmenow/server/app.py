"""FastAPI application with roast, speech and timeline routes.

WHY: The browser front end cannot call GitHub, OpenAI or ElevenLabs with
our credentials, and it should not re-implement marker parsing or the
timing model. This API proxies the three services and serves the
synchronization engine's output as JSON.

HOW: A single FastAPI app exposes five endpoints grouped by tags.
POST /roasts runs fetch → generate → prepare. POST /speech returns MP3
bytes or a JSON fallback body. POST /timelines builds a schedule for a
known or estimated duration. RoastError subclasses are mapped to HTTP
statuses by one exception handler.

RULES:
- All endpoints have OpenAPI descriptions on every parameter and response
- Error responses use the ErrorResponse schema (detail + kind)
- Speech failures never produce an error status; they produce a fallback
- Clients are created through the _*_client() factories so tests can
  substitute mock transports
- Python 3.9+ compatible (no match/case, no PEP 604 unions)
"""

from __future__ import annotations

import logging
import random
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response

from roastmenow import __version__
from roastmenow.api.github import GitHubClient, validate_username
from roastmenow.api.llm import RoastGenerator
from roastmenow.api.models import SpeechAudio
from roastmenow.api.speech import SpeechClient, acquire_speech
from roastmenow.config import SPRINKLE_MARKERS
from roastmenow.core.ir import CueTag, PreparedRoast
from roastmenow.core.markers import sprinkle_markers, strip_markers
from roastmenow.core.pipeline import build_timeline, prepare_roast
from roastmenow.core.speech_text import estimate_speech_duration, optimize_text_for_speech
from roastmenow.errors import RoastError
from roastmenow.server.models import (
    CueInfo,
    EffectInfo,
    ErrorResponse,
    HealthResponse,
    RoastRequest,
    RoastResponse,
    SpeechFallbackResponse,
    SpeechRequest,
    TimelineRequest,
    TimelineResponse,
    TokenInfo,
)

logger = logging.getLogger(__name__)

# RoastError.kind → HTTP status
ERROR_STATUS = {
    "validation": 400,
    "not_found": 404,
    "rate_limited": 429,
    "generation_failed": 502,
    "upstream_error": 502,
}

# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------

app = FastAPI(
    title="RoastMeNow API",
    description=(
        "Generate comedic roasts of GitHub profiles, synthesize them as "
        "speech with an on-device fallback, and get word-level timelines "
        "with sound-effect cues for synchronized playback."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


@app.exception_handler(RoastError)
async def roast_error_handler(request: Request, exc: RoastError) -> JSONResponse:
    status = ERROR_STATUS.get(exc.kind, 502)
    if status >= 500:
        logger.error(
            "%s %s failed (%s): %s", request.method, request.url.path, exc.kind, exc.detail,
            exc_info=exc,
        )
    return JSONResponse(status_code=status, content={"detail": exc.detail, "kind": exc.kind})


# ---------------------------------------------------------------------------
# Client factories
# ---------------------------------------------------------------------------


def _github_client() -> GitHubClient:
    return GitHubClient()


def _roast_generator() -> RoastGenerator:
    return RoastGenerator()


def _speech_client() -> Optional[SpeechClient]:
    """SpeechClient, or None when ElevenLabs is not configured."""
    try:
        return SpeechClient()
    except ValueError as exc:
        logger.warning("Remote speech unavailable: %s", exc)
        return None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _token_infos(prepared: PreparedRoast) -> List[TokenInfo]:
    return [
        TokenInfo(
            index=token.index,
            text=token.text,
            is_break=token.is_break,
            ends_sentence=token.ends_sentence,
        )
        for token in prepared.tokens
    ]


def _cue_infos(prepared: PreparedRoast) -> List[CueInfo]:
    return [
        CueInfo(token_index=cue.token_index, tag=cue.tag.value, sound_file=cue.tag.sound_file)
        for cue in prepared.cues
    ]


def _require_text(text: str) -> None:
    if not text or not text.strip():
        raise HTTPException(status_code=400, detail="Text is required")


# ---------------------------------------------------------------------------
# Endpoints: Roasts
# ---------------------------------------------------------------------------


@app.post(
    "/roasts",
    response_model=RoastResponse,
    tags=["roasts"],
    summary="Generate a roast",
    description=(
        "Fetch the GitHub profile, generate a roast at the requested "
        "intensity, and return it with clean text, tokens and cue points."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Invalid GitHub username"},
        404: {"model": ErrorResponse, "description": "GitHub user not found"},
        429: {"model": ErrorResponse, "description": "GitHub or LLM rate limit hit"},
        502: {"model": ErrorResponse, "description": "Roast generation failed"},
        503: {"model": ErrorResponse, "description": "LLM backend not configured"},
    },
)
async def create_roast(body: RoastRequest) -> RoastResponse:
    username = validate_username(body.username)
    intensity = body.intensity.value

    try:
        generator = _roast_generator()
    except ValueError as exc:
        raise HTTPException(status_code=503, detail=str(exc))

    async with _github_client() as github:
        profile = await github.fetch_profile(username)
    async with generator:
        roast = await generator.generate(profile, intensity)

    if SPRINKLE_MARKERS:
        roast = sprinkle_markers(roast)

    prepared = prepare_roast(roast, rng=random.Random())
    logger.info(
        "Roasted %s at %s: %d tokens, %d cues (%s)",
        username, intensity, len(prepared.tokens), len(prepared.cues), prepared.cue_source,
    )
    return RoastResponse(
        roast=roast,
        clean_text=prepared.clean_text,
        tokens=_token_infos(prepared),
        cues=_cue_infos(prepared),
        cue_source=prepared.cue_source,
        intensity=body.intensity,
    )


# ---------------------------------------------------------------------------
# Endpoints: Speech
# ---------------------------------------------------------------------------


@app.post(
    "/speech",
    tags=["speech"],
    summary="Synthesize roast speech",
    description=(
        "Returns audio/mpeg bytes from the remote voice, or a JSON body with "
        "fallback=true when the client should speak the text on the device."
    ),
    responses={
        200: {
            "content": {"audio/mpeg": {}},
            "model": SpeechFallbackResponse,
            "description": "MP3 audio, or a fallback instruction",
        },
        400: {"model": ErrorResponse, "description": "Empty text"},
    },
)
async def create_speech(body: SpeechRequest) -> Response:
    _require_text(body.text)
    text = strip_markers(body.text)
    intensity = body.intensity.value

    client = _speech_client()
    if client is None:
        result = await acquire_speech(text, intensity, None)
    else:
        async with client:
            result = await acquire_speech(text, intensity, client)

    if isinstance(result, SpeechAudio):
        return Response(
            content=result.audio,
            media_type=result.content_type,
            headers={"X-Audio-Duration": "{:.3f}".format(result.duration_s)},
        )

    fallback = SpeechFallbackResponse(
        text=result.text,
        estimated_duration_s=result.duration_s,
        reason=result.reason,
    )
    return JSONResponse(content=fallback.model_dump())


# ---------------------------------------------------------------------------
# Endpoints: Timelines
# ---------------------------------------------------------------------------


@app.post(
    "/timelines",
    response_model=TimelineResponse,
    tags=["timelines"],
    summary="Build a playback timeline",
    description=(
        "Extract markers, segment words, locate cues and schedule every "
        "token the speech reaches against the given duration, or against an "
        "estimate from the spoken text and intensity when no duration is given. "
        "Words past the speech word cap are scheduled at the end."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Empty text"},
    },
)
async def create_timeline(body: TimelineRequest) -> TimelineResponse:
    _require_text(body.text)
    prepared = prepare_roast(body.text, rng=random.Random())
    # Same text /speech synthesizes
    spoken = optimize_text_for_speech(prepared.clean_text)

    estimated = body.duration_s is None
    if estimated:
        duration_s = estimate_speech_duration(spoken, body.intensity.value)
    else:
        duration_s = body.duration_s

    timeline = build_timeline(prepared, duration_s, spoken_text=spoken)
    return TimelineResponse(
        clean_text=prepared.clean_text,
        tokens=_token_infos(prepared),
        cues=_cue_infos(prepared),
        cue_source=prepared.cue_source,
        schedule=timeline.schedule,
        duration_s=duration_s,
        estimated=estimated,
    )


# ---------------------------------------------------------------------------
# Endpoints: Effects and health
# ---------------------------------------------------------------------------


@app.get(
    "/effects",
    response_model=List[EffectInfo],
    tags=["effects"],
    summary="List sound effects",
    description="The closed cue vocabulary with marker literals and sound file names.",
)
async def list_effects() -> List[EffectInfo]:
    return [
        EffectInfo(tag=tag.value, marker=tag.marker, sound_file=tag.sound_file)
        for tag in CueTag
    ]


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
    description="Liveness and readiness check for load balancers and orchestrators.",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


def run_api():
    """Entry point for the roastmenow-api console script."""
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
