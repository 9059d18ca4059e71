"""Configuration constants, intensity profiles, and .env loading.

WHY: Centralizes all configurable values so they are easy to find,
update, and override. Intensity profiles, API endpoints, and the timing
constants of the playback engine are plain data structures — not buried
in logic — so tuning a roast never means hunting through the scheduler.

HOW: python-dotenv loads the .env file on import. Constants are defined
as module-level values read from the environment with defaults. The
load_*_api_key() functions provide a clear error when a key is missing.

RULES:
- INTENSITIES lists the recognised intensity values in increasing order
- Unknown intensities resolve to DEFAULT_INTENSITY ("medium")
- More intense profiles have a smaller ms_per_char (faster estimated speech)
- API keys are loaded from .env via python-dotenv, never hardcoded
- All defaults can be overridden via environment variables
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load .env from the project root (where the script is run from)
load_dotenv()

# ---------------------------------------------------------------------------
# Intensity profiles
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IntensityProfile:
    """Everything an intensity level changes across the pipeline.

    WHY: The user picks one knob ("how mean?") but it affects three
    subsystems: the LLM prompt and temperature, the ElevenLabs voice
    settings, and the fallback speech-rate estimate used by the timing
    model.

    RULES:
    - temperature is passed to the chat completion request as-is
    - prompt_directive is appended to the base system prompt
    - stability/similarity_boost/style/speed map to ElevenLabs voice_settings
    - ms_per_char is the fallback duration estimate per character of text
    """

    name: str
    temperature: float
    prompt_directive: str
    stability: float
    similarity_boost: float
    style: float
    speed: float
    ms_per_char: float


INTENSITIES: tuple[str, ...] = ("mild", "medium", "spicy", "no_mercy")

DEFAULT_INTENSITY = "medium"

INTENSITY_PROFILES: dict[str, IntensityProfile] = {
    "mild": IntensityProfile(
        name="mild",
        temperature=0.5,
        prompt_directive=(
            "Keep it light and playful, with gentle teasing. Focus more on "
            "silly observations than criticism."
        ),
        stability=0.65,
        similarity_boost=0.75,
        style=0.1,
        speed=0.95,
        ms_per_char=75.0,
    ),
    "medium": IntensityProfile(
        name="medium",
        temperature=0.7,
        prompt_directive=(
            "Be witty and a little sharp, but keep the humor good-natured."
        ),
        stability=0.5,
        similarity_boost=0.75,
        style=0.3,
        speed=1.0,
        ms_per_char=65.0,
    ),
    "spicy": IntensityProfile(
        name="spicy",
        temperature=0.8,
        prompt_directive=(
            "Go hard. Pick on specific repositories, languages and habits, "
            "and do not soften the punchlines."
        ),
        stability=0.4,
        similarity_boost=0.8,
        style=0.5,
        speed=1.05,
        ms_per_char=58.0,
    ),
    "no_mercy": IntensityProfile(
        name="no_mercy",
        temperature=0.9,
        prompt_directive=(
            "ABSOLUTELY OBLITERATE THEM WITH NO MERCY, but always use proper "
            "English sentences and never gibberish. Tear apart abandoned "
            "projects, commit patterns, language choices and missing "
            "documentation using real details from the profile. Do not make "
            "up information. Keep it under 150 words."
        ),
        stability=0.3,
        similarity_boost=0.85,
        style=0.7,
        speed=1.1,
        ms_per_char=50.0,
    ),
}


def resolve_intensity(intensity: str | None) -> IntensityProfile:
    """Return the profile for *intensity*, falling back to the default.

    RULES:
    - Matching is case-insensitive and ignores surrounding whitespace
    - None, empty, or unknown values return the "medium" profile
    """
    key = (intensity or "").strip().lower()
    return INTENSITY_PROFILES.get(key, INTENSITY_PROFILES[DEFAULT_INTENSITY])


# ---------------------------------------------------------------------------
# External services
# ---------------------------------------------------------------------------

GITHUB_API_URL = os.getenv("GITHUB_API_URL", "https://api.github.com")
GITHUB_USER_AGENT = os.getenv("GITHUB_USER_AGENT", "RoastMeNow-App")

OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o")
OPENAI_MAX_TOKENS = int(os.getenv("OPENAI_MAX_TOKENS", "500"))

ELEVENLABS_BASE_URL = os.getenv("ELEVENLABS_BASE_URL", "https://api.elevenlabs.io/v1")
ELEVENLABS_VOICE_ID = os.getenv("ELEVENLABS_VOICE_ID", "ErXwobaYiN019PkySvjV")
ELEVENLABS_MODEL_ID = os.getenv("ELEVENLABS_MODEL_ID", "eleven_monolingual_v1")
ELEVENLABS_BITRATE_KBPS = int(os.getenv("ELEVENLABS_BITRATE_KBPS", "128"))

SPRINKLE_MARKERS = os.getenv("ROAST_SPRINKLE_MARKERS", "false").lower() == "true"

# ---------------------------------------------------------------------------
# Synchronization engine
# ---------------------------------------------------------------------------

POLL_INTERVAL_S = 0.020
CUE_DISPLAY_S = 1.5
FINALE_DISPLAY_S = 3.0

AMBIENT_MAX_EFFECTS = 12
AMBIENT_MIN_INTERVAL_S = 5.0
AMBIENT_MAX_INTERVAL_S = 10.0

HEURISTIC_WINDOW_WORDS = 12
HEURISTIC_MAX_CUES = 6

SPEECH_MAX_WORDS = 150


def load_openai_api_key() -> str:
    """Load the OpenAI API key from the environment.

    RULES:
    - Raises ValueError if the key is missing or empty
    - Never returns a default/placeholder value
    """
    key = os.getenv("OPENAI_API_KEY", "").strip()
    if not key:
        raise ValueError(
            "OpenAI API key not configured. "
            "Add OPENAI_API_KEY to the .env file in the app folder."
        )
    return key


def load_elevenlabs_api_key() -> str:
    """Load the ElevenLabs API key from the environment.

    WHY: Speech synthesis is optional — the player falls back to on-device
    speech — but a misconfigured key should still read as a clear message
    rather than a 401 from the remote service.

    RULES:
    - Raises ValueError if the key is missing or empty
    """
    key = os.getenv("ELEVENLABS_API_KEY", "").strip()
    if not key:
        raise ValueError(
            "ElevenLabs API key not configured. "
            "Add ELEVENLABS_API_KEY to the .env file in the app folder."
        )
    return key


def load_github_token() -> str | None:
    """Return the optional GitHub token, or None for unauthenticated use."""
    token = os.getenv("GITHUB_TOKEN", "").strip()
    return token or None
