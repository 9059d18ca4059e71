"""Speech acquisition: ElevenLabs synthesis with on-device fallback.

WHY: Hearing the roast is the point of the app, but the remote voice is
metered and fails in ordinary ways (quota exhausted, rate limited, bad
key). None of that should stop the roast: the player can always speak the
text on the device instead, as long as it knows roughly how long that will
take so the highlighter can follow along.

HOW: SpeechClient wraps httpx.AsyncClient and posts optimized text to
/text-to-speech/{voice_id} with the intensity's voice settings. It raises
SpeechQuotaExhausted or SpeechBackendError on failure.
acquire_speech() is the boundary: it returns SpeechAudio on success and
converts every speech error into a SpeechFallback with an estimated
duration.

RULES:
- Use as: async with SpeechClient() as client: ...
- 429, or an error body mentioning quota/limit → SpeechQuotaExhausted
- Any other non-2xx, empty audio, or transport error → SpeechBackendError
- acquire_speech() never raises a speech error; only SpeechAudio or
  SpeechFallback come out
- Text is optimized (markdown, fillers, word cap) before either path
"""

from __future__ import annotations

import logging
import re
from typing import Union

import httpx

from roastmenow.api.models import SpeechAudio, SpeechFallback
from roastmenow.config import (
    ELEVENLABS_BASE_URL,
    ELEVENLABS_MODEL_ID,
    ELEVENLABS_VOICE_ID,
    load_elevenlabs_api_key,
    resolve_intensity,
)
from roastmenow.core.speech_text import (
    estimate_mp3_duration,
    estimate_speech_duration,
    optimize_text_for_speech,
)
from roastmenow.errors import SpeechBackendError, SpeechQuotaExhausted

logger = logging.getLogger(__name__)

_QUOTA_RE = re.compile(r"quota|limit", re.IGNORECASE)

SpeechResult = Union[SpeechAudio, SpeechFallback]


class SpeechClient:
    """Async client for ElevenLabs text-to-speech.

    RULES:
    - api_key defaults to load_elevenlabs_api_key() from .env
    - voice_id and model_id default to the ELEVENLABS_* config values
    - transport can be injected (httpx.MockTransport in tests)
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        voice_id: str | None = None,
        model_id: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key or load_elevenlabs_api_key()
        self._base_url = (base_url or ELEVENLABS_BASE_URL).rstrip("/")
        self._voice_id = voice_id or ELEVENLABS_VOICE_ID
        self._model_id = model_id or ELEVENLABS_MODEL_ID
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> SpeechClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={
                "xi-api-key": self._api_key,
                "accept": "audio/mpeg",
            },
            timeout=httpx.Timeout(60.0, connect=10.0),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Return the active httpx client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError(
                "SpeechClient must be used as an async context manager: "
                "async with SpeechClient() as client: ..."
            )
        return self._client

    async def synthesize(self, text: str, intensity: str | None = None) -> tuple[bytes, str]:
        """Synthesize *text* and return (audio_bytes, content_type).

        WHY: The voice settings are part of the joke: no_mercy gets a less
        stable, more stylized, faster delivery than mild.

        Raises:
            SpeechQuotaExhausted: Backend reported quota or rate limiting.
            SpeechBackendError: Any other failure.
        """
        client = self._ensure_client()
        profile = resolve_intensity(intensity)
        body = {
            "text": text,
            "model_id": self._model_id,
            "voice_settings": {
                "stability": profile.stability,
                "similarity_boost": profile.similarity_boost,
                "style": profile.style,
                "speed": profile.speed,
                "use_speaker_boost": True,
            },
        }

        try:
            resp = await client.post("/text-to-speech/{}".format(self._voice_id), json=body)
        except httpx.HTTPError as exc:
            raise SpeechBackendError("Could not reach the speech service: {}".format(exc)) from exc

        if resp.status_code == 429:
            raise SpeechQuotaExhausted("Speech service rate limit reached")
        if resp.status_code >= 300:
            body_text = resp.text[:500]
            logger.error("ElevenLabs API error %s: %s", resp.status_code, body_text)
            if _QUOTA_RE.search(body_text):
                raise SpeechQuotaExhausted("Speech service quota exhausted")
            raise SpeechBackendError(
                "Speech synthesis failed (status {})".format(resp.status_code)
            )

        audio = resp.content
        if not audio:
            raise SpeechBackendError("Speech service returned no audio")
        content_type = resp.headers.get("content-type", "audio/mpeg").split(";")[0].strip()
        return audio, content_type


async def acquire_speech(
    text: str,
    intensity: str | None,
    client: SpeechClient | None,
) -> SpeechResult:
    """Return synthesized audio for *text*, or a fallback to speak locally.

    WHY: This is the only place speech errors are allowed to stop. Every
    caller gets something playable with a duration attached.

    HOW: The text is optimized first. With no client (speech disabled or
    unconfigured) the fallback is returned straight away. Otherwise the
    backend is called; success yields SpeechAudio with a bitrate-derived
    duration, any speech error yields SpeechFallback.

    Args:
        text: CleanText of the roast.
        intensity: Intensity name; unknown values resolve to medium.
        client: An entered SpeechClient, or None to skip the remote call.

    Returns:
        SpeechAudio or SpeechFallback.
    """
    optimized = optimize_text_for_speech(text)

    if client is None:
        logger.info("Remote speech disabled, using on-device speech")
        return SpeechFallback(
            text=optimized,
            reason="speech_disabled",
            duration_s=estimate_speech_duration(optimized, intensity),
        )

    try:
        audio, content_type = await client.synthesize(optimized, intensity)
    except (SpeechQuotaExhausted, SpeechBackendError) as exc:
        logger.warning("Falling back to on-device speech (%s): %s", exc.kind, exc.detail)
        return SpeechFallback(
            text=optimized,
            reason=exc.kind,
            duration_s=estimate_speech_duration(optimized, intensity),
        )

    duration_s = estimate_mp3_duration(len(audio))
    logger.info("Synthesized %d bytes of speech (%.1fs)", len(audio), duration_s)
    return SpeechAudio(
        audio=audio, content_type=content_type, duration_s=duration_s, text=optimized,
    )
