"""Async client for the OpenAI chat-completions API.

WHY: The roast itself is generated by an LLM. Callers should only deal
with "here is a profile, give me a roast" and with the two ways that can
go wrong that the user cares about: rate limiting and no usable text.

HOW: RoastGenerator wraps httpx.AsyncClient with Bearer auth and posts the
messages from core.prompt.build_messages() to /chat/completions with the
intensity's temperature. Any failure is translated into the roast error
taxonomy before it leaves this module.

RULES:
- Use as: async with RoastGenerator() as generator: ...
- 429 → UpstreamRateLimited; everything else that fails → GenerationFailed
- Empty choices or empty/whitespace content → GenerationFailed
- The returned text is stripped but otherwise untouched (markers included)
"""

from __future__ import annotations

import logging

import httpx

from roastmenow.api.models import GitHubProfile
from roastmenow.config import (
    OPENAI_BASE_URL,
    OPENAI_MAX_TOKENS,
    OPENAI_MODEL,
    load_openai_api_key,
    resolve_intensity,
)
from roastmenow.core.prompt import build_messages
from roastmenow.errors import GenerationFailed, UpstreamRateLimited

logger = logging.getLogger(__name__)


class RoastGenerator:
    """Async client that turns a GitHubProfile into RoastText.

    RULES:
    - api_key defaults to load_openai_api_key() from .env
    - base_url and model default to OPENAI_BASE_URL / OPENAI_MODEL
    - transport can be injected (httpx.MockTransport in tests)
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key or load_openai_api_key()
        self._base_url = (base_url or OPENAI_BASE_URL).rstrip("/")
        self._model = model or OPENAI_MODEL
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> RoastGenerator:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Authorization": "Bearer {}".format(self._api_key)},
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
                "RoastGenerator must be used as an async context manager: "
                "async with RoastGenerator() as generator: ..."
            )
        return self._client

    async def generate(self, profile: GitHubProfile, intensity: str | None = None) -> str:
        """Generate the roast for *profile*.

        WHY: One call per roast; the text (with any cue markers the model
        embedded) goes straight into core.pipeline.prepare_roast().

        HOW: Builds the chat request with the intensity's temperature and
        a fixed max_tokens, then pulls choices[0].message.content.

        Returns:
            The generated RoastText.
        """
        client = self._ensure_client()
        profile_settings = resolve_intensity(intensity)
        body = {
            "model": self._model,
            "messages": build_messages(profile, profile_settings.name),
            "temperature": profile_settings.temperature,
            "max_tokens": OPENAI_MAX_TOKENS,
        }

        logger.info(
            "Requesting %s roast for %s (temperature %.1f)",
            profile_settings.name, profile.user.login, profile_settings.temperature,
        )
        try:
            resp = await client.post("/chat/completions", json=body)
        except httpx.HTTPError as exc:
            raise GenerationFailed("Failed to reach the roast generator: {}".format(exc)) from exc

        if resp.status_code == 429:
            raise UpstreamRateLimited(
                "The roast generator is rate limited. Please try again later."
            )
        if resp.status_code != 200:
            logger.error("OpenAI API error %s: %s", resp.status_code, resp.text[:500])
            raise GenerationFailed("Failed to generate roast (status {})".format(resp.status_code))

        try:
            data = resp.json()
        except ValueError as exc:
            raise GenerationFailed("Roast generator returned a non-JSON response") from exc

        choices = data.get("choices") or []
        if not choices:
            raise GenerationFailed("Roast generator returned no choices")
        content = ((choices[0].get("message") or {}).get("content") or "").strip()
        if not content:
            raise GenerationFailed("Roast generator returned empty content")

        logger.info("Generated roast for %s (%d chars)", profile.user.login, len(content))
        return content
