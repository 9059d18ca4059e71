"""External service clients — GitHub, the roast LLM, and text-to-speech.

WHY: A roast needs three remote services. Each fails in its own way and
none of those raw failures should reach the synchronization engine. This
package keeps every network call behind an async client class and
translates failures into the roast error taxonomy at the boundary.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. GitHubClient fetches
profile data, RoastGenerator calls the chat-completions API, SpeechClient
calls ElevenLabs and acquire_speech() turns speech failures into an
on-device fallback. Response data is parsed into dataclasses in models.py.

RULES:
- All HTTP calls go through these clients (no direct httpx usage elsewhere)
- Credentials come from config (.env), never from call sites
- Speech failures degrade; GitHub and LLM failures raise RoastError kinds
"""

from roastmenow.api.github import GitHubClient, validate_username
from roastmenow.api.llm import RoastGenerator
from roastmenow.api.models import GitHubProfile, SpeechAudio, SpeechFallback
from roastmenow.api.speech import SpeechClient, acquire_speech

__all__ = [
    "GitHubClient",
    "GitHubProfile",
    "RoastGenerator",
    "SpeechAudio",
    "SpeechClient",
    "SpeechFallback",
    "acquire_speech",
    "validate_username",
]
