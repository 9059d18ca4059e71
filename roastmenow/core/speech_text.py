"""Text preparation and duration estimates for speech synthesis.

WHY: ElevenLabs bills per character, and LLM roasts come with markdown
and verbal throat-clearing ("to be honest", "in my opinion") that adds
cost without adding jokes. When the remote voice is unavailable the
player still needs a duration to drive the timing model.

HOW: optimize_text_for_speech() strips markdown, removes filler phrases
and caps the word count. estimate_speech_duration() turns a character
count into seconds using the intensity's speaking rate.
estimate_mp3_duration() derives a real-audio duration from payload size.
spoken_token_count() finds how far into the display tokens the spoken text
reaches.

RULES:
- Word capping splits on whitespace only, so a word is never cut in half
- Filler phrases are matched case-insensitively on word boundaries
- Estimates are > 0 for any non-empty text
"""

from __future__ import annotations

import re
from typing import List

from roastmenow.config import ELEVENLABS_BITRATE_KBPS, SPEECH_MAX_WORDS, resolve_intensity
from roastmenow.core.ir import Token

FILLER_PHRASES: List[str] = [
    "I have to say",
    "to be honest with you",
    "to be honest",
    "to be perfectly honest",
    "to be completely honest",
    "to tell you the truth",
    "let me tell you",
    "I must admit",
    "I would like to point out",
    "I'd like to point out",
    "it's worth noting that",
    "I can't help but notice",
    "it's important to mention",
    "I feel compelled to say",
    "I should mention that",
    "I want to emphasize",
    "I'd like to highlight",
    "it's clear that",
    "needless to say",
    "as you can see",
    "it goes without saying",
    "it should be noted",
    "I think it's fair to say",
    "in my humble opinion",
    "in my opinion",
    "from my perspective",
    "as I see it",
    "in my view",
    "if you ask me",
    "as far as I'm concerned",
    "if I may say so",
    "personally speaking",
    "frankly speaking",
    "to put it bluntly",
    "to put it simply",
    "to put it mildly",
    "to sum it up",
    "to be fair",
    "to be clear",
]

# Longest first so "to be honest with you" wins over "to be honest"
_FILLER_RE = re.compile(
    r"\b(?:{})\b,?".format(
        "|".join(re.escape(p) for p in sorted(FILLER_PHRASES, key=len, reverse=True))
    ),
    re.IGNORECASE,
)

_NON_WORD_RE = re.compile(r"[\W_]+")


def optimize_text_for_speech(text: str, max_words: int = SPEECH_MAX_WORDS) -> str:
    """Clean *text* for the TTS backend and cap its length.

    RULES:
    - Code fences are removed entirely; inline code keeps its content
    - Bold/italic asterisks are removed
    - Three or more newlines collapse to a blank line
    - At most *max_words* words survive, joined by single spaces when the
      cap applies
    """
    optimized = re.sub(r"```[\s\S]*?```", "", text)
    optimized = re.sub(r"`([^`]+)`", r"\1", optimized)
    optimized = optimized.replace("**", "").replace("*", "")
    optimized = re.sub(r"\n{3,}", "\n\n", optimized)

    optimized = _FILLER_RE.sub("", optimized)
    optimized = re.sub(r"[ \t]{2,}", " ", optimized)
    optimized = re.sub(r" +([,.!?;:])", r"\1", optimized)
    optimized = optimized.strip()

    words = optimized.split()
    if len(words) > max_words:
        optimized = " ".join(words[:max_words])

    return optimized


def estimate_speech_duration(text: str, intensity: str | None = None) -> float:
    """Estimated seconds to speak *text* at the intensity's speaking rate."""
    return len(text) * resolve_intensity(intensity).ms_per_char / 1000.0


def estimate_mp3_duration(num_bytes: int, bitrate_kbps: int = ELEVENLABS_BITRATE_KBPS) -> float:
    """Duration in seconds of a constant-bitrate MP3 payload of *num_bytes*."""
    if bitrate_kbps <= 0:
        raise ValueError("bitrate_kbps must be positive")
    return num_bytes * 8 / (bitrate_kbps * 1000.0)


def _word_key(word: str) -> str:
    return _NON_WORD_RE.sub("", word).lower()


def spoken_token_count(tokens: List[Token], spoken_text: str) -> int:
    """Number of leading *tokens* that *spoken_text* reaches.

    WHY: Speech is synthesized from the optimized text, which can stop at
    the word cap long before the displayed roast ends. Only the spoken
    part of the roast should share the audio duration.

    RULES:
    - Words match case-insensitively, ignoring punctuation and markdown
    - Display words missing from the spoken text (fillers) are skipped
    - Spoken words with no matching display word are skipped
    - When the spoken text reaches the last word, or matches nothing,
      every token counts
    """
    keys = [_word_key(token.text) for token in tokens]
    position = 0
    covered = 0
    for word in spoken_text.split():
        key = _word_key(word)
        if not key:
            continue
        for index in range(position, len(keys)):
            if keys[index] == key:
                covered = position = index + 1
                break

    if covered == 0 or not any(keys[covered:]):
        return len(tokens)
    return covered
