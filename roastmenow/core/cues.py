"""Cue location: binding cue markers (or keyword matches) to tokens.

WHY: Markers are recorded as character offsets, but playback advances
token by token. Every cue has to be pinned to the token whose highlight
should trigger it. When the LLM ignored the marker instructions, a keyword
heuristic still finds a handful of good punchline spots.

HOW: locate_cues() walks the token list keeping a running character
position (token length plus one separator) and assigns each marker to the
token whose span contains its offset. synthesize_cues() scans sentence-
sized windows of tokens against an ordered rule list, then randomly thins
the candidates.

RULES:
- Returned token indices are always valid for the token list
- Break tokens never carry a cue; a marker landing on one moves forward
- Marker path: no two cue points share a token index (a later marker on an
  already-used token moves to the next free word, or is dropped)
- Heuristic path: first matching rule wins per window; the number kept is
  min(max_cues, candidates // 2) when there are more candidates than that
- Heuristic placement is random; pass a seeded rng to reproduce it
"""

from __future__ import annotations

import random
import re
from typing import List, Optional, Tuple

from roastmenow.config import HEURISTIC_MAX_CUES, HEURISTIC_WINDOW_WORDS
from roastmenow.core.ir import CueMarker, CuePoint, CueTag, Token

# Ordered trigger vocabulary. The first pattern that matches a window wins.
CUE_RULES: List[Tuple[re.Pattern, CueTag]] = [
    (re.compile(r"\b(destroy(ed)?|obliterat\w*|dead|rip|game over|finished)\b", re.I), CueTag.FATALITY),
    (re.compile(r"\b(abandon\w*|lonely|alone|nobody|no one|cry\w*|sad|hurt\w*|zero followers?)\b", re.I), CueTag.EMOTIONAL_DAMAGE),
    (re.compile(r"\b(fail\w*|broke\w*|bug(s|gy)?|crash\w*|typos?|oops|yikes)\b", re.I), CueTag.OOF),
    (re.compile(r"\b(seriously|really|why|bro|what even)\b.*\?|\bbruh\b", re.I), CueTag.BRUH),
    (re.compile(r"\b(impressive|amazing|incredible|genius|wow|stars?)\b", re.I), CueTag.WOW),
    (re.compile(r"\b(legend\w*|boss|flex\w*|swag|cool|gangsta)\b", re.I), CueTag.THUG_LIFE),
    (re.compile(r"!|\b(boom|mic drop|roasted|burn(ed|t)?)\b", re.I), CueTag.AIRHORN),
]


def _token_spans(tokens: List[Token]) -> List[Tuple[int, int]]:
    """Character span of each token in the clean text, including one separator."""
    spans: List[Tuple[int, int]] = []
    position = 0
    for token in tokens:
        end = position + len(token.text) + 1
        spans.append((position, end))
        position = end
    return spans


def _next_word(tokens: List[Token], index: int, taken: set) -> Optional[int]:
    for candidate in range(index, len(tokens)):
        if not tokens[candidate].is_break and candidate not in taken:
            return candidate
    return None


def locate_cues(markers: List[CueMarker], tokens: List[Token]) -> List[CuePoint]:
    """Map marker offsets onto token indices.

    WHY: The playback scheduler fires cues by token index; offsets mean
    nothing to it.

    HOW: For each marker, find the token whose [start, end) span contains
    the offset. Offsets beyond the last span (a marker at the very end)
    clamp to the last token. Collisions and break tokens move forward to
    the next free word.

    Args:
        markers: Markers from extract_markers(), offsets relative to CleanText.
        tokens: Tokens from segment_words() of the same CleanText.

    Returns:
        Cue points sorted by token index.
    """
    if not tokens:
        return []

    spans = _token_spans(tokens)
    taken: set = set()
    points: List[CuePoint] = []

    for marker in markers:
        index = len(tokens) - 1
        for i, (start, end) in enumerate(spans):
            if start <= marker.offset < end:
                index = i
                break

        target = _next_word(tokens, index, taken)
        if target is None:
            continue
        taken.add(target)
        points.append(CuePoint(token_index=target, tag=marker.tag))

    return sorted(points, key=lambda p: p.token_index)


def synthesize_cues(
    tokens: List[Token],
    rng: Optional[random.Random] = None,
    window: int = HEURISTIC_WINDOW_WORDS,
    max_cues: int = HEURISTIC_MAX_CUES,
) -> List[CuePoint]:
    """Invent cue points from trigger vocabulary when no markers exist.

    WHY: Roasts without markers still deserve airhorns. Testing each
    finished sentence against a short list of punchline words puts the
    effect right after the joke lands.

    HOW: Word texts accumulate into a buffer. When a word ends a sentence
    or the buffer reaches *window* words, the buffer is tested against
    CUE_RULES; the first match emits a cue on the current word. The buffer
    resets after every test. Finally, candidates are randomly subsampled.

    RULES:
    - Break tokens are skipped; they neither join nor flush the buffer
    - Kept count is min(max_cues, len(candidates) // 2) when subsampling
    - Kept cues are returned sorted by token index
    """
    rng = rng or random.Random()
    candidates: List[CuePoint] = []
    buffer: List[str] = []

    for token in tokens:
        if token.is_break:
            continue
        buffer.append(token.text)
        if not token.ends_sentence and len(buffer) < window:
            continue

        sentence = " ".join(buffer)
        buffer = []
        for pattern, tag in CUE_RULES:
            if pattern.search(sentence):
                candidates.append(CuePoint(token_index=token.index, tag=tag))
                break

    limit = min(max_cues, len(candidates) // 2)
    if len(candidates) > limit:
        candidates = rng.sample(candidates, limit)

    return sorted(candidates, key=lambda p: p.token_index)
