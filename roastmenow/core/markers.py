"""Cue marker extraction, text normalization, and marker insertion.

WHY: The LLM is asked to drop sound-effect markers like ``[AIRHORN]``
into its roast. Those markers must never be shown or spoken, but their
positions decide which word triggers which effect. Extraction produces the
clean display text plus each marker's position *in that clean text*.

HOW: Each recognised marker is swapped for a private-use sentinel padded
with spaces, then the text is walked one whitespace-delimited piece at a
time. Words are re-joined with single spaces (or one paragraph break
where the source had a blank line); every sentinel becomes a CueMarker
whose offset is the clean-text offset of the next word. sprinkle_markers()
is the reverse direction: it inserts markers into text that has none.

RULES:
- Marker syntax is ``[TAG]``; tags match case-insensitively and accept
  "-", "_" or a space inside two-word tags (EMOTIONAL DAMAGE)
- Bracketed words outside the vocabulary are ordinary display text
- A marker counts as whitespace: "foo[WOW]bar" becomes "foo bar"
- Offsets point at the first word after the marker, or len(clean_text)
- Zero markers is not an error: the marker list is simply empty
"""

from __future__ import annotations

import random
import re
from typing import List, Optional, Tuple

from roastmenow.core.ir import CueMarker, CueTag

_MARKER_RE = re.compile(
    r"\[\s*(AIRHORN|OOF|BRUH|EMOTIONAL[-_ ]DAMAGE|THUG[-_ ]LIFE|WOW|FATALITY)\s*\]",
    re.IGNORECASE,
)

_SENTINEL = "\ue000"
_WHITESPACE_SPLIT_RE = re.compile(r"(\s+)")
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")

_ENDING_TAGS = (CueTag.FATALITY, CueTag.EMOTIONAL_DAMAGE, CueTag.AIRHORN)


def _tag_for(name: str) -> CueTag:
    return CueTag(re.sub(r"[_ ]", "-", name.upper()))


def extract_markers(roast_text: str) -> Tuple[str, List[CueMarker]]:
    """Strip cue markers from *roast_text* and record where they were.

    WHY: CleanText is what the user reads and what the TTS backend speaks;
    the markers only survive as offsets into it.

    HOW: Markers become padded sentinels, then the text is rebuilt word by
    word. Newlines are counted across whitespace runs and sentinels so a
    blank line that happens to contain a marker is still a paragraph break.

    RULES:
    - Runs of whitespace collapse to one space; two or more newlines
      between words become exactly one "\\n\\n" paragraph break
    - Leading and trailing whitespace is dropped
    - Markers keep their source order in the returned list

    Args:
        roast_text: The raw text returned by the LLM.

    Returns:
        (clean_text, markers) where each marker offset indexes clean_text.
    """
    tags: List[CueTag] = []

    def _swap(match: re.Match) -> str:
        tags.append(_tag_for(match.group(1)))
        return " {} ".format(_SENTINEL)

    text = _MARKER_RE.sub(_swap, roast_text.replace(_SENTINEL, ""))

    parts: List[str] = []
    length = 0
    markers: List[CueMarker] = []
    pending: List[CueTag] = []
    newlines = 0
    next_tag = iter(tags)

    for piece in _WHITESPACE_SPLIT_RE.split(text):
        if not piece:
            continue
        if piece.isspace():
            newlines += piece.count("\n")
            continue
        if piece == _SENTINEL:
            pending.append(next(next_tag))
            continue

        if parts:
            separator = "\n\n" if newlines >= 2 else " "
            parts.append(separator)
            length += len(separator)
        for tag in pending:
            markers.append(CueMarker(tag=tag, offset=length))
        pending = []
        parts.append(piece)
        length += len(piece)
        newlines = 0

    # Markers after the last word sit at the very end of the clean text
    for tag in pending:
        markers.append(CueMarker(tag=tag, offset=length))

    return "".join(parts), markers


def strip_markers(roast_text: str) -> str:
    """Return only the clean text of *roast_text*."""
    return extract_markers(roast_text)[0]


def sprinkle_markers(text: str, rng: Optional[random.Random] = None) -> str:
    """Insert cue markers into text that has none.

    WHY: Older prompts did not ask the LLM for markers. When marker
    insertion is enabled, the roast still gets a rhythm of effects and a
    dramatic ending instead of relying on the keyword heuristic.

    HOW: Splits on sentence boundaries and appends a random marker after
    every second sentence, plus a coin-flip on every third. Guarantees at
    least one marker, and that the text ends on a marker (FATALITY,
    EMOTIONAL-DAMAGE or AIRHORN is appended when the last sentence has none).

    RULES:
    - Text that already contains markers is returned unchanged
    - Output is non-deterministic unless a seeded rng is passed
    """
    if _MARKER_RE.search(text):
        return text
    rng = rng or random.Random()
    vocabulary = list(CueTag)

    sentences = [s for s in _SENTENCE_SPLIT_RE.split(text.strip()) if s]
    pieces: List[str] = []
    for i, sentence in enumerate(sentences):
        pieces.append(sentence)
        if i > 0 and (i % 2 == 0 or (i % 3 == 0 and rng.random() > 0.5)):
            pieces.append(rng.choice(vocabulary).marker)

    if not any(_MARKER_RE.fullmatch(p) for p in pieces):
        pieces.insert(0, rng.choice(vocabulary).marker)
    if not _MARKER_RE.fullmatch(pieces[-1]):
        pieces.append(rng.choice(_ENDING_TAGS).marker)

    return " ".join(pieces)
